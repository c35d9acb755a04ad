"""
Text cleanup for names and descriptions lifted out of natural-language answers.
"""
from __future__ import annotations

import re

_CITATION_RE = re.compile(r"\[\d+\]")
_PAREN_URL_RE = re.compile(r"\(https?://[^)]+\)")
_BRACKET_URL_RE = re.compile(r"\[https?://[^\]]+\]")
_BARE_URL_RE = re.compile(r"https?://\S+")
_WHITESPACE_RE = re.compile(r"\s+")

_MARKDOWN_RES = (
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"\*(.+?)\*"), r"\1"),
    (re.compile(r"__(.+?)__"), r"\1"),
    (re.compile(r"_(.+?)_"), r"\1"),
)


def clean_description(text: str) -> str:
    """Remove citation markers and URLs, then normalize whitespace."""
    if not text:
        return ""
    text = _CITATION_RE.sub("", text)
    text = _PAREN_URL_RE.sub("", text)
    text = _BRACKET_URL_RE.sub("", text)
    text = _BARE_URL_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_markdown(text: str) -> str:
    """Strip bold/italic emphasis markers, keeping the wrapped text."""
    if not text:
        return ""
    for pattern, repl in _MARKDOWN_RES:
        text = pattern.sub(repl, text)
    return text.strip()


def clean_text(text: str) -> str:
    return clean_description(clean_markdown(text))


def clean_description_for_display(text: str) -> str:
    """
    Aggressive cleanup for UI captions: drops anything in parentheses or
    brackets, all asterisks and URLs.
    """
    if not text:
        return ""
    text = re.sub(r"\([^)]*\)", "", text)
    text = re.sub(r"\[[^\]]*\]", "", text)
    text = re.sub(r"\*+", "", text)
    text = _BARE_URL_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[:max_length].strip()}..."


def clean_and_truncate_description(text: str, max_length: int = 150) -> str:
    return truncate_text(clean_description_for_display(text), max_length)
