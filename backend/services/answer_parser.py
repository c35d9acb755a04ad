"""
Extract structured location candidates from a loosely formatted answer.

The Answer API is asked for ``Name | Address | Description`` lines, but the
model does not always comply. Structured lines are parsed directly; anything
else goes through a set of regex heuristics. Every candidate gets a
confidence score describing how much of a usable address it carried.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional

from domain.models import City, CityProfile, get_city_profile
from domain.schemas import ExtractedLocationEntry, validate_location_entry
from services.text_cleaning import clean_text

logger = logging.getLogger(__name__)

MAX_EXTRACTED_ENTRIES = 25
MIN_LINE_LENGTH = 10
MIN_NAME_LENGTH = 3
MAX_FALLBACK_DESCRIPTION = 100

STREET_SUFFIXES = "Road|Street|Avenue|Drive|Boulevard|Lane|Way"

# Numbered ("1. ") or bulleted ("• ", "- ") list items, including one at the very start.
_ITEM_SPLIT_RE = re.compile(r"(?:^|\n)\s*(?:\d+\.|[•\-])\s*")
_FALLBACK_NAME_RE = re.compile(r"^([^,:\-|]+?)(?:\s+at\b|\s*[,:|]|\s+-)", re.IGNORECASE)
_FALLBACK_DESCRIPTION_RE = re.compile(r".*(?:[:|]|\s-)\s*(.+)$", re.DOTALL)
_STOP_WORD_NAMES = re.compile(
    r"^(and|or|the|in|at|near|singapore|jakarta|landmark|location|place|here|are|top|famous|find|list)$",
    re.IGNORECASE,
)
_PLACEHOLDER_NAME_RE = re.compile(r"^(location|place|area|spot)$", re.IGNORECASE)
_GENERIC_NAME_RE = re.compile(
    r"^(unnamed|unknown|n/a|not available|singapore|jakarta|landmark)$", re.IGNORECASE
)
_POSTAL_CODE_RE = re.compile(r"\d{6}")


def _street_address_re(profile: CityProfile) -> re.Pattern:
    return re.compile(
        rf"\d+[A-Za-z]?\s+(?:[\w'.]+\s+){{0,3}}?(?:{STREET_SUFFIXES}|{profile.city_label})\b",
        re.IGNORECASE,
    )


def calculate_confidence(
    name: str,
    search_query: str,
    description: str,
    city: City | str = City.SINGAPORE,
) -> float:
    """Heuristic [0, 1] score for how reliably an entry was extracted."""
    profile = get_city_profile(city)
    score = 0.5

    if _street_address_re(profile).search(search_query):
        score += 0.2
    if _POSTAL_CODE_RE.search(search_query):
        score += 0.15
    if 20 <= len(description) <= 200:
        score += 0.1
    if len(name) >= MIN_NAME_LENGTH and not _PLACEHOLDER_NAME_RE.match(name):
        score += 0.05

    if _GENERIC_NAME_RE.match(name.strip()):
        score -= 0.3
    if len(description) < 10:
        score -= 0.2

    return max(0.0, min(1.0, score))


def _fallback_address_re(profile: CityProfile) -> re.Pattern:
    postal = r"\d{6}" if profile.country_code == "SG" else r"\d{5}"
    return re.compile(
        rf"(?:\bat\b|located|address|:)\s*([^,\n]+?(?:{STREET_SUFFIXES}|{profile.city_label}\s+{postal}|{postal}))",
        re.IGNORECASE,
    )


def _parse_structured(parts: List[str], profile: CityProfile) -> Optional[dict]:
    name = clean_text(parts[0])
    if len(name) < MIN_NAME_LENGTH:
        return None
    address = clean_text(parts[1])
    description = clean_text(parts[2]) if len(parts) > 2 else ""
    search_query = f"{name}, {address}" if address else name
    return {
        "name": name,
        "search_query": search_query,
        "description": description,
        "address": address,
        "confidence": calculate_confidence(name, search_query, description, profile.city),
    }


def _parse_unstructured(line: str, profile: CityProfile) -> Optional[dict]:
    name_match = _FALLBACK_NAME_RE.match(line)
    if not name_match:
        return None
    name = clean_text(name_match.group(1))
    if len(name) < MIN_NAME_LENGTH or _STOP_WORD_NAMES.match(name):
        return None

    address_match = _fallback_address_re(profile).search(line)
    address = clean_text(address_match.group(1)) if address_match else profile.city_label

    desc_match = _FALLBACK_DESCRIPTION_RE.match(line)
    raw_description = desc_match.group(1).strip()[:MAX_FALLBACK_DESCRIPTION] if desc_match else ""
    description = clean_text(raw_description)

    search_query = f"{name}, {address}, {profile.city_label}"
    return {
        "name": name,
        "search_query": search_query,
        "description": description,
        "address": address,
        "confidence": calculate_confidence(name, search_query, description, profile.city),
    }


def extract_location_entries(
    answer: str,
    max_entries: int = MAX_EXTRACTED_ENTRIES,
    city: City | str = City.SINGAPORE,
) -> List[ExtractedLocationEntry]:
    """
    Parse an answer into at most ``max_entries`` validated location entries.

    Entries that fail validation are dropped individually; the rest of the
    answer is still parsed.
    """
    if not answer or max_entries <= 0:
        return []
    profile = get_city_profile(city)

    items = _ITEM_SPLIT_RE.split(answer)
    # Text ahead of the first list marker is a preamble, not an entry.
    if len(items) > 1:
        items = items[1:]

    entries: List[ExtractedLocationEntry] = []
    for raw_line in items:
        line = raw_line.strip()
        if len(line) < MIN_LINE_LENGTH:
            continue

        parts = [p.strip() for p in line.split("|")]
        if len(parts) >= 2:
            candidate = _parse_structured(parts, profile)
        else:
            candidate = _parse_unstructured(line, profile)
        if candidate is None:
            continue

        entry = validate_location_entry(candidate)
        if entry is not None:
            entries.append(entry)
        if len(entries) >= max_entries:
            break

    logger.debug("Extracted %d location entries from answer", len(entries))
    return entries
