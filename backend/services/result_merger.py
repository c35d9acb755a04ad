"""
Merge cache-origin and semantic-origin results into one deduplicated list.

Cache results always win: they are seeded first and a semantic result is only
appended when it neither shares a similar title with, nor sits within
``DUPLICATE_DISTANCE_M`` of, anything already kept. The pass is greedy and
deterministic for a fixed input order.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from domain.models import Coordinates, SearchResult
from services.geo_utils import distance_between

logger = logging.getLogger(__name__)

TITLE_SIMILARITY_THRESHOLD = 0.7
DUPLICATE_DISTANCE_M = 100.0


def calculate_title_similarity(title1: str, title2: str) -> float:
    """Exact match 1.0, containment 0.8, otherwise word-overlap ratio."""
    t1 = (title1 or "").lower().strip()
    t2 = (title2 or "").lower().strip()
    if t1 == t2:
        return 1.0
    if not t1 or not t2:
        return 0.0
    if t1 in t2 or t2 in t1:
        return 0.8

    words1 = t1.split()
    words2 = t2.split()
    common = set(words1) & set(words2)
    return len(common) / max(len(words1), len(words2))


def calculate_distance(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in meters."""
    return distance_between(a, b)


def is_duplicate(candidate: SearchResult, existing: SearchResult) -> bool:
    if calculate_title_similarity(candidate.title, existing.title) >= TITLE_SIMILARITY_THRESHOLD:
        return True
    return calculate_distance(candidate.location, existing.location) <= DUPLICATE_DISTANCE_M


def merge_results(
    cache_results: Iterable[SearchResult],
    semantic_results: Iterable[SearchResult],
) -> List[SearchResult]:
    merged: List[SearchResult] = list(cache_results)
    dropped = 0
    for candidate in semantic_results:
        if any(is_duplicate(candidate, kept) for kept in merged):
            dropped += 1
            continue
        merged.append(candidate)
    if dropped:
        logger.debug("Dropped %d duplicate semantic results", dropped)
    return merged


def annotate_distances(
    results: Iterable[SearchResult],
    reference: Optional[Coordinates],
) -> List[SearchResult]:
    """Attach distance from ``reference`` and sort nearest first (stable)."""
    items = list(results)
    if reference is None:
        return items
    annotated = [r.with_distance(calculate_distance(reference, r.location)) for r in items]
    annotated.sort(key=lambda r: r.distance)
    return annotated
