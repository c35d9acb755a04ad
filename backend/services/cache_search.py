"""
Cache search client: previously stored landmarks matching a text query.

Everything read back is tagged ``source="database"`` regardless of where it
originally came from, which tells the merger the result is already cached.
An unconfigured store degrades to empty reads and no-op writes.
"""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from domain.errors import CacheStoreError
from domain.models import SearchResult, SearchSource, now_ms
from domain.schemas import validate_search_result
from services.landmark_store import (
    DELETE_LOCATION,
    GET_ALL_LOCATIONS,
    SAVE_LOCATION,
    SEARCH_LOCATIONS,
    UPDATE_LOCATION,
    LandmarkStore,
)

logger = logging.getLogger(__name__)


def _result_from_row(row: Any) -> Optional[SearchResult]:
    if not isinstance(row, dict):
        logger.warning("Skipping malformed cache row: %r", row)
        return None
    return validate_search_result(
        {
            "id": str(row.get("_id") or row.get("id") or ""),
            "title": row.get("title"),
            "description": row.get("description") or "",
            "location": {"latitude": row.get("latitude"), "longitude": row.get("longitude")},
            "source": SearchSource.DATABASE.value,
            "timestamp": row.get("timestamp") or now_ms(),
        }
    )


def _mutation_args(result: SearchResult) -> dict:
    return {
        "title": result.title,
        "description": result.description,
        "latitude": result.location.latitude,
        "longitude": result.location.longitude,
        "source": result.source.value,
        "timestamp": result.timestamp,
    }


class CacheSearchClient:
    def __init__(self, store: LandmarkStore):
        self.store = store
        self._warned_unconfigured = False

    def is_configured(self) -> bool:
        return self.store.is_configured()

    def _ready(self, action: str) -> bool:
        if self.store.is_configured():
            return True
        if not self._warned_unconfigured:
            logger.warning("Landmark cache not configured; %s skipped", action)
            self._warned_unconfigured = True
        return False

    def _rows_to_results(self, rows: Any) -> List[SearchResult]:
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise CacheStoreError(f"Unexpected cache response: {type(rows).__name__}")
        results = []
        for row in rows:
            result = _result_from_row(row)
            if result is not None:
                results.append(result)
        return results

    def search(self, query: str) -> List[SearchResult]:
        if not self._ready("search"):
            return []
        rows = self.store.query(SEARCH_LOCATIONS, {"query": query})
        results = self._rows_to_results(rows)
        logger.info("Cache search for %r completed: %d results", query, len(results))
        return results

    def list_all(self) -> List[SearchResult]:
        if not self._ready("list"):
            return []
        return self._rows_to_results(self.store.query(GET_ALL_LOCATIONS, {}))

    def save(self, result: SearchResult) -> Optional[str]:
        if not self._ready("save"):
            return None
        location_id = self.store.mutation(SAVE_LOCATION, _mutation_args(result))
        logger.info("Saved location to cache: %s", result.title)
        return str(location_id) if location_id is not None else None

    def update(self, result: SearchResult) -> Optional[str]:
        if not self._ready("update"):
            return None
        args = {"id": result.id, **_mutation_args(result)}
        location_id = self.store.mutation(UPDATE_LOCATION, args)
        return str(location_id) if location_id is not None else result.id

    def delete(self, location_id: str) -> None:
        if not self._ready("delete"):
            return
        self.store.mutation(DELETE_LOCATION, {"id": location_id})
        logger.info("Deleted cached location %s", location_id)
