"""
Search orchestrator: coordinates the cache and semantic search clients.

Two policies are supported, selected by ``SEARCH_POLICY``:

``parallel`` (default)
    Query the cache and Exa concurrently, wait for both, merge with dedup and
    optionally sort by distance. Fresh results are never written back.

``cache_first``
    Query the cache; return its results when there are any. Otherwise query
    Exa and persist each fresh result to the cache (at most three saves in
    flight) before returning.

A failing branch is logged and treated as empty; the orchestrator itself does
not raise because one source is down.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from domain.models import City, Coordinates, SearchResult, SearchState
from services.cache_search import CacheSearchClient
from services.result_merger import annotate_distances, merge_results
from services.search_state import SearchStateStore
from services.semantic_search import ExaSearchClient

logger = logging.getLogger(__name__)

POLICY_PARALLEL = "parallel"
POLICY_CACHE_FIRST = "cache_first"
SEARCH_POLICIES = (POLICY_PARALLEL, POLICY_CACHE_FIRST)
MAX_CONCURRENT_SAVES = 3


class SearchOrchestrator:
    def __init__(
        self,
        cache_client: CacheSearchClient,
        semantic_client: ExaSearchClient,
        state: Optional[SearchStateStore] = None,
        policy: str = POLICY_PARALLEL,
        persist_fresh_results: bool = True,
    ):
        if policy not in SEARCH_POLICIES:
            raise ValueError(f"Unknown search policy {policy!r}; expected one of {SEARCH_POLICIES}")
        self.cache_client = cache_client
        self.semantic_client = semantic_client
        self.state = state or SearchStateStore()
        self.policy = policy
        self.persist_fresh_results = persist_fresh_results

    async def _cache_branch(self, query: str) -> List[SearchResult]:
        try:
            results = await asyncio.to_thread(self.cache_client.search, query)
        except Exception:
            logger.exception("Cache search failed for %r", query)
            return []
        self.state.add_results(results)
        return results

    async def _semantic_branch(
        self,
        query: str,
        user_location: Optional[Coordinates],
        location_name: Optional[str],
        city: City | str,
    ) -> List[SearchResult]:
        try:
            # Partial results are published here, not by the client.
            results = await asyncio.to_thread(
                self.semantic_client.search, query, user_location, location_name, city
            )
        except Exception:
            logger.exception("Semantic search failed for %r", query)
            return []
        self.state.add_results(results)
        return results

    async def coordinated_search(
        self,
        query: str,
        user_location: Optional[Coordinates] = None,
        reference_location: Optional[Coordinates] = None,
        location_name: Optional[str] = None,
        city: City | str = City.SINGAPORE,
    ) -> List[SearchResult]:
        self.state.start_search(query)
        logger.info("Starting coordinated search (%s) for %r", self.policy, query)

        if self.policy == POLICY_CACHE_FIRST:
            results = await self._cache_first(query, user_location, location_name, city)
        else:
            cache_results, semantic_results = await asyncio.gather(
                self._cache_branch(query),
                self._semantic_branch(query, user_location, location_name, city),
            )
            results = merge_results(cache_results, semantic_results)
            logger.info(
                "Merged %d cache + %d semantic results into %d",
                len(cache_results),
                len(semantic_results),
                len(results),
            )

        results = annotate_distances(results, reference_location)
        self.state.set_results(results)
        self.state.complete_search()
        return results

    async def _cache_first(
        self,
        query: str,
        user_location: Optional[Coordinates],
        location_name: Optional[str],
        city: City | str,
    ) -> List[SearchResult]:
        cache_results = await self._cache_branch(query)
        if cache_results:
            logger.info("Found %d results in cache, skipping Exa search", len(cache_results))
            return cache_results

        logger.info("No results in cache, searching Exa")
        semantic_results = await self._semantic_branch(query, user_location, location_name, city)
        if semantic_results and self.persist_fresh_results:
            await self._persist(semantic_results)
        return semantic_results

    async def _persist(self, results: List[SearchResult]) -> None:
        semaphore = asyncio.Semaphore(MAX_CONCURRENT_SAVES)

        async def save(result: SearchResult) -> bool:
            async with semaphore:
                try:
                    await asyncio.to_thread(self.cache_client.save, result)
                    return True
                except Exception:
                    logger.exception("Failed to save %r to cache", result.title)
                    return False

        saved = await asyncio.gather(*(save(r) for r in results))
        logger.info("Saved %d of %d fresh results to cache", sum(saved), len(results))

    def select_result(self, result: Optional[SearchResult]) -> None:
        self.state.select_result(result)
        if result is not None:
            logger.debug(
                "Selected result %s at (%s, %s)",
                result.title,
                result.location.latitude,
                result.location.longitude,
            )

    def get_selected_result(self) -> Optional[SearchResult]:
        return self.state.get_selected_result()

    def get_results(self) -> List[SearchResult]:
        return self.state.get_results()

    def get_state(self) -> SearchState:
        return self.state.get_state()
