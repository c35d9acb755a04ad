"""
Entry points called by the HTTP layer.

None of these raise: anything that escapes the orchestrator or the clients is
logged and returned as an ``error`` string next to an empty payload.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from domain.models import City, Coordinates, detect_city
from services.cache_search import CacheSearchClient
from services.geocoding import MapboxGeocoder
from services.http_client import HttpClient
from services.landmark_store import ConvexLandmarkStore, LandmarkStore, SqliteLandmarkStore
from services.search_orchestrator import SearchOrchestrator
from services.semantic_search import ExaSearchClient
from settings import Settings, settings

logger = logging.getLogger(__name__)


@dataclass
class SearchClients:
    geocoder: MapboxGeocoder
    cache: CacheSearchClient
    semantic: ExaSearchClient


def build_landmark_store(cfg: Settings, http: HttpClient) -> LandmarkStore:
    if cfg.CACHE_BACKEND == "sqlite":
        return SqliteLandmarkStore()
    if cfg.CACHE_BACKEND != "convex":
        logger.warning("Unknown CACHE_BACKEND %r, using convex", cfg.CACHE_BACKEND)
    return ConvexLandmarkStore(cfg.CONVEX_URL, http=http)


def build_search_clients(cfg: Settings = settings) -> SearchClients:
    http = HttpClient(timeout=cfg.HTTP_TIMEOUT_SECONDS, attempts=cfg.HTTP_RETRY_ATTEMPTS)
    geocoder = MapboxGeocoder(cfg.MAPBOX_ACCESS_TOKEN, http=http, base_url=cfg.MAPBOX_BASE_URL)
    return SearchClients(
        geocoder=geocoder,
        cache=CacheSearchClient(build_landmark_store(cfg, http)),
        semantic=ExaSearchClient(
            cfg.EXA_API_KEY,
            geocoder,
            http=http,
            base_url=cfg.EXA_BASE_URL,
            max_results=cfg.MAX_EXA_SEARCH_RESULTS,
        ),
    )


_default_clients: Optional[SearchClients] = None


def get_default_search_clients() -> SearchClients:
    global _default_clients
    if _default_clients is None:
        _default_clients = build_search_clients(settings)
    return _default_clients


def build_orchestrator(clients: Optional[SearchClients] = None, cfg: Settings = settings) -> SearchOrchestrator:
    """A fresh orchestrator (and state) per search; clients are shared."""
    clients = clients or get_default_search_clients()
    return SearchOrchestrator(
        clients.cache,
        clients.semantic,
        policy=cfg.SEARCH_POLICY,
        persist_fresh_results=cfg.PERSIST_EXA_RESULTS,
    )


def resolve_city(city: Optional[str], user_location: Optional[Coordinates]) -> City:
    if city:
        return City.parse(city, City.parse(settings.DEFAULT_CITY))
    if user_location is not None:
        detected = detect_city(user_location.latitude, user_location.longitude)
        if detected is not None:
            return detected
    return City.parse(settings.DEFAULT_CITY)


def _error_message(exc: BaseException, fallback: str) -> str:
    return str(exc) or fallback


async def search_landmarks_action(
    query: str,
    user_location: Optional[Coordinates] = None,
    reference_location: Optional[Coordinates] = None,
    location_name: Optional[str] = None,
    city: Optional[str] = None,
    clients: Optional[SearchClients] = None,
) -> Dict[str, Any]:
    """Run a coordinated search; returns ``{"results": [...], "error"?: str}``."""
    try:
        if not query or not query.strip():
            return {"results": [], "error": "Search query must not be empty"}
        clients = clients or get_default_search_clients()
        resolved_city = resolve_city(city, user_location)
        if location_name is None and user_location is not None:
            location_name = await asyncio.to_thread(
                clients.geocoder.reverse_geocode,
                user_location.latitude,
                user_location.longitude,
            )
        orchestrator = build_orchestrator(clients)
        results = await orchestrator.coordinated_search(
            query.strip(),
            user_location=user_location,
            reference_location=reference_location,
            location_name=location_name,
            city=resolved_city,
        )
        return {"results": results}
    except Exception as exc:
        logger.exception("Search action failed")
        return {"results": [], "error": _error_message(exc, "Search failed unexpectedly")}


async def refresh_location_action(
    location_name: str,
    location_id: Optional[str] = None,
    city: Optional[str] = None,
    clients: Optional[SearchClients] = None,
) -> Dict[str, Any]:
    """Refresh one landmark from Exa; returns ``{"result": ..., "error"?: str}``."""
    try:
        clients = clients or get_default_search_clients()
        result = await asyncio.to_thread(
            clients.semantic.refresh_location,
            location_name,
            location_id,
            resolve_city(city, None),
        )
        if result is None:
            return {"result": None, "error": "Could not find updated information for this location"}
        if location_id:
            try:
                await asyncio.to_thread(clients.cache.update, result)
            except Exception:
                logger.exception("Failed to update cached location %s", location_id)
        return {"result": result}
    except Exception as exc:
        logger.exception("Refresh location action failed")
        return {"result": None, "error": _error_message(exc, "Failed to refresh location data")}


async def identify_landmarks_action(
    clues: Iterable[str],
    latitude: float,
    longitude: float,
    city: Optional[str] = None,
    clients: Optional[SearchClients] = None,
) -> Dict[str, Any]:
    try:
        clients = clients or get_default_search_clients()
        resolved_city = resolve_city(city, Coordinates(latitude, longitude))
        names = await asyncio.to_thread(
            clients.semantic.identify_landmarks_from_clues,
            list(clues),
            latitude,
            longitude,
            resolved_city,
        )
        return {"landmarks": names}
    except Exception as exc:
        logger.exception("Landmark identification failed")
        return {"landmarks": [], "error": _error_message(exc, "Landmark identification failed")}
