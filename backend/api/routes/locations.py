"""
Cached locations API routes.
"""
import asyncio
import logging
from typing import List, Literal, Optional
from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel, Field

from api.routes.search import CityName, SearchResultResponse, result_to_response
from domain.errors import CacheStoreError, LocationNotFoundError
from domain.models import Coordinates, SearchResult, SearchSource, now_ms
from services.search_actions import get_default_search_clients, refresh_location_action

router = APIRouter()
logger = logging.getLogger(__name__)


class LocationCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    source: Literal["database", "exa", "mapbox"] = "database"


class LocationCreated(BaseModel):
    id: str


class RefreshRequest(BaseModel):
    location_name: str = Field(min_length=1)
    location_id: Optional[str] = None
    city: Optional[CityName] = None


class RefreshResponse(BaseModel):
    result: Optional[SearchResultResponse] = None
    error: Optional[str] = None


def _cache_client():
    cache = get_default_search_clients().cache
    if not cache.is_configured():
        raise HTTPException(status_code=503, detail="Landmark cache not configured")
    return cache


@router.get("", response_model=List[SearchResultResponse], response_model_exclude_none=True)
async def list_locations():
    """List every cached location, newest first."""
    cache = _cache_client()
    try:
        results = await asyncio.to_thread(cache.list_all)
    except CacheStoreError as exc:
        logger.error("Listing cached locations failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc))
    return [result_to_response(r) for r in results]


@router.post("", response_model=LocationCreated, status_code=201)
async def save_location(data: LocationCreate):
    """Store a location in the landmark cache."""
    cache = _cache_client()
    result = SearchResult(
        id="",
        title=data.title,
        description=data.description,
        location=Coordinates(data.latitude, data.longitude),
        source=SearchSource(data.source),
        timestamp=now_ms(),
    )
    try:
        location_id = await asyncio.to_thread(cache.save, result)
    except CacheStoreError as exc:
        logger.error("Saving location %r failed: %s", data.title, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    return LocationCreated(id=location_id or "")


@router.delete("/{location_id}", status_code=204)
async def delete_location(location_id: str):
    """Remove a cached location."""
    cache = _cache_client()
    try:
        await asyncio.to_thread(cache.delete, location_id)
    except LocationNotFoundError:
        raise HTTPException(status_code=404, detail="Location not found")
    except CacheStoreError as exc:
        logger.error("Deleting location %s failed: %s", location_id, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    return Response(status_code=204)


@router.post("/refresh", response_model=RefreshResponse, response_model_exclude_none=True)
async def refresh_location(data: RefreshRequest):
    """Refresh one location from Exa and update its cached copy when an id is given."""
    outcome = await refresh_location_action(data.location_name, data.location_id, city=data.city)
    result = outcome.get("result")
    return RefreshResponse(
        result=result_to_response(result) if result else None,
        error=outcome.get("error"),
    )
