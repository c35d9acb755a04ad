"""
Search API routes.
"""
from typing import List, Literal, Optional
from fastapi import APIRouter
from pydantic import BaseModel, Field

from domain.models import Coordinates, SearchResult
from services.search_actions import identify_landmarks_action, search_landmarks_action

router = APIRouter()

CityName = Literal["singapore", "jakarta"]


class CoordinatesModel(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    def to_domain(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)


class SearchRequest(BaseModel):
    query: str
    user_location: Optional[CoordinatesModel] = None
    reference_location: Optional[CoordinatesModel] = None
    location_name: Optional[str] = None
    city: Optional[CityName] = None


class SearchResultResponse(BaseModel):
    id: str
    title: str
    description: str
    location: CoordinatesModel
    source: str
    timestamp: int
    address: Optional[str] = None
    url: Optional[str] = None
    distance: Optional[float] = None
    confidence: Optional[float] = None


class SearchResponse(BaseModel):
    results: List[SearchResultResponse]
    error: Optional[str] = None


class IdentifyRequest(BaseModel):
    clues: List[str]
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    city: Optional[CityName] = None


class IdentifyResponse(BaseModel):
    landmarks: List[str]
    error: Optional[str] = None


def result_to_response(result: SearchResult) -> SearchResultResponse:
    """Convert domain SearchResult to API response."""
    return SearchResultResponse(
        id=result.id,
        title=result.title,
        description=result.description,
        location=CoordinatesModel(
            latitude=result.location.latitude,
            longitude=result.location.longitude,
        ),
        source=result.source.value,
        timestamp=result.timestamp,
        address=result.address,
        url=result.url,
        distance=result.distance,
        confidence=result.confidence,
    )


@router.post("", response_model=SearchResponse, response_model_exclude_none=True)
async def search_landmarks(data: SearchRequest):
    """Search landmarks across the cache and Exa. Failures come back in ``error``, never as 5xx."""
    outcome = await search_landmarks_action(
        data.query,
        user_location=data.user_location.to_domain() if data.user_location else None,
        reference_location=data.reference_location.to_domain() if data.reference_location else None,
        location_name=data.location_name,
        city=data.city,
    )
    return SearchResponse(
        results=[result_to_response(r) for r in outcome["results"]],
        error=outcome.get("error"),
    )


@router.post("/identify", response_model=IdentifyResponse, response_model_exclude_none=True)
async def identify_landmarks(data: IdentifyRequest):
    """Guess which landmark sits at a coordinate from visual clues."""
    outcome = await identify_landmarks_action(
        data.clues,
        data.latitude,
        data.longitude,
        city=data.city,
    )
    return IdentifyResponse(landmarks=outcome["landmarks"], error=outcome.get("error"))
