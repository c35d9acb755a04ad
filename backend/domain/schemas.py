"""
Validation schemas for data crossing a trust boundary: the Exa answer
envelope, parsed location entries and search results assembled from
upstream or cached payloads.
"""
from __future__ import annotations

import logging
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from domain.models import Coordinates, SearchResult, SearchSource

logger = logging.getLogger(__name__)


class ExaAnswerSource(BaseModel):
    content: str
    id: str
    score: float = Field(ge=0, le=1)
    url: str = ""
    title: str = ""

    @field_validator("url", "title", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ExaAnswerResponse(BaseModel):
    """Answer API envelope. Missing ``sources`` normalizes to an empty list."""
    answer: str
    sources: List[ExaAnswerSource] = Field(default_factory=list)

    @field_validator("sources", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value


class ExtractedLocationEntry(BaseModel):
    """Location candidate parsed from an answer, before geocoding."""
    name: str = Field(min_length=3)
    search_query: str = Field(min_length=3)
    description: str
    address: str
    confidence: float = Field(ge=0, le=1)


class CoordinatesPayload(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class SearchResultPayload(BaseModel):
    id: str
    title: str
    description: str
    location: CoordinatesPayload
    source: Literal["database", "exa", "mapbox"]
    timestamp: int
    address: Optional[str] = None
    url: Optional[str] = None
    distance: Optional[float] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)

    def to_result(self) -> SearchResult:
        return SearchResult(
            id=self.id,
            title=self.title,
            description=self.description,
            location=Coordinates(self.location.latitude, self.location.longitude),
            source=SearchSource(self.source),
            timestamp=self.timestamp,
            # Empty strings from upstream carry no information.
            address=self.address or None,
            url=self.url or None,
            distance=self.distance,
            confidence=self.confidence,
        )


def validate_search_result(data: Any) -> Optional[SearchResult]:
    """Validate a raw payload into a SearchResult; log and return None on failure."""
    try:
        return SearchResultPayload.model_validate(data).to_result()
    except ValidationError as exc:
        logger.warning("Failed to validate search result: %s", exc)
        return None


def validate_location_entry(data: Any) -> Optional[ExtractedLocationEntry]:
    """Validate a parsed entry; log and return None on failure."""
    try:
        return ExtractedLocationEntry.model_validate(data)
    except ValidationError as exc:
        logger.warning("Failed to validate extracted entry: %s", exc)
        return None
