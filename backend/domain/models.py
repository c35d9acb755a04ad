"""
Core domain models for landmark search.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import time


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class SearchSource(str, Enum):
    """Provenance of a search result. Governs priority during dedup."""
    DATABASE = "database"
    EXA = "exa"
    MAPBOX = "mapbox"


class City(str, Enum):
    """Cities the search is biased towards."""
    SINGAPORE = "singapore"
    JAKARTA = "jakarta"

    @classmethod
    def parse(cls, value: Optional[str], default: Optional["City"] = None) -> "City":
        if isinstance(value, City):
            return value
        if value:
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return default or cls.SINGAPORE


@dataclass(frozen=True)
class CityProfile:
    """Geographic context for a city: labels, country filter, map center and bounds."""
    city: City
    country_code: str
    city_label: str
    country_label: str
    center: Tuple[float, float]  # (lat, lon)
    bounds: Tuple[float, float, float, float]  # (min_lat, min_lon, max_lat, max_lon)

    def contains(self, latitude: float, longitude: float) -> bool:
        min_lat, min_lon, max_lat, max_lon = self.bounds
        return min_lat <= latitude <= max_lat and min_lon <= longitude <= max_lon


CITY_PROFILES: Dict[City, CityProfile] = {
    City.SINGAPORE: CityProfile(
        city=City.SINGAPORE,
        country_code="SG",
        city_label="Singapore",
        country_label="Singapore",
        center=(1.3521, 103.8198),
        bounds=(1.16, 103.6, 1.47, 104.0),
    ),
    City.JAKARTA: CityProfile(
        city=City.JAKARTA,
        country_code="ID",
        city_label="Jakarta",
        country_label="Indonesia",
        center=(-6.2088, 106.8456),
        bounds=(-6.4, 106.68, -6.1, 107.0),
    ),
}


def get_city_profile(city: Optional[City | str] = None) -> CityProfile:
    return CITY_PROFILES[City.parse(city)]


def detect_city(latitude: float, longitude: float) -> Optional[City]:
    """Return the city whose bounding box contains the point, if any."""
    for profile in CITY_PROFILES.values():
        if profile.contains(latitude, longitude):
            return profile.city
    return None


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coordinates":
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


@dataclass(frozen=True)
class GeocodedLocation:
    """A single forward geocoding hit."""
    latitude: float
    longitude: float
    place_name: str = ""

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)


@dataclass(frozen=True)
class StructuredAddress:
    """Discrete address components for structured geocoding."""
    street_number: Optional[str] = None
    street_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(
            (self.street_number, self.street_name, self.city, self.state, self.postal_code, self.country)
        )


@dataclass
class SearchResult:
    """
    A located point of interest.

    Cache-origin results carry the store id; semantic-origin ids are
    synthesized as ``exa-<epoch ms>-<index>``. ``distance`` is only set when
    the caller supplied a reference location and ``confidence`` only for
    semantic-origin results.
    """
    id: str
    title: str
    description: str
    location: Coordinates
    source: SearchSource
    timestamp: int = field(default_factory=now_ms)
    address: Optional[str] = None
    url: Optional[str] = None
    distance: Optional[float] = None  # meters from the reference location
    confidence: Optional[float] = None

    def with_distance(self, distance: float) -> "SearchResult":
        return replace(self, distance=distance)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location.to_dict(),
            "source": self.source.value,
            "timestamp": self.timestamp,
        }
        for key in ("address", "url", "distance", "confidence"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResult":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description", ""),
            location=Coordinates.from_dict(data["location"]),
            source=SearchSource(data.get("source", SearchSource.DATABASE.value)),
            timestamp=int(data.get("timestamp") or now_ms()),
            address=data.get("address"),
            url=data.get("url"),
            distance=data.get("distance"),
            confidence=data.get("confidence"),
        )


@dataclass
class SearchState:
    """Snapshot of one orchestrated search. See services.search_state for the mutable owner."""
    query: str = ""
    results: List[SearchResult] = field(default_factory=list)
    is_loading: bool = False
    error: Optional[str] = None
    selected_result: Optional[SearchResult] = None
