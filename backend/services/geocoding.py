"""Forward and reverse geocoding helpers using the Mapbox Geocoding API.

Every lookup returns ``None`` on a miss: zero features, a non-2xx status, a
network error or an unparseable body all degrade to "no match" so callers can
drop the candidate instead of failing the search.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import quote

import requests

from domain.models import City, CityProfile, GeocodedLocation, StructuredAddress, get_city_profile
from services.http_client import HttpClient

logger = logging.getLogger(__name__)

MAPBOX_BASE_URL = "https://api.mapbox.com"
POSTAL_CODE_PATTERNS = {"SG": r"\b\d{6}\b", "ID": r"\b\d{5}\b"}


def _round_coord(value: float, decimals: int = 4) -> float:
    """Round coordinates before caching / lookup to limit request diversity."""
    return round(value, decimals)


def parse_address_string(address: str, country_code: str = "SG") -> StructuredAddress:
    """
    Split a combined address such as ``"10 Bayfront Avenue, Singapore 018956"``
    into structured components.

    Only the pieces that can be recognised reliably are filled in: a leading
    house number, the street, a postal code and a trailing city token.
    """
    if not address:
        return StructuredAddress(country=country_code)

    postal_pattern = POSTAL_CODE_PATTERNS.get(country_code.upper(), r"\b\d{5,6}\b")
    postal_match = re.search(postal_pattern, address)
    postal_code = postal_match.group(0) if postal_match else None
    remainder = re.sub(postal_pattern, "", address) if postal_code else address

    parts = [p.strip() for p in remainder.split(",") if p.strip()]
    street_number = None
    street_name = None
    city = None
    if parts:
        street_match = re.match(r"^(\d+[A-Za-z]?)\s+(.+)$", parts[0])
        if street_match:
            street_number, street_name = street_match.group(1), street_match.group(2)
        else:
            street_name = parts[0]
    if len(parts) > 1:
        city = parts[-1]

    return StructuredAddress(
        street_number=street_number,
        street_name=street_name,
        city=city,
        postal_code=postal_code,
        country=country_code,
    )


class MapboxGeocoder:
    def __init__(
        self,
        access_token: str,
        http: Optional[HttpClient] = None,
        base_url: Optional[str] = None,
    ):
        self.access_token = access_token or ""
        self.http = http or HttpClient()
        self.base_url = (base_url or MAPBOX_BASE_URL).rstrip("/")
        self._reverse_cache: Dict[Tuple[float, float], Optional[str]] = {}
        self._lock = threading.Lock()
        self._warned_missing_token = False

    def is_configured(self) -> bool:
        return bool(self.access_token)

    def _check_token(self) -> bool:
        if self.access_token:
            return True
        if not self._warned_missing_token:
            logger.warning("MAPBOX_ACCESS_TOKEN not configured; geocoding disabled")
            self._warned_missing_token = True
        return False

    def _get_json(self, url: str, params: Dict[str, Any], label: str) -> Optional[dict]:
        params = {**params, "access_token": self.access_token}
        try:
            resp = self.http.get(url, params=params)
        except requests.RequestException as exc:
            logger.error("Mapbox geocoding request failed for %r: %s", label, exc)
            return None

        if not resp.ok:
            logger.warning("Geocoding failed for %r: HTTP %s", label, resp.status_code)
            return None

        try:
            data = resp.json()
        except ValueError as exc:
            logger.error("Mapbox geocoding JSON error for %r: %s", label, exc)
            return None
        return data if isinstance(data, dict) else None

    def geocode(self, text: str, city: City | str = City.SINGAPORE) -> Optional[GeocodedLocation]:
        """Forward geocode free text, biased towards ``city``; first feature only."""
        if not text or not text.strip() or not self._check_token():
            return None
        profile = get_city_profile(city)
        query = f"{text.strip()} {profile.city_label}"
        url = f"{self.base_url}/geocoding/v5/mapbox.places/{quote(query, safe='')}.json"
        data = self._get_json(
            url,
            {"country": profile.country_code, "limit": 1},
            text,
        )
        if data is None:
            return None

        features = data.get("features") or []
        if not features:
            logger.warning("No geocoding results for %r", text)
            return None
        return self._location_from_v5(features[0], text)

    def _location_from_v5(self, feature: dict, label: str) -> Optional[GeocodedLocation]:
        try:
            longitude, latitude = feature["center"][:2]
            return GeocodedLocation(
                latitude=float(latitude),
                longitude=float(longitude),
                place_name=feature.get("place_name") or "",
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed geocoding feature for %r: %s", label, exc)
            return None

    def geocode_structured(
        self,
        address: StructuredAddress,
        city: City | str = City.SINGAPORE,
    ) -> Optional[GeocodedLocation]:
        """Forward geocode discrete address components (Mapbox v6 structured input)."""
        if address.is_empty() or not self._check_token():
            return None
        profile: CityProfile = get_city_profile(city)
        params: Dict[str, Any] = {
            "address_number": address.street_number,
            "street": address.street_name,
            "place": address.city,
            "region": address.state,
            "postcode": address.postal_code,
            "country": address.country or profile.country_code,
            "limit": 1,
        }
        params = {k: v for k, v in params.items() if v}
        label = ", ".join(str(v) for k, v in params.items() if k != "limit")
        data = self._get_json(f"{self.base_url}/search/geocode/v6/forward", params, label)
        if data is None:
            return None

        features = data.get("features") or []
        if not features:
            logger.warning("No structured geocoding results for %r", label)
            return None
        feature = features[0]
        try:
            longitude, latitude = feature["geometry"]["coordinates"][:2]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed structured geocoding feature for %r: %s", label, exc)
            return None
        props = feature.get("properties") or {}
        return GeocodedLocation(
            latitude=float(latitude),
            longitude=float(longitude),
            place_name=props.get("full_address") or props.get("name") or "",
        )

    def geocode_first_available(
        self,
        names: Iterable[Optional[str]],
        city: City | str = City.SINGAPORE,
    ) -> Optional[GeocodedLocation]:
        """Try each candidate name in order and return the first hit."""
        tried = []
        for name in names:
            if not name or not name.strip():
                continue
            tried.append(name)
            result = self.geocode(name, city)
            if result is not None:
                return result
        logger.warning("No geocoding results for any location: %s", tried)
        return None

    def reverse_geocode(self, latitude: float, longitude: float) -> Optional[str]:
        """Reverse geocode a coordinate into a human-readable place name."""
        if not self._check_token():
            return None
        key = (_round_coord(latitude), _round_coord(longitude))
        with self._lock:
            if key in self._reverse_cache:
                return self._reverse_cache[key]

        url = f"{self.base_url}/geocoding/v5/mapbox.places/{key[1]},{key[0]}.json"
        data = self._get_json(
            url,
            {"types": "poi,neighborhood,locality,place", "limit": 1},
            f"{key[0]},{key[1]}",
        )
        if data is None:
            # Failures are not cached so a later call can retry.
            return None
        features = data.get("features") or []
        name = None
        if features:
            name = features[0].get("place_name") or features[0].get("text") or None
        with self._lock:
            self._reverse_cache[key] = name
        return name
