"""
Semantic landmark search through the Exa Answer API.

The answer text is parsed into location candidates, each candidate is
geocoded in turn, and only the ones that land on a coordinate become search
results. Without an API key a small fixed mock set is returned instead, so a
missing configuration is visible but not fatal.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional

import requests
from pydantic import ValidationError

from domain.errors import ExaSearchError
from domain.models import City, Coordinates, SearchResult, SearchSource, get_city_profile, now_ms
from domain.schemas import ExaAnswerResponse, validate_search_result
from services.answer_parser import MAX_EXTRACTED_ENTRIES, extract_location_entries
from services.geocoding import MapboxGeocoder, parse_address_string
from services.http_client import HttpClient
from services.search_state import SearchStateStore
from services.text_cleaning import clean_and_truncate_description

logger = logging.getLogger(__name__)

EXA_BASE_URL = "https://api.exa.ai"
REFRESH_MAX_ENTRIES = 5
MAX_IDENTIFIED_LANDMARKS = 3

MOCK_LANDMARKS = {
    City.SINGAPORE: [
        ("Marina Bay Sands", "Iconic integrated resort with rooftop infinity pool", 1.2834, 103.8607),
        ("Gardens by the Bay", "Nature park with futuristic Supertree structures", 1.2816, 103.8636),
    ],
    City.JAKARTA: [
        ("Monas", "National Monument towering over Merdeka Square", -6.1754, 106.8272),
        ("Kota Tua", "Old Batavia town square with Dutch colonial buildings", -6.1352, 106.8133),
    ],
}


def build_search_prompt(
    query: str,
    max_results: int,
    city: City | str = City.SINGAPORE,
    user_location: Optional[Coordinates] = None,
    location_name: Optional[str] = None,
) -> str:
    profile = get_city_profile(city)
    if location_name:
        context = f"near {location_name}"
    elif user_location is not None:
        context = (
            f"near {user_location.latitude}, {user_location.longitude} (coordinates) "
            f"in {profile.city_label}"
        )
    else:
        context = f"in {profile.city_label}"
    return (
        f'Find up to {max_results} locations for "{query}" {context}. For each, list:\n'
        "Name | Full Address | Brief description (max 8 words)\n\n"
        "Example format:\n"
        "1. Marina Bay Sands | 10 Bayfront Ave, Singapore 018956 | Iconic hotel with rooftop pool"
    )


def extract_landmark_names(answer: str, limit: int = MAX_IDENTIFIED_LANDMARKS) -> List[str]:
    """Pull landmark names out of a free-text answer: quoted strings first, then Title Case runs."""
    names = [m.strip() for m in re.findall(r'"([^"]+)"', answer) if len(m.strip()) > 3]
    if not names:
        for sentence in re.split(r"[.!?]", answer):
            names.extend(re.findall(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b", sentence))
    return names[:limit]


class ExaSearchClient:
    def __init__(
        self,
        api_key: str,
        geocoder: MapboxGeocoder,
        http: Optional[HttpClient] = None,
        base_url: Optional[str] = None,
        max_results: int = MAX_EXTRACTED_ENTRIES,
    ):
        self.api_key = api_key or ""
        self.geocoder = geocoder
        self.http = http or HttpClient()
        self.base_url = (base_url or EXA_BASE_URL).rstrip("/")
        self.max_results = max_results

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _mock_results(self, city: City | str) -> List[SearchResult]:
        profile = get_city_profile(city)
        ts = now_ms()
        payloads = [
            {
                "id": f"exa-{ts}-{idx + 1}",
                "title": title,
                "description": f"{desc} (mock data - configure EXA_API_KEY)",
                "location": {"latitude": lat, "longitude": lon},
                "source": SearchSource.EXA.value,
                "timestamp": ts,
            }
            for idx, (title, desc, lat, lon) in enumerate(MOCK_LANDMARKS[profile.city])
        ]
        return [r for r in (validate_search_result(p) for p in payloads) if r is not None]

    def _answer(self, prompt: str, num_sources: int) -> ExaAnswerResponse:
        """POST a prompt to the Answer API and validate the envelope."""
        try:
            resp = self.http.post(
                f"{self.base_url}/answer",
                json={"query": prompt, "num_sources": num_sources, "use_autoprompt": True},
                headers={"Content-Type": "application/json", "x-api-key": self.api_key},
            )
        except requests.RequestException as exc:
            raise ExaSearchError(f"Exa Answer API fetch failed: {exc}", exc) from exc

        if not resp.ok:
            logger.error("Exa Answer API error: %s - %s", resp.status_code, resp.text[:500])
            raise ExaSearchError(f"Exa Answer API returned {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise ExaSearchError(f"Failed to parse Exa response: {exc}", exc) from exc

        try:
            return ExaAnswerResponse.model_validate(data)
        except ValidationError as exc:
            logger.error("Exa response failed schema validation: %s", exc)
            raise ExaSearchError(f"Schema validation failed: {exc}", exc) from exc

    def search(
        self,
        query: str,
        user_location: Optional[Coordinates] = None,
        location_name: Optional[str] = None,
        city: City | str = City.SINGAPORE,
        state: Optional[SearchStateStore] = None,
    ) -> List[SearchResult]:
        """
        Search landmarks matching ``query`` near the given context.

        Raises ExaSearchError on HTTP, JSON or envelope failures (after
        recording the message on ``state``). Candidates that cannot be
        geocoded are silently dropped.
        """
        profile = get_city_profile(city)
        if state is not None:
            state.start_search(query)

        if not self.is_configured():
            logger.warning("EXA_API_KEY not configured, using mock data")
            results = self._mock_results(profile.city)
            if state is not None:
                state.set_results(results)
                state.complete_search()
            return results

        try:
            results = self._search(query, user_location, location_name, profile.city)
        except ExaSearchError as exc:
            if state is not None:
                state.set_error(exc.message)
            raise

        if state is not None:
            state.set_results(results)
            state.complete_search()
        return results

    def _search(
        self,
        query: str,
        user_location: Optional[Coordinates],
        location_name: Optional[str],
        city: City,
    ) -> List[SearchResult]:
        logger.info("Searching Exa Answer API for %s landmarks: %r", city.value, query)
        prompt = build_search_prompt(query, self.max_results, city, user_location, location_name)
        answer = self._answer(prompt, self.max_results)
        logger.debug("Exa answer received: %r (%d sources)", answer.answer[:150], len(answer.sources))

        entries = extract_location_entries(answer.answer, self.max_results, city)
        if not entries:
            logger.warning(
                "Exa returned an answer but no locations could be extracted: %r",
                answer.answer[:200],
            )

        first_source = answer.sources[0] if answer.sources else None
        fallback_description = (
            clean_and_truncate_description(first_source.content) if first_source else ""
        )
        url = first_source.url if first_source else ""

        results: List[SearchResult] = []
        ts = now_ms()
        for entry in entries:
            logger.debug("Geocoding %r (confidence %.0f%%)", entry.search_query, entry.confidence * 100)
            coords = self.geocoder.geocode(entry.search_query, city)
            if coords is None:
                logger.warning("Geocoding failed for %r using %r", entry.name, entry.search_query)
                continue
            result = validate_search_result(
                {
                    "id": f"exa-{ts}-{len(results)}",
                    "title": entry.name,
                    "description": entry.description
                    or fallback_description
                    or f"{get_city_profile(city).city_label} location (via Exa Answer API)",
                    "location": {"latitude": coords.latitude, "longitude": coords.longitude},
                    "source": SearchSource.EXA.value,
                    "timestamp": ts,
                    "address": entry.address,
                    "url": url,
                    "confidence": entry.confidence,
                }
            )
            if result is not None:
                results.append(result)

        logger.info("Exa search completed: %d results with coordinates", len(results))
        return results

    def refresh_location(
        self,
        location_name: str,
        location_id: Optional[str] = None,
        city: City | str = City.SINGAPORE,
    ) -> Optional[SearchResult]:
        """
        Fetch fresh details for one landmark and geocode it.

        Returns None when nothing usable came back; raises ExaSearchError when
        the key is missing or the upstream call fails.
        """
        if not self.is_configured():
            raise ExaSearchError("EXA_API_KEY not configured")
        profile = get_city_profile(city)
        prompt = (
            f'Give the current details for "{location_name}" in {profile.city_label}. '
            "Answer on one line as: Name | Full Address | Brief description (max 12 words)"
        )
        answer = self._answer(prompt, REFRESH_MAX_ENTRIES)
        entries = extract_location_entries(answer.answer, REFRESH_MAX_ENTRIES, profile.city)
        if not entries:
            logger.warning("No refreshed details extracted for %r", location_name)
            return None

        entry = entries[0]
        coords = None
        if entry.address and entry.address != profile.city_label:
            coords = self.geocoder.geocode_structured(
                parse_address_string(entry.address, profile.country_code), profile.city
            )
        if coords is None:
            coords = self.geocoder.geocode_first_available(
                [entry.search_query, entry.name, location_name], profile.city
            )
        if coords is None:
            return None

        first_source = answer.sources[0] if answer.sources else None
        return validate_search_result(
            {
                "id": location_id or f"exa-{now_ms()}-0",
                "title": entry.name,
                "description": entry.description or location_name,
                "location": {"latitude": coords.latitude, "longitude": coords.longitude},
                "source": SearchSource.EXA.value,
                "timestamp": now_ms(),
                "address": entry.address,
                "url": first_source.url if first_source else None,
                "confidence": entry.confidence,
            }
        )

    def identify_landmarks_from_clues(
        self,
        clues: Iterable[str],
        latitude: float,
        longitude: float,
        city: City | str = City.SINGAPORE,
    ) -> List[str]:
        """Best-effort landmark names for a coordinate plus visual clues; [] on any failure."""
        if not self.is_configured():
            logger.warning("EXA_API_KEY not configured, cannot identify landmarks")
            return []
        profile = get_city_profile(city)
        clues_text = ", ".join(c for c in clues if c)
        prompt = (
            f"What landmark building or location is at coordinates {latitude}, {longitude} "
            f"in {profile.city_label} with these features: {clues_text}? "
            "Give me the specific landmark name."
        )
        try:
            answer = self._answer(prompt, 5)
        except ExaSearchError as exc:
            logger.warning("Landmark identification failed: %s", exc.message)
            return []
        names = extract_landmark_names(answer.answer)
        logger.info("Identified %d landmarks from clues", len(names))
        return names
