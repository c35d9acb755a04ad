from unittest.mock import MagicMock

import requests

from domain.models import City, StructuredAddress
from services.geocoding import MapboxGeocoder, parse_address_string


class DummyResponse:
    def __init__(self, json_data=None, status_code=200):
        self._json = json_data
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.text = "" if json_data is None else str(json_data)

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeHttp:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, headers=None):
        self.calls.append((url, params))
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


def _feature(lon, lat, name="Somewhere"):
    return {"center": [lon, lat], "place_name": name}


def test_geocode_returns_first_feature_and_biases_to_city():
    http = FakeHttp([DummyResponse({"features": [_feature(103.8607, 1.2834, "Marina Bay Sands")]})])
    geocoder = MapboxGeocoder("token", http=http)

    hit = geocoder.geocode("Marina Bay Sands")

    assert hit is not None
    assert hit.latitude == 1.2834
    assert hit.longitude == 103.8607
    assert hit.place_name == "Marina Bay Sands"
    url, params = http.calls[0]
    assert url.endswith("/geocoding/v5/mapbox.places/Marina%20Bay%20Sands%20Singapore.json")
    assert params["country"] == "SG"
    assert params["limit"] == 1
    assert params["access_token"] == "token"


def test_geocode_uses_jakarta_country_filter():
    http = FakeHttp([DummyResponse({"features": [_feature(106.8272, -6.1754)]})])
    geocoder = MapboxGeocoder("token", http=http)

    assert geocoder.geocode("Monas", City.JAKARTA) is not None
    assert http.calls[0][1]["country"] == "ID"


def test_geocode_misses_degrade_to_none():
    http = FakeHttp(
        [
            DummyResponse({"features": []}),
            DummyResponse({"message": "Not Authorized"}, status_code=401),
            requests.ConnectionError("boom"),
            DummyResponse(None),
        ]
    )
    geocoder = MapboxGeocoder("token", http=http)

    assert geocoder.geocode("Nowhere") is None
    assert geocoder.geocode("Nowhere") is None
    assert geocoder.geocode("Nowhere") is None
    assert geocoder.geocode("Nowhere") is None
    assert len(http.calls) == 4


def test_geocode_without_token_makes_no_request():
    http = MagicMock()
    geocoder = MapboxGeocoder("", http=http)

    assert geocoder.geocode("Marina Bay Sands") is None
    assert geocoder.reverse_geocode(1.28, 103.86) is None
    http.get.assert_not_called()


def test_geocode_first_available_skips_misses_and_blanks():
    http = FakeHttp(
        [
            DummyResponse({"features": []}),
            DummyResponse({"features": [_feature(103.8545, 1.2868, "Merlion Park")]}),
        ]
    )
    geocoder = MapboxGeocoder("token", http=http)

    hit = geocoder.geocode_first_available(["", "Lion Statue Sign", None, "Merlion Park", "unused"])

    assert hit is not None
    assert hit.place_name == "Merlion Park"
    assert len(http.calls) == 2


def test_geocode_first_available_all_misses():
    http = FakeHttp([DummyResponse({"features": []}), DummyResponse({"features": []})])
    geocoder = MapboxGeocoder("token", http=http)

    assert geocoder.geocode_first_available(["A place", "Another place"]) is None


def test_geocode_structured_sends_components():
    http = FakeHttp(
        [
            DummyResponse(
                {
                    "features": [
                        {
                            "geometry": {"coordinates": [103.8607, 1.2834]},
                            "properties": {"full_address": "10 Bayfront Avenue, Singapore 018956"},
                        }
                    ]
                }
            )
        ]
    )
    geocoder = MapboxGeocoder("token", http=http)
    address = StructuredAddress(street_number="10", street_name="Bayfront Avenue", postal_code="018956")

    hit = geocoder.geocode_structured(address)

    assert hit is not None
    assert hit.latitude == 1.2834
    assert hit.place_name == "10 Bayfront Avenue, Singapore 018956"
    url, params = http.calls[0]
    assert url.endswith("/search/geocode/v6/forward")
    assert params["address_number"] == "10"
    assert params["street"] == "Bayfront Avenue"
    assert params["postcode"] == "018956"
    assert params["country"] == "SG"
    assert "region" not in params


def test_geocode_structured_empty_address_makes_no_request():
    http = MagicMock()
    geocoder = MapboxGeocoder("token", http=http)

    assert geocoder.geocode_structured(StructuredAddress()) is None
    http.get.assert_not_called()


def test_reverse_geocode_caches_hits():
    http = FakeHttp([DummyResponse({"features": [{"place_name": "Raffles Place, Singapore"}]})])
    geocoder = MapboxGeocoder("token", http=http)

    assert geocoder.reverse_geocode(1.28412, 103.85137) == "Raffles Place, Singapore"
    assert geocoder.reverse_geocode(1.28412, 103.85137) == "Raffles Place, Singapore"
    assert len(http.calls) == 1
    assert http.calls[0][0].endswith("/103.8514,1.2841.json")


def test_reverse_geocode_failures_are_not_cached():
    http = FakeHttp(
        [
            DummyResponse(None, status_code=500),
            DummyResponse({"features": [{"place_name": "Bugis, Singapore"}]}),
        ]
    )
    geocoder = MapboxGeocoder("token", http=http)

    assert geocoder.reverse_geocode(1.3, 103.85) is None
    assert geocoder.reverse_geocode(1.3, 103.85) == "Bugis, Singapore"


def test_parse_address_string_splits_components():
    parsed = parse_address_string("10 Bayfront Avenue, Singapore 018956")

    assert parsed.street_number == "10"
    assert parsed.street_name == "Bayfront Avenue"
    assert parsed.postal_code == "018956"
    assert parsed.city == "Singapore"
    assert parsed.country == "SG"


def test_parse_address_string_without_number():
    parsed = parse_address_string("Jalan Medan Merdeka, Jakarta 10110", "ID")

    assert parsed.street_number is None
    assert parsed.street_name == "Jalan Medan Merdeka"
    assert parsed.postal_code == "10110"
    assert parsed.city == "Jakarta"
