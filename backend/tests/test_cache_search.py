import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from db import Base
from domain.errors import CacheStoreError, LocationNotFoundError
from domain.models import Coordinates, SearchResult, SearchSource
from repositories import models  # noqa: F401  registers LandmarkORM
from repositories.landmarks import relevance_score, word_overlap_similarity
from services.cache_search import CacheSearchClient
from services.landmark_store import (
    SEARCH_LOCATIONS,
    ConvexLandmarkStore,
    SqliteLandmarkStore,
    deployment_url,
)


class DummyResponse:
    def __init__(self, json_data=None, status_code=200, text=""):
        self._json = json_data
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.text = text

    def json(self):
        if self._json is None:
            raise ValueError("Expecting value")
        return self._json


class FakeHttp:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.posts = []

    def post(self, url, json=None, headers=None):
        self.posts.append((url, json))
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


def _row(rid, title, lat=1.2834, lon=103.8607, source="exa"):
    return {
        "_id": rid,
        "title": title,
        "description": f"{title} description",
        "latitude": lat,
        "longitude": lon,
        "source": source,
        "timestamp": 1_700_000_000_000,
    }


def _result(title, lat=1.2834, lon=103.8607, source=SearchSource.EXA):
    return SearchResult(
        id="",
        title=title,
        description=f"{title}, a well known stop",
        location=Coordinates(lat, lon),
        source=source,
        timestamp=1_700_000_000_000,
    )


@pytest.fixture
def sqlite_store(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'landmarks.sqlite'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    return SqliteLandmarkStore(session_factory=sessionmaker(bind=engine, autoflush=False))


def test_convex_rows_are_mapped_and_tagged_as_database():
    http = FakeHttp(
        DummyResponse({"status": "success", "value": [_row("j1", "Marina Bay Sands"), _row("j2", "Merlion Park")]})
    )
    client = CacheSearchClient(ConvexLandmarkStore("https://happy-otter-123.convex.cloud", http=http))

    results = client.search("marina")

    assert [r.id for r in results] == ["j1", "j2"]
    assert all(r.source == SearchSource.DATABASE for r in results)
    assert results[0].location == Coordinates(1.2834, 103.8607)
    url, body = http.posts[0]
    assert url == "https://happy-otter-123.convex.cloud/api/query"
    assert body == {"path": SEARCH_LOCATIONS, "args": {"query": "marina"}, "format": "json"}


def test_invalid_rows_are_skipped():
    rows = [_row("j1", "Marina Bay Sands"), _row("bad", "Nowhere", lat=123.0), "garbage"]
    http = FakeHttp(DummyResponse({"status": "success", "value": rows}))
    client = CacheSearchClient(ConvexLandmarkStore("https://x.convex.cloud", http=http))

    assert [r.id for r in client.search("q")] == ["j1"]


def test_unconfigured_store_degrades_quietly(caplog):
    http = FakeHttp()
    client = CacheSearchClient(ConvexLandmarkStore("", http=http))

    with caplog.at_level("WARNING"):
        assert client.is_configured() is False
        assert client.search("marina") == []
        assert client.save(_result("Merlion Park")) is None
        assert client.search("again") == []

    assert http.posts == []
    warnings = [r for r in caplog.records if "not configured" in r.getMessage()]
    assert len(warnings) == 1


@pytest.mark.parametrize(
    "response",
    [
        DummyResponse({"status": "error", "errorMessage": "Server Error"}),
        DummyResponse(None, status_code=500, text="oops"),
        DummyResponse(None),
        requests.Timeout("slow"),
    ],
)
def test_convex_failures_raise_cache_store_error(response):
    client = CacheSearchClient(ConvexLandmarkStore("https://x.convex.cloud", http=FakeHttp(response)))

    with pytest.raises(CacheStoreError):
        client.search("marina")


def test_save_sends_mutation_args():
    http = FakeHttp(DummyResponse({"status": "success", "value": "new-id"}))
    client = CacheSearchClient(ConvexLandmarkStore("https://x.convex.cloud", http=http))

    assert client.save(_result("Merlion Park")) == "new-id"
    url, body = http.posts[0]
    assert url.endswith("/api/mutation")
    assert body["path"] == "locations:saveLocation"
    assert body["args"]["title"] == "Merlion Park"
    assert body["args"]["source"] == "exa"


def test_deployment_url_accepts_deployment_ids():
    assert deployment_url("dev:happy-otter-123 # team: me") == "https://happy-otter-123.convex.cloud"
    assert deployment_url("https://a.convex.cloud/") == "https://a.convex.cloud"
    assert deployment_url("") == ""


def test_sqlite_store_round_trips_through_client(sqlite_store):
    client = CacheSearchClient(sqlite_store)
    mbs_id = client.save(_result("Marina Bay Sands"))
    client.save(_result("Changi Airport", lat=1.3644, lon=103.9915))

    results = client.search("Marina Bay")
    assert [r.id for r in results] == [mbs_id]
    assert results[0].source == SearchSource.DATABASE

    assert len(client.list_all()) == 2

    updated = _result("Marina Bay Sands Hotel")
    updated.id = mbs_id
    client.update(updated)
    assert client.search("Marina Bay")[0].title == "Marina Bay Sands Hotel"

    client.delete(mbs_id)
    assert [r.title for r in client.list_all()] == ["Changi Airport"]


def test_sqlite_update_missing_row_raises(sqlite_store):
    client = CacheSearchClient(sqlite_store)
    ghost = _result("Ghost")
    ghost.id = "missing"

    with pytest.raises(CacheStoreError):
        client.update(ghost)


def test_relevance_scoring():
    assert word_overlap_similarity("marina bay", "Marina Bay Sands") == pytest.approx(2 / 3)
    # short words never count
    assert word_overlap_similarity("at in", "at in") == 0.0
    assert relevance_score("marina bay", "Marina Bay Sands", "") == pytest.approx(2 / 3 + 0.2)
    assert relevance_score("changi", "Marina Bay Sands", "hotel") == 0.0


def test_row_with_bad_timestamp_is_skipped():
    bad = _row("bad", "Broken Row")
    bad["timestamp"] = "bad"
    rows = [_row("j1", "Marina Bay Sands"), bad]
    http = FakeHttp(DummyResponse({"status": "success", "value": rows}))
    client = CacheSearchClient(ConvexLandmarkStore("https://x.convex.cloud", http=http))

    assert [r.id for r in client.search("q")] == ["j1"]


def test_row_without_timestamp_gets_current_time():
    row = _row("j1", "Marina Bay Sands")
    del row["timestamp"]
    http = FakeHttp(DummyResponse({"status": "success", "value": [row]}))
    client = CacheSearchClient(ConvexLandmarkStore("https://x.convex.cloud", http=http))

    assert client.search("q")[0].timestamp > 1_700_000_000_000


def test_sqlite_delete_missing_row_raises_not_found(sqlite_store):
    client = CacheSearchClient(sqlite_store)

    with pytest.raises(LocationNotFoundError):
        client.delete("missing")


def test_convex_nonexistent_document_maps_to_not_found():
    message = "Delete on nonexistent document ID j57abc"
    http = FakeHttp(DummyResponse({"status": "error", "errorMessage": message}))
    client = CacheSearchClient(ConvexLandmarkStore("https://x.convex.cloud", http=http))

    with pytest.raises(LocationNotFoundError):
        client.delete("j57abc")
