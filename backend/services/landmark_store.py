"""
Landmark stores behind the cache search client.

Both stores expose the same two calls, ``query(name, args)`` and
``mutation(name, args)``, addressing functions by their hosted names
(``locations:searchLocations`` ...). The hosted store talks to a Convex
deployment over its HTTP API; the SQLite store serves the same functions from
the local database.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.errors import CacheStoreError, LocationNotFoundError
from repositories.landmarks import LandmarksRepository
from services.http_client import HttpClient

logger = logging.getLogger(__name__)

SEARCH_LOCATIONS = "locations:searchLocations"
GET_ALL_LOCATIONS = "locations:getAllLocations"
SAVE_LOCATION = "locations:saveLocation"
UPDATE_LOCATION = "locations:updateLocation"
DELETE_LOCATION = "locations:deleteLocation"


def deployment_url(value: str) -> str:
    """Accept either a deployment URL or a ``dev:<name>`` style deployment id."""
    value = (value or "").strip()
    if not value:
        return ""
    if value.startswith(("http://", "https://")):
        return value.rstrip("/")
    name = value.split(":", 1)[-1].split("#", 1)[0].strip()
    return f"https://{name}.convex.cloud" if name else ""


class LandmarkStore:
    """Interface shared by the landmark stores."""

    def is_configured(self) -> bool:
        raise NotImplementedError

    def query(self, name: str, args: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def mutation(self, name: str, args: Dict[str, Any]) -> Any:
        raise NotImplementedError


class ConvexLandmarkStore(LandmarkStore):
    def __init__(self, url: str, http: Optional[HttpClient] = None):
        self.url = deployment_url(url)
        self.http = http or HttpClient()

    def is_configured(self) -> bool:
        return bool(self.url)

    def _call(self, kind: str, name: str, args: Dict[str, Any]) -> Any:
        if not self.url:
            raise CacheStoreError("Convex deployment URL not configured")
        try:
            resp = self.http.post(
                f"{self.url}/api/{kind}",
                json={"path": name, "args": args, "format": "json"},
            )
        except requests.RequestException as exc:
            raise CacheStoreError(f"Convex {kind} {name} failed: {exc}", exc) from exc

        if not resp.ok:
            logger.error("Convex %s %s error: %s - %s", kind, name, resp.status_code, resp.text[:500])
            raise CacheStoreError(f"Convex {kind} {name} returned {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise CacheStoreError(f"Convex {kind} {name} returned invalid JSON", exc) from exc

        if not isinstance(payload, dict) or payload.get("status") != "success":
            message = payload.get("errorMessage") if isinstance(payload, dict) else None
            if message and "nonexistent" in message.lower():
                raise LocationNotFoundError(message)
            raise CacheStoreError(message or f"Convex {kind} {name} failed")
        return payload.get("value")

    def query(self, name: str, args: Dict[str, Any]) -> Any:
        return self._call("query", name, args)

    def mutation(self, name: str, args: Dict[str, Any]) -> Any:
        return self._call("mutation", name, args)


class SqliteLandmarkStore(LandmarkStore):
    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        repository: Optional[LandmarksRepository] = None,
    ):
        if session_factory is None:
            from db import SessionLocal, init_db

            init_db()
            session_factory = SessionLocal
        self.session_factory = session_factory
        self.repository = repository or LandmarksRepository()

    def is_configured(self) -> bool:
        return True

    def _run(self, name: str, fn: Callable[[Session], Any]) -> Any:
        session = self.session_factory()
        try:
            return fn(session)
        except SQLAlchemyError as exc:
            session.rollback()
            raise CacheStoreError(f"Local store {name} failed: {exc}", exc) from exc
        except ValueError as exc:
            raise LocationNotFoundError(str(exc), exc) from exc
        finally:
            session.close()

    def query(self, name: str, args: Dict[str, Any]) -> Any:
        if name == SEARCH_LOCATIONS:
            return self._run(name, lambda s: self.repository.search(s, args.get("query", "")))
        if name == GET_ALL_LOCATIONS:
            return self._run(name, self.repository.list_all)
        raise CacheStoreError(f"Unknown query {name}")

    def mutation(self, name: str, args: Dict[str, Any]) -> Any:
        if name == SAVE_LOCATION:
            return self._run(name, lambda s: self.repository.create(s, args))
        if name == UPDATE_LOCATION:
            fields = {k: v for k, v in args.items() if k != "id"}
            return self._run(name, lambda s: self.repository.update(s, args["id"], fields))
        if name == DELETE_LOCATION:
            return self._run(name, lambda s: self.repository.delete(s, args["id"]))
        raise CacheStoreError(f"Unknown mutation {name}")
