"""
Typed errors raised at the search client boundaries.

All of them are recoverable: the orchestrator downgrades a failing branch to
an empty result set and the action layer turns anything left into an error
string.
"""
from typing import Optional


class SearchServiceError(Exception):
    """Base class for upstream search failures."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ExaSearchError(SearchServiceError):
    pass


class CacheStoreError(SearchServiceError):
    pass


class LocationNotFoundError(CacheStoreError):
    """The store has no landmark with the requested id."""
