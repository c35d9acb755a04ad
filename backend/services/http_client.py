"""
Shared HTTP transport for the upstream APIs (Exa, Mapbox, Convex).

Every call carries an explicit timeout and is retried once, with exponential
backoff, on connection errors, timeouts and 5xx responses. After the last
attempt the final response (or exception) is handed back to the caller, which
decides how to degrade.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from settings import settings

logger = logging.getLogger(__name__)

RETRYABLE_EXCEPTIONS = (requests.ConnectionError, requests.Timeout)


class _RetryableStatus(Exception):
    def __init__(self, response: requests.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class HttpClient:
    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        attempts: Optional[int] = None,
        backoff_seconds: float = 0.5,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.attempts = attempts if attempts is not None else settings.HTTP_RETRY_ATTEMPTS
        self.backoff_seconds = backoff_seconds

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        if resp.status_code >= 500:
            raise _RetryableStatus(resp)
        return resp

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        retryer = Retrying(
            stop=stop_after_attempt(max(1, self.attempts)),
            wait=wait_exponential(multiplier=self.backoff_seconds, max=8),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS + (_RetryableStatus,)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            return retryer(self._send, method, url, **kwargs)
        except _RetryableStatus as exc:
            return exc.response

    def get(self, url: str, *, params: Optional[dict] = None, headers: Optional[dict] = None) -> requests.Response:
        return self.request("GET", url, params=params, headers=headers)

    def post(self, url: str, *, json: Any = None, headers: Optional[dict] = None) -> requests.Response:
        return self.request("POST", url, json=json, headers=headers)
