"""
Mutable owner of one orchestration's SearchState.

The store is a plain object handed to the clients that report progress; there
is no module-level instance. Observers can subscribe to receive a snapshot
after every mutation (live progress for UIs or tests).
"""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Callable, List, Optional

from domain.models import SearchResult, SearchState

logger = logging.getLogger(__name__)

StateListener = Callable[[SearchState], None]


class SearchStateStore:
    def __init__(self, initial: Optional[SearchState] = None):
        self._state = initial or SearchState()
        self._lock = threading.RLock()
        self._listeners: List[StateListener] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> None:
        with self._lock:
            self._state = replace(self._state, **changes)
            snapshot = self._snapshot()
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Search state listener failed")

    def _snapshot(self) -> SearchState:
        return replace(self._state, results=list(self._state.results))

    def start_search(self, query: str) -> None:
        self._update(query=query, is_loading=True, error=None, results=[])

    def set_results(self, results: List[SearchResult]) -> None:
        self._update(results=list(results))

    def add_results(self, results: List[SearchResult]) -> None:
        with self._lock:
            self._update(results=self._state.results + list(results))

    def set_error(self, error: str) -> None:
        self._update(is_loading=False, error=error)

    def complete_search(self) -> None:
        self._update(is_loading=False)

    def select_result(self, result: Optional[SearchResult]) -> None:
        self._update(selected_result=result)

    def get_state(self) -> SearchState:
        with self._lock:
            return self._snapshot()

    def get_results(self) -> List[SearchResult]:
        return self.get_state().results

    def get_selected_result(self) -> Optional[SearchResult]:
        return self.get_state().selected_result
