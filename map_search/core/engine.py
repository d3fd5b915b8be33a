"""Query lifecycle for an interactive search box.

``SearchEngine`` debounces keystrokes, runs one logical search per settle
window, drops results from superseded queries and resolves selections. The
host only sees plain callbacks.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, List, Optional

from map_search.core.config import Settings, get_settings
from map_search.core.history import push_recent, to_recent_search
from map_search.core.resolver import resolve_candidate
from map_search.core.search import DEFAULT_SOURCE_TIMEOUT, run_search
from map_search.core.session import SessionManager
from map_search.etl.rank import RankedResults, category_view
from map_search.models import BoundingBox, Candidate, RecentSearch, SearchFilters, SourceKind, Viewport

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3


class QueryState(str, Enum):
    IDLE = "idle"
    EMPTY = "empty"
    DEBOUNCING = "debouncing"
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    READY = "ready"
    RESOLVING = "resolving"
    SELECTED = "selected"


class Debouncer:
    """Single cancelable timer; scheduling again replaces the pending call."""

    def __init__(self, delay: float, timer_factory: Callable[..., Any] = threading.Timer) -> None:
        self.delay = delay
        self._timer_factory = timer_factory
        self._timer = None
        self._lock = threading.Lock()

    def schedule(self, fn: Callable[..., None], *args: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._timer_factory(self.delay, fn, args=args)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None and self._timer.is_alive()


def _noop(*_args: Any) -> None:
    return None


class SearchEngine:
    def __init__(
        self,
        *,
        access_token: str,
        locale: str = "en",
        on_results_ready: Callable[[List[Candidate]], None] = _noop,
        on_location_resolved: Callable[[Candidate], None] = _noop,
        on_query_cleared: Callable[[], None] = _noop,
        on_fit_bounds: Callable[[BoundingBox], None] = _noop,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        source_timeout: float = DEFAULT_SOURCE_TIMEOUT,
        executor: Optional[Executor] = None,
        timer_factory: Callable[..., Any] = threading.Timer,
        search_fn: Callable[..., RankedResults] = run_search,
        resolve_fn: Callable[..., Optional[Candidate]] = resolve_candidate,
    ) -> None:
        self.access_token = access_token
        self.locale = locale
        self.source_timeout = source_timeout
        self.on_results_ready = on_results_ready
        self.on_location_resolved = on_location_resolved
        self.on_query_cleared = on_query_cleared
        self.on_fit_bounds = on_fit_bounds

        self.session = SessionManager()
        self.filters = SearchFilters()
        self.viewport = Viewport()
        self.state = QueryState.IDLE
        self.recent_searches: List[RecentSearch] = []

        self._debouncer = Debouncer(debounce_seconds, timer_factory)
        self._owns_executor = executor is None
        # Selections only; every search gets its own pool in run_search.
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="map-search-select")
        self._search_fn = search_fn
        self._resolve_fn = resolve_fn
        self._lock = threading.RLock()
        self._query_seq = 0
        self._select_seq = 0
        self._ranked = RankedResults()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "SearchEngine":
        """Build an engine from environment settings; ``kwargs`` override them."""
        settings = settings or get_settings()
        kwargs.setdefault("access_token", settings.mapbox_access_token)
        kwargs.setdefault("locale", settings.locale)
        kwargs.setdefault("debounce_seconds", settings.debounce_ms / 1000)
        kwargs.setdefault("source_timeout", settings.source_timeout_seconds)
        return cls(**kwargs)

    # ---------- Inputs from the host ----------

    def update_viewport(self, viewport: Viewport) -> None:
        with self._lock:
            self.viewport = viewport

    def set_filters(self, filters: SearchFilters) -> None:
        with self._lock:
            self.filters = filters

    @property
    def results(self) -> List[Candidate]:
        with self._lock:
            return list(self._ranked.visible)

    def on_input(self, text: str) -> None:
        """Handle one keystroke's worth of search-box text."""
        with self._lock:
            seq = self._next_query_seq()
            if not text or not text.strip():
                self._debouncer.cancel()
                self._ranked = RankedResults()
                self.state = QueryState.EMPTY
                clear = True
            else:
                self._debouncer.schedule(self._run_query, seq, text)
                self.state = QueryState.DEBOUNCING
                clear = False
        if clear:
            logger.debug("Search input cleared")
            self.on_query_cleared()

    def search_now(self, text: str) -> Optional[List[Candidate]]:
        """Run a search immediately, skipping the debounce window."""
        with self._lock:
            self._debouncer.cancel()
            seq = self._next_query_seq()
        return self._run_query(seq, text)

    def select(self, candidate: Candidate) -> Optional[Candidate]:
        """Handle a tap on a result; returns the located candidate, if any."""
        if candidate.source_kind == SourceKind.SYNTHETIC_CATEGORY:
            self._show_category()
            return None

        with self._lock:
            self._select_seq += 1
            seq = self._select_seq
            self.state = QueryState.RESOLVING
            viewport = self.viewport

        resolved = self._resolve_fn(
            candidate,
            access_token=self.access_token,
            session=self.session,
            viewport=viewport,
            locale=self.locale,
            timeout=self.source_timeout,
        )

        with self._lock:
            if seq != self._select_seq:
                logger.debug("Dropping stale resolution for %s", candidate.id)
                return None
            if resolved is None:
                self.state = QueryState.READY
                return None
            self.state = QueryState.SELECTED
            record = to_recent_search(resolved)
            if record is not None:
                self.recent_searches = push_recent(self.recent_searches, record)
        self.on_location_resolved(resolved)
        with self._lock:
            if seq == self._select_seq:
                self.state = QueryState.IDLE
        return resolved

    def select_async(self, candidate: Candidate) -> Future:
        return self._executor.submit(self.select, candidate)

    def close(self) -> None:
        self._debouncer.cancel()
        with self._lock:
            self._next_query_seq()
            self._select_seq += 1
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def __enter__(self) -> "SearchEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------- Internals ----------

    def _next_query_seq(self) -> int:
        self._query_seq += 1
        return self._query_seq

    def _is_current(self, seq: int) -> bool:
        return seq == self._query_seq

    def _run_query(self, seq: int, text: str) -> Optional[List[Candidate]]:
        with self._lock:
            if not self._is_current(seq):
                return None
            self.state = QueryState.FETCHING
            viewport = self.viewport
            filters = self.filters
            session_token = self.session.token

        try:
            ranked = self._search_fn(
                text,
                viewport=viewport,
                access_token=self.access_token,
                session_token=session_token,
                filters=filters,
                locale=self.locale,
                timeout=self.source_timeout,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Search failed for term=%s: %s", text, exc)
            ranked = RankedResults()

        with self._lock:
            if not self._is_current(seq):
                logger.debug("Discarding superseded results for term=%s (seq=%d)", text, seq)
                return None
            self.state = QueryState.AGGREGATING
            self._ranked = ranked
            visible = list(ranked.visible)
            self.state = QueryState.READY
        self.on_results_ready(visible)
        return visible

    def _show_category(self) -> None:
        with self._lock:
            view = category_view(self._ranked)
            self._ranked = RankedResults(visible=view.results, local=view.results)
            self.state = QueryState.READY
        self.on_results_ready(list(view.results))
        if view.bounds is not None:
            self.on_fit_bounds(view.bounds)
