"""One logical search: parallel fan-out, join, dedup and rank."""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Executor, Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from map_search.core.repository import search_local_pois
from map_search.core.sources import fetch_geocode_results, fetch_suggestions
from map_search.etl.dedup import deduplicate
from map_search.etl.rank import RankedResults, rank_results
from map_search.models import Candidate, SearchFilters, SourceKind, Viewport

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_TIMEOUT = 6.0
QUEUE_POLL_SECONDS = 0.05

LocalSearch = Callable[..., List[Candidate]]


class _SourceTask:
    """One source call that remembers when a worker picked it up."""

    def __init__(self, fn: Callable[..., List[Candidate]], *args: Any, **kwargs: Any) -> None:
        self._fn = fn
        self._args = args
        self._kwargs = kwargs
        self.started_at: Optional[float] = None

    def __call__(self) -> List[Candidate]:
        self.started_at = time.monotonic()
        return self._fn(*self._args, **self._kwargs)


def _join(tasks: Dict[str, Tuple[_SourceTask, Future]], timeout: float) -> Set[Future]:
    """Wait for each source until ``timeout`` has passed since it started.

    Time spent queued on a busy executor is not charged to a source. A task
    that is still queued ``len(tasks) * timeout`` after submission is given up.
    """
    queue_deadline = time.monotonic() + len(tasks) * timeout
    done: Set[Future] = set()
    while True:
        now = time.monotonic()
        waiting: List[Future] = []
        next_check = queue_deadline
        for task, future in tasks.values():
            if future.done():
                done.add(future)
                continue
            if task.started_at is None:
                if now < queue_deadline:
                    waiting.append(future)
                    next_check = min(next_check, now + QUEUE_POLL_SECONDS)
                continue
            deadline = task.started_at + timeout
            if now < deadline:
                waiting.append(future)
                next_check = min(next_check, deadline)
        if not waiting:
            return done
        wait(waiting, timeout=max(0.0, next_check - now), return_when=FIRST_COMPLETED)


def _collect(name: str, future: Future, done: set) -> List[Candidate]:
    if future not in done:
        future.cancel()
        logger.warning("Source %s timed out; continuing without it", name)
        return []
    try:
        return future.result()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Source %s failed: %s", name, exc)
        return []


def run_search(
    term: str,
    *,
    viewport: Viewport,
    access_token: str,
    session_token: str,
    filters: Optional[SearchFilters] = None,
    locale: str = "en",
    executor: Optional[Executor] = None,
    timeout: float = DEFAULT_SOURCE_TIMEOUT,
    local_search: LocalSearch = search_local_pois,
) -> RankedResults:
    """Query all three sources concurrently and return the ranked result set.

    Nothing is ranked until every source has answered or hit ``timeout``, so a
    caller never sees a partial list. Without an ``executor`` the search runs
    on a pool of its own, so overlapping searches never queue behind each other.
    """
    owns_executor = executor is None
    pool = executor or ThreadPoolExecutor(max_workers=3, thread_name_prefix="map-search")
    calls = {
        "local": _SourceTask(local_search, term, viewport.center),
        "suggest": _SourceTask(
            fetch_suggestions,
            term,
            access_token=access_token,
            session_token=session_token,
            viewport=viewport,
            filters=filters,
            locale=locale,
            timeout=timeout,
        ),
        "geocode": _SourceTask(
            fetch_geocode_results,
            term,
            access_token=access_token,
            viewport=viewport,
            filters=filters,
            locale=locale,
            timeout=timeout,
        ),
    }
    try:
        tasks = {name: (task, pool.submit(task)) for name, task in calls.items()}
        done = _join(tasks, timeout)
        results = {name: _collect(name, future, done) for name, (_, future) in tasks.items()}
    finally:
        if owns_executor:
            pool.shutdown(wait=False)

    logger.info(
        "Search term=%s local=%d suggest=%d geocode=%d",
        term,
        len(results["local"]),
        len(results["suggest"]),
        len(results["geocode"]),
    )
    merged = deduplicate([*results["local"], *results["suggest"], *results["geocode"]])
    return rank_results(
        term,
        [c for c in merged if c.source_kind == SourceKind.LOCAL_POI],
        [c for c in merged if c.source_kind == SourceKind.SUGGESTION],
        [c for c in merged if c.source_kind == SourceKind.GEOCODE],
    )
