"""Search/select workflow driving product search and pairing lookup.

The workflow owns a single block of in-memory state (query, result list,
selected result, pairing tags, last error) and mutates it from four
operations: :meth:`SearchWorkflow.update_query`,
:meth:`SearchWorkflow.submit_search`, :meth:`SearchWorkflow.select_result` and
:meth:`SearchWorkflow.clear_search`.

Network lookups run as ``asyncio`` tasks. Each request kind ("search" and
"detail") carries a generation counter; issuing a new request bumps the
counter and cancels the previous task, and a task that resolves with an
outdated generation leaves the state alone. Lookup failures never propagate
out of the workflow: they are logged and exposed through :attr:`error`.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from .config import settings
from .errors import PairingSearchError
from .models import SearchResult, WorkflowError, WorkflowPhase, WorkflowSnapshot

logger = logging.getLogger(__name__)

SEARCH = "search"
DETAIL = "detail"

UrlOpener = Callable[[str], Any]
ResetCallback = Callable[[], Any]
WidthListener = Callable[[float], None]


class ProductLookup(Protocol):
    async def search(self, query: str) -> List[SearchResult]: ...

    async def fetch_pairings(self, code: str) -> List[str]: ...


class ViewportSource(Protocol):
    """Host capability reporting the display width and its changes."""

    def current_width(self) -> float: ...

    def subscribe(self, listener: WidthListener) -> None: ...

    def unsubscribe(self, listener: WidthListener) -> None: ...


class SearchWorkflow:
    def __init__(
        self,
        client: ProductLookup,
        *,
        open_url: UrlOpener | None = None,
        on_reset: ResetCallback | None = None,
        search_bar_ratio: float | None = None,
    ) -> None:
        self._client = client
        self._open_url = open_url
        self._on_reset = on_reset
        self._search_bar_ratio = settings.search_bar_ratio if search_bar_ratio is None else search_bar_ratio

        self._query = ""
        self._results: List[SearchResult] = []
        self._has_results = False
        self._selected: Optional[SearchResult] = None
        self._pairings: List[str] = []
        self._error: Optional[WorkflowError] = None

        self._generations: Dict[str, int] = {SEARCH: 0, DETAIL: 0}
        self._tasks: Dict[str, Optional[asyncio.Task]] = {SEARCH: None, DETAIL: None}

        self._viewport: Optional[ViewportSource] = None
        self._search_bar_width: Optional[float] = None

    # -- state -----------------------------------------------------------

    @property
    def query(self) -> str:
        return self._query

    @property
    def results(self) -> List[SearchResult]:
        return list(self._results)

    @property
    def selected(self) -> Optional[SearchResult]:
        return self._selected

    @property
    def pairings(self) -> List[str]:
        return list(self._pairings)

    @property
    def error(self) -> Optional[WorkflowError]:
        return self._error

    @property
    def search_bar_width(self) -> Optional[float]:
        return self._search_bar_width

    def _in_flight(self, kind: str) -> bool:
        task = self._tasks[kind]
        return task is not None and not task.done()

    @property
    def phase(self) -> WorkflowPhase:
        if self._in_flight(DETAIL):
            return WorkflowPhase.DETAIL_LOADING
        if self._in_flight(SEARCH):
            return WorkflowPhase.QUERYING
        if self._selected is not None:
            return WorkflowPhase.DETAIL_SHOWN
        if self._query and self._has_results:
            return WorkflowPhase.RESULTS_SHOWN
        return WorkflowPhase.IDLE

    def snapshot(self) -> WorkflowSnapshot:
        return WorkflowSnapshot(
            query=self._query,
            phase=self.phase,
            results=list(self._results),
            selected=self._selected,
            pairings=list(self._pairings),
            error=self._error,
            search_bar_width=self._search_bar_width,
        )

    # -- operations ------------------------------------------------------

    def update_query(self, text: str) -> None:
        self._query = text
        if text == "":
            self._discard(SEARCH)
            self._results = []
            self._has_results = False

    def submit_search(self) -> Optional[asyncio.Task]:
        """Start a search for the current query.

        Returns the running task, or ``None`` when the query is empty: an
        empty query never reaches the network and simply leaves the result
        list empty.
        """
        query = self._query
        if query == "":
            logger.debug("Ignoring search for empty query")
            self._discard(SEARCH)
            self._results = []
            self._has_results = False
            return None
        generation = self._issue(SEARCH)
        task = asyncio.get_running_loop().create_task(self._run_search(generation, query))
        self._tasks[SEARCH] = task
        return task

    def select_result(self, result: SearchResult) -> asyncio.Task:
        self._selected = result
        self._open(result.url)
        generation = self._issue(DETAIL)
        task = asyncio.get_running_loop().create_task(self._run_detail(generation, result.code))
        self._tasks[DETAIL] = task
        return task

    def clear_search(self) -> None:
        self._discard(SEARCH)
        self._discard(DETAIL)
        self._query = ""
        self._results = []
        self._has_results = False
        self._selected = None
        self._pairings = []
        self._error = None
        if self._on_reset is not None:
            self._on_reset()
        else:
            logger.debug("Search cleared without a reset callback")

    async def wait_idle(self) -> None:
        """Wait until no lookup task is outstanding."""
        while True:
            pending = [task for task in self._tasks.values() if task is not None and not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # -- viewport ----------------------------------------------------------

    def attach_viewport(self, viewport: ViewportSource) -> None:
        self.detach_viewport()
        self._viewport = viewport
        self._on_viewport_change(viewport.current_width())
        viewport.subscribe(self._on_viewport_change)

    def detach_viewport(self) -> None:
        if self._viewport is None:
            return
        self._viewport.unsubscribe(self._on_viewport_change)
        self._viewport = None

    def _on_viewport_change(self, width: float) -> None:
        self._search_bar_width = width * self._search_bar_ratio

    # -- internals ---------------------------------------------------------

    def _discard(self, kind: str) -> None:
        self._generations[kind] += 1
        task = self._tasks[kind]
        self._tasks[kind] = None
        if task is not None and not task.done():
            task.cancel()

    def _issue(self, kind: str) -> int:
        self._discard(kind)
        return self._generations[kind]

    def _is_current(self, kind: str, generation: int) -> bool:
        return self._generations[kind] == generation

    def _open(self, url: str) -> None:
        if self._open_url is None or not url:
            return
        try:
            self._open_url(url)
        except Exception:
            logger.exception("Could not open %s", url)

    def _record_error(self, operation: str, exc: PairingSearchError) -> None:
        logger.warning("Error during %s: %s", operation, exc)
        self._error = WorkflowError(kind=exc.kind, operation=operation, message=str(exc))

    def _clear_error(self, operation: str) -> None:
        if self._error is not None and self._error.operation == operation:
            self._error = None

    async def _run_search(self, generation: int, query: str) -> None:
        try:
            results = await self._client.search(query)
        except PairingSearchError as exc:
            if self._is_current(SEARCH, generation):
                self._record_error(SEARCH, exc)
            return
        if not self._is_current(SEARCH, generation):
            logger.debug("Discarding stale search results for %r", query)
            return
        self._results = list(results)
        self._has_results = True
        self._clear_error(SEARCH)

    async def _run_detail(self, generation: int, code: str) -> None:
        try:
            pairings = await self._client.fetch_pairings(code)
        except PairingSearchError as exc:
            if self._is_current(DETAIL, generation):
                self._record_error(DETAIL, exc)
            return
        if not self._is_current(DETAIL, generation):
            logger.debug("Discarding stale pairings for %s", code)
            return
        self._pairings = list(pairings)
        self._clear_error(DETAIL)
