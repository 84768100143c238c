"""
View coordination for the Event Viewer application.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from PySide6.QtCore import QObject, Signal

from .column_registry import ColumnRegistry
from .config import ViewerConfig
from .errors import EventViewerError, FileLoadError, PageFetchError, UnknownColumnError
from .filter_manager import FilterEvaluator
from .io_handler import RecordSource
from .models import PageResult, ResultStatus, Snapshot, ViewResult
from .pagination import PaginationController

logger = logging.getLogger(__name__)


class ViewCoordinator(QObject):
    """
    Sequences file loads, page changes and column edits, and publishes a
    consistent snapshot after each completed one.

    Every request that awaits the record source takes a sequence number
    when it is issued. When its result arrives, it is applied only if no
    newer request has been issued in the meantime; otherwise it is dropped,
    whether it succeeded or failed. Column selection and filter edits never
    suspend and only touch the column registry.
    """

    # Emitted with the new Snapshot after every completed transition
    snapshot_published = Signal(object)

    # Emitted with the EventViewerError of every surfaced failure
    error_raised = Signal(object)

    def __init__(
        self,
        source: RecordSource,
        config: Optional[ViewerConfig] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.config = config or ViewerConfig()
        self.source = source
        self.pagination = PaginationController(source, self.config.page_size)
        self.registry = ColumnRegistry()
        self.evaluator = FilterEvaluator(case_sensitive=self.config.case_sensitive_filters)

        self._source_path: Optional[str] = None
        self._request_seq = 0
        self._settled_seq = 0
        self._pending_page: Optional[int] = None  # Page the latest request fetches, None for opens
        self._snapshot = Snapshot(page_size=self.config.page_size)
        self._listeners: list[Callable[[Snapshot], None]] = []

    @property
    def snapshot(self) -> Snapshot:
        """The last published snapshot."""
        return self._snapshot

    @property
    def source_path(self) -> Optional[str]:
        return self._source_path

    # File and page requests

    async def request_open_file(self, path: Path | str) -> ViewResult:
        """Open a file, reset to page 1 and rebuild the columns."""
        seq = self._issue()
        try:
            result = await self.pagination.fetch_file(path)
        except FileLoadError as exc:
            return self._fail(seq, exc)
        if not self._is_latest(seq):
            return self._discard(seq)

        self._apply_file(result, str(path))
        logger.info(
            "Opened event file",
            extra={"path": str(path), "records": self.pagination.state.total_record_count}
        )
        return self._complete(seq)

    async def request_page(self, page_index: int) -> ViewResult:
        """
        Move to a page, clamped into [1, last_page].

        A request for the current page fetches nothing, but still supersedes
        any request still in flight.
        """
        target = self.pagination.page_target(page_index)
        seq = self._issue(target)
        if target is None:
            self._settle(seq)
            return ViewResult(ResultStatus.UNCHANGED, self._snapshot)
        return await self._fetch_page(seq, target)

    async def request_first_page(self) -> ViewResult:
        return await self.request_page(self.pagination.first_target())

    async def request_previous_page(self) -> ViewResult:
        return await self.request_page(self.pagination.previous_target())

    async def request_next_page(self) -> ViewResult:
        return await self.request_page(self.pagination.next_target())

    async def request_last_page(self) -> ViewResult:
        return await self.request_page(self.pagination.last_target())

    async def request_sort(self, column: str, ascending: bool = True) -> ViewResult:
        """
        Sort the whole open file by a column and go back to page 1.

        A sort that cannot run is reported without superseding anything
        in flight.
        """
        if column not in self.registry:
            return self._surface(UnknownColumnError(column, self.registry.suggest(column)))

        set_sort = getattr(self.source, "set_sort", None)
        if set_sort is None:
            return self._surface(PageFetchError(1, "record source cannot sort"))
        set_sort(column, ascending)

        seq = self._issue(1)
        return await self._fetch_page(seq, 1)

    async def toggle_flag(self, record_id: Any) -> ViewResult:
        """
        Flip the flag of a record and reload the page being shown.

        While a page request is in flight, the reload fetches that request's
        page in its place. While a file is still opening, nothing is reloaded.
        """
        toggle = getattr(self.source, "toggle_flag", None)
        if toggle is None or not toggle(record_id):
            return ViewResult(ResultStatus.UNCHANGED, self._snapshot)

        if not self._in_flight:
            page_index = self.pagination.current_page
        elif self._pending_page is not None:
            page_index = self._pending_page
        else:
            return ViewResult(ResultStatus.UNCHANGED, self._snapshot)

        seq = self._issue(page_index)
        return await self._fetch_page(seq, page_index)

    # Column edits

    def set_column_selection(self, names: Iterable[str]) -> ViewResult:
        """Show exactly the named columns."""
        self.registry.set_selection(names)
        return self._publish()

    def append_column_filter(self, name: str, fragment: str) -> ViewResult:
        """Append text to a column's filter."""
        return self._edit_filter(self.registry.append_filter, name, fragment)

    def set_column_filter(self, name: str, text: str) -> ViewResult:
        """Replace a column's filter text."""
        return self._edit_filter(self.registry.set_filter, name, text)

    def clear_column_filter(self, name: str) -> ViewResult:
        """Remove a column's filter."""
        return self._edit_filter(self.registry.clear_filter, name)

    def clear_filters(self) -> ViewResult:
        """Remove every column filter."""
        self.registry.clear_filters()
        return self._publish()

    def _edit_filter(self, edit: Callable[..., None], *args: str) -> ViewResult:
        try:
            edit(*args)
        except UnknownColumnError as exc:
            return self._surface(exc)
        return self._publish()

    # Listeners

    def add_listener(self, callback: Callable[[Snapshot], None]) -> None:
        """Add a callback invoked with every published snapshot."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[Snapshot], None]) -> None:
        """Remove a snapshot callback."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    # Internals

    def _issue(self, page_index: Optional[int] = None) -> int:
        self._request_seq += 1
        self._pending_page = page_index
        return self._request_seq

    def _is_latest(self, seq: int) -> bool:
        return seq == self._request_seq

    def _settle(self, seq: int) -> None:
        if self._is_latest(seq):
            self._settled_seq = seq

    @property
    def _in_flight(self) -> bool:
        return self._settled_seq != self._request_seq

    async def _fetch_page(self, seq: int, page_index: int) -> ViewResult:
        try:
            result = await self.pagination.fetch_page(page_index)
        except PageFetchError as exc:
            return self._fail(seq, exc)
        if not self._is_latest(seq):
            return self._discard(seq)

        self._apply_page(result, page_index)
        return self._complete(seq)

    def _apply_file(self, result: PageResult, path: str, page_index: int = 1) -> None:
        self.pagination.commit(result, page_index=page_index)
        records = self.pagination.state.loaded_records
        if records:
            self.registry.build_from_record(records[0])
        else:
            self.registry.clear()
        self._source_path = result.source_path or path

    def _apply_page(self, result: PageResult, page_index: int) -> None:
        if result.source_path and self._source_path and result.source_path != self._source_path:
            # A superseded load became the source's open file; follow it
            logger.warning(
                "Record source switched files",
                extra={"path": result.source_path, "previous": self._source_path}
            )
            self._apply_file(result, result.source_path, page_index)
            return
        self.pagination.commit(result, page_index=page_index)

    def _publish(self) -> ViewResult:
        state = self.pagination.state
        displayed = self.evaluator.apply(state.loaded_records, self.registry)
        self._snapshot = Snapshot.build(
            state,
            list(self.registry.values()),
            displayed,
            source_path=self._source_path
        )

        self.snapshot_published.emit(self._snapshot)
        for listener in self._listeners:
            listener(self._snapshot)

        return ViewResult(ResultStatus.APPLIED, self._snapshot)

    def _complete(self, seq: int) -> ViewResult:
        self._settle(seq)
        return self._publish()

    def _fail(self, seq: int, error: EventViewerError) -> ViewResult:
        if not self._is_latest(seq):
            return self._discard(seq)
        self._settle(seq)
        return self._surface(error)

    def _surface(self, error: EventViewerError) -> ViewResult:
        logger.warning("Request failed", extra={"error": str(error)})
        self.error_raised.emit(error)
        return ViewResult(ResultStatus.FAILED, self._snapshot, error)

    def _discard(self, seq: int) -> ViewResult:
        logger.debug("Discarding stale result", extra={"request": seq, "latest": self._request_seq})
        return ViewResult(ResultStatus.DISCARDED, self._snapshot)
