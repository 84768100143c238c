"""
Pagination over a record source.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .errors import FileLoadError, PageFetchError
from .io_handler import DEFAULT_PAGE_SIZE, RecordSource
from .models import PageResult, PageState

logger = logging.getLogger(__name__)


class PaginationController:
    """
    Owns the current page index, page size and total record count.

    Fetching and committing are separate steps: `fetch_file`/`fetch_page`
    only talk to the source, `commit` is the only method that changes
    `state`. `load_file` and `goto_page` do both.
    """

    def __init__(self, source: RecordSource, page_size: int = DEFAULT_PAGE_SIZE):
        self.source = source
        self.state = PageState(page_size=page_size)

    @property
    def current_page(self) -> int:
        return self.state.current_page_index

    @property
    def last_page(self) -> int:
        return self.state.last_page

    def clamp(self, page_index: int) -> int:
        return self.state.clamp(page_index)

    # Navigation targets

    def first_target(self) -> int:
        return 1

    def previous_target(self) -> int:
        return self.clamp(self.current_page - 1)

    def next_target(self) -> int:
        return self.clamp(self.current_page + 1)

    def last_target(self) -> int:
        return self.last_page

    def page_target(self, page_index: int) -> Optional[int]:
        """The clamped page to fetch, or None when that is already the current page."""
        target = self.clamp(page_index)
        if target == self.current_page:
            return None
        return target

    # Source access

    async def fetch_file(self, path: Path | str) -> PageResult:
        """Ask the source to open a file; does not touch state."""
        try:
            return await self.source.load_file(path)
        except FileLoadError:
            raise
        except Exception as exc:
            raise FileLoadError(str(path), str(exc)) from exc

    async def fetch_page(self, page_index: int) -> PageResult:
        """Ask the source for a page; does not touch state."""
        logger.debug("Fetching page", extra={"page": page_index})
        try:
            return await self.source.select_page(page_index)
        except PageFetchError:
            raise
        except Exception as exc:
            raise PageFetchError(page_index, str(exc)) from exc

    def commit(self, result: PageResult, page_index: Optional[int] = None) -> None:
        """Replace the page state with a source result."""
        page_size = result.page_size if result.page_size > 0 else self.state.page_size
        state = PageState(
            page_size=page_size,
            total_record_count=max(0, result.total_records)
        )
        if state.total_record_count > 0:
            target = page_index if page_index is not None else result.page_number
            state.current_page_index = state.clamp(target)
            state.loaded_records = list(result.records)
        self.state = state

    # Fetch and commit

    async def load_file(self, path: Path | str) -> PageResult:
        """Open a file and reset to its first page."""
        result = await self.fetch_file(path)
        self.commit(result, page_index=1)
        return result

    async def goto_page(self, page_index: int) -> bool:
        """
        Move to a page, clamped into [1, last_page].

        Returns False without fetching when the clamped target is already
        the current page.
        """
        target = self.page_target(page_index)
        if target is None:
            return False
        result = await self.fetch_page(target)
        self.commit(result, page_index=target)
        return True

    async def refresh(self) -> PageResult:
        """Re-fetch the current page."""
        result = await self.fetch_page(self.current_page)
        self.commit(result, page_index=self.current_page)
        return result
