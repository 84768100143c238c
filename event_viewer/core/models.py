"""
Core data models for the Event Viewer application.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Optional

from .errors import EventViewerError

# A single event: field name -> scalar value, in source order.
Record = dict[str, Any]


class ResultStatus(Enum):
    """Outcome of a coordinator request."""
    APPLIED = auto()    # State changed and a snapshot was published
    UNCHANGED = auto()  # Nothing to do (e.g. already on the requested page)
    DISCARDED = auto()  # A newer request superseded this one
    FAILED = auto()     # Error surfaced, last good snapshot kept


@dataclass
class Column:
    """A named field projection with its own visibility and filter text."""
    name: str
    selected: bool = True
    filter: str = ""

    def __setattr__(self, key: str, value: Any) -> None:
        if key == "name" and "name" in self.__dict__:
            raise AttributeError("Column name is immutable")
        super().__setattr__(key, value)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "selected": self.selected,
            "filter": self.filter
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Column:
        """Deserialize from dictionary."""
        return cls(
            name=data["name"],
            selected=data.get("selected", True),
            filter=data.get("filter", "")
        )


@dataclass
class PageResult:
    """One page of records as returned by a record source."""
    page_number: int
    page_size: int
    total_records: int
    records: list[Record] = field(default_factory=list)
    source_path: Optional[str] = None  # File the page was read from


def compute_last_page(total_records: int, page_size: int) -> int:
    """Number of the last page, 1 for an empty file."""
    if total_records <= 0:
        return 1
    return math.ceil(total_records / page_size)


@dataclass
class PageState:
    """Pagination cursor plus the records of the current page."""
    current_page_index: int = 1
    page_size: int = 10
    total_record_count: int = 0
    loaded_records: list[Record] = field(default_factory=list)

    @property
    def last_page(self) -> int:
        return compute_last_page(self.total_record_count, self.page_size)

    def clamp(self, page_index: int) -> int:
        """Clamp a page index into [1, last_page]."""
        return max(1, min(page_index, self.last_page))


@dataclass(frozen=True)
class Snapshot:
    """Consistent view of page, columns and filtered records."""
    current_page_index: int = 1
    last_page: int = 1
    page_size: int = 10
    total_records: int = 0
    columns: tuple[Column, ...] = ()
    visible_columns: tuple[str, ...] = ()
    displayed_records: tuple[Record, ...] = ()
    source_path: Optional[str] = None

    @classmethod
    def build(
        cls,
        page: PageState,
        columns: list[Column],
        displayed: list[Record],
        source_path: Optional[str] = None
    ) -> Snapshot:
        """Freeze the given state into a snapshot (copies columns and records)."""
        frozen_columns = tuple(replace(c) for c in columns)
        return cls(
            current_page_index=page.current_page_index,
            last_page=page.last_page,
            page_size=page.page_size,
            total_records=page.total_record_count,
            columns=frozen_columns,
            visible_columns=tuple(c.name for c in frozen_columns if c.selected),
            displayed_records=tuple(dict(r) for r in displayed),
            source_path=source_path
        )

    @property
    def is_empty(self) -> bool:
        """True when no file is open or the open file has no records."""
        return self.total_records == 0

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "current_page_index": self.current_page_index,
            "last_page": self.last_page,
            "page_size": self.page_size,
            "total_records": self.total_records,
            "columns": [c.to_dict() for c in self.columns],
            "visible_columns": list(self.visible_columns),
            "displayed_records": [dict(r) for r in self.displayed_records],
            "source_path": self.source_path
        }


@dataclass
class ViewResult:
    """Discriminated result returned by every coordinator entry point."""
    status: ResultStatus
    snapshot: Snapshot
    error: Optional[EventViewerError] = None

    @property
    def ok(self) -> bool:
        return self.status is not ResultStatus.FAILED
