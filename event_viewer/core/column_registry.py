"""
Column registry: which fields are shown and what each one is filtered by.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator, Mapping, Optional

from rapidfuzz import fuzz, process

from .errors import UnknownColumnError
from .models import Column, Record

logger = logging.getLogger(__name__)


class ColumnRegistry(Mapping[str, Column]):
    """
    Ordered mapping of column name -> Column.

    The column set is derived once per file from a sample record and is
    never partially rebuilt. Selection and filter edits mutate the existing
    Column objects in place.
    """

    def __init__(self, columns: Optional[Iterable[Column]] = None):
        self._columns: dict[str, Column] = {}
        for column in columns or ():
            self._columns[column.name] = column

    def __getitem__(self, name: str) -> Column:
        return self._columns[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __repr__(self) -> str:
        return f"ColumnRegistry({list(self._columns.values())!r})"

    def build_from_record(self, record: Record) -> None:
        """
        Replace the registry with one selected, unfiltered column per field.

        Records are assumed homogeneous, so the first record of a file
        defines its columns. An empty record leaves the registry empty.
        """
        self._columns = {name: Column(name=name) for name in record}
        logger.debug("Column registry rebuilt", extra={"columns": len(self._columns)})

    def clear(self) -> None:
        self._columns = {}

    def set_selection(self, names: Iterable[str]) -> None:
        """Select exactly the given columns; unknown names are ignored."""
        wanted = set(names)
        for name, column in self._columns.items():
            column.selected = name in wanted

    def append_filter(self, name: str, fragment: str) -> None:
        """Append a text fragment to a column's filter."""
        column = self._require(name)
        column.filter = column.filter + fragment

    def set_filter(self, name: str, text: str) -> None:
        """Replace a column's filter text."""
        self._require(name).filter = text

    def clear_filter(self, name: str) -> None:
        """Remove a column's filter."""
        self._require(name).filter = ""

    def clear_filters(self) -> None:
        """Remove every column's filter."""
        for column in self._columns.values():
            column.filter = ""

    def visible_columns(self) -> list[Column]:
        return [c for c in self._columns.values() if c.selected]

    def active_filters(self) -> dict[str, str]:
        """Column name -> filter text for every column with a non-empty filter."""
        return {c.name: c.filter for c in self._columns.values() if c.filter}

    def suggest(self, name: str, threshold: int = 60) -> Optional[str]:
        """Closest existing column name, if any is similar enough."""
        if not self._columns:
            return None
        match = process.extractOne(
            name.lower(),
            {key: key.lower() for key in self._columns},
            scorer=fuzz.token_sort_ratio,
            score_cutoff=threshold
        )
        if match is None:
            return None
        # Mapping choices yield (choice, score, key)
        return match[2]

    def _require(self, name: str) -> Column:
        column = self._columns.get(name)
        if column is None:
            raise UnknownColumnError(name, self.suggest(name))
        return column
