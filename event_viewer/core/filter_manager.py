"""
Per-column text filtering for the Event Viewer application.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from .models import Column, Record

_MISSING = object()


def render_value(value: Any) -> str:
    """Render a record value as the text shown in the table and matched by filters."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class FilterEvaluator:
    """
    Applies column filters to the currently loaded page.

    A record passes when, for every column with a non-empty filter, its
    rendered value contains the filter text. Hidden columns still filter.
    A record missing a filtered field never passes. Record order is kept.
    """

    def __init__(self, case_sensitive: bool = True):
        self.case_sensitive = case_sensitive

    def apply(
        self,
        records: Iterable[Record],
        columns: Mapping[str, Column]
    ) -> list[Record]:
        """Return the records that match all active filters."""
        active = [(c.name, c.filter) for c in columns.values() if c.filter]
        if not active:
            return list(records)
        if not self.case_sensitive:
            active = [(name, text.lower()) for name, text in active]

        return [r for r in records if self._matches(r, active)]

    def _matches(self, record: Record, active: list[tuple[str, str]]) -> bool:
        for name, text in active:
            value = record.get(name, _MISSING)
            if value is _MISSING:
                return False
            rendered = render_value(value)
            if not self.case_sensitive:
                rendered = rendered.lower()
            if text not in rendered:
                return False
        return True
