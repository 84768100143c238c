"""
Exception types raised by the Event Viewer core.
"""
from __future__ import annotations

from typing import Optional


class EventViewerError(Exception):
    """Base class for all errors surfaced to the presentation layer."""


class FileLoadError(EventViewerError):
    """The record source could not open or parse a file."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot load {path}: {reason}")
        self.path = path
        self.reason = reason


class PageFetchError(EventViewerError):
    """The record source could not produce a requested page."""

    def __init__(self, page_number: int, reason: str):
        super().__init__(f"Cannot fetch page {page_number}: {reason}")
        self.page_number = page_number
        self.reason = reason


class UnknownColumnError(EventViewerError):
    """A column name was not found in the column registry."""

    def __init__(self, name: str, suggestion: Optional[str] = None):
        message = f"Unknown column '{name}'"
        if suggestion:
            message += f" (did you mean '{suggestion}'?)"
        super().__init__(message)
        self.name = name
        self.suggestion = suggestion
