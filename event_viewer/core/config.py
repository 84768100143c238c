"""
Viewer configuration.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .io_handler import DEFAULT_PAGE_SIZE

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ViewerConfig:
    """Settings shared by the record source, the filters and the front-end."""
    page_size: int = DEFAULT_PAGE_SIZE
    case_sensitive_filters: bool = True
    record_id_field: str = "EventRecordID"
    flag_column: str = "Flagged"
    source_column: str = "SourceFile"
    log_level: str = "WARNING"

    def __post_init__(self):
        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int) or self.page_size <= 0:
            raise ValueError(f"page_size must be a positive integer, got {self.page_size!r}")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "page_size": self.page_size,
            "case_sensitive_filters": self.case_sensitive_filters,
            "record_id_field": self.record_id_field,
            "flag_column": self.flag_column,
            "source_column": self.source_column,
            "log_level": self.log_level
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ViewerConfig:
        """Deserialize from dictionary."""
        return cls(
            page_size=data.get("page_size", DEFAULT_PAGE_SIZE),
            case_sensitive_filters=data.get("case_sensitive_filters", True),
            record_id_field=data.get("record_id_field", "EventRecordID"),
            flag_column=data.get("flag_column", "Flagged"),
            source_column=data.get("source_column", "SourceFile"),
            log_level=data.get("log_level", "WARNING")
        )


def load_config(path: Path | str) -> ViewerConfig:
    """Load a configuration from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {path} must be a JSON object")
    return ViewerConfig.from_dict(data)


def save_config(config: ViewerConfig, path: Path | str) -> None:
    """Write a configuration to a JSON file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
