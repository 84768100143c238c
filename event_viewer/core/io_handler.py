"""
Record sources and file IO for the Event Viewer application.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

import numpy as np
import pandas as pd

from .errors import FileLoadError, PageFetchError
from .filter_manager import render_value
from .models import PageResult, Record, compute_last_page

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

JSON_SUFFIXES = {".json"}
JSON_LINES_SUFFIXES = {".jsonl", ".ndjson"}
DELIMITED_SUFFIXES = {".csv", ".tsv", ".txt"}


@runtime_checkable
class RecordSource(Protocol):
    """
    Paged access to the records of a single open file.

    `select_page` always operates on the file most recently opened with
    `load_file`.
    """

    async def load_file(self, path: Path | str) -> PageResult:
        ...

    async def select_page(self, page_number: int) -> PageResult:
        ...


def flatten_event(raw: Mapping[str, Any]) -> Record:
    """
    Flatten one exported event into a single-level record.

    Events shaped like {"Event": {"System": {...}, "EventData": {...}}} get
    their System and EventData fields merged onto one level. Any value that
    is an object with "#attributes" becomes "key.attr" fields; its "#text",
    if present, stays under the original key.
    """
    if not isinstance(raw, Mapping):
        raise ValueError("event is not an object")
    event = raw.get("Event", raw)
    if not isinstance(event, Mapping):
        raise ValueError("event is not an object")

    if "System" in event:
        merged: dict[str, Any] = dict(event["System"] or {})
        event_data = event.get("EventData")
        if isinstance(event_data, Mapping):
            merged.update(event_data)
    else:
        merged = dict(event)

    flat: Record = {}
    for key, value in merged.items():
        if isinstance(value, Mapping) and "#attributes" in value:
            if "#text" in value:
                flat[key] = value["#text"]
            for attr, attr_value in (value["#attributes"] or {}).items():
                flat[f"{key}.{attr}"] = attr_value
        else:
            flat[key] = value
    return flat


def to_python_value(value: Any) -> Any:
    """Convert numpy scalars coming out of pandas into plain Python values."""
    if isinstance(value, np.generic):
        return value.item()
    return value


def dataframe_to_records(df: pd.DataFrame) -> list[Record]:
    """Convert a dataframe to records, dropping cells that are missing."""
    records: list[Record] = []
    for row in df.to_dict(orient="records"):
        record: Record = {}
        for key, value in row.items():
            if not isinstance(value, (list, dict)) and pd.isna(value):
                continue
            record[str(key)] = to_python_value(value)
        records.append(record)
    return records


def records_to_dataframe(records: list[Record], columns: Optional[list[str]] = None) -> pd.DataFrame:
    """Build a dataframe from records; columns default to first-seen field order."""
    df = pd.DataFrame(records)
    if columns is not None:
        df = df.reindex(columns=columns)
    return df


class EventFileReader:
    """Reads exported event logs (JSON, JSON lines, delimited text) into records."""

    def detect_delimiter(self, filepath: Path, encoding: str = "utf-8") -> str:
        """Detect the delimiter of a text file."""
        if filepath.suffix.lower() == ".tsv":
            return "\t"

        with open(filepath, "r", encoding=encoding, errors="replace") as f:
            sample = ""
            for _ in range(10):
                line = f.readline()
                if not line:
                    break
                sample += line

        delimiters = {",": 0, "\t": 0, ";": 0, "|": 0}
        for delim in delimiters:
            delimiters[delim] = sample.count(delim)

        max_count = max(delimiters.values())
        if max_count == 0:
            return ","

        for delim, count in delimiters.items():
            if count == max_count:
                return delim

        return ","

    def detect_encoding(self, filepath: Path) -> str:
        """Detect file encoding."""
        encodings = ["utf-8", "utf-16", "latin-1", "cp1252"]

        for enc in encodings:
            try:
                with open(filepath, "r", encoding=enc) as f:
                    f.read(1024)
                return enc
            except (UnicodeDecodeError, UnicodeError):
                continue

        return "utf-8"

    def read_file(self, filepath: Path | str) -> list[Record]:
        """Read an event file and return its records in file order."""
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileLoadError(str(filepath), "file not found")

        suffix = filepath.suffix.lower()
        try:
            if suffix in JSON_SUFFIXES:
                return self._read_json_file(filepath)
            if suffix in JSON_LINES_SUFFIXES:
                return self._read_json_lines_file(filepath)
            if suffix in DELIMITED_SUFFIXES:
                return self._read_delimited_file(filepath)
        except (OSError, ValueError, pd.errors.ParserError) as exc:
            raise FileLoadError(str(filepath), str(exc)) from exc

        raise FileLoadError(str(filepath), f"unsupported file type '{suffix or filepath.name}'")

    def _read_json_file(self, filepath: Path) -> list[Record]:
        encoding = self.detect_encoding(filepath)
        with open(filepath, "r", encoding=encoding) as f:
            data = json.load(f)

        if isinstance(data, Mapping):
            data = data.get("records", [data])
        if not isinstance(data, list):
            raise ValueError("expected a JSON array of events")
        return [flatten_event(item) for item in data]

    def _read_json_lines_file(self, filepath: Path) -> list[Record]:
        encoding = self.detect_encoding(filepath)
        records = []
        with open(filepath, "r", encoding=encoding) as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    item = json.loads(line)
                except json.JSONDecodeError as exc:
                    raise ValueError(f"line {line_no}: {exc.msg}") from exc
                records.append(flatten_event(item))
        return records

    def _read_delimited_file(self, filepath: Path) -> list[Record]:
        encoding = self.detect_encoding(filepath)
        delimiter = self.detect_delimiter(filepath, encoding)

        try:
            df = pd.read_csv(
                filepath,
                delimiter=delimiter,
                encoding=encoding,
                keep_default_na=False,
                low_memory=False
            )
        except pd.errors.EmptyDataError:
            return []
        return dataframe_to_records(df)


class PagedRecordSource:
    """
    Holds the records of one file in memory and serves them page by page.

    Subclasses implement `_read` to turn a path into records. Loads run in a
    worker thread; when loads overlap, only the most recently started one
    becomes the open file.
    """

    def __init__(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        flag_column: str = "Flagged",
        source_column: str = "SourceFile",
        record_id_field: str = "EventRecordID"
    ):
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.page_size = page_size
        self.flag_column = flag_column
        self.source_column = source_column
        self.record_id_field = record_id_field

        self.path: Optional[Path] = None
        self._records: list[Record] = []
        self._loaded = False
        self._load_generation = 0

    @property
    def total_records(self) -> int:
        return len(self._records)

    @property
    def last_page(self) -> int:
        return compute_last_page(self.total_records, self.page_size)

    def _read(self, path: Path) -> list[Record]:
        raise NotImplementedError

    def _decorate(self, records: list[Record], path: Path) -> list[Record]:
        """Add the flag and source-file fields every record carries."""
        for record in records:
            if self.flag_column:
                record.setdefault(self.flag_column, False)
            if self.source_column:
                record[self.source_column] = str(path)
        return records

    async def load_file(self, path: Path | str) -> PageResult:
        """Open a file and return its first page."""
        path = Path(path)
        self._load_generation += 1
        generation = self._load_generation

        try:
            records = await asyncio.to_thread(self._read, path)
        except FileLoadError:
            raise
        except Exception as exc:
            raise FileLoadError(str(path), str(exc)) from exc
        records = self._decorate(records, path)

        if generation == self._load_generation:
            self.path = path
            self._records = records
            self._loaded = True
            logger.info("Loaded event file", extra={"path": str(path), "records": len(records)})
        else:
            logger.debug("Superseded load finished", extra={"path": str(path)})

        return self._page(records, 1, path)

    async def select_page(self, page_number: int) -> PageResult:
        """Return a page of the open file."""
        if not self._loaded:
            raise PageFetchError(page_number, "no file loaded")
        if page_number < 1 or page_number > self.last_page:
            raise PageFetchError(page_number, f"page out of range 1..{self.last_page}")
        return self._page(self._records, page_number, self.path)

    def _page(
        self,
        records: list[Record],
        page_number: int,
        source_path: Optional[Path] = None
    ) -> PageResult:
        start = (page_number - 1) * self.page_size
        return PageResult(
            page_number=page_number,
            page_size=self.page_size,
            total_records=len(records),
            records=[dict(r) for r in records[start:start + self.page_size]],
            source_path=str(source_path) if source_path is not None else None
        )

    def set_sort(self, column: str, ascending: bool = True) -> None:
        """
        Sort the whole open file by a column.

        Records without the column keep their relative order after all
        records that have it, in both directions.
        """
        present = [r for r in self._records if column in r]
        missing = [r for r in self._records if column not in r]
        try:
            present = sorted(present, key=lambda r: r[column], reverse=not ascending)
        except TypeError:
            present = sorted(present, key=lambda r: render_value(r[column]), reverse=not ascending)
        self._records = present + missing
        logger.debug("Sorted records", extra={"column": column, "ascending": ascending})

    def toggle_flag(self, record_id: Any) -> bool:
        """Flip the flag field of the record(s) with the given id. Returns True if found."""
        if not self.flag_column:
            return False
        found = False
        for record in self._records:
            if record.get(self.record_id_field) == record_id:
                record[self.flag_column] = not record.get(self.flag_column, False)
                found = True
        if not found:
            logger.warning("No record to flag", extra={"record_id": record_id})
        return found

    def export_csv(self, path: Path | str) -> None:
        """Write every record of the open file to CSV."""
        path = Path(path)
        records_to_dataframe(self._records).to_csv(path, index=False)
        logger.info("Exported CSV", extra={"path": str(path), "records": len(self._records)})

    def export_json(self, path: Path | str) -> None:
        """Write every record of the open file to a JSON array."""
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self._records, f, indent=2, default=str)
        logger.info("Exported JSON", extra={"path": str(path), "records": len(self._records)})


class EventLogSource(PagedRecordSource):
    """Record source backed by exported event-log files on disk."""

    def __init__(self, reader: Optional[EventFileReader] = None, **kwargs: Any):
        super().__init__(**kwargs)
        self.reader = reader or EventFileReader()

    def _read(self, path: Path) -> list[Record]:
        return self.reader.read_file(path)


class InMemoryRecordSource(PagedRecordSource):
    """Record source serving already-decoded records keyed by path."""

    def __init__(self, files: Mapping[str, list[Record]], **kwargs: Any):
        kwargs.setdefault("flag_column", "")
        kwargs.setdefault("source_column", "")
        super().__init__(**kwargs)
        self.files = {str(Path(k)): v for k, v in files.items()}

    def _read(self, path: Path) -> list[Record]:
        records = self.files.get(str(path))
        if records is None:
            raise FileLoadError(str(path), "file not found")
        return [dict(r) for r in records]
