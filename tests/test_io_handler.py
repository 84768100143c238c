"""
Tests for reading, paging, sorting and exporting event files.
"""
import asyncio
import json

import pandas as pd
import pytest

from event_viewer.core import (
    EventFileReader,
    EventLogSource,
    FileLoadError,
    InMemoryRecordSource,
    PageFetchError,
    RecordSource,
    flatten_event,
)


NESTED_EVENT = {
    "Event": {
        "System": {
            "Provider": {"#attributes": {"Name": "Service Control Manager"}},
            "EventID": {"#attributes": {"Qualifiers": 16384}, "#text": 7036},
            "EventRecordID": 1,
        },
        "EventData": {"param1": "Spooler", "param2": "running"},
    }
}


def write_jsonl(path, events):
    with open(path, "w", encoding="utf-8") as f:
        for event in events:
            f.write(json.dumps(event) + "\n")


class TestFlattenEvent:
    """Tests for flatten_event."""

    def test_nested_event(self):
        """Test merging System and EventData and expanding attributes."""
        flat = flatten_event(NESTED_EVENT)

        assert flat == {
            "Provider.Name": "Service Control Manager",
            "EventID": 7036,
            "EventID.Qualifiers": 16384,
            "EventRecordID": 1,
            "param1": "Spooler",
            "param2": "running",
        }

    def test_flat_event_passthrough(self):
        """Test that already-flat records keep their fields."""
        assert flatten_event({"Time": "10:00", "User": "alice"}) == {"Time": "10:00", "User": "alice"}

    def test_not_an_object(self):
        """Test that non-object events are rejected."""
        with pytest.raises(ValueError):
            flatten_event([1, 2])
        with pytest.raises(ValueError):
            flatten_event({"Event": "oops"})


class TestEventFileReader:
    """Tests for EventFileReader."""

    def setup_method(self):
        self.reader = EventFileReader()

    def test_read_json_lines(self, tmp_path):
        """Test reading one event per line."""
        path = tmp_path / "events.jsonl"
        write_jsonl(path, [NESTED_EVENT, {"Event": {"System": {"EventRecordID": 2}}}])

        records = self.reader.read_file(path)

        assert len(records) == 2
        assert records[0]["param1"] == "Spooler"
        assert records[1] == {"EventRecordID": 2}

    def test_read_json_array(self, tmp_path):
        """Test reading a JSON array of events."""
        path = tmp_path / "events.json"
        path.write_text(json.dumps([NESTED_EVENT]), encoding="utf-8")

        records = self.reader.read_file(path)

        assert records[0]["Provider.Name"] == "Service Control Manager"

    def test_read_csv_with_detected_delimiter(self, tmp_path):
        """Test reading CSV with a semicolon delimiter."""
        path = tmp_path / "events.csv"
        path.write_text("Time;User;EventID\n10:00;alice;4624\n10:05;;4625\n", encoding="utf-8")

        records = self.reader.read_file(path)

        assert records[0] == {"Time": "10:00", "User": "alice", "EventID": 4624}
        assert isinstance(records[0]["EventID"], int)
        assert records[1]["User"] == ""

    def test_read_tsv(self, tmp_path):
        """Test reading tab-separated files."""
        path = tmp_path / "events.tsv"
        path.write_text("Time\tUser\n10:00\talice\n", encoding="utf-8")

        assert self.reader.read_file(path) == [{"Time": "10:00", "User": "alice"}]

    def test_empty_csv(self, tmp_path):
        """Test that an empty CSV file has no records."""
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        assert self.reader.read_file(path) == []

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileLoadError."""
        with pytest.raises(FileLoadError) as excinfo:
            self.reader.read_file(tmp_path / "nope.jsonl")
        assert "not found" in excinfo.value.reason

    def test_unsupported_type(self, tmp_path):
        """Test that unknown file types raise FileLoadError."""
        path = tmp_path / "events.evtx"
        path.write_bytes(b"ElfFile\x00")

        with pytest.raises(FileLoadError) as excinfo:
            self.reader.read_file(path)
        assert "unsupported" in excinfo.value.reason

    def test_malformed_json_lines(self, tmp_path):
        """Test that the failing line is named in the error."""
        path = tmp_path / "broken.jsonl"
        path.write_text('{"a": 1}\n{not json\n', encoding="utf-8")

        with pytest.raises(FileLoadError) as excinfo:
            self.reader.read_file(path)
        assert "line 2" in excinfo.value.reason


class TestEventLogSource:
    """Tests for paging an event file."""

    def setup_method(self):
        self.events = [
            {"Event": {"System": {"EventRecordID": i}, "EventData": {"User": f"user{i:02d}"}}}
            for i in range(1, 26)
        ]

    def make_source(self, tmp_path):
        path = tmp_path / "events.jsonl"
        write_jsonl(path, self.events)
        return EventLogSource(page_size=10), path

    def test_is_record_source(self):
        """Test that EventLogSource satisfies RecordSource."""
        assert isinstance(EventLogSource(), RecordSource)

    def test_load_returns_first_page(self, tmp_path):
        """Test that loading returns page 1 with the added fields."""
        source, path = self.make_source(tmp_path)

        result = asyncio.run(source.load_file(path))

        assert result.page_number == 1
        assert result.page_size == 10
        assert result.total_records == 25
        assert len(result.records) == 10
        assert result.source_path == str(path)
        assert result.records[0] == {
            "EventRecordID": 1,
            "User": "user01",
            "Flagged": False,
            "SourceFile": str(path),
        }

    def test_select_page(self, tmp_path):
        """Test fetching the last, partial page."""
        source, path = self.make_source(tmp_path)
        asyncio.run(source.load_file(path))

        result = asyncio.run(source.select_page(3))

        assert [r["EventRecordID"] for r in result.records] == [21, 22, 23, 24, 25]

    def test_select_page_errors(self, tmp_path):
        """Test fetching before a load or outside the page range."""
        source, path = self.make_source(tmp_path)

        with pytest.raises(PageFetchError):
            asyncio.run(source.select_page(1))

        asyncio.run(source.load_file(path))
        with pytest.raises(PageFetchError):
            asyncio.run(source.select_page(4))
        with pytest.raises(PageFetchError):
            asyncio.run(source.select_page(0))

    def test_failed_load_keeps_open_file(self, tmp_path):
        """Test that a failed load keeps the previous file open."""
        source, path = self.make_source(tmp_path)
        asyncio.run(source.load_file(path))

        with pytest.raises(FileLoadError):
            asyncio.run(source.load_file(tmp_path / "missing.jsonl"))

        assert source.path == path
        assert asyncio.run(source.select_page(2)).records[0]["EventRecordID"] == 11

    def test_pages_are_copies(self, tmp_path):
        """Test that editing a page does not change the source."""
        source, path = self.make_source(tmp_path)
        result = asyncio.run(source.load_file(path))

        result.records[0]["User"] = "changed"

        assert asyncio.run(source.select_page(1)).records[0]["User"] == "user01"

    def test_sort(self, tmp_path):
        """Test sorting the whole file by a column."""
        source, path = self.make_source(tmp_path)
        asyncio.run(source.load_file(path))

        source.set_sort("User", ascending=False)

        assert asyncio.run(source.select_page(1)).records[0]["User"] == "user25"

    def test_sort_missing_values_last(self):
        """Test that records without the column sort last."""
        source = InMemoryRecordSource(
            {"events.json": [{"n": 2}, {"x": 1}, {"n": 1}, {"n": "a"}]},
            page_size=10
        )
        asyncio.run(source.load_file("events.json"))

        source.set_sort("n")
        records = asyncio.run(source.select_page(1)).records

        # Mixed types fall back to text ordering
        assert records == [{"n": 1}, {"n": 2}, {"n": "a"}, {"x": 1}]

    def test_toggle_flag(self, tmp_path):
        """Test flipping the flag of a record."""
        source, path = self.make_source(tmp_path)
        asyncio.run(source.load_file(path))

        assert source.toggle_flag(3) is True
        assert asyncio.run(source.select_page(1)).records[2]["Flagged"] is True
        assert source.toggle_flag(3) is True
        assert asyncio.run(source.select_page(1)).records[2]["Flagged"] is False
        assert source.toggle_flag(999) is False

    def test_export_csv(self, tmp_path):
        """Test exporting every record to CSV."""
        source, path = self.make_source(tmp_path)
        asyncio.run(source.load_file(path))
        out = tmp_path / "out.csv"

        source.export_csv(out)

        df = pd.read_csv(out)
        assert list(df.columns) == ["EventRecordID", "User", "Flagged", "SourceFile"]
        assert len(df) == 25

    def test_export_json(self, tmp_path):
        """Test exporting every record to JSON."""
        source, path = self.make_source(tmp_path)
        asyncio.run(source.load_file(path))
        source.toggle_flag(1)
        out = tmp_path / "out.json"

        source.export_json(out)

        data = json.loads(out.read_text(encoding="utf-8"))
        assert len(data) == 25
        assert data[0]["Flagged"] is True

    def test_invalid_page_size(self):
        """Test that a zero page size is rejected."""
        with pytest.raises(ValueError):
            EventLogSource(page_size=0)
