#!/usr/bin/env python3
"""
Sample data generator for testing the Event Viewer application.

Generates synthetic event logs as:
- JSON lines of nested events, as exported from Windows event logs
- A JSON array of the same events
- A flat CSV export
"""

import argparse
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np
import pandas as pd

PROVIDERS = [
    "Microsoft-Windows-Security-Auditing",
    "Service Control Manager",
    "Microsoft-Windows-Kernel-General",
]
EVENT_IDS = [4624, 4625, 4634, 7036, 12]
USERS = ["alice", "bob", "carol", "SYSTEM", "svc_backup"]
LEVELS = [0, 2, 3, 4]


def generate_events(num_events: int, seed: int = 0) -> list[dict]:
    """
    Generate nested events with System and EventData sections.

    Values like Provider and TimeCreated carry their data in "#attributes",
    the way exported Windows events do.
    """
    rng = np.random.default_rng(seed)
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    offsets = np.sort(rng.integers(0, 86400, num_events))

    events = []
    for i in range(num_events):
        event_id = int(rng.choice(EVENT_IDS))
        created = start + timedelta(seconds=int(offsets[i]))
        events.append({
            "Event": {
                "System": {
                    "Provider": {"#attributes": {"Name": str(rng.choice(PROVIDERS))}},
                    "EventID": event_id,
                    "Level": int(rng.choice(LEVELS)),
                    "TimeCreated": {"#attributes": {"SystemTime": created.isoformat()}},
                    "EventRecordID": i + 1,
                    "Computer": "WORKSTATION-01",
                },
                "EventData": {
                    "TargetUserName": str(rng.choice(USERS)),
                    "LogonType": int(rng.integers(2, 11)),
                    "IpAddress": f"10.0.{int(rng.integers(0, 255))}.{int(rng.integers(1, 255))}",
                },
            }
        })
    return events


def flatten_for_csv(events: list[dict]) -> pd.DataFrame:
    """Flatten nested events into a table."""
    rows = []
    for raw in events:
        event = raw["Event"]
        row = {}
        for key, value in {**event["System"], **event["EventData"]}.items():
            if isinstance(value, dict):
                for attr, attr_value in value["#attributes"].items():
                    row[f"{key}.{attr}"] = attr_value
            else:
                row[key] = value
        rows.append(row)
    return pd.DataFrame(rows)


def write_json_lines(events: list[dict], output_path: Path):
    with open(output_path, "w", encoding="utf-8") as f:
        for event in events:
            f.write(json.dumps(event) + "\n")
    print(f"Generated: {output_path} ({len(events)} events)")


def write_json(events: list[dict], output_path: Path):
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(events, f, indent=2)
    print(f"Generated: {output_path} ({len(events)} events)")


def write_csv(events: list[dict], output_path: Path):
    df = flatten_for_csv(events)
    df.to_csv(output_path, index=False)
    print(f"Generated: {output_path} ({len(df)} events, {len(df.columns)} columns)")


def main():
    parser = argparse.ArgumentParser(description="Generate sample event logs for Event Viewer")
    parser.add_argument(
        "--output-dir", "-o",
        type=Path,
        default=Path("sample_data"),
        help="Output directory for generated files"
    )
    parser.add_argument(
        "--events", "-n",
        type=int,
        default=25,
        help="Number of events per file"
    )
    parser.add_argument(
        "--large",
        action="store_true",
        help="Also generate a large JSON lines file for performance testing"
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed")

    args = parser.parse_args()

    args.output_dir.mkdir(parents=True, exist_ok=True)

    events = generate_events(args.events, args.seed)
    write_json_lines(events, args.output_dir / "security.jsonl")
    write_json(events, args.output_dir / "security.json")
    write_csv(events, args.output_dir / "security.csv")

    if args.large:
        write_json_lines(generate_events(200000, args.seed), args.output_dir / "large.jsonl")

    print(f"\nAll files generated in: {args.output_dir.absolute()}")
    print("\nUsage guide:")
    print(f"1. event-viewer {args.output_dir / 'security.jsonl'}")
    print("2. Add --page 3 to move through pages")
    print("3. Add --filter TargetUserName=ali to narrow the rows on the page")


if __name__ == "__main__":
    main()
