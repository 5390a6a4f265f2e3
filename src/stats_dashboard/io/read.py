from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from stats_dashboard.config import AppConfig
from stats_dashboard.io.snapshots_postgres import load_latest_snapshot_row, load_snapshot_rows
from stats_dashboard.preprocess.snapshots import row_timestamp_ms

NDJSON_SUFFIXES = {".ndjson", ".jsonl"}


def _validate_rows(payload: Any, source: Path) -> list[dict[str, Any]]:
    if isinstance(payload, Mapping) and "rows" in payload:
        payload = payload["rows"]
    if isinstance(payload, Mapping):
        payload = [payload]
    if not isinstance(payload, list):
        raise ValueError(f"{source} must contain a list of analytics rows")
    for index, row in enumerate(payload):
        if not isinstance(row, Mapping) or "timestamp" not in row or "data" not in row:
            raise ValueError(f"{source} row #{index} must be an object with timestamp and data")
    return [dict(row) for row in payload]


def read_snapshot_file(path: Path) -> list[dict[str, Any]]:
    """Rows from a JSON export (list, single row or ``{"rows": [...]}``) or NDJSON."""
    with path.open("r", encoding="utf-8") as handle:
        if path.suffix in NDJSON_SUFFIXES:
            payload = [json.loads(line) for line in handle if line.strip()]
        else:
            payload = json.load(handle)
    rows = _validate_rows(payload, path)
    for index, row in enumerate(rows, start=1):
        row.setdefault("id", index)
    # Match the table query: oldest first.
    return sorted(rows, key=lambda row: row_timestamp_ms(str(row["timestamp"])))


def load_rows(path: Path | None, config: AppConfig) -> list[dict[str, Any]]:
    """All analytics rows, ascending by timestamp, from a file or PostgreSQL."""
    if config.input.mode == "postgres":
        if not config.input.db_url:
            raise ValueError("input.db_url must be set when input.mode is 'postgres'")
        return load_snapshot_rows(db_url=config.input.db_url, table_name=config.input.table_name)

    if path is None:
        raise ValueError("a rows file is required when input.mode is 'file'")
    return read_snapshot_file(path)


def load_latest_row(path: Path | None, config: AppConfig) -> dict[str, Any]:
    if config.input.mode == "postgres":
        if not config.input.db_url:
            raise ValueError("input.db_url must be set when input.mode is 'postgres'")
        row = load_latest_snapshot_row(
            db_url=config.input.db_url,
            table_name=config.input.table_name,
        )
    else:
        rows = load_rows(path, config)
        row = rows[-1] if rows else None

    if row is None:
        raise LookupError("No data available")
    return row
