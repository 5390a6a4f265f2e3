from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from stats_dashboard.features.history import compute_delta_history
from stats_dashboard.features.tables import agents_frame, delta_frame, history_frame
from stats_dashboard.io.write import write_summary, write_table, write_tables
from stats_dashboard.preprocess.accounts import DEFAULT_MIGRATIONS, MigrationRegistry
from stats_dashboard.preprocess.snapshots import build_history

REGISTRY = MigrationRegistry(DEFAULT_MIGRATIONS)


def _history(make_row):
    return build_history(
        [
            make_row(1, "2025-01-15T10:00:00Z", total=100, accounts={"A": 1, "Halsey": 2}),
            make_row(2, "2025-01-15T11:00:00Z", total=160, accounts={"A": 4, "Khalid": 3}),
        ],
        REGISTRY,
    )


def test_history_frame_flattens_snapshot_groups(make_row) -> None:
    frame = history_frame(_history(make_row))

    assert list(frame["requests_total"]) == [100, 160]
    assert "responses_5xx" in frame.columns
    assert "cache_storage_mb" in frame.columns
    assert "ttml_agents" not in frame.columns
    assert frame.loc[0, "date"] == "Jan 15, 10:00 AM"


def test_delta_frame_has_one_row_per_delta(make_row) -> None:
    frame = delta_frame(compute_delta_history(_history(make_row)))

    assert len(frame) == 1
    assert frame.loc[0, "requests_total"] == 60
    assert "storage_keys" in frame.columns


def test_agents_frame_uses_snapshot_or_delta_counts(make_row) -> None:
    history = _history(make_row)

    totals = agents_frame(history)
    deltas = agents_frame(compute_delta_history(history))

    first = totals[totals["timestamp"] == history[0].timestamp]
    assert first.set_index("name")["requests"].to_dict() == {"Khalid": 2, "A": 1}
    assert first.set_index("name").loc["Khalid", "former_names"] == "Halsey"
    assert deltas.set_index("name")["requests"].to_dict() == {"A": 3, "Khalid": 1}


def test_empty_frames_keep_key_columns() -> None:
    assert list(history_frame([]).columns) == ["date", "timestamp"]
    assert delta_frame([]).empty
    assert list(agents_frame([]).columns) == [
        "date",
        "timestamp",
        "name",
        "requests",
        "former_names",
    ]


def test_write_tables_writes_csv_and_rejects_unknown_format(tmp_path: Path) -> None:
    frame = pd.DataFrame({"a": [1, 2]})

    written = write_tables({"one": frame, "two": frame}, tmp_path, fmt="csv")

    assert written == {"one": tmp_path / "one.csv", "two": tmp_path / "two.csv"}
    assert pd.read_csv(written["one"])["a"].tolist() == [1, 2]
    with pytest.raises(ValueError, match="Unsupported"):
        write_table(frame, tmp_path / "x.xlsx", fmt="xlsx")


def test_write_summary_round_trips_unicode(tmp_path: Path) -> None:
    path = write_summary({"max": "1m2.5s", "min": "850µs"}, tmp_path / "nested" / "s.json")

    assert "850µs" in path.read_text(encoding="utf-8")
