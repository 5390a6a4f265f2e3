from __future__ import annotations

import json
from pathlib import Path

import pytest

from stats_dashboard.config import AppConfig
from stats_dashboard.io import read as read_module
from stats_dashboard.io.read import load_latest_row, load_rows, read_snapshot_file


def _postgres_config(db_url: str | None = "postgresql://localhost/stats") -> AppConfig:
    return AppConfig.model_validate(
        {"input": {"mode": "postgres", "db_url": db_url, "table_name": "stats_rows"}}
    )


def test_read_snapshot_file_sorts_json_rows_ascending(make_row, tmp_path: Path) -> None:
    path = tmp_path / "rows.json"
    path.write_text(
        json.dumps(
            [
                make_row(2, "2025-01-15T12:00:00Z"),
                make_row(1, "2025-01-15T11:00:00+00:00"),
            ]
        ),
        encoding="utf-8",
    )

    rows = read_snapshot_file(path)

    assert [row["id"] for row in rows] == [1, 2]


def test_read_snapshot_file_reads_ndjson_and_wrapped_rows(make_row, tmp_path: Path) -> None:
    ndjson = tmp_path / "rows.ndjson"
    ndjson.write_text(
        "\n".join(json.dumps(make_row(index, f"2025-01-15T1{index}:00:00Z")) for index in (1, 2))
        + "\n\n",
        encoding="utf-8",
    )
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"rows": [make_row(5)]}), encoding="utf-8")

    assert [row["id"] for row in read_snapshot_file(ndjson)] == [1, 2]
    assert [row["id"] for row in read_snapshot_file(wrapped)] == [5]


def test_read_snapshot_file_assigns_missing_ids(make_row, tmp_path: Path) -> None:
    row = make_row()
    del row["id"]
    path = tmp_path / "single.json"
    path.write_text(json.dumps(row), encoding="utf-8")

    assert read_snapshot_file(path)[0]["id"] == 1


def test_read_snapshot_file_rejects_rows_without_data(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps([{"timestamp": "2025-01-15T12:00:00Z"}]), encoding="utf-8")

    with pytest.raises(ValueError, match="row #0"):
        read_snapshot_file(path)


def test_load_rows_requires_path_in_file_mode() -> None:
    with pytest.raises(ValueError, match="rows file"):
        load_rows(None, AppConfig())


def test_load_rows_reads_postgres_when_configured(monkeypatch) -> None:
    captured: dict[str, str] = {}

    def _fake_load(db_url: str, table_name: str) -> list[dict[str, object]]:
        captured["db_url"] = db_url
        captured["table_name"] = table_name
        return [{"id": 1}]

    monkeypatch.setattr(read_module, "load_snapshot_rows", _fake_load)

    assert load_rows(None, _postgres_config()) == [{"id": 1}]
    assert captured == {"db_url": "postgresql://localhost/stats", "table_name": "stats_rows"}


def test_load_rows_requires_db_url_in_postgres_mode() -> None:
    with pytest.raises(ValueError, match="db_url"):
        load_rows(None, _postgres_config(db_url=None))


def test_load_latest_row_picks_newest_file_row(make_row, tmp_path: Path) -> None:
    path = tmp_path / "rows.json"
    path.write_text(
        json.dumps([make_row(7, "2025-01-15T13:00:00Z"), make_row(3, "2025-01-15T09:00:00Z")]),
        encoding="utf-8",
    )

    assert load_latest_row(path, AppConfig())["id"] == 7


def test_load_latest_row_raises_when_empty(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "rows.json"
    path.write_text("[]", encoding="utf-8")
    monkeypatch.setattr(read_module, "load_latest_snapshot_row", lambda db_url, table_name: None)

    with pytest.raises(LookupError, match="No data available"):
        load_latest_row(path, AppConfig())
    with pytest.raises(LookupError):
        load_latest_row(None, _postgres_config())
