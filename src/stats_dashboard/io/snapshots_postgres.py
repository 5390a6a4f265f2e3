from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotImportResult:
    source_file: str
    table_name: str
    rows_processed: int
    rows_inserted: int
    chunk_size: int


def _load_psycopg():
    try:
        import psycopg
        from psycopg import sql
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError(
            "psycopg is required for PostgreSQL operations. "
            "Install with: pip install 'psycopg[binary]'"
        ) from exc
    return psycopg, sql


def _row_from_record(record: tuple[Any, ...]) -> dict[str, Any]:
    row_id, timestamp, data = record
    # JSONB arrives decoded; plain JSON/TEXT columns arrive as strings.
    if isinstance(data, (str, bytes)):
        data = json.loads(data)
    return {"id": row_id, "timestamp": timestamp, "data": data}


def ensure_analytics_schema(conn, table_name: str) -> None:
    _psycopg, sql = _load_psycopg()
    statement = sql.SQL(
        """
        CREATE TABLE IF NOT EXISTS {table_name} (
          id BIGSERIAL PRIMARY KEY,
          timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW(),
          data JSONB NOT NULL
        );
        CREATE INDEX IF NOT EXISTS {idx_timestamp} ON {table_name} (timestamp);
        """
    ).format(
        table_name=sql.Identifier(table_name),
        idx_timestamp=sql.Identifier(f"{table_name}_timestamp_idx"),
    )
    with conn.cursor() as cursor:
        cursor.execute(statement)


def load_snapshot_rows(db_url: str, table_name: str = "analytics") -> list[dict[str, Any]]:
    """Every stored row, oldest first."""
    psycopg, sql = _load_psycopg()
    with psycopg.connect(db_url) as conn:
        with conn.cursor() as cursor:
            query = sql.SQL(
                """
                SELECT id, timestamp, data
                FROM {table_name}
                ORDER BY timestamp ASC, id ASC
                """
            ).format(table_name=sql.Identifier(table_name))
            cursor.execute(query)
            records = cursor.fetchall()

    LOGGER.info("Loaded %d analytics rows from %s", len(records), table_name)
    return [_row_from_record(record) for record in records]


def load_latest_snapshot_row(db_url: str, table_name: str = "analytics") -> dict[str, Any] | None:
    psycopg, sql = _load_psycopg()
    with psycopg.connect(db_url) as conn:
        with conn.cursor() as cursor:
            query = sql.SQL(
                """
                SELECT id, timestamp, data
                FROM {table_name}
                ORDER BY timestamp DESC, id DESC
                LIMIT 1
                """
            ).format(table_name=sql.Identifier(table_name))
            cursor.execute(query)
            record = cursor.fetchone()

    if record is None:
        return None
    return _row_from_record(record)


def insert_snapshot(db_url: str, data: Mapping[str, Any], table_name: str = "analytics") -> int:
    """Store one stats payload stamped with the database clock; returns the new row id."""
    psycopg, sql = _load_psycopg()
    query = sql.SQL(
        """
        INSERT INTO {table_name} (data)
        VALUES (%s::jsonb)
        RETURNING id
        """
    ).format(table_name=sql.Identifier(table_name))

    with psycopg.connect(db_url) as conn:
        ensure_analytics_schema(conn=conn, table_name=table_name)
        with conn.cursor() as cursor:
            cursor.execute(query, [json.dumps(data)])
            inserted = cursor.fetchone()
        conn.commit()

    if inserted is None:
        raise RuntimeError(f"insert into {table_name} returned no id")
    return int(inserted[0])


def _insert_snapshot_chunk(conn, table_name: str, rows: list[Mapping[str, Any]]) -> int:
    if not rows:
        return 0

    _psycopg, sql = _load_psycopg()
    query = sql.SQL(
        """
        INSERT INTO {table_name} (timestamp, data)
        VALUES (%(timestamp)s, %(data)s::jsonb)
        """
    ).format(table_name=sql.Identifier(table_name))

    payload = [
        {"timestamp": str(row["timestamp"]), "data": json.dumps(row["data"])} for row in rows
    ]
    with conn.cursor() as cursor:
        cursor.executemany(query, payload)
    return len(payload)


def _chunked(
    rows: Iterable[Mapping[str, Any]],
    chunk_size: int,
) -> Iterable[list[Mapping[str, Any]]]:
    chunk: list[Mapping[str, Any]] = []
    for row in rows:
        chunk.append(row)
        if len(chunk) >= chunk_size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


def import_snapshot_rows_to_postgres(
    rows: Iterable[Mapping[str, Any]],
    db_url: str,
    source_file: str,
    table_name: str = "analytics",
    chunk_size: int = 1_000,
) -> SnapshotImportResult:
    """Copy exported ``{timestamp, data}`` rows into the analytics table.

    Row ids are reassigned by the table sequence; timestamps are kept.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")

    psycopg, _sql = _load_psycopg()
    rows_processed = 0
    rows_inserted = 0

    with psycopg.connect(db_url) as conn:
        ensure_analytics_schema(conn=conn, table_name=table_name)
        conn.commit()

        for chunk in _chunked(rows, chunk_size):
            rows_processed += len(chunk)
            rows_inserted += _insert_snapshot_chunk(conn=conn, table_name=table_name, rows=chunk)
            conn.commit()

    LOGGER.info(
        "Imported %d analytics rows from %s into %s", rows_inserted, source_file, table_name
    )
    return SnapshotImportResult(
        source_file=source_file,
        table_name=table_name,
        rows_processed=rows_processed,
        rows_inserted=rows_inserted,
        chunk_size=chunk_size,
    )
