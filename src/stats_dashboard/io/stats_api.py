from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from stats_dashboard.io.snapshots_postgres import insert_snapshot
from stats_dashboard.models import RawStats

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    row_id: int
    table_name: str
    total_requests: int
    accounts: int


def fetch_stats(
    url: str,
    api_key: str | None = None,
    timeout: float = 10.0,
    client: httpx.Client | None = None,
) -> dict[str, Any]:
    """GET the server's stats payload; the key goes in ``Authorization`` verbatim."""
    headers = {"Authorization": api_key} if api_key else {}
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        response = http.get(url, headers=headers)
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as exc:
        raise RuntimeError(f"Stats API returned {exc.response.status_code}") from exc
    finally:
        if owns_client:
            http.close()

    if not isinstance(payload, dict):
        raise RuntimeError("Stats API returned a non-object payload")
    return payload


def sync_stats(
    url: str,
    db_url: str,
    api_key: str | None = None,
    table_name: str = "analytics",
    timeout: float = 10.0,
    client: httpx.Client | None = None,
) -> SyncResult:
    """Fetch one stats payload and store it as a new analytics row.

    The payload is validated before insert so a broken upstream response never
    becomes a row the dashboard cannot normalize.
    """
    payload = fetch_stats(url=url, api_key=api_key, timeout=timeout, client=client)
    try:
        stats = RawStats.model_validate(payload)
    except ValueError as exc:
        raise RuntimeError(f"Stats API payload failed validation: {exc}") from exc

    row_id = insert_snapshot(db_url=db_url, data=payload, table_name=table_name)
    LOGGER.info(
        "Stored stats snapshot %s (total requests %d, %d accounts)",
        row_id,
        stats.requests.total,
        len(stats.accounts),
    )
    return SyncResult(
        row_id=row_id,
        table_name=table_name,
        total_requests=stats.requests.total,
        accounts=len(stats.accounts),
    )
