from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping

import pandas as pd
from pydantic import ValidationError

from stats_dashboard.models import (
    CacheStats,
    CircuitBreakerStats,
    HistoricalPoint,
    NormalizedSnapshot,
    RateLimitCounts,
    RawSnapshotRow,
    RequestStats,
    ResponseCounts,
    ResponseTimes,
    ServerInfo,
)
from stats_dashboard.preprocess.accounts import MigrationRegistry, transform_accounts
from stats_dashboard.preprocess.durations import parse_cooldown, parse_duration

LOGGER = logging.getLogger(__name__)

# en-US labels regardless of the process locale.
MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; published dashboard numbers round .5 up.
    if not math.isfinite(value):
        return 0
    return math.floor(value + 0.5)


def parse_row(payload: Mapping[str, Any] | RawSnapshotRow) -> RawSnapshotRow:
    if isinstance(payload, RawSnapshotRow):
        return payload
    try:
        return RawSnapshotRow.model_validate(payload)
    except ValidationError as exc:
        row_id = payload.get("id") if isinstance(payload, Mapping) else None
        raise ValueError(f"invalid analytics row (id={row_id}): {exc}") from exc


def normalize_row(row: RawSnapshotRow, registry: MigrationRegistry) -> NormalizedSnapshot:
    """Map one stored row onto a typed, unit-normalized snapshot."""
    data = row.data
    uptime_seconds = data.server.uptime_seconds
    uptime_hours = uptime_seconds / 3600
    uptime_minutes = uptime_seconds / 60
    total = data.requests.total

    per_hour = round_half_up(total / uptime_hours) if uptime_hours > 0 else 0
    per_minute = (
        round_half_up((total / uptime_minutes) * 10) / 10 if uptime_minutes > 0 else 0
    )

    return NormalizedSnapshot(
        timestamp=row.timestamp,
        requests=RequestStats(
            total=total,
            lyrics=data.requests.lyrics,
            cache=data.requests.cache,
            health=data.requests.health,
            stats=data.requests.stats,
            other=data.requests.other,
            per_hour=per_hour,
            per_minute=per_minute,
        ),
        responses=ResponseCounts(
            status_2xx=data.responses.status_2xx,
            status_4xx=data.responses.status_4xx,
            status_5xx=data.responses.status_5xx,
        ),
        response_times=ResponseTimes(
            avg=round_half_up(parse_duration(data.response_times.avg)),
            avg_lyrics=round_half_up(parse_duration(data.response_times.avg_lyrics)),
            min=round_half_up(parse_duration(data.response_times.min)),
            max=round_half_up(parse_duration(data.response_times.max)),
        ),
        cache=CacheStats(
            hits=data.cache.hits,
            misses=data.cache.misses,
            negative_hits=data.cache.negative_hits,
            stale_hits=data.cache.stale_hits,
            hit_rate=data.cache.hit_rate,
            keys=data.cache_storage.keys,
            storage_mb=data.cache_storage.size_mb,
        ),
        circuit_breaker=CircuitBreakerStats(
            state=data.circuit_breaker.state,
            cooldown_remaining=parse_cooldown(data.circuit_breaker.cooldown_remaining),
            failures=data.circuit_breaker.failures,
        ),
        rate_limiting=RateLimitCounts(
            normal_tier=data.rate_limiting.normal_tier,
            cached_tier=data.rate_limiting.cached_tier,
            exceeded=data.rate_limiting.exceeded,
        ),
        server=ServerInfo(
            uptime_seconds=uptime_seconds,
            start_time=data.server.start_time,
        ),
        ttml_agents=transform_accounts(data.accounts, registry),
    )


def _to_utc_timestamp(value: str) -> pd.Timestamp:
    try:
        parsed = pd.Timestamp(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid row timestamp: {value!r}") from exc
    if pd.isna(parsed):
        raise ValueError(f"invalid row timestamp: {value!r}")
    if parsed.tzinfo is None:
        return parsed.tz_localize("UTC")
    return parsed.tz_convert("UTC")


def row_timestamp_ms(value: str) -> int:
    """Epoch milliseconds for an ISO-8601 row timestamp; naive values are UTC."""
    return int(_to_utc_timestamp(value).value // 1_000_000)


def format_point_date(value: str, timezone: str = "UTC") -> str:
    """Chart label such as ``"Nov 5, 2:07 PM"`` in the display timezone."""
    local = _to_utc_timestamp(value).tz_convert(timezone)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    month = MONTH_ABBREVIATIONS[local.month - 1]
    return f"{month} {local.day}, {hour}:{local.minute:02d} {meridiem}"


def build_history(
    rows: Iterable[Mapping[str, Any] | RawSnapshotRow],
    registry: MigrationRegistry,
    timezone: str = "UTC",
) -> list[HistoricalPoint]:
    """One point per row in input order.

    Rows are expected ascending by timestamp; out-of-order rows are kept as
    given and only logged, since deltas across them are meaningless.
    """
    points: list[HistoricalPoint] = []
    for payload in rows:
        row = parse_row(payload)
        point = HistoricalPoint(
            date=format_point_date(row.timestamp, timezone),
            timestamp=row_timestamp_ms(row.timestamp),
            snapshot=normalize_row(row, registry),
        )
        if points and point.timestamp < points[-1].timestamp:
            LOGGER.warning(
                "Analytics row %s at %s precedes the previous row; history is not ascending",
                row.id,
                row.timestamp,
            )
        points.append(point)
    return points
