from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from stats_dashboard.config import ViewMode
from stats_dashboard.models import (
    DeltaPoint,
    DeltaSnapshot,
    HistoricalPoint,
    NormalizedSnapshot,
    ResponseCounts,
)
from stats_dashboard.preprocess.snapshots import round_half_up


@dataclass(frozen=True)
class TrafficChartPoint:
    date: str
    timestamp: int
    requests: int
    cache_hits: int
    cache_misses: int
    errors: int


def traffic_chart_points(
    view_mode: ViewMode,
    history: Sequence[HistoricalPoint],
    delta_history: Sequence[DeltaPoint],
) -> list[TrafficChartPoint]:
    """Traffic series for the chart: running totals, or per-interval changes."""
    if view_mode == "total":
        return [
            TrafficChartPoint(
                date=point.date,
                timestamp=point.timestamp,
                requests=point.snapshot.requests.total,
                cache_hits=point.snapshot.cache.hits,
                cache_misses=point.snapshot.cache.misses,
                errors=point.snapshot.responses.status_5xx,
            )
            for point in history
        ]
    if view_mode == "delta":
        return [
            TrafficChartPoint(
                date=point.date,
                timestamp=point.timestamp,
                requests=point.delta.requests.total,
                cache_hits=point.delta.cache.hits,
                cache_misses=point.delta.cache.misses,
                errors=point.delta.responses.status_5xx,
            )
            for point in delta_history
        ]
    raise ValueError(f"unknown view mode: {view_mode!r}")


def visible_ticks(dates: Sequence[str]) -> list[str]:
    """Axis labels to show: every date for short series, else an even spread."""
    length = len(dates)
    if length <= 7:
        return list(dates)

    if length <= 14:
        max_ticks = 7
    elif length <= 30:
        max_ticks = 6
    else:
        max_ticks = 5
    step = (length - 1) / (max_ticks - 1)
    indices = {0, length - 1}
    for index in range(1, max_ticks - 1):
        indices.add(round_half_up(index * step))
    return [dates[index] for index in sorted(indices)]


def displayed_responses(
    view_mode: ViewMode,
    snapshot: NormalizedSnapshot,
    delta_sum: DeltaSnapshot,
) -> tuple[ResponseCounts, bool]:
    """Response counts for the status cards and whether any 5xx is in view."""
    responses = snapshot.responses if view_mode == "total" else delta_sum.responses
    return responses, responses.status_5xx > 0
