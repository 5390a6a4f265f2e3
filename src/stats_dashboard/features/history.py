from __future__ import annotations

import time
from enum import Enum
from typing import Protocol, Sequence, TypeVar

from stats_dashboard.features.deltas import compute_delta, leaf_sum
from stats_dashboard.models import (
    DELTA_GROUPS,
    AgentCount,
    DeltaPoint,
    DeltaSnapshot,
    HistoricalPoint,
)


class TimeRange(str, Enum):
    last_6h = "6h"
    last_12h = "12h"
    last_24h = "24h"
    last_7d = "7d"
    last_30d = "30d"
    all = "all"


TIME_RANGE_HOURS: dict[TimeRange, int | None] = {
    TimeRange.last_6h: 6,
    TimeRange.last_12h: 12,
    TimeRange.last_24h: 24,
    TimeRange.last_7d: 24 * 7,
    TimeRange.last_30d: 24 * 30,
    TimeRange.all: None,
}


class Timestamped(Protocol):
    timestamp: int


PointT = TypeVar("PointT", bound=Timestamped)


def compute_delta_history(points: Sequence[HistoricalPoint]) -> list[DeltaPoint]:
    """Delta of each point against the one before it.

    ``points`` must be ascending by timestamp. Returns ``len(points) - 1``
    entries, or an empty list for fewer than two points.
    """
    if len(points) < 2:
        return []
    return [
        DeltaPoint(
            date=point.date,
            timestamp=point.timestamp,
            delta=compute_delta(point.snapshot, previous.snapshot),
            snapshot=point.snapshot,
        )
        for previous, point in zip(points, points[1:])
    ]


def _coerce_time_range(time_range: TimeRange | str) -> TimeRange:
    try:
        return TimeRange(time_range)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in TimeRange)
        raise ValueError(f"unknown time range {time_range!r}; expected one of {allowed}") from exc


def filter_by_time_range(
    series: list[PointT],
    time_range: TimeRange | str,
    *,
    now_ms: int | None = None,
) -> list[PointT]:
    """Keep points at or after ``now - range``; ``all`` returns ``series`` itself."""
    hours = TIME_RANGE_HOURS[_coerce_time_range(time_range)]
    if hours is None:
        return series

    now = int(time.time() * 1000) if now_ms is None else now_ms
    cutoff = now - hours * 60 * 60 * 1000
    return [point for point in series if point.timestamp >= cutoff]


def sum_deltas_in_range(delta_points: Sequence[DeltaPoint]) -> DeltaSnapshot:
    """Collapse a delta series into one aggregate delta.

    Agent names are already canonical, so agents are summed by name in
    first-seen order, keeping the former names from their first appearance.
    """
    totals = DeltaSnapshot.zero()
    groups = {name: getattr(totals, name) for name in DELTA_GROUPS}
    agent_totals: dict[str, AgentCount] = {}

    for point in delta_points:
        for name, group in DELTA_GROUPS.items():
            groups[name] = leaf_sum(group, groups[name], getattr(point.delta, name))
        for agent in point.delta.ttml_agents:
            existing = agent_totals.get(agent.name)
            if existing is None:
                agent_totals[agent.name] = agent
            else:
                agent_totals[agent.name] = AgentCount(
                    name=existing.name,
                    requests=existing.requests + agent.requests,
                    former_names=existing.former_names,
                )

    agents = sorted(agent_totals.values(), key=lambda agent: agent.requests, reverse=True)
    return DeltaSnapshot(**groups, ttml_agents=tuple(agents))
