from __future__ import annotations

from typing import Any, Sequence

import pandas as pd

from stats_dashboard.models import DeltaPoint, HistoricalPoint

AGENT_COLUMNS = ["date", "timestamp", "name", "requests", "former_names"]


def _flatten(records: list[dict[str, Any]]) -> pd.DataFrame:
    if not records:
        return pd.DataFrame(columns=["date", "timestamp"])
    return pd.json_normalize(records, sep="_")


def history_frame(points: Sequence[HistoricalPoint]) -> pd.DataFrame:
    """One row per snapshot with flattened ``group_field`` columns; agents omitted."""
    records = []
    for point in points:
        payload = point.snapshot.to_dict()
        payload.pop("ttml_agents")
        payload.pop("timestamp")
        records.append({"date": point.date, "timestamp": point.timestamp, **payload})
    return _flatten(records)


def delta_frame(delta_points: Sequence[DeltaPoint]) -> pd.DataFrame:
    records = []
    for point in delta_points:
        payload = point.delta.to_dict()
        payload.pop("ttml_agents")
        records.append({"date": point.date, "timestamp": point.timestamp, **payload})
    return _flatten(records)


def agents_frame(points: Sequence[HistoricalPoint | DeltaPoint]) -> pd.DataFrame:
    """Long-format agent counts: snapshot totals or deltas, depending on the series."""
    rows: list[dict[str, Any]] = []
    for point in points:
        agents = (
            point.delta.ttml_agents
            if isinstance(point, DeltaPoint)
            else point.snapshot.ttml_agents
        )
        for agent in agents:
            rows.append(
                {
                    "date": point.date,
                    "timestamp": point.timestamp,
                    "name": agent.name,
                    "requests": agent.requests,
                    "former_names": ", ".join(agent.former_names or ()),
                }
            )
    if not rows:
        return pd.DataFrame(columns=AGENT_COLUMNS)
    return pd.DataFrame(rows, columns=AGENT_COLUMNS)
