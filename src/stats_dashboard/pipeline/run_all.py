from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from stats_dashboard.config import AppConfig, PreferencesConfig
from stats_dashboard.features.charts import displayed_responses, traffic_chart_points, visible_ticks
from stats_dashboard.features.history import (
    compute_delta_history,
    filter_by_time_range,
    sum_deltas_in_range,
)
from stats_dashboard.features.tables import agents_frame, delta_frame, history_frame
from stats_dashboard.io.read import load_rows
from stats_dashboard.io.write import write_summary, write_tables
from stats_dashboard.models import (
    DeltaPoint,
    DeltaSnapshot,
    HistoricalPoint,
    NormalizedSnapshot,
    RawSnapshotRow,
)
from stats_dashboard.paths import build_output_paths
from stats_dashboard.preprocess.accounts import MigrationRegistry, load_migration_registry
from stats_dashboard.preprocess.snapshots import build_history

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardData:
    latest: NormalizedSnapshot
    history: list[HistoricalPoint]
    delta_history: list[DeltaPoint]
    visible_history: list[HistoricalPoint]
    visible_deltas: list[DeltaPoint]
    delta_sum: DeltaSnapshot


def build_dashboard(
    rows: Iterable[Mapping[str, Any] | RawSnapshotRow],
    registry: MigrationRegistry,
    preferences: PreferencesConfig,
    timezone: str = "UTC",
    *,
    now_ms: int | None = None,
) -> DashboardData:
    """Everything the dashboard shows for one poll of the analytics table.

    Deltas are computed over the full history before range filtering, so the
    first visible delta still compares against the row just outside the range.
    """
    history = build_history(rows, registry=registry, timezone=timezone)
    if not history:
        raise LookupError("No data available")

    delta_history = compute_delta_history(history)
    visible_history = filter_by_time_range(history, preferences.time_range, now_ms=now_ms)
    visible_deltas = filter_by_time_range(delta_history, preferences.time_range, now_ms=now_ms)
    return DashboardData(
        latest=history[-1].snapshot,
        history=history,
        delta_history=delta_history,
        visible_history=visible_history,
        visible_deltas=visible_deltas,
        delta_sum=sum_deltas_in_range(visible_deltas),
    )


def build_summary(data: DashboardData, preferences: PreferencesConfig) -> dict[str, Any]:
    traffic = traffic_chart_points(
        preferences.view_mode,
        data.visible_history,
        data.visible_deltas,
    )
    responses, has_errors = displayed_responses(preferences.view_mode, data.latest, data.delta_sum)
    return {
        "preferences": preferences.model_dump(),
        "latest": data.latest.to_dict(),
        "delta_sum": data.delta_sum.to_dict(),
        "responses": {
            "2xx": responses.status_2xx,
            "4xx": responses.status_4xx,
            "5xx": responses.status_5xx,
            "has_errors": has_errors,
        },
        "traffic": [asdict(point) for point in traffic],
        "ticks": visible_ticks([point.date for point in traffic]),
        "counts": {
            "history": len(data.history),
            "visible_history": len(data.visible_history),
            "visible_deltas": len(data.visible_deltas),
        },
    }


def run_all(
    rows_path: Path | None,
    out_dir: Path,
    config: AppConfig,
    *,
    preferences: PreferencesConfig | None = None,
    now_ms: int | None = None,
) -> Path:
    """Load rows, build the dashboard series, write tables and the summary JSON."""
    effective_preferences = preferences or config.preferences
    paths = build_output_paths(out_dir)
    registry = load_migration_registry(config.accounts.migrations_path)
    rows = load_rows(rows_path, config)
    LOGGER.info("Building dashboard from %d rows (%d account migrations)", len(rows), len(registry))

    data = build_dashboard(
        rows,
        registry=registry,
        preferences=effective_preferences,
        timezone=config.display.timezone,
        now_ms=now_ms,
    )
    written = write_tables(
        {
            "history": history_frame(data.visible_history),
            "deltas": delta_frame(data.visible_deltas),
            "agents": agents_frame(data.visible_history),
            "agent_deltas": agents_frame(data.visible_deltas),
        },
        paths.tables,
        fmt=config.outputs.tables_format,
    )
    LOGGER.info("Wrote tables: %s", ", ".join(sorted(written)))
    return write_summary(build_summary(data, effective_preferences), paths.summary_file)
