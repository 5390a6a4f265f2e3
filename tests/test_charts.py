from __future__ import annotations

import pytest

from stats_dashboard.features.charts import (
    displayed_responses,
    traffic_chart_points,
    visible_ticks,
)
from stats_dashboard.features.history import compute_delta_history, sum_deltas_in_range
from stats_dashboard.models import DeltaSnapshot
from stats_dashboard.preprocess.accounts import DEFAULT_MIGRATIONS, MigrationRegistry
from stats_dashboard.preprocess.snapshots import build_history

REGISTRY = MigrationRegistry(DEFAULT_MIGRATIONS)


def _history(make_row):
    rows = [
        make_row(1, "2025-01-15T10:00:00Z", total=100, cache_hits=10, status_5xx=0),
        make_row(2, "2025-01-15T11:00:00Z", total=180, cache_hits=25, status_5xx=1),
        make_row(3, "2025-01-15T12:00:00Z", total=200, cache_hits=30, status_5xx=4),
    ]
    return build_history(rows, REGISTRY)


def test_traffic_chart_points_total_view_uses_snapshots(make_row) -> None:
    history = _history(make_row)

    points = traffic_chart_points("total", history, compute_delta_history(history))

    assert [point.requests for point in points] == [100, 180, 200]
    assert [point.cache_hits for point in points] == [10, 25, 30]
    assert [point.errors for point in points] == [0, 1, 4]
    assert points[0].date == history[0].date


def test_traffic_chart_points_delta_view_uses_deltas(make_row) -> None:
    history = _history(make_row)

    points = traffic_chart_points("delta", history, compute_delta_history(history))

    assert [point.requests for point in points] == [80, 20]
    assert [point.cache_hits for point in points] == [15, 5]
    assert [point.errors for point in points] == [1, 3]
    assert points[0].timestamp == history[1].timestamp


def test_traffic_chart_points_rejects_unknown_view(make_row) -> None:
    with pytest.raises(ValueError, match="view mode"):
        traffic_chart_points("hourly", _history(make_row), [])  # type: ignore[arg-type]


def test_visible_ticks_short_series_shows_everything() -> None:
    assert visible_ticks([]) == []
    assert visible_ticks(["a"]) == ["a"]
    dates = [f"d{index}" for index in range(7)]
    assert visible_ticks(dates) == dates


def test_visible_ticks_spreads_long_series() -> None:
    ten = [f"d{index}" for index in range(10)]
    # 7 ticks over 10 points: step 1.5 -> indices 0, 2, 3, 5, 6, 8, 9.
    assert visible_ticks(ten) == ["d0", "d2", "d3", "d5", "d6", "d8", "d9"]

    twenty = [f"d{index}" for index in range(20)]
    assert len(visible_ticks(twenty)) == 6
    assert visible_ticks(twenty)[0] == "d0"
    assert visible_ticks(twenty)[-1] == "d19"

    hundred = [f"d{index}" for index in range(100)]
    assert visible_ticks(hundred) == ["d0", "d25", "d50", "d74", "d99"]


def test_displayed_responses_follow_view_mode(make_row) -> None:
    history = _history(make_row)
    delta_sum = sum_deltas_in_range(compute_delta_history(history))
    latest = history[-1].snapshot

    total_responses, total_errors = displayed_responses("total", latest, delta_sum)
    delta_responses, delta_errors = displayed_responses("delta", latest, delta_sum)

    assert total_responses == latest.responses
    assert total_errors is True
    assert delta_responses.status_5xx == 4
    assert delta_errors is True
    assert displayed_responses("delta", latest, DeltaSnapshot.zero())[1] is False
