from __future__ import annotations

from typing import Any, Callable

import pytest


def build_row(
    row_id: int = 1,
    timestamp: str = "2025-01-15T12:00:00+00:00",
    *,
    total: int = 1000,
    uptime_seconds: int = 7200,
    accounts: dict[str, int] | None = None,
    cache_hits: int = 400,
    cache_misses: int = 100,
    keys: int = 50,
    size_mb: float = 1.5,
    failures: int = 0,
    status_5xx: int = 2,
    cooldown: str = "0s",
    avg: str = "12.4ms",
) -> dict[str, Any]:
    return {
        "id": row_id,
        "timestamp": timestamp,
        "data": {
            "requests": {
                "total": total,
                "lyrics": total // 2,
                "cache": total // 4,
                "health": 10,
                "stats": 5,
                "other": total - total // 2 - total // 4 - 15,
                "per_hour": 999,
                "per_minute": 9.9,
            },
            "responses": {"2xx": total - status_5xx - 3, "4xx": 3, "5xx": status_5xx},
            "response_times": {
                "avg": avg,
                "avg_lyrics": "1.2s",
                "min": "850µs",
                "max": "1m2.5s",
            },
            "cache": {
                "hits": cache_hits,
                "misses": cache_misses,
                "negative_hits": 7,
                "stale_hits": 3,
                "hit_rate": 80.0,
            },
            "cache_storage": {"keys": keys, "size_kb": size_mb * 1024, "size_mb": size_mb},
            "circuit_breaker": {
                "state": "CLOSED",
                "cooldown_remaining": cooldown,
                "failures": failures,
            },
            "rate_limiting": {"normal_tier": 20, "cached_tier": 30, "exceeded": 1},
            "server": {
                "uptime_seconds": uptime_seconds,
                "start_time": "2025-01-15T10:00:00Z",
                "uptime": "2h0m0s",
            },
            "accounts": {"Khalid": 60, "Halsey": 40} if accounts is None else accounts,
        },
    }


@pytest.fixture
def make_row() -> Callable[..., dict[str, Any]]:
    return build_row
