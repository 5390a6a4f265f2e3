from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

CircuitState = Literal["CLOSED", "OPEN", "HALF_OPEN"]

# Python attribute -> field name used by the stats API and the dashboard.
WIRE_NAMES = {
    "status_2xx": "2xx",
    "status_4xx": "4xx",
    "status_5xx": "5xx",
    "former_names": "formerNames",
}


# -- Raw rows (as stored by the sync job) ---------------------------------------


class RawRequests(BaseModel):
    total: int
    lyrics: int
    cache: int
    health: int
    stats: int
    other: int
    per_hour: float | None = None
    per_minute: float | None = None


class RawResponses(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status_2xx: int = Field(alias="2xx")
    status_4xx: int = Field(alias="4xx")
    status_5xx: int = Field(alias="5xx")


class RawResponseTimes(BaseModel):
    avg: str
    avg_lyrics: str
    min: str
    max: str


class RawCache(BaseModel):
    hits: int
    misses: int
    negative_hits: int
    stale_hits: int
    hit_rate: float


class RawCacheStorage(BaseModel):
    keys: int
    size_kb: float = 0.0
    size_mb: float


class RawCircuitBreaker(BaseModel):
    state: CircuitState
    cooldown_remaining: str
    failures: int


class RawRateLimiting(BaseModel):
    normal_tier: int
    cached_tier: int
    exceeded: int


class RawServer(BaseModel):
    uptime_seconds: int | float
    start_time: str
    uptime: str | None = None


class RawStats(BaseModel):
    requests: RawRequests
    responses: RawResponses
    response_times: RawResponseTimes
    cache: RawCache
    cache_storage: RawCacheStorage
    circuit_breaker: RawCircuitBreaker
    rate_limiting: RawRateLimiting
    server: RawServer
    accounts: dict[str, int] = Field(default_factory=dict)


class RawSnapshotRow(BaseModel):
    id: int
    timestamp: str
    data: RawStats

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_to_iso(cls, value: Any) -> Any:
        # psycopg hands back timestamptz columns as datetime objects.
        if isinstance(value, datetime):
            return value.isoformat()
        return value


# -- Normalized snapshot ---------------------------------------------------------


def _wire_dict(value: Any) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for item in fields(value):
        raw = getattr(value, item.name)
        out[WIRE_NAMES.get(item.name, item.name)] = raw
    return out


@dataclass(frozen=True)
class AgentCount:
    name: str
    requests: int
    former_names: tuple[str, ...] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "requests": self.requests}
        if self.former_names is not None:
            payload["formerNames"] = list(self.former_names)
        return payload


@dataclass(frozen=True)
class RequestStats:
    total: int
    lyrics: int
    cache: int
    health: int
    stats: int
    other: int
    per_hour: int
    per_minute: float


@dataclass(frozen=True)
class ResponseCounts:
    status_2xx: int
    status_4xx: int
    status_5xx: int


@dataclass(frozen=True)
class ResponseTimes:
    avg: int
    avg_lyrics: int
    min: int
    max: int


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    negative_hits: int
    stale_hits: int
    hit_rate: float
    keys: int
    storage_mb: float


@dataclass(frozen=True)
class CircuitBreakerStats:
    state: str
    cooldown_remaining: float
    failures: int


@dataclass(frozen=True)
class RateLimitCounts:
    normal_tier: int
    cached_tier: int
    exceeded: int


@dataclass(frozen=True)
class ServerInfo:
    uptime_seconds: int | float
    start_time: str


@dataclass(frozen=True)
class NormalizedSnapshot:
    timestamp: str
    requests: RequestStats
    responses: ResponseCounts
    response_times: ResponseTimes
    cache: CacheStats
    circuit_breaker: CircuitBreakerStats
    rate_limiting: RateLimitCounts
    server: ServerInfo
    ttml_agents: tuple[AgentCount, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "requests": _wire_dict(self.requests),
            "responses": _wire_dict(self.responses),
            "response_times": _wire_dict(self.response_times),
            "cache": _wire_dict(self.cache),
            "circuit_breaker": _wire_dict(self.circuit_breaker),
            "rate_limiting": _wire_dict(self.rate_limiting),
            "server": asdict(self.server),
            "ttml_agents": [agent.to_dict() for agent in self.ttml_agents],
        }


# -- Delta snapshot --------------------------------------------------------------
# Each delta group's fields are a subset of the matching snapshot group, so the
# delta engine can diff and sum them field by field.


@dataclass(frozen=True)
class RequestDelta:
    total: int
    lyrics: int
    cache: int
    health: int
    stats: int
    other: int


@dataclass(frozen=True)
class CacheDelta:
    hits: int
    misses: int
    negative_hits: int
    stale_hits: int


@dataclass(frozen=True)
class StorageDelta:
    keys: int
    storage_mb: float


@dataclass(frozen=True)
class CircuitBreakerDelta:
    failures: int


DELTA_GROUPS: dict[str, type] = {
    "requests": RequestDelta,
    "responses": ResponseCounts,
    "cache": CacheDelta,
    "storage": StorageDelta,
    "rate_limiting": RateLimitCounts,
    "circuit_breaker": CircuitBreakerDelta,
}


@dataclass(frozen=True)
class DeltaSnapshot:
    requests: RequestDelta
    responses: ResponseCounts
    cache: CacheDelta
    storage: StorageDelta
    rate_limiting: RateLimitCounts
    circuit_breaker: CircuitBreakerDelta
    ttml_agents: tuple[AgentCount, ...] = ()

    @classmethod
    def zero(cls) -> DeltaSnapshot:
        groups = {
            name: group(**{item.name: 0 for item in fields(group)})
            for name, group in DELTA_GROUPS.items()
        }
        return cls(**groups, ttml_agents=())

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            name: _wire_dict(getattr(self, name)) for name in DELTA_GROUPS
        }
        payload["ttml_agents"] = [agent.to_dict() for agent in self.ttml_agents]
        return payload


# -- Series points ---------------------------------------------------------------


@dataclass(frozen=True)
class HistoricalPoint:
    date: str
    timestamp: int
    snapshot: NormalizedSnapshot


@dataclass(frozen=True)
class DeltaPoint:
    date: str
    timestamp: int
    delta: DeltaSnapshot
    snapshot: NormalizedSnapshot
