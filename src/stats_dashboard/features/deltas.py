from __future__ import annotations

from dataclasses import fields
from typing import Any, TypeVar

from stats_dashboard.models import (
    DELTA_GROUPS,
    AgentCount,
    DeltaSnapshot,
    NormalizedSnapshot,
)

GroupT = TypeVar("GroupT")

# Snapshot group each delta group reads from. Storage deltas come from the
# cache group's keys/storage_mb.
SOURCE_GROUPS = {
    "requests": "requests",
    "responses": "responses",
    "cache": "cache",
    "storage": "cache",
    "rate_limiting": "rate_limiting",
    "circuit_breaker": "circuit_breaker",
}


def leaf_difference(group: type[GroupT], current: Any, previous: Any) -> GroupT:
    return group(
        **{
            item.name: getattr(current, item.name) - getattr(previous, item.name)
            for item in fields(group)
        }
    )


def leaf_sum(group: type[GroupT], left: Any, right: Any) -> GroupT:
    return group(
        **{
            item.name: getattr(left, item.name) + getattr(right, item.name)
            for item in fields(group)
        }
    )


def compute_agent_deltas(
    current: tuple[AgentCount, ...],
    previous: tuple[AgentCount, ...],
) -> tuple[AgentCount, ...]:
    """Per-agent request change, only for agents present in ``current``.

    An agent missing from ``current`` is dropped rather than reported as a
    negative delta; a new agent's delta is its full count.
    """
    previous_requests = {agent.name: agent.requests for agent in previous}
    deltas = [
        AgentCount(
            name=agent.name,
            requests=agent.requests - previous_requests.get(agent.name, 0),
            former_names=agent.former_names,
        )
        for agent in current
    ]
    deltas.sort(key=lambda agent: agent.requests, reverse=True)
    return tuple(deltas)


def compute_delta(current: NormalizedSnapshot, previous: NormalizedSnapshot) -> DeltaSnapshot:
    groups = {
        name: leaf_difference(
            group,
            getattr(current, SOURCE_GROUPS[name]),
            getattr(previous, SOURCE_GROUPS[name]),
        )
        for name, group in DELTA_GROUPS.items()
    }
    return DeltaSnapshot(
        **groups,
        ttml_agents=compute_agent_deltas(current.ttml_agents, previous.ttml_agents),
    )
