from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from stats_dashboard.models import AgentCount


@dataclass(frozen=True)
class AccountMigration:
    source: str
    target: str
    migrated_at: str | None = None


class MigrationRegistry:
    """Static rename table for upstream accounts.

    Lookups are case-insensitive and resolve a single hop: with ``A -> B`` and
    ``B -> C`` registered, ``canonical_name("A")`` is ``"B"``.
    """

    def __init__(self, migrations: Iterable[AccountMigration] = ()) -> None:
        self._migrations = tuple(migrations)
        # Later entries win when two migrations share a source name.
        self._by_source = {item.source.lower(): item for item in self._migrations}

    @property
    def migrations(self) -> tuple[AccountMigration, ...]:
        return self._migrations

    def __len__(self) -> int:
        return len(self._migrations)

    def get_migration(self, name: str) -> AccountMigration | None:
        return self._by_source.get(name.lower())

    def canonical_name(self, name: str) -> str:
        migration = self.get_migration(name)
        return migration.target if migration else name

    def former_names(self, canonical_name: str) -> tuple[str, ...]:
        wanted = canonical_name.lower()
        return tuple(item.source for item in self._migrations if item.target.lower() == wanted)


DEFAULT_MIGRATIONS = (AccountMigration(source="Halsey", target="Khalid", migrated_at="2024-11"),)


def transform_accounts(
    accounts: Mapping[str, int],
    registry: MigrationRegistry,
) -> tuple[AgentCount, ...]:
    """Fold renamed accounts into their canonical name, busiest first."""
    aggregated: dict[str, int] = {}
    for name, requests in accounts.items():
        canonical = registry.canonical_name(name)
        aggregated[canonical] = aggregated.get(canonical, 0) + requests

    agents = [
        AgentCount(
            name=name,
            requests=requests,
            former_names=registry.former_names(name) or None,
        )
        for name, requests in aggregated.items()
    ]
    agents.sort(key=lambda agent: agent.requests, reverse=True)
    return tuple(agents)


def _require_name(value: Any, *, field_name: str, index: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(
            f"account migration #{index} field '{field_name}' must be a non-empty string"
        )
    return value.strip()


def parse_migrations(payload: Any) -> MigrationRegistry:
    if payload is None:
        return MigrationRegistry()
    if not isinstance(payload, list):
        raise ValueError("account migrations file must contain a list of {from, to} entries")

    migrations: list[AccountMigration] = []
    for index, entry in enumerate(payload):
        if not isinstance(entry, Mapping):
            raise ValueError(f"account migration #{index} must be a mapping")
        migrated_at = entry.get("migrated_at", entry.get("migratedAt"))
        migrations.append(
            AccountMigration(
                source=_require_name(entry.get("from"), field_name="from", index=index),
                target=_require_name(entry.get("to"), field_name="to", index=index),
                migrated_at=str(migrated_at) if migrated_at is not None else None,
            )
        )
    return MigrationRegistry(migrations)


@lru_cache(maxsize=8)
def _load_registry_file(path: str) -> MigrationRegistry:
    with Path(path).open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle)
    return parse_migrations(payload)


def load_migration_registry(path: str | Path | None) -> MigrationRegistry:
    """Load the registry once per path; no path or a missing file means the defaults."""
    if not path or not Path(path).exists():
        return MigrationRegistry(DEFAULT_MIGRATIONS)
    return _load_registry_file(str(Path(path).resolve()))
