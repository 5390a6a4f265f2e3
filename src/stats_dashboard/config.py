from __future__ import annotations

import os
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

REFETCH_INTERVAL_SECONDS = 30

ViewMode = Literal["total", "delta"]
TimeRangeName = Literal["6h", "12h", "24h", "7d", "30d", "all"]


class InputConfig(BaseModel):
    mode: Literal["file", "postgres"] = "file"
    db_url: str | None = None
    table_name: str = "analytics"


class AccountsConfig(BaseModel):
    migrations_path: str | None = "account_migrations.yaml"


class DisplayConfig(BaseModel):
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"unknown display timezone: {value}") from exc
        return value


class PreferencesConfig(BaseModel):
    view_mode: ViewMode = "total"
    time_range: TimeRangeName = "24h"
    traffic_chart_type: Literal["area", "bar", "scatter"] = "area"
    agents_chart_type: Literal["bar", "pie"] = "bar"


class StatsApiConfig(BaseModel):
    url: str | None = None
    api_key: str | None = None
    timeout_seconds: float = Field(default=10.0, gt=0.0)


class OutputsConfig(BaseModel):
    tables_format: Literal["parquet", "csv"] = "parquet"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    input: InputConfig = Field(default_factory=InputConfig)
    accounts: AccountsConfig = Field(default_factory=AccountsConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    preferences: PreferencesConfig = Field(default_factory=PreferencesConfig)
    stats_api: StatsApiConfig = Field(default_factory=StatsApiConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)
    poll_interval_seconds: int = Field(default=REFETCH_INTERVAL_SECONDS, ge=1)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.accounts.migrations_path = _resolve_optional_path(
        config.accounts.migrations_path,
        base_dir,
    )
    config.input.db_url = (
        config.input.db_url or os.getenv("STATS_DASHBOARD_DB_URL") or os.getenv("DATABASE_URL")
    )
    config.stats_api.url = config.stats_api.url or os.getenv("STATS_API_URL")
    config.stats_api.api_key = config.stats_api.api_key or os.getenv("STATS_API_KEY")
    return config
