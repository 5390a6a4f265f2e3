from __future__ import annotations

import json
from pathlib import Path

import typer

from stats_dashboard.config import DEFAULT_CONFIG_PATH, AppConfig, PreferencesConfig, load_config
from stats_dashboard.features.history import TimeRange
from stats_dashboard.io.read import load_latest_row, read_snapshot_file
from stats_dashboard.io.snapshots_postgres import import_snapshot_rows_to_postgres
from stats_dashboard.io.stats_api import sync_stats
from stats_dashboard.logging import configure_logging
from stats_dashboard.pipeline.run_all import run_all
from stats_dashboard.preprocess.accounts import load_migration_registry
from stats_dashboard.preprocess.snapshots import normalize_row, parse_row

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _require_rows_for_file_mode(rows: Path | None, cfg: AppConfig) -> Path | None:
    if cfg.input.mode == "file" and rows is None:
        raise typer.BadParameter(
            "Missing --rows. Required when input.mode='file'. "
            "Set input.mode='postgres' and configure input.db_url to read the analytics table."
        )
    return rows


def _override_preferences(
    cfg: AppConfig,
    time_range: TimeRange | None,
    view_mode: str | None,
) -> PreferencesConfig:
    updates: dict[str, str] = {}
    if time_range is not None:
        updates["time_range"] = time_range.value
    if view_mode is not None:
        updates["view_mode"] = view_mode
    return PreferencesConfig.model_validate({**cfg.preferences.model_dump(), **updates})


@app.command()
def summarize(
    rows: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    time_range: TimeRange | None = typer.Option(
        None,
        help="Trailing window for charts and summed deltas. Falls back to preferences.time_range.",
    ),
    view_mode: str | None = typer.Option(
        None,
        help="'total' for running counters, 'delta' for per-interval changes.",
    ),
) -> None:
    """Build snapshot/delta tables and the dashboard summary JSON."""
    configure_logging()
    cfg = _load_app_config(config)
    rows = _require_rows_for_file_mode(rows=rows, cfg=cfg)
    try:
        preferences = _override_preferences(cfg, time_range=time_range, view_mode=view_mode)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    summary_path = run_all(rows_path=rows, out_dir=out, config=cfg, preferences=preferences)
    typer.echo(f"Summary written to: {summary_path}")


@app.command()
def latest(
    rows: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
) -> None:
    """Print the most recent normalized snapshot as JSON."""
    configure_logging()
    cfg = _load_app_config(config)
    rows = _require_rows_for_file_mode(rows=rows, cfg=cfg)
    registry = load_migration_registry(cfg.accounts.migrations_path)
    try:
        row = parse_row(load_latest_row(rows, cfg))
    except LookupError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    snapshot = normalize_row(row, registry)
    typer.echo(json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False))


@app.command("import-snapshots")
def import_snapshots(
    rows: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    db_url: str | None = typer.Option(
        None,
        envvar=["STATS_DASHBOARD_DB_URL", "DATABASE_URL"],
        help="PostgreSQL connection string. Falls back to config.input.db_url.",
    ),
    table_name: str | None = typer.Option(
        None,
        help="Destination table name. Falls back to config.input.table_name.",
    ),
    chunk_size: int = typer.Option(1_000, min=1),
) -> None:
    """Copy exported analytics rows (JSON or NDJSON) into PostgreSQL."""
    configure_logging()
    cfg = _load_app_config(config)

    effective_db_url = db_url or cfg.input.db_url
    if not effective_db_url:
        raise typer.BadParameter(
            "Missing database URL. "
            "Set --db-url or STATS_DASHBOARD_DB_URL or input.db_url in config."
        )

    result = import_snapshot_rows_to_postgres(
        rows=read_snapshot_file(rows),
        db_url=effective_db_url,
        source_file=rows.name,
        table_name=table_name or cfg.input.table_name,
        chunk_size=int(chunk_size),
    )
    typer.echo("Snapshot import complete")
    typer.echo(f"- source_file: {result.source_file}")
    typer.echo(f"- table_name: {result.table_name}")
    typer.echo(f"- rows_processed: {result.rows_processed}")
    typer.echo(f"- rows_inserted: {result.rows_inserted}")
    typer.echo(f"- chunk_size: {result.chunk_size}")


@app.command()
def sync(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    db_url: str | None = typer.Option(
        None,
        envvar=["STATS_DASHBOARD_DB_URL", "DATABASE_URL"],
        help="PostgreSQL connection string. Falls back to config.input.db_url.",
    ),
    url: str | None = typer.Option(
        None,
        envvar="STATS_API_URL",
        help="Stats endpoint. Falls back to config.stats_api.url.",
    ),
    api_key: str | None = typer.Option(
        None,
        envvar="STATS_API_KEY",
        help="Value for the Authorization header. Falls back to config.stats_api.api_key.",
    ),
) -> None:
    """Fetch the current stats from the API server and store them as a new row."""
    configure_logging()
    cfg = _load_app_config(config)

    effective_db_url = db_url or cfg.input.db_url
    effective_url = url or cfg.stats_api.url
    if not effective_db_url:
        raise typer.BadParameter(
            "Missing database URL. "
            "Set --db-url or STATS_DASHBOARD_DB_URL or input.db_url in config."
        )
    if not effective_url:
        raise typer.BadParameter(
            "Missing stats URL. Set --url or STATS_API_URL or stats_api.url in config."
        )

    result = sync_stats(
        url=effective_url,
        db_url=effective_db_url,
        api_key=api_key or cfg.stats_api.api_key,
        table_name=cfg.input.table_name,
        timeout=cfg.stats_api.timeout_seconds,
    )
    typer.echo("Stats sync complete")
    typer.echo(f"- row_id: {result.row_id}")
    typer.echo(f"- table_name: {result.table_name}")
    typer.echo(f"- total_requests: {result.total_requests}")
    typer.echo(f"- accounts: {result.accounts}")


if __name__ == "__main__":
    app()
