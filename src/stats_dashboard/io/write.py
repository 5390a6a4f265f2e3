from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd


def write_table(df: pd.DataFrame, path: Path, fmt: str = "parquet") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "parquet":
        df.to_parquet(path, index=False)
        return path
    if fmt == "csv":
        df.to_csv(path, index=False)
        return path
    raise ValueError(f"Unsupported table format: {fmt}")


def write_tables(
    tables: dict[str, pd.DataFrame],
    out_dir: Path,
    fmt: str = "parquet",
) -> dict[str, Path]:
    """Write each frame as ``<out_dir>/<name>.<fmt>``; empty frames are written too."""
    return {
        name: write_table(frame, out_dir / f"{name}.{fmt}", fmt=fmt)
        for name, frame in tables.items()
    }


def write_summary(data: dict[str, Any], path: Path) -> Path:
    """Dashboard summary JSON; keys keep insertion order so groups read top-down."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path
