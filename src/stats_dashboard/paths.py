from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class OutputPaths:
    root: Path
    tables: Path
    summary_file: Path


def build_output_paths(out_dir: Path) -> OutputPaths:
    paths = OutputPaths(
        root=out_dir,
        tables=out_dir / "tables",
        summary_file=out_dir / "dashboard_summary.json",
    )
    paths.tables.mkdir(parents=True, exist_ok=True)
    return paths
