from __future__ import annotations

import logging
import re
from pathlib import Path

import pandas as pd

from happiness_atlas.features.dataset_index import TrendPoint
from happiness_atlas.features.matcher import JoinMap
from happiness_atlas.io.write import write_snapshot, write_table
from happiness_atlas.paths import build_output_paths
from happiness_atlas.view.engine import ViewSnapshot

LOGGER = logging.getLogger(__name__)

SLUG_RE = re.compile(r"[^a-z0-9]+")


def _table_path(directory: Path, name: str, fmt: str) -> Path:
    extension = "parquet" if fmt == "parquet" else "csv"
    return directory / f"{name}.{extension}"


def trend_frame(trend: tuple[TrendPoint, ...]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"year": point.year, "mean_score": point.mean_score} for point in trend],
        columns=["year", "mean_score"],
    )


def export_join_report(join_map: JoinMap, out_dir: Path, fmt: str = "csv") -> Path:
    paths = build_output_paths(out_dir)
    path = write_table(join_map.to_frame(), _table_path(paths.tables, "join_report", fmt), fmt=fmt)
    LOGGER.info("Join report written to %s", path)
    return path


def export_global_trend(trend: tuple[TrendPoint, ...], out_dir: Path, fmt: str = "csv") -> Path:
    paths = build_output_paths(out_dir)
    path = write_table(trend_frame(trend), _table_path(paths.tables, "global_trend", fmt), fmt=fmt)
    LOGGER.info("Global trend written to %s", path)
    return path


def export_snapshot(snapshot: ViewSnapshot, out_dir: Path, name: str | None = None) -> Path:
    paths = build_output_paths(out_dir)
    state = snapshot.state
    slug = SLUG_RE.sub("_", state.region.lower()).strip("_") or "region"
    stem = name or f"views_{state.year}_{slug}"
    path = write_snapshot(snapshot.to_payload(), paths.snapshots / f"{stem}.json")
    LOGGER.info("View snapshot written to %s", path)
    return path
