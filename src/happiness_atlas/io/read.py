from __future__ import annotations

import io
import logging
import urllib.request
from pathlib import Path

import pandas as pd

from happiness_atlas.config import AppConfig
from happiness_atlas.io.schema import CANONICAL_COLUMNS, coerce_record_types, normalize_columns

LOGGER = logging.getLogger(__name__)

URL_TIMEOUT_SECONDS = 30


def is_url(source: str | Path) -> bool:
    return str(source).startswith(("http://", "https://"))


def read_source_text(source: str | Path) -> str:
    """Read a local file or an http(s) URL as UTF-8 text."""
    # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
    if is_url(source):
        with urllib.request.urlopen(str(source), timeout=URL_TIMEOUT_SECONDS) as response:
            return response.read().decode("utf-8-sig")
    return Path(source).read_text(encoding="utf-8-sig")


def _drop_unusable_rows(df: pd.DataFrame) -> pd.DataFrame:
    missing_country = df["country"].isna() | (df["country"] == "")
    missing_year = df["year"].isna() | (df["year"] % 1 != 0)
    unusable = (missing_country | missing_year).fillna(True)
    if unusable.any():
        LOGGER.warning(
            "Dropping %d rows without a country or integer year", int(unusable.sum())
        )
    kept = df.loc[~unusable].copy()
    kept["country"] = kept["country"].astype(str)
    kept["region"] = kept["region"].astype(str)
    kept["year"] = kept["year"].astype(int)
    return kept.reset_index(drop=True)


def load_records(source: str | Path | None, config: AppConfig) -> pd.DataFrame:
    """Load the statistical table and return canonical, typed columns in load order."""
    if source is None:
        raise ValueError("input.stats_path is required to load statistical records")

    df = pd.read_csv(io.StringIO(read_source_text(source)))
    normalized = normalize_columns(df=df, columns=config.columns)
    typed = coerce_record_types(normalized, default_region=config.input.default_region)
    records = _drop_unusable_rows(typed)
    LOGGER.info("Loaded %d statistical rows from %s", len(records), source)
    return records[CANONICAL_COLUMNS]

