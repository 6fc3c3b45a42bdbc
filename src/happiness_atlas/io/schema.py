from __future__ import annotations

from dataclasses import dataclass, fields

import numpy as np
import pandas as pd

from happiness_atlas.config import ColumnsConfig


@dataclass(frozen=True)
class CanonicalColumns:
    country: str = "country"
    year: str = "year"
    score: str = "score"
    gdp: str = "gdp"
    region: str = "region"
    healthy: str = "healthy"
    freedom: str = "freedom"
    generosity: str = "generosity"
    corruption: str = "corruption"


CANONICAL_COLUMNS = [item.default for item in fields(CanonicalColumns)]
NUMERIC_COLUMNS = ["score", "gdp", "healthy", "freedom", "generosity", "corruption"]
REQUIRED_SOURCE_FIELDS = ("country", "year")

# Alternate headers seen across yearly releases of the happiness tables.
FALLBACK_SOURCE_COLUMNS: dict[str, tuple[str, ...]] = {
    "country": ("Country", "country"),
    "year": ("Year", "year"),
    "score": ("Score", "score"),
    "gdp": ("GDP per capita", "gdp"),
    "region": ("Region", "region"),
    "healthy": ("healthy",),
    "freedom": ("freedom",),
    "generosity": ("generosity",),
    "corruption": ("corruption",),
}


def _resolve_source_column(df: pd.DataFrame, logical: str, configured: str) -> str | None:
    if configured in df.columns:
        return configured
    for candidate in FALLBACK_SOURCE_COLUMNS.get(logical, ()):
        if candidate in df.columns:
            return candidate
    return None


def normalize_columns(df: pd.DataFrame, columns: ColumnsConfig) -> pd.DataFrame:
    """Map source columns onto canonical StatRecord fields.

    Optional fields that cannot be found become all-missing columns; country
    and year must be present.
    """
    configured = columns.model_dump()
    resolved: dict[str, str | None] = {
        logical: _resolve_source_column(df, logical, configured[logical])
        for logical in CANONICAL_COLUMNS
    }
    missing = [
        configured[logical] for logical in REQUIRED_SOURCE_FIELDS if resolved[logical] is None
    ]
    if missing:
        missing_str = ", ".join(missing)
        raise ValueError(f"Missing required columns in CSV: {missing_str}")

    normalized = pd.DataFrame(index=df.index)
    for logical in CANONICAL_COLUMNS:
        source = resolved[logical]
        normalized[logical] = df[source] if source is not None else np.nan
    return normalized


def coerce_record_types(df: pd.DataFrame, default_region: str) -> pd.DataFrame:
    """Coerce metrics to float (unparseable -> NaN) and tidy text columns."""
    working = df.copy()
    working["country"] = working["country"].astype("string").str.strip()
    working["year"] = pd.to_numeric(working["year"], errors="coerce")
    for column in NUMERIC_COLUMNS:
        working[column] = pd.to_numeric(working[column], errors="coerce").astype(float)

    region = working["region"].astype("string").str.strip()
    working["region"] = region.mask(region.isna() | (region == ""), default_region)
    return working
