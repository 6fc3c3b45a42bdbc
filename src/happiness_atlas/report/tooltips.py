from __future__ import annotations

import math
from typing import Sequence

from happiness_atlas.features.dataset_index import StatRecord, TrendPoint
from happiness_atlas.io.geo import GeoFeature

MISSING_TEXT = "-"
PANDEMIC_BASE_YEAR = 2019
PANDEMIC_YEAR = 2020


def _is_missing(value: float | None) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def format_number(value: float | None) -> str:
    """Compact magnitude formatting: 1.2B, 3.4M, 5.6K, otherwise two decimals."""
    if _is_missing(value):
        return MISSING_TEXT
    number = float(value)
    if number >= 1e9:
        return f"{number / 1e9:.1f}B"
    if number >= 1e6:
        return f"{number / 1e6:.1f}M"
    if number >= 1e3:
        return f"{number / 1e3:.1f}K"
    return f"{number:.2f}"


def format_plain(value: float | int | None) -> str:
    if _is_missing(value):
        return MISSING_TEXT
    text = repr(value)
    return text[:-2] if text.endswith(".0") else text


def record_tooltip(record: StatRecord) -> str:
    return "\n".join(
        [
            record.country,
            f"Score: {format_plain(record.score)}",
            f"GDP: {format_number(record.gdp)}",
            f"Region: {record.region}",
        ]
    )


def feature_tooltip(feature: GeoFeature, record: StatRecord | None, year: int) -> str:
    if record is not None:
        return record_tooltip(record)
    return "\n".join([feature.display_name or "Unknown", f"No data for {year}"])


def history_tooltip(record: StatRecord) -> str:
    return "\n".join(
        [record.country, f"Year: {record.year}", f"Score: {format_plain(record.score)}"]
    )


def info_panel(record: StatRecord | None) -> list[tuple[str, str]]:
    if record is None:
        return []
    return [
        ("Country", record.country),
        ("Year", str(record.year)),
        ("Score", format_plain(record.score)),
        ("GDP per Capita", format_number(record.gdp)),
        ("Region", record.region),
        ("Healthy life", format_plain(record.healthy)),
        ("Freedom", format_plain(record.freedom)),
        ("Generosity", format_plain(record.generosity)),
        ("Corruption", format_plain(record.corruption)),
    ]


def trend_annotation(trend: Sequence[TrendPoint]) -> str:
    by_year = {point.year: point.mean_score for point in trend}
    before = by_year.get(PANDEMIC_BASE_YEAR)
    after = by_year.get(PANDEMIC_YEAR)
    if _is_missing(before) or _is_missing(after):
        return "Global trend shown above."

    diff = round(after - before, 3)
    if diff < 0:
        return (
            f"Global average fell by {format_plain(abs(diff))} from "
            f"{PANDEMIC_BASE_YEAR} → {PANDEMIC_YEAR} (pandemic effect)"
        )
    if diff > 0:
        return (
            f"Global average rose by {format_plain(diff)} from "
            f"{PANDEMIC_BASE_YEAR} → {PANDEMIC_YEAR}"
        )
    return f"No major change {PANDEMIC_BASE_YEAR} → {PANDEMIC_YEAR} (Δ 0)"
