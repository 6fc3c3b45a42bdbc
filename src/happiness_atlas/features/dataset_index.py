from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Sequence

import pandas as pd

from happiness_atlas.io.schema import CANONICAL_COLUMNS

ALL_REGIONS = "All"


@dataclass(frozen=True)
class StatRecord:
    """One country-year row. Missing metrics are NaN, never zero."""

    country: str
    year: int
    score: float
    gdp: float
    region: str
    healthy: float
    freedom: float
    generosity: float
    corruption: float

    def has_metric(self, name: str) -> bool:
        return not math.isnan(getattr(self, name))


@dataclass(frozen=True)
class TrendPoint:
    year: int
    mean_score: float


def _record_from_row(row: dict[str, object]) -> StatRecord:
    return StatRecord(
        country=str(row["country"]),
        year=int(row["year"]),
        score=float(row["score"]),
        gdp=float(row["gdp"]),
        region=str(row["region"]),
        healthy=float(row["healthy"]),
        freedom=float(row["freedom"]),
        generosity=float(row["generosity"]),
        corruption=float(row["corruption"]),
    )


def build_global_trend(df: pd.DataFrame) -> tuple[TrendPoint, ...]:
    """Mean score per distinct year; years whose scores are all missing report NaN."""
    if df.empty:
        return ()
    means = df.groupby("year", sort=True)["score"].mean()
    return tuple(
        TrendPoint(year=int(year), mean_score=float(mean)) for year, mean in means.items()
    )


class DatasetIndex:
    """Year and country lookups over the immutable record set, built once at load."""

    def __init__(self, frame: pd.DataFrame) -> None:
        missing = [column for column in CANONICAL_COLUMNS if column not in frame.columns]
        if missing:
            raise ValueError(f"Record frame missing columns: {', '.join(missing)}")

        self._frame = frame[CANONICAL_COLUMNS].reset_index(drop=True)
        self._records: tuple[StatRecord, ...] = tuple(
            _record_from_row(row) for row in self._frame.to_dict(orient="records")
        )

        by_year: dict[int, list[StatRecord]] = {}
        by_country: dict[str, list[StatRecord]] = {}
        for record in self._records:
            by_year.setdefault(record.year, []).append(record)
            by_country.setdefault(record.country, []).append(record)

        self._by_year = {year: tuple(rows) for year, rows in by_year.items()}
        self._by_country = {
            country: tuple(sorted(rows, key=lambda record: record.year))
            for country, rows in by_country.items()
        }
        self._distinct_years = tuple(sorted(self._by_year))
        self._distinct_regions = tuple(sorted({record.region for record in self._records}))
        self._global_trend = build_global_trend(self._frame)

        scores = self._frame["score"].dropna()
        self._score_extent = (
            (float(scores.min()), float(scores.max())) if not scores.empty else None
        )

    @classmethod
    def from_records(cls, records: Sequence[StatRecord]) -> "DatasetIndex":
        frame = pd.DataFrame(
            [asdict(record) for record in records], columns=CANONICAL_COLUMNS
        )
        return cls(frame)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> tuple[StatRecord, ...]:
        return self._records

    @property
    def distinct_years(self) -> tuple[int, ...]:
        return self._distinct_years

    @property
    def distinct_regions(self) -> tuple[str, ...]:
        return self._distinct_regions

    @property
    def countries(self) -> tuple[str, ...]:
        return tuple(self._by_country)

    @property
    def min_year(self) -> int:
        if not self._distinct_years:
            raise ValueError("Dataset has no years")
        return self._distinct_years[0]

    @property
    def max_year(self) -> int:
        if not self._distinct_years:
            raise ValueError("Dataset has no years")
        return self._distinct_years[-1]

    @property
    def global_trend(self) -> tuple[TrendPoint, ...]:
        return self._global_trend

    @property
    def score_extent(self) -> tuple[float, float] | None:
        return self._score_extent

    def has_country(self, country: str) -> bool:
        return country in self._by_country

    def records_for_year(
        self, year: int, region_filter: str = ALL_REGIONS
    ) -> tuple[StatRecord, ...]:
        rows = self._by_year.get(int(year), ())
        if not region_filter or region_filter == ALL_REGIONS:
            return rows
        return tuple(record for record in rows if record.region == region_filter)

    def history_for(self, country: str | None) -> tuple[StatRecord, ...]:
        if country is None:
            return ()
        return self._by_country.get(country, ())
