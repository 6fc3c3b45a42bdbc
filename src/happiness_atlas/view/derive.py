from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Sequence

from happiness_atlas.features.dataset_index import DatasetIndex, StatRecord, TrendPoint
from happiness_atlas.view.state import ViewState

DEFAULT_SCATTER_MARGIN = 0.1


@dataclass(frozen=True)
class ScatterDomain:
    gdp: tuple[float, float]
    score: tuple[float, float]


@dataclass(frozen=True)
class DerivedViews:
    year: int
    region: str
    filtered_rows: tuple[StatRecord, ...]
    scatter_points: tuple[StatRecord, ...]
    scatter_domain: ScatterDomain | None
    selected_history: tuple[StatRecord, ...]
    history_points: tuple[StatRecord, ...]
    global_trend: tuple[TrendPoint, ...]
    info_snapshot: StatRecord | None


def _extent(values: Iterable[float]) -> tuple[float, float] | None:
    present = [value for value in values if not math.isnan(value)]
    if not present:
        return None
    return min(present), max(present)


def _expand(extent: tuple[float, float], margin: float) -> tuple[float, float]:
    low, high = extent
    return low - margin * abs(low), high + margin * abs(high)


def scatter_points(rows: Sequence[StatRecord]) -> tuple[StatRecord, ...]:
    """Rows that can be plotted, i.e. with both gdp and score present."""
    return tuple(
        record for record in rows if record.has_metric("gdp") and record.has_metric("score")
    )


def scatter_domain(
    points: Sequence[StatRecord], margin: float = DEFAULT_SCATTER_MARGIN
) -> ScatterDomain | None:
    """GDP and score extents of the plotted points, each pushed outward by ``margin``.

    Rows missing either metric are not plotted and do not stretch the domain.
    None when no row has both metrics.
    """
    plotted = scatter_points(points)
    if not plotted:
        return None
    gdp = _extent(record.gdp for record in plotted)
    score = _extent(record.score for record in plotted)
    return ScatterDomain(gdp=_expand(gdp, margin), score=_expand(score, margin))


def info_snapshot(history: Sequence[StatRecord]) -> StatRecord | None:
    # History is sorted by year, so the last row is the latest.
    return history[-1] if history else None


def derive_views(
    state: ViewState,
    index: DatasetIndex,
    *,
    scatter_margin: float = DEFAULT_SCATTER_MARGIN,
) -> DerivedViews:
    rows = index.records_for_year(state.year, state.region)
    points = scatter_points(rows)
    domain = scatter_domain(points, margin=scatter_margin)
    history = index.history_for(state.selected_country)
    return DerivedViews(
        year=state.year,
        region=state.region,
        filtered_rows=rows,
        scatter_points=points,
        scatter_domain=domain,
        selected_history=history,
        history_points=tuple(record for record in history if record.has_metric("score")),
        global_trend=index.global_trend,
        info_snapshot=info_snapshot(history),
    )


def _json_safe(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def _record_payload(record: StatRecord) -> dict[str, Any]:
    return _json_safe(asdict(record))


def views_payload(views: DerivedViews) -> dict[str, Any]:
    """Plain JSON-ready form of the derived views; missing metrics become null."""
    domain = views.scatter_domain
    return {
        "year": views.year,
        "region": views.region,
        "filtered_rows": [_record_payload(record) for record in views.filtered_rows],
        "scatter": {
            "points": [_record_payload(record) for record in views.scatter_points],
            "domain": None
            if domain is None
            else {"gdp": list(domain.gdp), "score": list(domain.score)},
        },
        "selected_history": [_record_payload(record) for record in views.selected_history],
        "history_points": [_record_payload(record) for record in views.history_points],
        "global_trend": [
            _json_safe({"year": point.year, "mean_score": point.mean_score})
            for point in views.global_trend
        ],
        "info": None if views.info_snapshot is None else _record_payload(views.info_snapshot),
    }
