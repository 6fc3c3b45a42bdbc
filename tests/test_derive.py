from __future__ import annotations

import json

import numpy as np
import pandas as pd
import pytest

from happiness_atlas.features.dataset_index import DatasetIndex, StatRecord
from happiness_atlas.view.derive import (
    derive_views,
    scatter_domain,
    scatter_points,
    views_payload,
)
from happiness_atlas.view.state import ViewState


def _record(country: str, score: float, gdp: float, year: int = 2019) -> StatRecord:
    nan = float("nan")
    return StatRecord(
        country=country,
        year=year,
        score=score,
        gdp=gdp,
        region="Test",
        healthy=nan,
        freedom=nan,
        generosity=nan,
        corruption=nan,
    )


def _index() -> DatasetIndex:
    nan = np.nan
    return DatasetIndex(
        pd.DataFrame(
            {
                "country": ["Norway", "Chad", "Norway", "Peru"],
                "year": [2019, 2019, 2020, 2020],
                "score": [7.5, 4.0, 7.4, nan],
                "gdp": [60000.0, 500.0, nan, 6000.0],
                "region": ["Europe", "Africa", "Europe", "Americas"],
                "healthy": [0.9, 0.4, 0.9, 0.7],
                "freedom": [0.6, 0.3, 0.6, 0.5],
                "generosity": [0.3, 0.2, 0.3, 0.1],
                "corruption": [0.2, 0.7, nan, 0.8],
            }
        )
    )


def test_scatter_domain_expands_extents_by_margin() -> None:
    domain = scatter_domain([_record("A", 5.0, 1000.0), _record("B", 7.0, 3000.0)], margin=0.1)

    assert domain is not None
    assert domain.gdp == pytest.approx((900.0, 3300.0))
    assert domain.score == pytest.approx((4.5, 7.7))


def test_scatter_domain_expands_outward_for_negative_values() -> None:
    domain = scatter_domain([_record("A", -2.0, -10.0), _record("B", 1.0, 10.0)], margin=0.1)

    assert domain.gdp == pytest.approx((-11.0, 11.0))
    assert domain.score == pytest.approx((-2.2, 1.1))


def test_scatter_domain_covers_only_plotted_points() -> None:
    nan = float("nan")
    rows = [_record("A", 5.0, 1000.0), _record("B", nan, 100000.0), _record("C", 9.0, nan)]

    assert [record.country for record in scatter_points(rows)] == ["A"]
    domain = scatter_domain(rows, margin=0.1)
    assert domain.gdp == pytest.approx((900.0, 1100.0))
    assert domain.score == pytest.approx((4.5, 5.5))


def test_scatter_domain_is_none_without_plottable_rows() -> None:
    nan = float("nan")

    assert scatter_domain([]) is None
    assert scatter_domain([_record("A", nan, nan)]) is None
    assert scatter_domain([_record("A", 5.0, nan), _record("B", nan, 2000.0)]) is None


def test_derive_views_for_year_and_selection() -> None:
    views = derive_views(ViewState(year=2019, selected_country="Norway"), _index())

    assert [record.country for record in views.filtered_rows] == ["Norway", "Chad"]
    assert [record.country for record in views.scatter_points] == ["Norway", "Chad"]
    assert [record.year for record in views.selected_history] == [2019, 2020]
    assert views.info_snapshot.year == 2020
    assert [point.year for point in views.global_trend] == [2019, 2020]


def test_scatter_points_skip_rows_missing_gdp_or_score() -> None:
    views = derive_views(ViewState(year=2020), _index())

    assert [record.country for record in views.filtered_rows] == ["Norway", "Peru"]
    assert views.scatter_points == ()
    assert views.scatter_domain is None


def test_empty_filter_renders_no_points() -> None:
    views = derive_views(ViewState(year=2019, region="Americas"), _index())

    assert views.filtered_rows == ()
    assert views.scatter_domain is None
    assert views.scatter_points == ()


def test_unknown_selection_yields_empty_history_and_no_info() -> None:
    views = derive_views(ViewState(year=2019, selected_country="Nonexistentland"), _index())

    assert views.selected_history == ()
    assert views.history_points == ()
    assert views.info_snapshot is None


def test_views_payload_is_strict_json_with_nulls_for_missing() -> None:
    views = derive_views(ViewState(year=2020, selected_country="Norway"), _index())
    payload = views_payload(views)
    text = json.dumps(payload, allow_nan=False)

    assert payload["scatter"]["domain"] is None
    assert payload["filtered_rows"][0]["gdp"] is None
    assert payload["info"]["corruption"] is None
    assert "NaN" not in text
