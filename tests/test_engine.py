from __future__ import annotations

import json

import numpy as np
import pandas as pd
import pytest

from happiness_atlas.errors import InvalidControlInput
from happiness_atlas.features.dataset_index import DatasetIndex
from happiness_atlas.features.matcher import build_join_map
from happiness_atlas.io.geo import GeoFeature
from happiness_atlas.view.engine import ViewEngine
from happiness_atlas.view.state import ViewState


def _engine(**kwargs) -> ViewEngine:
    nan = np.nan
    frame = pd.DataFrame(
        {
            "country": ["Norway", "Chad", "Norway", "Chad", "South Korea"],
            "year": [2018, 2018, 2019, 2019, 2019],
            "score": [7.5, 4.0, 7.4, 4.1, 5.9],
            "gdp": [60000.0, 500.0, 61000.0, nan, 30000.0],
            "region": ["Europe", "Africa", "Europe", "Africa", "Asia"],
            "healthy": [0.9, 0.4, 0.9, 0.4, 0.9],
            "freedom": [0.6, 0.3, 0.6, 0.3, 0.5],
            "generosity": [0.3, 0.2, 0.3, 0.2, 0.2],
            "corruption": [0.2, 0.7, 0.2, 0.7, 0.3],
        }
    )
    index = DatasetIndex(frame)
    features = [
        GeoFeature(feature_id=0, display_name="Norway"),
        GeoFeature(feature_id=1, display_name="Chad"),
        GeoFeature(feature_id=2, display_name="Republic of Korea"),
        GeoFeature(feature_id=3, display_name="Greenland"),
    ]
    join_map = build_join_map(
        index.countries, features, {"south korea": "Republic of Korea"}
    )
    return ViewEngine(index, join_map, features, **kwargs)


def _dump(engine: ViewEngine) -> str:
    return json.dumps(engine.snapshot.to_payload(), sort_keys=True, allow_nan=False)


def test_engine_starts_at_latest_year_with_everything_derived() -> None:
    engine = _engine()
    snapshot = engine.snapshot

    assert snapshot.state == ViewState(year=2019)
    assert engine.year_label == "2019"
    assert [record.country for record in snapshot.views.filtered_rows] == [
        "Norway",
        "Chad",
        "South Korea",
    ]
    assert snapshot.map_values[2] == 5.9
    assert snapshot.emphasis == {0: "neutral", 1: "neutral", 2: "neutral", 3: "neutral"}


def test_reset_reproduces_initial_views_exactly() -> None:
    engine = _engine()
    initial = _dump(engine)

    engine.set_year(2018)
    engine.set_region("Europe")
    engine.select("Chad")
    engine.hover("Norway")
    assert _dump(engine) != initial

    engine.reset()
    assert engine.state == ViewState(year=2019, region="All")
    assert _dump(engine) == initial


def test_select_unknown_country_is_not_an_error() -> None:
    engine = _engine()
    snapshot = engine.select("Nonexistentland")

    assert snapshot.views.selected_history == ()
    assert snapshot.views.info_snapshot is None
    assert snapshot.to_payload()["info_panel"] == []


def test_strict_selection_reports_unknown_country() -> None:
    engine = _engine(strict_selection=True)

    with pytest.raises(InvalidControlInput):
        engine.select("Nonexistentland")
    assert engine.state.selected_country is None


def test_invalid_year_leaves_state_untouched() -> None:
    engine = _engine()

    with pytest.raises(InvalidControlInput):
        engine.set_year(2030)
    assert engine.state.year == 2019


def test_map_click_and_hover_use_join_map() -> None:
    engine = _engine()

    engine.select_feature(2)
    assert engine.state.selected_country == "South Korea"
    assert engine.snapshot.emphasis[2] == "selected"

    engine.hover_feature(0)
    assert engine.snapshot.emphasis[0] == "hovered"
    assert engine.snapshot.emphasis[2] == "selected"

    engine.hover_feature(3)
    assert engine.state.hovered_country is None

    engine.select_feature(3)
    assert engine.state.selected_country == "South Korea"


def test_feature_tooltips_report_data_or_absence() -> None:
    engine = _engine()

    assert engine.feature_tooltip(0) == "Norway\nScore: 7.4\nGDP: 61.0K\nRegion: Europe"
    assert engine.feature_tooltip(3) == "Greenland\nNo data for 2019"
    with pytest.raises(KeyError):
        engine.feature_tooltip(42)


def test_listeners_receive_each_snapshot_until_unsubscribed() -> None:
    engine = _engine()
    seen: list[int] = []
    unsubscribe = engine.subscribe(lambda snapshot: seen.append(snapshot.state.year))

    engine.set_year(2018)
    engine.advance_year()
    unsubscribe()
    engine.advance_year()

    assert seen == [2018, 2019]
    assert engine.state.year == 2018
