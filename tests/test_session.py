from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from happiness_atlas.config import AppConfig
from happiness_atlas.errors import LoadFailure
from happiness_atlas.pipeline.export import (
    export_global_trend,
    export_join_report,
    export_snapshot,
)
from happiness_atlas.pipeline.session import build_session, initialize


def _write_sources(tmp_path: Path) -> AppConfig:
    stats_path = tmp_path / "happiness.csv"
    stats_path.write_text(
        "\n".join(
            [
                "Country,Year,Happiness Score,GDP per Capita,Region",
                "South Korea,2019,5.9,31000,Eastern Asia",
                "Czech Republic,2019,6.9,23000,Central and Eastern Europe",
                "Atlantis,2019,9.9,1,Oceania",
                "South Korea,2020,5.8,31500,Eastern Asia",
                "Czech Republic,2020,7.0,,Central and Eastern Europe",
            ]
        ),
        encoding="utf-8",
    )
    geo_path = tmp_path / "countries.geojson"
    geo_path.write_text(
        json.dumps(
            {
                "type": "FeatureCollection",
                "features": [
                    {"type": "Feature", "properties": {"name": "Republic of Korea"}, "geometry": None},
                    {"type": "Feature", "properties": {"name": "Czechia"}, "geometry": None},
                    {"type": "Feature", "properties": {"name": "Greenland"}, "geometry": None},
                ],
            }
        ),
        encoding="utf-8",
    )
    overrides_path = tmp_path / "overrides.csv"
    overrides_path.write_text(
        "alias,canonical\nsouth korea,Republic of Korea\nczech republic,Czechia\n",
        encoding="utf-8",
    )
    return AppConfig.model_validate(
        {
            "input": {"stats_path": str(stats_path), "geo_path": str(geo_path)},
            "matching": {"overrides_path": str(overrides_path)},
        }
    )


def test_initialize_builds_join_map_index_and_engine(tmp_path: Path) -> None:
    session = initialize(_write_sources(tmp_path))

    assert session.index.distinct_years == (2019, 2020)
    assert session.join_map["South Korea"].display_name == "Republic of Korea"
    assert session.join_map["Czech Republic"].display_name == "Czechia"
    assert session.join_map.unresolved == ["Atlantis"]
    assert session.engine.state.year == 2020
    assert [record.country for record in session.engine.snapshot.views.filtered_rows] == [
        "South Korea",
        "Czech Republic",
    ]


def test_initialize_raises_load_failure_for_missing_source(tmp_path: Path) -> None:
    config = _write_sources(tmp_path)
    config.input.geo_path = str(tmp_path / "missing.geojson")

    with pytest.raises(LoadFailure, match="geographic dataset") as excinfo:
        initialize(config)
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)


def test_initialize_raises_load_failure_for_unparseable_stats(tmp_path: Path) -> None:
    config = _write_sources(tmp_path)
    (tmp_path / "happiness.csv").write_text("Nation\nPeru\n", encoding="utf-8")

    with pytest.raises(LoadFailure, match="statistical dataset"):
        initialize(config)


def test_build_session_rejects_empty_dataset(tmp_path: Path) -> None:
    empty = pd.DataFrame(
        columns=[
            "country",
            "year",
            "score",
            "gdp",
            "region",
            "healthy",
            "freedom",
            "generosity",
            "corruption",
        ]
    )

    with pytest.raises(LoadFailure, match="no usable rows"):
        build_session(empty, [], AppConfig())


def test_exports_write_join_report_trend_and_snapshot(tmp_path: Path) -> None:
    session = initialize(_write_sources(tmp_path))
    out_dir = tmp_path / "out"

    report_path = export_join_report(session.join_map, out_dir)
    trend_path = export_global_trend(session.index.global_trend, out_dir)
    session.engine.set_region("Central and Eastern Europe")
    snapshot_path = export_snapshot(session.engine.snapshot, out_dir)

    report = pd.read_csv(report_path)
    assert report["rule"].tolist() == ["override", "override", "unresolved"]
    trend = pd.read_csv(trend_path)
    assert trend["year"].tolist() == [2019, 2020]
    assert snapshot_path.name == "views_2020_central_and_eastern_europe.json"
    payload = json.loads(snapshot_path.read_text(encoding="utf-8"))
    assert payload["state"]["region"] == "Central and Eastern Europe"
    assert payload["filtered_rows"][0]["gdp"] is None
    assert payload["map_values"] == {"0": None, "1": 7.0, "2": None}
