from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import pandas as pd

from happiness_atlas.config import AppConfig
from happiness_atlas.errors import LoadFailure
from happiness_atlas.features.dataset_index import DatasetIndex
from happiness_atlas.features.matcher import JoinMap, build_join_map
from happiness_atlas.io.geo import GeoFeature, load_geo_features
from happiness_atlas.io.read import load_records
from happiness_atlas.preprocess.names import load_override_map
from happiness_atlas.view.engine import ViewEngine

LOGGER = logging.getLogger(__name__)

STATS_SOURCE = "statistical dataset"
GEO_SOURCE = "geographic dataset"


@dataclass(frozen=True)
class Session:
    config: AppConfig
    index: DatasetIndex
    join_map: JoinMap
    features: tuple[GeoFeature, ...]
    engine: ViewEngine


async def load_sources(config: AppConfig) -> tuple[pd.DataFrame, list[GeoFeature]]:
    """Fetch both datasets concurrently and wait for both before returning."""
    stats_task = asyncio.to_thread(load_records, config.input.stats_path, config)
    geo_task = asyncio.to_thread(
        load_geo_features,
        config.input.geo_path,
        object_name=config.input.geo_object,
        name_properties=tuple(config.input.geo_name_properties),
    )
    records, features = await asyncio.gather(stats_task, geo_task, return_exceptions=True)

    for source, outcome in ((STATS_SOURCE, records), (GEO_SOURCE, features)):
        if isinstance(outcome, BaseException):
            raise LoadFailure(source, str(outcome) or type(outcome).__name__) from outcome
    return records, features


def build_session(
    records: pd.DataFrame,
    features: list[GeoFeature],
    config: AppConfig,
) -> Session:
    if records.empty:
        raise LoadFailure(STATS_SOURCE, "no usable rows")

    index = DatasetIndex(records)
    overrides = load_override_map(config.matching.overrides_path)
    join_map = build_join_map(
        index.countries,
        features,
        overrides,
        tie_break=config.matching.substring_tie_break,
    )
    engine = ViewEngine(
        index,
        join_map,
        features,
        scatter_margin=config.view.scatter_margin,
        strict_selection=config.view.strict_selection,
    )
    LOGGER.info(
        "Session ready: %d rows, years %d-%d, %d regions, %d/%d countries joined",
        len(index),
        index.min_year,
        index.max_year,
        len(index.distinct_regions),
        len(join_map) - len(join_map.unresolved),
        len(join_map),
    )
    return Session(
        config=config,
        index=index,
        join_map=join_map,
        features=tuple(features),
        engine=engine,
    )


async def initialize_async(config: AppConfig) -> Session:
    records, features = await load_sources(config)
    return build_session(records, features, config)


def initialize(config: AppConfig) -> Session:
    return asyncio.run(initialize_async(config))
