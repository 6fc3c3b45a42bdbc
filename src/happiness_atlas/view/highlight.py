from __future__ import annotations

import math
from typing import Literal, Sequence

from happiness_atlas.features.dataset_index import StatRecord
from happiness_atlas.features.matcher import JoinMap
from happiness_atlas.io.geo import GeoFeature
from happiness_atlas.view.state import ViewState

Emphasis = Literal["selected", "hovered", "neutral"]


def emphasis_for(feature: GeoFeature, state: ViewState, join_map: JoinMap) -> Emphasis:
    """Hover outranks selection; features without a joined country stay neutral."""
    countries = join_map.countries_for(feature.feature_id)
    if not countries:
        return "neutral"
    if state.hovered_country is not None and state.hovered_country in countries:
        return "hovered"
    if state.selected_country is not None and state.selected_country in countries:
        return "selected"
    return "neutral"


def emphasis_by_feature(
    features: Sequence[GeoFeature], state: ViewState, join_map: JoinMap
) -> dict[int, Emphasis]:
    return {feature.feature_id: emphasis_for(feature, state, join_map) for feature in features}


def choropleth_values(
    rows: Sequence[StatRecord], features: Sequence[GeoFeature], join_map: JoinMap
) -> dict[int, float]:
    """Score shown on each feature for the filtered rows; NaN where there is none.

    When several dataset countries share a feature, the last filtered row in
    load order wins, even if its score is missing.
    """
    values = {feature.feature_id: math.nan for feature in features}
    for record in rows:
        feature = join_map.feature_for(record.country)
        if feature is None or feature.feature_id not in values:
            continue
        values[feature.feature_id] = record.score
    return values


def row_for_feature(
    rows: Sequence[StatRecord], feature: GeoFeature, join_map: JoinMap
) -> StatRecord | None:
    """The filtered row behind a feature, used for map tooltips.

    Picks the same row as ``choropleth_values``.
    """
    countries = set(join_map.countries_for(feature.feature_id))
    if not countries:
        return None
    for record in reversed(rows):
        if record.country in countries:
            return record
    return None
