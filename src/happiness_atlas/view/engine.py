from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from happiness_atlas.errors import InvalidControlInput
from happiness_atlas.features.dataset_index import DatasetIndex, StatRecord
from happiness_atlas.features.matcher import JoinMap
from happiness_atlas.io.geo import GeoFeature
from happiness_atlas.report.tooltips import feature_tooltip, info_panel, trend_annotation
from happiness_atlas.view import state as transitions
from happiness_atlas.view.derive import (
    DEFAULT_SCATTER_MARGIN,
    DerivedViews,
    derive_views,
    views_payload,
)
from happiness_atlas.view.highlight import (
    Emphasis,
    choropleth_values,
    emphasis_by_feature,
    row_for_feature,
)
from happiness_atlas.view.playback import PlaybackDriver, Scheduler
from happiness_atlas.view.state import ControlDomain, ViewState

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewSnapshot:
    """Everything the renderer needs for one state."""

    state: ViewState
    views: DerivedViews
    emphasis: dict[int, Emphasis]
    map_values: dict[int, float]

    def to_payload(self) -> dict[str, Any]:
        payload = views_payload(self.views)
        payload["state"] = {
            "year": self.state.year,
            "region": self.state.region,
            "selected_country": self.state.selected_country,
            "hovered_country": self.state.hovered_country,
        }
        payload["emphasis"] = {str(key): value for key, value in self.emphasis.items()}
        payload["map_values"] = {
            str(key): (None if math.isnan(value) else value)
            for key, value in self.map_values.items()
        }
        payload["info_panel"] = [list(item) for item in info_panel(self.views.info_snapshot)]
        payload["trend_annotation"] = trend_annotation(self.views.global_trend)
        return payload


Listener = Callable[[ViewSnapshot], None]


class ViewEngine:
    """Owns the ViewState; every change goes through a transition and a full re-derive."""

    def __init__(
        self,
        index: DatasetIndex,
        join_map: JoinMap,
        features: Sequence[GeoFeature],
        *,
        scatter_margin: float = DEFAULT_SCATTER_MARGIN,
        strict_selection: bool = False,
    ) -> None:
        self._index = index
        self._join_map = join_map
        self._features = tuple(features)
        self._features_by_id = {feature.feature_id: feature for feature in self._features}
        self._scatter_margin = scatter_margin
        self._domain = ControlDomain.from_index(index, strict_selection=strict_selection)
        self._listeners: list[Listener] = []
        self._state = transitions.initial_state(self._domain)
        self._snapshot = self._derive(self._state)

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def snapshot(self) -> ViewSnapshot:
        return self._snapshot

    @property
    def domain(self) -> ControlDomain:
        return self._domain

    @property
    def index(self) -> DatasetIndex:
        return self._index

    @property
    def join_map(self) -> JoinMap:
        return self._join_map

    @property
    def features(self) -> tuple[GeoFeature, ...]:
        return self._features

    @property
    def year_label(self) -> str:
        return str(self._state.year)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _derive(self, state: ViewState) -> ViewSnapshot:
        views = derive_views(state, self._index, scatter_margin=self._scatter_margin)
        return ViewSnapshot(
            state=state,
            views=views,
            emphasis=emphasis_by_feature(self._features, state, self._join_map),
            map_values=choropleth_values(views.filtered_rows, self._features, self._join_map),
        )

    def _apply(self, new_state: ViewState) -> ViewSnapshot:
        self._state = new_state
        self._snapshot = self._derive(new_state)
        for listener in list(self._listeners):
            listener(self._snapshot)
        return self._snapshot

    def set_year(self, year: int) -> ViewSnapshot:
        try:
            new_state = transitions.set_year(self._state, year, self._domain)
        except InvalidControlInput:
            LOGGER.warning("Rejected year %r", year)
            raise
        return self._apply(new_state)

    def set_region(self, region: str) -> ViewSnapshot:
        try:
            new_state = transitions.set_region(self._state, region, self._domain)
        except InvalidControlInput:
            LOGGER.warning("Rejected region %r", region)
            raise
        return self._apply(new_state)

    def select(self, country: str | None) -> ViewSnapshot:
        return self._apply(transitions.select(self._state, country, self._domain))

    def hover(self, country: str | None) -> ViewSnapshot:
        return self._apply(transitions.hover(self._state, country))

    def select_feature(self, feature_id: int) -> ViewSnapshot:
        """Map click: select the first dataset country joined to the feature."""
        countries = self._join_map.countries_for(feature_id)
        if not countries:
            return self._snapshot
        return self.select(countries[0])

    def hover_feature(self, feature_id: int | None) -> ViewSnapshot:
        """Map hover: a feature without data hovers nothing."""
        if feature_id is None:
            return self.hover(None)
        row = self._feature_row(feature_id)
        return self.hover(row.country if row is not None else None)

    def reset(self) -> ViewSnapshot:
        return self._apply(transitions.reset(self._state, self._domain))

    def advance_year(self) -> ViewSnapshot:
        return self._apply(transitions.advance_year(self._state, self._domain))

    def playback(self, scheduler: Scheduler, interval_seconds: float = 1.2) -> PlaybackDriver:
        return PlaybackDriver(
            on_tick=self.advance_year,
            scheduler=scheduler,
            interval_seconds=interval_seconds,
        )

    def _feature_row(self, feature_id: int) -> StatRecord | None:
        feature = self._features_by_id.get(feature_id)
        if feature is None:
            return None
        return row_for_feature(self._snapshot.views.filtered_rows, feature, self._join_map)

    def feature_tooltip(self, feature_id: int) -> str:
        feature = self._features_by_id.get(feature_id)
        if feature is None:
            raise KeyError(f"Unknown feature id: {feature_id}")
        return feature_tooltip(feature, self._feature_row(feature_id), self._state.year)
