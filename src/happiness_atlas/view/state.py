from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from numbers import Integral

from happiness_atlas.errors import InvalidControlInput
from happiness_atlas.features.dataset_index import ALL_REGIONS, DatasetIndex

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewState:
    """The controls every rendered view is derived from."""

    year: int
    region: str = ALL_REGIONS
    selected_country: str | None = None
    hovered_country: str | None = None


@dataclass(frozen=True)
class ControlDomain:
    """Valid values for each control, fixed once the dataset is loaded."""

    min_year: int
    max_year: int
    regions: frozenset[str]
    countries: frozenset[str]
    strict_selection: bool = False

    @classmethod
    def from_index(cls, index: DatasetIndex, *, strict_selection: bool = False) -> "ControlDomain":
        return cls(
            min_year=index.min_year,
            max_year=index.max_year,
            regions=frozenset(index.distinct_regions),
            countries=frozenset(index.countries),
            strict_selection=strict_selection,
        )

    @property
    def region_options(self) -> list[str]:
        return [ALL_REGIONS, *sorted(self.regions)]


def initial_state(domain: ControlDomain) -> ViewState:
    return ViewState(year=domain.max_year)


def set_year(state: ViewState, year: object, domain: ControlDomain) -> ViewState:
    if isinstance(year, bool) or not isinstance(year, Integral):
        raise InvalidControlInput("year", year, "an integer year")
    if not domain.min_year <= int(year) <= domain.max_year:
        raise InvalidControlInput("year", year, f"{domain.min_year}..{domain.max_year}")
    return replace(state, year=int(year))


def set_region(state: ViewState, region: object, domain: ControlDomain) -> ViewState:
    if region != ALL_REGIONS and region not in domain.regions:
        raise InvalidControlInput("region", region, f"one of {domain.region_options}")
    return replace(state, region=str(region))


def select(state: ViewState, country: str | None, domain: ControlDomain) -> ViewState:
    """Select a country, or clear the selection with None.

    A country with no records cannot be selected; it clears the selection
    unless the domain is strict, in which case it is rejected.
    """
    if country is None:
        return replace(state, selected_country=None)
    if country not in domain.countries:
        if domain.strict_selection:
            raise InvalidControlInput("selected country", country, "a country in the dataset")
        LOGGER.warning("Ignoring selection of unknown country %r", country)
        return replace(state, selected_country=None)
    return replace(state, selected_country=country)


def hover(state: ViewState, country: str | None) -> ViewState:
    return replace(state, hovered_country=country)


def advance_year(state: ViewState, domain: ControlDomain) -> ViewState:
    """Step one year forward, wrapping past the last year to the first."""
    next_year = state.year + 1
    if next_year > domain.max_year:
        next_year = domain.min_year
    return replace(state, year=next_year)


def reset(state: ViewState, domain: ControlDomain) -> ViewState:
    return initial_state(domain)
