from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Literal, Mapping, Sequence

import pandas as pd

from happiness_atlas.io.geo import GeoFeature
from happiness_atlas.preprocess.names import affix_variants, normalize_country_name

LOGGER = logging.getLogger(__name__)

MatchRule = Literal["override", "exact", "affix", "substring", "unresolved"]
TieBreak = Literal["closest_length", "first_seen"]

MATCH_RULES: tuple[MatchRule, ...] = ("override", "exact", "affix", "substring", "unresolved")


@dataclass(frozen=True)
class JoinEntry:
    country: str
    feature: GeoFeature | None
    rule: MatchRule

    @property
    def resolved(self) -> bool:
        return self.feature is not None


class JoinMap:
    """Country-to-feature join with a precomputed reverse index.

    Built once; both directions are read-only afterwards.
    """

    def __init__(self, entries: Iterable[JoinEntry]) -> None:
        by_country: dict[str, JoinEntry] = {}
        by_feature: dict[int, list[str]] = {}
        for entry in entries:
            by_country[entry.country] = entry
            if entry.feature is not None:
                by_feature.setdefault(entry.feature.feature_id, []).append(entry.country)
        self._entries = MappingProxyType(by_country)
        self._countries_by_feature = MappingProxyType(
            {feature_id: tuple(countries) for feature_id, countries in by_feature.items()}
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, country: object) -> bool:
        return country in self._entries

    def __getitem__(self, country: str) -> GeoFeature | None:
        return self._entries[country].feature

    @property
    def entries(self) -> Mapping[str, JoinEntry]:
        return self._entries

    def entry(self, country: str) -> JoinEntry | None:
        return self._entries.get(country)

    def feature_for(self, country: str | None) -> GeoFeature | None:
        if country is None:
            return None
        entry = self._entries.get(country)
        return entry.feature if entry is not None else None

    def countries_for(self, feature_id: int) -> tuple[str, ...]:
        return self._countries_by_feature.get(feature_id, ())

    @property
    def unresolved(self) -> list[str]:
        return [country for country, entry in self._entries.items() if not entry.resolved]

    def rule_counts(self) -> dict[str, int]:
        counts = Counter(entry.rule for entry in self._entries.values())
        return {rule: int(counts.get(rule, 0)) for rule in MATCH_RULES}

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {
                "country": entry.country,
                "normalized": normalize_country_name(entry.country),
                "feature_id": entry.feature.feature_id if entry.feature else None,
                "feature_name": entry.feature.display_name if entry.feature else "",
                "rule": entry.rule,
            }
            for entry in self._entries.values()
        ]
        frame = pd.DataFrame(
            rows, columns=["country", "normalized", "feature_id", "feature_name", "rule"]
        )
        frame["feature_id"] = frame["feature_id"].astype("Int64")
        return frame


class _GeoLookup:
    def __init__(self, features: Sequence[GeoFeature]) -> None:
        self.by_lower: dict[str, GeoFeature] = {}
        self.by_normalized: dict[str, GeoFeature] = {}
        for feature in features:
            if not feature.display_name:
                continue
            self.by_lower.setdefault(feature.display_name.lower(), feature)
            key = normalize_country_name(feature.display_name)
            if not key:
                continue
            if key in self.by_normalized:
                LOGGER.debug(
                    "Duplicate geographic name %r (feature %d); keeping feature %d",
                    feature.display_name,
                    feature.feature_id,
                    self.by_normalized[key].feature_id,
                )
                continue
            self.by_normalized[key] = feature

    def canonical(self, display_name: str) -> GeoFeature | None:
        found = self.by_lower.get(display_name.strip().lower())
        if found is not None:
            return found
        return self.by_normalized.get(normalize_country_name(display_name))

    def containing(self, normalized: str, tie_break: TieBreak) -> GeoFeature | None:
        candidates = [
            (geo_name, feature)
            for geo_name, feature in self.by_normalized.items()
            if normalized in geo_name or geo_name in normalized
        ]
        if not candidates:
            return None
        if tie_break == "first_seen":
            return candidates[0][1]
        _, best = min(
            candidates,
            key=lambda item: (abs(len(item[0]) - len(normalized)), item[0], item[1].feature_id),
        )
        return best


def _override_target(country: str, normalized: str, overrides: Mapping[str, str]) -> str | None:
    literal = country.strip().lower()
    if literal in overrides:
        return overrides[literal]
    return overrides.get(normalized)


def resolve_country(
    country: str,
    lookup: _GeoLookup,
    overrides: Mapping[str, str],
    tie_break: TieBreak = "closest_length",
) -> JoinEntry:
    normalized = normalize_country_name(country)
    if not normalized:
        return JoinEntry(country=country, feature=None, rule="unresolved")

    target = _override_target(country, normalized, overrides)
    if target is not None:
        feature = lookup.canonical(target)
        if feature is None:
            LOGGER.warning("Override for %r points at unknown feature %r", country, target)
            return JoinEntry(country=country, feature=None, rule="unresolved")
        return JoinEntry(country=country, feature=feature, rule="override")

    exact = lookup.by_normalized.get(normalized)
    if exact is not None:
        return JoinEntry(country=country, feature=exact, rule="exact")

    for variant in affix_variants(normalized):
        stripped = lookup.by_normalized.get(variant)
        if stripped is not None:
            return JoinEntry(country=country, feature=stripped, rule="affix")

    contained = lookup.containing(normalized, tie_break)
    if contained is not None:
        return JoinEntry(country=country, feature=contained, rule="substring")
    return JoinEntry(country=country, feature=None, rule="unresolved")


def build_join_map(
    dataset_names: Iterable[str],
    features: Sequence[GeoFeature],
    overrides: Mapping[str, str],
    tie_break: TieBreak = "closest_length",
) -> JoinMap:
    """Resolve every distinct dataset country to a feature or an unresolved entry.

    Rules apply in order and the first hit wins: curated override, exact
    normalized name, name with a leading article or trailing form word
    removed, then substring containment.
    """
    lookup = _GeoLookup(features)
    distinct = list(dict.fromkeys(dataset_names))
    join_map = JoinMap(
        resolve_country(country, lookup, overrides, tie_break) for country in distinct
    )

    counts = join_map.rule_counts()
    LOGGER.info(
        "Joined %d countries to %d features: %s",
        len(join_map),
        len(features),
        ", ".join(f"{rule}={count}" for rule, count in counts.items()),
    )
    if counts["unresolved"]:
        LOGGER.debug("Unresolved countries: %s", ", ".join(join_map.unresolved))
    return join_map
