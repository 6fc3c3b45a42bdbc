from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

from happiness_atlas.io.read import read_source_text

LOGGER = logging.getLogger(__name__)

DEFAULT_NAME_PROPERTIES = ("name", "NAME", "adm0_a3")


@dataclass(frozen=True)
class GeoFeature:
    """A boundary feature; geometry is carried through untouched for the renderer."""

    feature_id: int
    display_name: str
    geometry: Any = field(default=None, compare=False, hash=False, repr=False)
    properties: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False, repr=False)


def _feature_name(properties: Mapping[str, Any] | None, name_properties: Sequence[str]) -> str:
    if not properties:
        return ""
    for key in name_properties:
        value = properties.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _raw_features(payload: Mapping[str, Any], object_name: str) -> list[Mapping[str, Any]]:
    kind = payload.get("type")
    if kind == "FeatureCollection":
        return list(payload.get("features") or [])
    if kind == "Topology":
        objects = payload.get("objects") or {}
        if object_name not in objects:
            available = ", ".join(sorted(objects)) or "none"
            raise ValueError(f"TopoJSON object '{object_name}' not found (available: {available})")
        collection = objects[object_name]
        # TopoJSON geometries keep their arc references; decoding them is the renderer's job.
        return [
            {
                "properties": geometry.get("properties") or {},
                "geometry": {key: value for key, value in geometry.items() if key != "properties"},
            }
            for geometry in collection.get("geometries") or []
        ]
    raise ValueError(f"Unsupported geographic payload type: {kind!r}")


def parse_geo_payload(
    payload: Mapping[str, Any],
    *,
    object_name: str = "countries",
    name_properties: Sequence[str] = DEFAULT_NAME_PROPERTIES,
) -> list[GeoFeature]:
    if not isinstance(payload, Mapping):
        raise ValueError("geographic payload must be a JSON object")

    features: list[GeoFeature] = []
    unnamed = 0
    for index, raw in enumerate(_raw_features(payload, object_name)):
        properties = raw.get("properties") or {}
        display_name = _feature_name(properties, name_properties)
        if not display_name:
            unnamed += 1
        features.append(
            GeoFeature(
                feature_id=index,
                display_name=display_name,
                geometry=raw.get("geometry"),
                properties=dict(properties),
            )
        )
    if unnamed:
        LOGGER.warning("%d geographic features have no usable name property", unnamed)
    return features


def load_geo_features(
    source: str | Path | None,
    *,
    object_name: str = "countries",
    name_properties: Sequence[str] = DEFAULT_NAME_PROPERTIES,
) -> list[GeoFeature]:
    if source is None:
        raise ValueError("input.geo_path is required to load geographic features")
    payload = json.loads(read_source_text(source))
    features = parse_geo_payload(payload, object_name=object_name, name_properties=name_properties)
    LOGGER.info("Loaded %d geographic features from %s", len(features), source)
    return features
