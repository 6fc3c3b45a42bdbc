#!/usr/bin/env python3
from __future__ import annotations

import csv
import json
import urllib.request
from pathlib import Path

from happiness_atlas.io.geo import parse_geo_payload

SOURCE_VERSION = "2.0.2"
SOURCE_URL = f"https://unpkg.com/world-atlas@{SOURCE_VERSION}/countries-110m.json"
OVERRIDES_PATH = Path(__file__).resolve().parents[2] / "configs" / "country_overrides.csv"


def load_feature_names() -> set[str]:
    with urllib.request.urlopen(SOURCE_URL, timeout=30) as response:
        payload = json.loads(response.read().decode("utf-8"))
    return {
        feature.display_name.lower()
        for feature in parse_geo_payload(payload)
        if feature.display_name
    }


def load_overrides() -> list[tuple[str, str]]:
    with OVERRIDES_PATH.open("r", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        return [
            ((row.get("alias") or "").strip(), (row.get("canonical") or "").strip())
            for row in reader
        ]


def find_missing(overrides: list[tuple[str, str]], feature_names: set[str]) -> list[tuple[str, str]]:
    return [
        (alias, canonical)
        for alias, canonical in overrides
        if canonical and canonical.lower() not in feature_names
    ]


def main() -> None:
    feature_names = load_feature_names()
    overrides = load_overrides()
    missing = find_missing(overrides, feature_names)
    print(f"source_url={SOURCE_URL}")
    print(f"overrides_path={OVERRIDES_PATH}")
    print(f"overrides_checked={len(overrides)}")
    print(f"missing_canonicals={len(missing)}")
    for alias, canonical in missing:
        print(f"- {alias} -> {canonical}")


if __name__ == "__main__":
    main()
