from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

STATS_PATH_ENV = "HAPPINESS_ATLAS_STATS_PATH"
GEO_PATH_ENV = "HAPPINESS_ATLAS_GEO_PATH"


class ColumnsConfig(BaseModel):
    country: str = "Country"
    year: str = "Year"
    score: str = "Happiness Score"
    gdp: str = "GDP per Capita"
    region: str = "Region"
    healthy: str = "Healthy life expectancy"
    freedom: str = "Freedom to make life choices"
    generosity: str = "Generosity"
    corruption: str = "Perceptions of corruption"


class InputConfig(BaseModel):
    stats_path: str | None = None
    geo_path: str | None = None
    geo_object: str = "countries"
    geo_name_properties: list[str] = Field(default_factory=lambda: ["name", "NAME", "adm0_a3"])
    default_region: str = "Other"


class MatchingConfig(BaseModel):
    overrides_path: str = "country_overrides.csv"
    substring_tie_break: Literal["closest_length", "first_seen"] = "closest_length"


class ViewConfig(BaseModel):
    scatter_margin: float = Field(default=0.1, ge=0.0, lt=1.0)
    strict_selection: bool = False


class PlaybackConfig(BaseModel):
    interval_seconds: float = Field(default=1.2, gt=0.0)


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet"] = "csv"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: ColumnsConfig = Field(default_factory=ColumnsConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    view: ViewConfig = Field(default_factory=ViewConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _is_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    if _is_url(path_value):
        return path_value
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    # Paths taken from the environment are relative to the working directory.
    config.input.stats_path = _resolve_optional_path(
        config.input.stats_path, base_dir
    ) or _resolve_optional_path(os.getenv(STATS_PATH_ENV), Path.cwd())
    config.input.geo_path = _resolve_optional_path(
        config.input.geo_path, base_dir
    ) or _resolve_optional_path(os.getenv(GEO_PATH_ENV), Path.cwd())
    config.matching.overrides_path = (
        _resolve_optional_path(config.matching.overrides_path, base_dir) or ""
    )
    return config
