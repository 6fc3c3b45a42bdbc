from __future__ import annotations

import asyncio
from pathlib import Path

import typer

from happiness_atlas.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from happiness_atlas.errors import InvalidControlInput, LoadFailure
from happiness_atlas.logging import configure_logging
from happiness_atlas.pipeline.export import (
    export_global_trend,
    export_join_report,
    export_snapshot,
)
from happiness_atlas.pipeline.session import Session, initialize
from happiness_atlas.report.tooltips import trend_annotation
from happiness_atlas.view.engine import ViewEngine, ViewSnapshot
from happiness_atlas.view.playback import AsyncioScheduler

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path) -> AppConfig:
    return load_config(config_path)


def _apply_source_overrides(cfg: AppConfig, stats: str | None, geo: str | None) -> None:
    if stats:
        cfg.input.stats_path = stats
    if geo:
        cfg.input.geo_path = geo


def _initialize(cfg: AppConfig) -> Session:
    try:
        return initialize(cfg)
    except LoadFailure as exc:
        typer.echo(f"Initialization failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def match(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    stats: str | None = typer.Option(None, help="Statistical CSV path or URL."),
    geo: str | None = typer.Option(None, help="GeoJSON/TopoJSON path or URL."),
) -> None:
    """Join dataset countries to map features and write the join report."""
    configure_logging()
    cfg = _load_app_config(config)
    _apply_source_overrides(cfg, stats, geo)
    session = _initialize(cfg)

    report_path = export_join_report(session.join_map, out, fmt=cfg.outputs.tables_format)
    counts = session.join_map.rule_counts()
    typer.echo(f"Join report: {report_path}")
    for rule, count in counts.items():
        typer.echo(f"- {rule}: {count}")
    for country in session.join_map.unresolved:
        typer.echo(f"  unresolved: {country}")


def _apply_controls(
    engine: ViewEngine,
    year: int | None,
    region: str | None,
    select: str | None,
    hover: str | None,
) -> ViewSnapshot:
    try:
        if year is not None:
            engine.set_year(year)
        if region is not None:
            engine.set_region(region)
        if select is not None:
            engine.select(select)
        if hover is not None:
            engine.hover(hover)
    except InvalidControlInput as exc:
        raise typer.BadParameter(str(exc)) from exc
    return engine.snapshot


@app.command()
def snapshot(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    stats: str | None = typer.Option(None, help="Statistical CSV path or URL."),
    geo: str | None = typer.Option(None, help="GeoJSON/TopoJSON path or URL."),
    year: int | None = typer.Option(None, help="Year to show; defaults to the latest year."),
    region: str | None = typer.Option(None, help="Region filter; 'All' for every region."),
    select: str | None = typer.Option(None, help="Country to select for the history view."),
    hover: str | None = typer.Option(None, help="Country to mark as hovered."),
) -> None:
    """Write the derived views for one control state as JSON."""
    configure_logging()
    cfg = _load_app_config(config)
    _apply_source_overrides(cfg, stats, geo)
    session = _initialize(cfg)

    current = _apply_controls(session.engine, year, region, select, hover)
    path = export_snapshot(current, out)
    typer.echo(f"Snapshot written to: {path}")
    typer.echo(
        f"- year={current.state.year} region={current.state.region} "
        f"rows={len(current.views.filtered_rows)} points={len(current.views.scatter_points)}"
    )


@app.command()
def trend(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    stats: str | None = typer.Option(None, help="Statistical CSV path or URL."),
    geo: str | None = typer.Option(None, help="GeoJSON/TopoJSON path or URL."),
) -> None:
    """Write the global mean-score trend and print its annotation."""
    configure_logging()
    cfg = _load_app_config(config)
    _apply_source_overrides(cfg, stats, geo)
    session = _initialize(cfg)

    path = export_global_trend(session.index.global_trend, out, fmt=cfg.outputs.tables_format)
    typer.echo(f"Global trend: {path}")
    typer.echo(trend_annotation(session.index.global_trend))


async def _play(engine: ViewEngine, ticks: int, interval_seconds: float) -> list[int]:
    years: list[int] = []
    finished = asyncio.Event()
    driver = engine.playback(AsyncioScheduler(), interval_seconds=interval_seconds)

    def _on_snapshot(current: ViewSnapshot) -> None:
        years.append(current.state.year)
        typer.echo(f"year {engine.year_label}: {len(current.views.filtered_rows)} rows")
        if len(years) >= ticks:
            driver.toggle()
            finished.set()

    unsubscribe = engine.subscribe(_on_snapshot)
    driver.toggle()
    try:
        await finished.wait()
    finally:
        unsubscribe()
        if driver.playing:
            driver.toggle()
    return years


@app.command()
def play(
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, exists=True, readable=True, resolve_path=True),
    stats: str | None = typer.Option(None, help="Statistical CSV path or URL."),
    geo: str | None = typer.Option(None, help="GeoJSON/TopoJSON path or URL."),
    ticks: int = typer.Option(5, min=1, help="Number of playback ticks before stopping."),
    interval: float | None = typer.Option(
        None, min=0.001, help="Seconds between ticks; defaults to playback.interval_seconds."
    ),
) -> None:
    """Animate the year control for a number of ticks, wrapping after the last year."""
    configure_logging()
    cfg = _load_app_config(config)
    _apply_source_overrides(cfg, stats, geo)
    session = _initialize(cfg)

    typer.echo(f"Playing from {session.engine.year_label}")
    years = asyncio.run(_play(session.engine, ticks, interval or cfg.playback.interval_seconds))
    typer.echo(f"Stopped at {years[-1]}")


if __name__ == "__main__":
    app()
