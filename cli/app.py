from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

import typer

from cli.render import render_chart, render_snapshot
from logging_config import configure_logging
from models.metrics import metrics_for
from models.records import TIMESTAMP_DATE_FORMAT
from services.controller import DashboardSnapshot
from services.dashboard import build_dashboard
from services.source import SourceError
from settings import Settings, get_settings


@dataclass
class CLIState:
    settings: Settings


app = typer.Typer(
    help="Terminal views over the sensor telemetry dashboard.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _parse_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    candidate = value.strip()
    for fmt in (TIMESTAMP_DATE_FORMAT, "%Y-%m-%d"):
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    raise typer.BadParameter(f"Invalid date {value!r}; use DD/MM/YYYY or YYYY-MM-DD.")


async def _load_once(
    settings: Settings,
    selected: Optional[date],
    show_all: bool,
) -> DashboardSnapshot:
    service = build_dashboard(settings)
    try:
        await service.refresh()
        if selected is not None:
            service.controller.apply_date(selected)
        if show_all != service.controller.filter_state.show_all:
            service.controller.toggle_show_all()
        return service.controller.snapshot
    finally:
        await service.shutdown()


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Readings API base URL (defaults to DASHBOARD_API_BASE_URL or http://localhost:3000).",
    ),
    variant: Optional[str] = typer.Option(
        None,
        "--variant",
        help="Deployment variant: water or climate.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    settings = get_settings()
    overrides = {}
    if base_url:
        overrides["api_base_url"] = base_url.rstrip("/")
    if variant:
        try:
            metrics_for(variant)
        except KeyError as exc:
            raise typer.BadParameter(f"Unknown variant {variant!r}.") from exc
        overrides["variant"] = variant
    if overrides:
        settings = replace(settings, **overrides)
    ctx.obj = CLIState(settings=settings)


@app.command("readings")
def readings_command(
    ctx: typer.Context,
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Only readings captured on this day."),
    show_all: bool = typer.Option(False, "--all/--compact", help="List every matching reading."),
) -> None:
    """Fetch readings once and print the filtered list with statistics."""
    state = _get_state(ctx)
    selected = _parse_date(on)
    try:
        snapshot = asyncio.run(_load_once(state.settings, selected, show_all))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    render_snapshot(snapshot, metrics_for(state.settings.variant))
    if snapshot.error:
        raise typer.Exit(code=1)


@app.command("chart")
def chart_command(
    ctx: typer.Context,
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Only readings captured on this day."),
    metric: Optional[str] = typer.Option(None, "--metric", "-m", help="Limit output to one metric."),
) -> None:
    """Print chart polylines and per-point statuses."""
    state = _get_state(ctx)
    metrics = metrics_for(state.settings.variant)
    if metric is not None:
        metrics = tuple(descriptor for descriptor in metrics if descriptor.key == metric)
        if not metrics:
            raise typer.BadParameter(f"Unknown metric {metric!r}.")
    selected = _parse_date(on)
    try:
        snapshot = asyncio.run(_load_once(state.settings, selected, show_all=False))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    render_chart(snapshot, metrics)
    if snapshot.error:
        typer.secho(f"error: {snapshot.error}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


async def _load_history(
    settings: Settings,
    collection: str,
    selected: Optional[date],
    show_all: bool,
) -> DashboardSnapshot:
    service = build_dashboard(settings)
    try:
        return await service.load_history(collection, selected, show_all=show_all)
    finally:
        await service.shutdown()


@app.command("history")
def history_command(
    ctx: typer.Context,
    collection: str = typer.Argument(..., help="History collection to load."),
    on: Optional[str] = typer.Option(None, "--date", "-d", help="Day to show (defaults to today)."),
    show_all: bool = typer.Option(True, "--all/--compact", help="List every matching reading."),
) -> None:
    """Load one stored history collection and print the day's readings."""
    state = _get_state(ctx)
    selected = _parse_date(on)
    try:
        snapshot = asyncio.run(_load_history(state.settings, collection, selected, show_all))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except SourceError as exc:
        typer.secho(f"error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    render_snapshot(snapshot, metrics_for(state.settings.variant))


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(None, "--interval", help="Seconds between polls."),
    iterations: int = typer.Option(0, "--iterations", "-n", help="Stop after N polls (0 = run until interrupted)."),
    show_all: bool = typer.Option(False, "--all/--compact", help="List every matching reading."),
) -> None:
    """Poll continuously and re-render after every poll."""
    state = _get_state(ctx)
    poll_interval = interval if interval is not None else state.settings.poll_interval
    if poll_interval <= 0:
        raise typer.BadParameter("Interval must be positive.")
    try:
        asyncio.run(_watch(state.settings, poll_interval, iterations, show_all))
    except KeyboardInterrupt:
        typer.echo("Stopped.")


async def _watch(settings: Settings, interval: float, iterations: int, show_all: bool) -> None:
    service = build_dashboard(settings)
    metrics = metrics_for(settings.variant)
    finished = asyncio.Event()
    rendered = 0

    def on_snapshot(snapshot: DashboardSnapshot) -> None:
        nonlocal rendered
        if snapshot.loading:
            return
        render_snapshot(snapshot, metrics)
        typer.echo()
        rendered += 1
        if iterations and rendered >= iterations:
            finished.set()

    if show_all:
        service.controller.toggle_show_all()
    service.controller.subscribe(on_snapshot)
    service.scheduler.start(interval)
    try:
        await finished.wait()
    finally:
        await service.shutdown()
