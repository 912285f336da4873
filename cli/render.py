from __future__ import annotations

from typing import Any, Iterable, Sequence

import typer

from models.metrics import MetricDescriptor
from models.records import format_date
from services.controller import DashboardSnapshot


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_snapshot(snapshot: DashboardSnapshot, metrics: Sequence[MetricDescriptor]) -> None:
    selected = snapshot.filter_state.selected_date
    echo_heading("Readings")
    echo_key_values(
        [
            ("date", format_date(selected) if selected else "all"),
            ("total", snapshot.reading_count),
            ("matching", len(snapshot.filtered)),
        ]
    )
    if snapshot.error:
        typer.secho(f"error: {snapshot.error}", fg=typer.colors.RED, err=True)

    typer.echo()
    if snapshot.visible:
        for reading in snapshot.visible:
            values = ", ".join(
                f"{descriptor.label} {descriptor.format(reading.metrics.get(descriptor.key, descriptor.default))}"
                for descriptor in metrics
            )
            typer.echo(f"  - [{reading.timestamp or 'no timestamp'}] {reading.sensor_name}: {values}")
        hidden = len(snapshot.filtered) - len(snapshot.visible)
        if hidden > 0:
            typer.echo(f"  ... {hidden} more (use --all)")
    else:
        typer.echo("No readings for this selection.")

    typer.echo()
    echo_heading("Statistics")
    for descriptor in metrics:
        stats = snapshot.statistics[descriptor.key]
        typer.echo(
            f"  {descriptor.label}: mean {descriptor.format(stats.mean)}"
            f" | min {descriptor.format(stats.min)}"
            f" | max {descriptor.format(stats.max)}"
        )


def render_chart(
    snapshot: DashboardSnapshot,
    metrics: Sequence[MetricDescriptor],
) -> None:
    for descriptor in metrics:
        echo_heading(f"{descriptor.label} (max {snapshot.domain_max[descriptor.key]:g})")
        polyline = snapshot.polylines[descriptor.key]
        typer.echo(f"polyline: {polyline or '(no points)'}")
        for point, style in zip(snapshot.points, snapshot.point_styles[descriptor.key]):
            value = point.metrics.get(descriptor.key, descriptor.default)
            typer.secho(
                f"  {point.time_label} {descriptor.format(value)} {style.status}",
                fg=_status_color(style.status),
            )
        typer.echo()


def _status_color(status: str) -> str:
    if status in {"critical", "out of range"}:
        return typer.colors.RED
    if status in {"low", "moderate", "attention"}:
        return typer.colors.YELLOW
    return typer.colors.GREEN
