"""Chart geometry: value-to-viewport projection and tooltip hit positions.

All functions here are pure. The chart is drawn in an intrinsic SVG
coordinate space (the viewBox); the plot area inside it is described by
``Viewport``. Larger values are plotted higher, so ``y`` decreases as the
value grows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from models.metrics import MetricDescriptor, lookup
from models.records import DerivedPoint


@dataclass(frozen=True)
class Viewport:
    """Usable plot area inside the chart's viewBox."""

    width: float = 300.0
    height: float = 150.0
    offset_x: float = 40.0
    offset_y: float = 170.0
    view_width: float = 360.0
    view_height: float = 200.0

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Viewport width and height must be positive.")
        if self.view_width <= 0 or self.view_height <= 0:
            raise ValueError("Viewport viewBox dimensions must be positive.")


@dataclass(frozen=True)
class PointerContext:
    """Where and how large the chart is currently rendered on screen."""

    box_left: float
    box_top: float
    box_width: float
    box_height: float
    viewport_width: float
    scroll_x: float = 0.0
    scroll_y: float = 0.0
    tooltip_width: float = 160.0
    margin: float = 8.0


@dataclass(frozen=True)
class PointStyle:
    status: str
    color: str


@dataclass(frozen=True)
class Tooltip:
    index: int
    metric: str
    value: float
    text: str
    unit: str
    status: str
    color: str
    sensor_label: str
    time_label: str
    chart_x: float
    chart_y: float
    anchor_x: float
    anchor_y: float
    left: float


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def project_x(index: int, count: int, viewport: Viewport) -> float:
    if count <= 1:
        return viewport.offset_x + viewport.width / 2
    step = viewport.width / max(count - 1, 1)
    return viewport.offset_x + index * step


def project_y(value: float, maximum: float, viewport: Viewport) -> float:
    if maximum <= 0:
        return viewport.offset_y
    ratio = clamp(value, 0.0, maximum) / maximum
    return viewport.offset_y - ratio * viewport.height


class ChartGeometry:
    """Maps derived points onto the chart viewport for each metric."""

    def __init__(
        self,
        metrics: Sequence[MetricDescriptor],
        viewport: Viewport | None = None,
    ) -> None:
        self.metrics = tuple(metrics)
        self.viewport = viewport or Viewport()

    def descriptor(self, metric: str) -> MetricDescriptor:
        return lookup(self.metrics, metric)

    def domain_max(self, points: Sequence[DerivedPoint], metric: str) -> float:
        descriptor = self.descriptor(metric)
        return descriptor.scale_max(
            point.metrics.get(metric, descriptor.default) for point in points
        )

    def domain_maxima(self, points: Sequence[DerivedPoint]) -> Dict[str, float]:
        return {descriptor.key: self.domain_max(points, descriptor.key) for descriptor in self.metrics}

    def coordinates(
        self, points: Sequence[DerivedPoint], metric: str
    ) -> List[Tuple[float, float]]:
        descriptor = self.descriptor(metric)
        maximum = self.domain_max(points, metric)
        count = len(points)
        return [
            (
                project_x(index, count, self.viewport),
                project_y(point.metrics.get(metric, descriptor.default), maximum, self.viewport),
            )
            for index, point in enumerate(points)
        ]

    def polyline(self, points: Sequence[DerivedPoint], metric: str) -> str:
        return " ".join(f"{x:.1f},{y:.1f}" for x, y in self.coordinates(points, metric))

    def area_path(self, points: Sequence[DerivedPoint], metric: str) -> str:
        """Polyline closed down to the baseline, for filled area charts."""
        coordinates = self.coordinates(points, metric)
        if not coordinates:
            return ""
        baseline = self.viewport.offset_y
        closed = [
            *coordinates,
            (coordinates[-1][0], baseline),
            (coordinates[0][0], baseline),
        ]
        return " ".join(f"{x:.1f},{y:.1f}" for x, y in closed)

    def point_styles(self, points: Sequence[DerivedPoint], metric: str) -> List[PointStyle]:
        descriptor = self.descriptor(metric)
        styles: list[PointStyle] = []
        for point in points:
            value = point.metrics.get(metric, descriptor.default)
            status = descriptor.classify(value)
            styles.append(PointStyle(status=status, color=descriptor.color(value)))
        return styles

    def resolve_tooltip(
        self,
        points: Sequence[DerivedPoint],
        index: int,
        metric: str,
        pointer: PointerContext,
    ) -> Tooltip:
        """Place a tooltip over ``points[index]`` in page pixel space."""
        descriptor = self.descriptor(metric)
        if not 0 <= index < len(points):
            raise IndexError(f"No chart point at index {index}.")

        point = points[index]
        value = point.metrics.get(metric, descriptor.default)
        chart_x = project_x(index, len(points), self.viewport)
        chart_y = project_y(value, self.domain_max(points, metric), self.viewport)

        scale_x = pointer.box_width / self.viewport.view_width
        scale_y = pointer.box_height / self.viewport.view_height
        anchor_x = pointer.box_left + chart_x * scale_x + pointer.scroll_x
        anchor_y = pointer.box_top + chart_y * scale_y + pointer.scroll_y

        lowest = pointer.scroll_x + pointer.margin
        highest = pointer.scroll_x + pointer.viewport_width - pointer.margin - pointer.tooltip_width
        left = anchor_x - pointer.tooltip_width / 2
        if left > highest:
            left = highest
        if left < lowest:
            left = lowest

        status = descriptor.classify(value)
        return Tooltip(
            index=index,
            metric=metric,
            value=value,
            text=descriptor.format(value),
            unit=descriptor.unit,
            status=status,
            color=descriptor.color(value),
            sensor_label=point.sensor_label,
            time_label=point.time_label,
            chart_x=chart_x,
            chart_y=chart_y,
            anchor_x=anchor_x,
            anchor_y=anchor_y,
            left=left,
        )
