from __future__ import annotations

import pytest

from models.metrics import VARIANTS
from models.records import DerivedPoint
from services.geometry import (
    ChartGeometry,
    PointerContext,
    Viewport,
    project_x,
    project_y,
)

VIEWPORT = Viewport(width=300, height=150, offset_x=40, offset_y=170, view_width=360, view_height=200)


def _points(*levels: float, turbidity: tuple[float, ...] = ()) -> list[DerivedPoint]:
    points = []
    for index, level in enumerate(levels):
        metrics = {"level": level, "ph": 7.0, "turbidity": 0.0}
        if turbidity:
            metrics["turbidity"] = turbidity[index]
        points.append(
            DerivedPoint(metrics=metrics, sensor_label=f"Sensor {index + 1}", time_label=f"0{index}:00")
        )
    return points


@pytest.fixture()
def geometry() -> ChartGeometry:
    return ChartGeometry(VARIANTS["water"], VIEWPORT)


def test_x_positions_span_the_viewport_evenly() -> None:
    xs = [project_x(index, 4, VIEWPORT) for index in range(4)]

    assert xs == [40.0, 140.0, 240.0, 340.0]
    assert all(left < right for left, right in zip(xs, xs[1:]))


def test_single_point_is_centered() -> None:
    assert project_x(0, 1, VIEWPORT) == 190.0


def test_y_decreases_as_value_grows() -> None:
    ys = [project_y(value, 100.0, VIEWPORT) for value in (0, 25, 50, 75, 100)]

    assert ys == [170.0, 132.5, 95.0, 57.5, 20.0]
    assert all(upper < lower for lower, upper in zip(ys, ys[1:]))


def test_out_of_range_values_are_clamped_before_projection() -> None:
    assert project_y(-5, 100.0, VIEWPORT) == project_y(0, 100.0, VIEWPORT)
    assert project_y(150, 100.0, VIEWPORT) == project_y(100, 100.0, VIEWPORT)


def test_polyline_joins_points_with_one_decimal(geometry: ChartGeometry) -> None:
    points = _points(45.0, 55.0, 30.0)

    polyline = geometry.polyline(points, "level")

    assert polyline == "40.0,102.5 190.0,87.5 340.0,125.0"
    assert geometry.polyline(points, "level") == polyline


def test_polyline_of_no_points_is_empty(geometry: ChartGeometry) -> None:
    assert geometry.polyline([], "level") == ""
    assert geometry.area_path([], "level") == ""


def test_area_path_closes_on_the_baseline(geometry: ChartGeometry) -> None:
    points = _points(45.0, 55.0)

    area = geometry.area_path(points, "level")

    assert area == "40.0,102.5 340.0,87.5 340.0,170.0 40.0,170.0"


def test_turbidity_scale_is_dynamic(geometry: ChartGeometry) -> None:
    small = _points(0, 0, 0, turbidity=(5.0, 12.0, 48.0))
    large = _points(0, 0, turbidity=(130.0, 20.0))

    assert geometry.domain_max(small, "turbidity") == 100.0
    assert geometry.domain_max(large, "turbidity") == 150.0
    _, y = geometry.coordinates(small, "turbidity")[2]
    assert y == pytest.approx(170 - (48 / 100) * 150)


def test_ph_uses_fixed_domain(geometry: ChartGeometry) -> None:
    points = _points(0.0)

    assert geometry.domain_max(points, "ph") == 14.0
    assert geometry.coordinates(points, "ph") == [(190.0, pytest.approx(170 - 0.5 * 150))]


def test_point_styles_follow_status_bands(geometry: ChartGeometry) -> None:
    points = _points(10.0, 50.0, 95.0)

    styles = geometry.point_styles(points, "level")

    assert [style.status for style in styles] == ["critical", "moderate", "excellent"]
    assert styles[0].color == "#e53935"


def test_unknown_metric_raises_key_error(geometry: ChartGeometry) -> None:
    with pytest.raises(KeyError):
        geometry.polyline(_points(1.0), "pressure")


def _pointer(**overrides: float) -> PointerContext:
    values = dict(
        box_left=100.0,
        box_top=50.0,
        box_width=720.0,
        box_height=400.0,
        viewport_width=800.0,
        scroll_x=0.0,
        scroll_y=30.0,
        tooltip_width=160.0,
        margin=8.0,
    )
    values.update(overrides)
    return PointerContext(**values)


def test_tooltip_maps_intrinsic_coordinates_to_page_space(geometry: ChartGeometry) -> None:
    points = _points(45.0, 55.0, 30.0)

    tooltip = geometry.resolve_tooltip(points, 1, "level", _pointer())

    assert (tooltip.chart_x, tooltip.chart_y) == (190.0, 87.5)
    assert tooltip.anchor_x == 100.0 + 190.0 * 2
    assert tooltip.anchor_y == 50.0 + 87.5 * 2 + 30.0
    assert tooltip.left == tooltip.anchor_x - 80.0
    assert tooltip.text == "55.0%"
    assert tooltip.status == "moderate"
    assert tooltip.sensor_label == "Sensor 2"
    assert tooltip.time_label == "01:00"


def test_tooltip_is_shifted_inside_the_right_edge(geometry: ChartGeometry) -> None:
    points = _points(45.0, 55.0, 30.0)

    tooltip = geometry.resolve_tooltip(points, 2, "level", _pointer())

    assert tooltip.anchor_x == 780.0
    assert tooltip.left == 800.0 - 8.0 - 160.0


def test_tooltip_is_shifted_inside_the_left_edge(geometry: ChartGeometry) -> None:
    points = _points(45.0, 55.0, 30.0)

    tooltip = geometry.resolve_tooltip(points, 0, "level", _pointer(box_left=-90.0, scroll_x=200.0))

    assert tooltip.left == 200.0 + 8.0


def test_tooltip_for_ph_reports_out_of_range(geometry: ChartGeometry) -> None:
    points = [DerivedPoint(metrics={"level": 0.0, "ph": 9.0, "turbidity": 0.0}, sensor_label="s", time_label="t")]

    tooltip = geometry.resolve_tooltip(points, 0, "ph", _pointer())

    assert tooltip.status == "out of range"
    assert tooltip.text == "9.00"
    assert tooltip.color == "#e53935"


def test_tooltip_index_out_of_range(geometry: ChartGeometry) -> None:
    with pytest.raises(IndexError):
        geometry.resolve_tooltip(_points(1.0), 3, "level", _pointer())


def test_viewport_rejects_degenerate_dimensions() -> None:
    with pytest.raises(ValueError):
        Viewport(width=0)
