"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from models.records import TIMESTAMP_DATE_FORMAT, format_date
from services.controller import DashboardSnapshot
from services.geometry import PointerContext, Tooltip


class ReadingOut(BaseModel):
    sensor_name: str
    timestamp: str
    metrics: Dict[str, float]


class StatisticsOut(BaseModel):
    mean: float
    min: float
    max: float


class PointStyleOut(BaseModel):
    status: str
    color: str


class ChartOut(BaseModel):
    """Chart geometry for one metric."""

    polyline: str
    area: str
    domain_max: float
    points: List[PointStyleOut] = Field(default_factory=list)


class TooltipOut(BaseModel):
    index: int
    metric: str
    value: float
    text: str
    unit: str
    status: str
    color: str
    sensor_label: str
    time_label: str
    anchor_x: float
    anchor_y: float
    left: float

    @classmethod
    def from_tooltip(cls, tooltip: Tooltip) -> "TooltipOut":
        return cls(
            index=tooltip.index,
            metric=tooltip.metric,
            value=tooltip.value,
            text=tooltip.text,
            unit=tooltip.unit,
            status=tooltip.status,
            color=tooltip.color,
            sensor_label=tooltip.sensor_label,
            time_label=tooltip.time_label,
            anchor_x=tooltip.anchor_x,
            anchor_y=tooltip.anchor_y,
            left=tooltip.left,
        )


class DashboardState(BaseModel):
    """Full derived state consumed by the view layer."""

    selected_date: Optional[str] = Field(
        default=None, description="Active date filter formatted DD/MM/YYYY."
    )
    show_all: bool = False
    today: str
    reading_count: int = Field(..., ge=0)
    filtered: List[ReadingOut] = Field(default_factory=list)
    visible: List[ReadingOut] = Field(default_factory=list)
    has_more: bool = False
    statistics: Dict[str, StatisticsOut] = Field(default_factory=dict)
    charts: Dict[str, ChartOut] = Field(default_factory=dict)
    tooltip: Optional[TooltipOut] = None
    loading: bool = False
    error: Optional[str] = None

    @classmethod
    def from_snapshot(cls, snapshot: DashboardSnapshot) -> "DashboardState":
        selected = snapshot.filter_state.selected_date

        def readings(items) -> List[ReadingOut]:
            return [
                ReadingOut(
                    sensor_name=item.sensor_name,
                    timestamp=item.timestamp,
                    metrics=dict(item.metrics),
                )
                for item in items
            ]

        charts = {
            metric: ChartOut(
                polyline=polyline,
                area=snapshot.areas[metric],
                domain_max=snapshot.domain_max[metric],
                points=[
                    PointStyleOut(status=style.status, color=style.color)
                    for style in snapshot.point_styles[metric]
                ],
            )
            for metric, polyline in snapshot.polylines.items()
        }
        return cls(
            selected_date=format_date(selected) if selected else None,
            show_all=snapshot.filter_state.show_all,
            today=format_date(snapshot.today),
            reading_count=snapshot.reading_count,
            filtered=readings(snapshot.filtered),
            visible=readings(snapshot.visible),
            has_more=snapshot.has_more,
            statistics={
                metric: StatisticsOut(mean=stats.mean, min=stats.min, max=stats.max)
                for metric, stats in snapshot.statistics.items()
            },
            charts=charts,
            tooltip=TooltipOut.from_tooltip(snapshot.tooltip) if snapshot.tooltip else None,
            loading=snapshot.loading,
            error=snapshot.error,
        )


class DateSelection(BaseModel):
    selected_date: date = Field(..., description="ISO date or DD/MM/YYYY.")

    @field_validator("selected_date", mode="before")
    @classmethod
    def _parse_display_format(cls, value: object) -> object:
        if isinstance(value, str) and "/" in value:
            try:
                return datetime.strptime(value.strip(), TIMESTAMP_DATE_FORMAT).date()
            except ValueError as exc:
                raise ValueError("Date must be YYYY-MM-DD or DD/MM/YYYY.") from exc
        return value


class TooltipRequest(BaseModel):
    """A point click on the chart, with the chart's on-screen geometry."""

    index: int = Field(..., ge=0)
    metric: str
    box_left: float
    box_top: float
    box_width: float = Field(..., ge=0)
    box_height: float = Field(..., ge=0)
    viewport_width: float = Field(..., gt=0)
    scroll_x: float = 0.0
    scroll_y: float = 0.0
    tooltip_width: float = Field(default=160.0, gt=0)
    margin: float = Field(default=8.0, ge=0)

    def pointer(self) -> PointerContext:
        return PointerContext(
            box_left=self.box_left,
            box_top=self.box_top,
            box_width=self.box_width,
            box_height=self.box_height,
            viewport_width=self.viewport_width,
            scroll_x=self.scroll_x,
            scroll_y=self.scroll_y,
            tooltip_width=self.tooltip_width,
            margin=self.margin,
        )
