"""Dashboard composition root.

The controller owns the filter state, the latest reading set and the
loading/error flags. Every input event rebuilds the whole derived view
(filtered list, visible list, chart points, statistics and chart geometry)
into one immutable ``DashboardSnapshot``; nothing is updated incrementally.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from models.metrics import MetricDescriptor
from models.records import (
    DerivedPoint,
    FilterState,
    Reading,
    Statistics,
    format_date,
    time_label,
)
from services.aggregator import Aggregator
from services.filtering import DEFAULT_PAGE_SIZE, filter_readings, visible
from services.geometry import ChartGeometry, PointerContext, PointStyle, Tooltip
from services.poller import PollingScheduler, PollOutcome

logger = logging.getLogger(__name__)

SnapshotListener = Callable[["DashboardSnapshot"], None]


@dataclass(frozen=True)
class DashboardSnapshot:
    filter_state: FilterState
    today: date
    reading_count: int
    filtered: Tuple[Reading, ...]
    visible: Tuple[Reading, ...]
    points: Tuple[DerivedPoint, ...]
    statistics: Mapping[str, Statistics]
    polylines: Mapping[str, str]
    areas: Mapping[str, str]
    point_styles: Mapping[str, Tuple[PointStyle, ...]]
    domain_max: Mapping[str, float]
    loading: bool = False
    error: Optional[str] = None
    tooltip: Optional[Tooltip] = None

    @property
    def has_more(self) -> bool:
        return len(self.visible) < len(self.filtered)


def derive_points(readings: Sequence[Reading]) -> List[DerivedPoint]:
    """Chart points in chronological order (oldest on the left)."""
    return [
        DerivedPoint(
            metrics=dict(reading.metrics),
            sensor_label=reading.sensor_name,
            time_label=time_label(reading.timestamp),
        )
        for reading in reversed(readings)
    ]


class DashboardController:

    def __init__(
        self,
        metrics: Sequence[MetricDescriptor],
        geometry: Optional[ChartGeometry] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        debounce: float = 0.3,
        clock: Callable[[], datetime] = datetime.now,
        default_today: bool = False,
    ) -> None:
        self.metrics = tuple(metrics)
        self.geometry = geometry or ChartGeometry(self.metrics)
        self.aggregator = Aggregator(self.metrics)
        self.page_size = page_size
        self.debounce = debounce
        self._clock = clock

        self._readings: Tuple[Reading, ...] = ()
        self._filter = FilterState(selected_date=self.today() if default_today else None)
        self._loading = False
        self._error: Optional[str] = None
        self._listeners: List[SnapshotListener] = []
        self._pending_date: Optional[date] = None
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._closed = False
        self._snapshot = self._recompute()

    @property
    def snapshot(self) -> DashboardSnapshot:
        return self._snapshot

    @property
    def filter_state(self) -> FilterState:
        return self._filter

    def today(self) -> date:
        return self._clock().date()

    def subscribe(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)

    def bind(self, scheduler: PollingScheduler) -> None:
        """Feed poll outcomes from ``scheduler`` into this controller."""
        scheduler.subscribe(self.apply_poll, on_start=self.mark_loading)
        if scheduler.readings or scheduler.has_error:
            self._readings = scheduler.readings
            self._error = scheduler.error
            self._publish(self._recompute())

    # -- input events -------------------------------------------------------

    def apply_poll(self, outcome: PollOutcome) -> DashboardSnapshot:
        if self._closed:
            return self._snapshot
        self._loading = False
        if outcome.ok:
            self._readings = tuple(outcome.readings)
            self._error = None
        else:
            self._error = outcome.error or "Failed to load readings."
        return self._publish(self._recompute())

    def mark_loading(self) -> None:
        if self._closed:
            return
        self._loading = True
        self._publish(replace(self._snapshot, loading=True))

    def select_date(self, value: date) -> None:
        """Debounced date selection; only the latest pick in the window applies."""
        self.check_selectable(value)
        self._pending_date = value
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None or self.debounce <= 0:
            self._apply_pending_date()
            return
        self._debounce_handle = loop.call_later(self.debounce, self._apply_pending_date)

    def apply_date(self, value: date) -> DashboardSnapshot:
        """Apply a date selection immediately, bypassing the debounce."""
        self.check_selectable(value)
        self._cancel_pending()
        self._filter = replace(self._filter, selected_date=value)
        logger.debug("Date filter applied", extra={"selected_date": format_date(value)})
        return self._publish(self._recompute())

    def clear_filter(self) -> DashboardSnapshot:
        self._cancel_pending()
        self._filter = replace(self._filter, selected_date=None)
        return self._publish(self._recompute())

    def toggle_show_all(self) -> DashboardSnapshot:
        self._filter = replace(self._filter, show_all=not self._filter.show_all)
        return self._publish(self._recompute())

    def point_click(self, index: int, metric: str, pointer: PointerContext) -> Tooltip:
        tooltip = self.geometry.resolve_tooltip(self._snapshot.points, index, metric, pointer)
        self._publish(replace(self._snapshot, tooltip=tooltip))
        return tooltip

    def close_tooltip(self) -> DashboardSnapshot:
        return self._publish(replace(self._snapshot, tooltip=None))

    def check_selectable(self, value: date) -> None:
        if value > self.today():
            raise ValueError(f"Cannot select a future date ({format_date(value)}).")

    def project(
        self,
        readings: Sequence[Reading],
        selected_date: Optional[date] = None,
        show_all: bool = True,
    ) -> DashboardSnapshot:
        """Derive a standalone view over ``readings`` (e.g. one day of history).

        Live state, listeners and the open tooltip are left untouched.
        """
        if selected_date is not None:
            self.check_selectable(selected_date)
        return self._derive(readings, FilterState(selected_date=selected_date, show_all=show_all))

    def close(self) -> None:
        self._closed = True
        self._cancel_pending()

    # -- internals ------------------------------------------------------------

    def _cancel_pending(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        self._pending_date = None

    def _apply_pending_date(self) -> None:
        self._debounce_handle = None
        if self._closed or self._pending_date is None:
            return
        self.apply_date(self._pending_date)

    def _recompute(self) -> DashboardSnapshot:
        return self._derive(self._readings, self._filter, self._loading, self._error)

    def _derive(
        self,
        readings: Sequence[Reading],
        filter_state: FilterState,
        loading: bool = False,
        error: Optional[str] = None,
    ) -> DashboardSnapshot:
        filtered = filter_readings(readings, filter_state.selected_date)
        listed = visible(filtered, filter_state.show_all, self.page_size)
        points = tuple(derive_points(filtered))
        statistics = self.aggregator.aggregate(points)

        geometry = self.geometry
        keys = [descriptor.key for descriptor in self.metrics]
        return DashboardSnapshot(
            filter_state=filter_state,
            today=self.today(),
            reading_count=len(readings),
            filtered=tuple(filtered),
            visible=tuple(listed),
            points=points,
            statistics=MappingProxyType(statistics),
            polylines=MappingProxyType({key: geometry.polyline(points, key) for key in keys}),
            areas=MappingProxyType({key: geometry.area_path(points, key) for key in keys}),
            point_styles=MappingProxyType(
                {key: tuple(geometry.point_styles(points, key)) for key in keys}
            ),
            domain_max=MappingProxyType(geometry.domain_maxima(points)),
            loading=loading,
            error=error,
        )

    def _publish(self, snapshot: DashboardSnapshot) -> DashboardSnapshot:
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot
