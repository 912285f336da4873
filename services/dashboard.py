"""Wiring of source, scheduler and controller into one dashboard service."""

from __future__ import annotations

import logging
from datetime import date
from functools import lru_cache
from typing import Optional

from models.metrics import metrics_for
from models.records import format_date
from services.controller import DashboardController, DashboardSnapshot
from services.poller import PollingScheduler, ReadingSource
from services.source import HttpReadingSource
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


class DashboardService:
    """Owns the polling lifecycle for one dashboard view."""

    def __init__(
        self,
        controller: DashboardController,
        scheduler: PollingScheduler,
        poll_interval: float,
        source: Optional[ReadingSource] = None,
    ) -> None:
        self.controller = controller
        self.scheduler = scheduler
        self.poll_interval = poll_interval
        self.source = source
        controller.bind(scheduler)

    def start(self) -> None:
        self.scheduler.start(self.poll_interval)

    async def refresh(self) -> DashboardSnapshot:
        await self.scheduler.refresh()
        return self.controller.snapshot

    async def load_history(
        self,
        collection: str,
        selected_date: Optional[date] = None,
        show_all: bool = True,
    ) -> DashboardSnapshot:
        """Fetch one history collection and derive its view for ``selected_date``.

        The date defaults to today. Fetch failures propagate as ``SourceError``;
        the live polling state is not touched.
        """
        fetch = getattr(self.source, "fetch_history", None)
        if fetch is None:
            raise NotImplementedError("The configured source does not serve history.")
        day = selected_date or self.controller.today()
        self.controller.check_selectable(day)
        readings = await fetch(collection)
        logger.info(
            "History loaded",
            extra={
                "source": collection,
                "reading_count": len(readings),
                "selected_date": format_date(day),
            },
        )
        return self.controller.project(readings, selected_date=day, show_all=show_all)

    async def shutdown(self) -> None:
        """Stop polling and drop any late completions."""
        self.controller.close()
        await self.scheduler.aclose()
        closer = getattr(self.source, "aclose", None)
        if closer is not None:
            await closer()


def build_dashboard(
    settings: Settings,
    source: Optional[ReadingSource] = None,
) -> DashboardService:
    metrics = metrics_for(settings.variant)
    if source is None:
        source = HttpReadingSource(
            base_url=settings.api_base_url,
            metrics=metrics,
            readings_path=settings.readings_path,
            timeout=settings.request_timeout,
        )
    scheduler = PollingScheduler(
        source,
        max_attempts=settings.retry_attempts,
        retry_delay=settings.retry_delay,
    )
    controller = DashboardController(
        metrics,
        page_size=settings.page_size,
        debounce=settings.debounce_ms / 1000,
        default_today=settings.default_today,
    )
    return DashboardService(
        controller=controller,
        scheduler=scheduler,
        poll_interval=settings.poll_interval,
        source=source,
    )


@lru_cache
def build_default_dashboard() -> DashboardService:
    """Factory that wires the dashboard against the configured HTTP API."""
    return build_dashboard(get_settings())
