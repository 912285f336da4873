"""HTTP route definitions for the dashboard view layer."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import DashboardState, DateSelection, TooltipOut, TooltipRequest
from services.dashboard import DashboardService, build_default_dashboard
from services.source import SourceError

router = APIRouter()


def get_dashboard() -> DashboardService:
    return build_default_dashboard()


@router.get(
    "/dashboard",
    response_model=DashboardState,
    summary="Current derived dashboard state.",
)
async def get_state(
    dashboard: DashboardService = Depends(get_dashboard),
) -> DashboardState:
    return DashboardState.from_snapshot(dashboard.controller.snapshot)


@router.put(
    "/dashboard/date",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=DashboardState,
    summary="Select a calendar day; applied after the debounce window.",
)
async def select_date(
    selection: DateSelection,
    dashboard: DashboardService = Depends(get_dashboard),
) -> DashboardState:
    try:
        dashboard.controller.select_date(selection.selected_date)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return DashboardState.from_snapshot(dashboard.controller.snapshot)


@router.delete(
    "/dashboard/date",
    response_model=DashboardState,
    summary="Clear the date filter.",
)
async def clear_date(
    dashboard: DashboardService = Depends(get_dashboard),
) -> DashboardState:
    return DashboardState.from_snapshot(dashboard.controller.clear_filter())


@router.post(
    "/dashboard/show-all",
    response_model=DashboardState,
    summary="Toggle between the compact and the full reading list.",
)
async def toggle_show_all(
    dashboard: DashboardService = Depends(get_dashboard),
) -> DashboardState:
    return DashboardState.from_snapshot(dashboard.controller.toggle_show_all())


@router.post(
    "/dashboard/refresh",
    response_model=DashboardState,
    summary="Poll the readings source now (joins a poll already in flight).",
)
async def refresh(
    dashboard: DashboardService = Depends(get_dashboard),
) -> DashboardState:
    snapshot = await dashboard.refresh()
    return DashboardState.from_snapshot(snapshot)


@router.get(
    "/dashboard/history/{collection}",
    response_model=DashboardState,
    summary="Derived view over one day of a stored history collection.",
)
async def history(
    collection: str,
    on: Optional[date] = Query(None, alias="date", description="Day to show; defaults to today."),
    dashboard: DashboardService = Depends(get_dashboard),
) -> DashboardState:
    try:
        snapshot = await dashboard.load_history(collection, on)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except NotImplementedError as exc:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail=str(exc),
        ) from exc
    except SourceError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    return DashboardState.from_snapshot(snapshot)


@router.post(
    "/dashboard/tooltip",
    response_model=TooltipOut,
    summary="Resolve the tooltip for a clicked chart point.",
)
async def open_tooltip(
    request: TooltipRequest,
    dashboard: DashboardService = Depends(get_dashboard),
) -> TooltipOut:
    try:
        tooltip = dashboard.controller.point_click(
            request.index, request.metric, request.pointer()
        )
    except (KeyError, IndexError) as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc).strip("'\""),
        ) from exc
    return TooltipOut.from_tooltip(tooltip)


@router.delete(
    "/dashboard/tooltip",
    response_model=DashboardState,
    summary="Dismiss the open tooltip.",
)
async def close_tooltip(
    dashboard: DashboardService = Depends(get_dashboard),
) -> DashboardState:
    return DashboardState.from_snapshot(dashboard.controller.close_tooltip())


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
