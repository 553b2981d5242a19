"""
Analytics API Endpoints

Detailed analytics, CSV export and the dashboard summary.
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Awaitable, Literal, Optional, TypeVar

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from salon_analytics.analytics import (
    AnalyticsPipeline,
    AppointmentLoader,
    RecordRetrievalError,
    render_csv,
    summarize_day,
    to_payload,
)
from salon_analytics.analytics.schemas import DashboardSummary, DetailedAnalytics, ErrorResponse
from salon_analytics.config import get_settings
from salon_analytics.database.connection import get_db_dependency

router = APIRouter()
logger = structlog.get_logger(__name__)

T = TypeVar("T")
ExportFormat = Literal["json", "csv"]

# nginx convention for "client closed request"; the body is never read
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    """The client went away while the query was running"""


def error_response(error: str, details: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details, timestamp=datetime.now(timezone.utc))
    return JSONResponse(status_code=500, content=body.model_dump(mode="json", exclude_none=True))


def resolve_window(start_date: Optional[date], end_date: Optional[date]) -> tuple:
    """Fill in the configured look-back window for missing dates"""
    end_date = end_date or date.today()
    if start_date is None:
        start_date = end_date - timedelta(days=get_settings().analytics.default_lookback_days)
    return start_date, end_date


async def run_unless_disconnected(request: Request, work: Awaitable[T]) -> T:
    """
    Await `work`, cancelling it if the client disconnects first.

    Raises:
        ClientDisconnected: If the client closed the connection
    """
    poll_seconds = get_settings().analytics.disconnect_poll_seconds
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_seconds)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, cancelling query", path=request.url.path)
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


async def _detailed(
    request: Request,
    db: AsyncSession,
    start_date: Optional[date],
    end_date: Optional[date],
    export_format: str,
) -> Response:
    start_date, end_date = resolve_window(start_date, end_date)
    logger.info(
        "Detailed analytics requested",
        start_date=str(start_date),
        end_date=str(end_date),
        format=export_format,
    )

    try:
        snapshots = await run_unless_disconnected(
            request, AppointmentLoader(db).load(start_date, end_date)
        )
        result = await AnalyticsPipeline().run(snapshots, start_date, end_date)
    except ClientDisconnected:
        return Response(status_code=CLIENT_CLOSED_REQUEST)
    except RecordRetrievalError as e:
        return error_response("Failed to fetch detailed analytics data", str(e))
    except Exception as e:
        logger.error("Analytics processing failed", error=str(e), error_type=type(e).__name__)
        return error_response("Failed to process detailed analytics data", str(e))

    if export_format == "csv":
        filename = f"salon-analytics-{start_date}-to-{end_date}.csv"
        return Response(
            content=render_csv(result.report, start_date, end_date),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{filename}"',
                "Cache-Control": "no-cache, no-store, must-revalidate",
            },
        )

    return JSONResponse(content=to_payload(result.report))


@router.get(
    "/detailed",
    response_model=DetailedAnalytics,
    responses={500: {"model": ErrorResponse}},
)
async def get_detailed_analytics(
    request: Request,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    export_format: ExportFormat = Query("json", alias="format"),
    db: AsyncSession = Depends(get_db_dependency),
) -> Response:
    """
    Weekly trends, customer segments, operational metrics and a naive
    revenue forecast for the requested window.
    """
    return await _detailed(request, db, start_date, end_date, export_format)


@router.get("/export", responses={500: {"model": ErrorResponse}})
async def export_analytics(
    request: Request,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    export_format: ExportFormat = Query("csv", alias="format"),
    db: AsyncSession = Depends(get_db_dependency),
) -> Response:
    """Download the detailed analytics report, CSV by default."""
    return await _detailed(request, db, start_date, end_date, export_format)


@router.get(
    "/summary",
    response_model=DashboardSummary,
    responses={500: {"model": ErrorResponse}},
)
async def get_dashboard_summary(
    db: AsyncSession = Depends(get_db_dependency),
) -> Response:
    """Today's confirmed revenue, booking counts and slot utilization."""
    today = date.today()
    try:
        snapshots = await AppointmentLoader(db).load(today, today)
    except RecordRetrievalError as e:
        return error_response("Failed to fetch analytics summary", str(e))

    summary = summarize_day(snapshots)
    return JSONResponse(content=summary.model_dump(mode="json", by_alias=True))
