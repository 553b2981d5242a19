"""
Revenue Overview

Headline figures for confirmed bookings in a window:

    totalRevenue      = sum of confirmed appointment revenue
    averageOrderValue = totalRevenue / confirmed appointments
    dailyAverage      = totalRevenue / days in the window (inclusive)

plus the daily revenue series, the most booked services, the best-selling
products and the busiest appointment times.
"""

from datetime import date
from typing import Optional, Sequence

import polars as pl
import structlog

from salon_analytics.config import AnalyticsSettings, get_settings
from salon_analytics.database.models import AppointmentStatus
from .schemas import DailyRevenue, PeakHour, ProductSales, RevenueOverview, ServicePopularity
from .snapshots import AppointmentSnapshot, appointments_frame, service_lines_frame

logger = structlog.get_logger(__name__)

PRODUCT_SALES_SCHEMA = {
    "name": pl.Utf8,
    "quantity": pl.Int64,
    "revenue": pl.Float64,
}


def product_sales_frame(snapshots: Sequence[AppointmentSnapshot]) -> pl.DataFrame:
    """One row per named product line item"""
    columns = {name: [] for name in PRODUCT_SALES_SCHEMA}
    for snap in snapshots:
        for line in snap.product_lines:
            if line.name is None:
                continue
            columns["name"].append(line.name)
            columns["quantity"].append(line.quantity)
            columns["revenue"].append(float(line.revenue))
    return pl.DataFrame(columns, schema=PRODUCT_SALES_SCHEMA)


class RevenueSummary:
    """
    Revenue overview of confirmed, dated appointments.

    Pending, cancelled and no-show bookings do not contribute. When no window
    is given, the span between the first and last confirmed booking is used
    for the daily average.

    Example:
        summary = RevenueSummary()
        overview = summary.analyze(snapshots, start_date, end_date)
    """

    def __init__(self, top_limit: Optional[int] = None, settings: Optional[AnalyticsSettings] = None):
        settings = settings or get_settings().analytics
        self.top_limit = settings.top_items_limit if top_limit is None else top_limit

    def service_popularity(self, confirmed: Sequence[AppointmentSnapshot]) -> list:
        ranked = (
            service_lines_frame(confirmed)
            .group_by("name", maintain_order=True)
            .agg(
                pl.len().alias("count"),
                pl.col("unit_price").sum().alias("revenue"),
            )
            .sort("count", descending=True, maintain_order=True)
            .head(self.top_limit)
        )
        return [ServicePopularity(**row) for row in ranked.iter_rows(named=True)]

    def product_sales(self, confirmed: Sequence[AppointmentSnapshot]) -> list:
        ranked = (
            product_sales_frame(confirmed)
            .group_by("name", maintain_order=True)
            .agg(
                pl.col("quantity").sum(),
                pl.col("revenue").sum(),
            )
            .sort("revenue", descending=True, maintain_order=True)
            .head(self.top_limit)
        )
        return [ProductSales(**row) for row in ranked.iter_rows(named=True)]

    def analyze(
        self,
        snapshots: Sequence[AppointmentSnapshot],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> RevenueOverview:
        confirmed = [
            snap for snap in snapshots
            if snap.status == AppointmentStatus.CONFIRMED and snap.date is not None
        ]
        if not confirmed:
            return RevenueOverview()

        frame = appointments_frame(confirmed)
        total_revenue = float(frame["revenue"].sum())
        total_appointments = frame.height

        start_date = start_date or frame["date"].min()
        end_date = end_date or frame["date"].max()
        days = (end_date - start_date).days + 1

        daily = (
            frame.group_by("date")
            .agg(pl.col("revenue").sum())
            .sort("date")
        )
        peak = (
            frame.filter(pl.col("time").is_not_null())
            .group_by("time")
            .agg(pl.len().alias("count"))
            .sort("count", "time", descending=[True, False])
        )

        overview = RevenueOverview(
            total_revenue=total_revenue,
            total_appointments=total_appointments,
            average_order_value=total_revenue / total_appointments,
            daily_average=total_revenue / days if days > 0 else 0.0,
            daily_revenue=[
                DailyRevenue(day=row["date"], revenue=row["revenue"])
                for row in daily.iter_rows(named=True)
            ],
            service_popularity=self.service_popularity(confirmed),
            product_sales=self.product_sales(confirmed),
            peak_hours=[PeakHour(**row) for row in peak.iter_rows(named=True)],
        )

        logger.info(
            "Revenue overview computed",
            confirmed=total_appointments,
            total_revenue=total_revenue,
            days=days,
        )
        return overview
