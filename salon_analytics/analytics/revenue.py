"""
Revenue Aggregation

Buckets appointment snapshots into Sunday-start calendar weeks and computes
per-week appointment counts, line-item revenue and service popularity.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Sequence

import polars as pl
import structlog

from .schemas import SeasonalAnalytics, WeeklyTrend
from .snapshots import AppointmentSnapshot, appointments_frame, service_lines_frame

logger = structlog.get_logger(__name__)


def week_start(day: date) -> date:
    """Sunday on or before `day`"""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_key(day: date) -> str:
    return week_start(day).isoformat()


def week_key_expr(column: str) -> pl.Expr:
    """Vectorized `week_key`: ISO date of the Sunday on or before the column value"""
    # Date is days since epoch; dt.weekday() is 1 (Monday) .. 7 (Sunday)
    days = pl.col(column).cast(pl.Int32)
    offset = (pl.col(column).dt.weekday() % 7).cast(pl.Int32)
    return (days - offset).cast(pl.Date).dt.strftime("%Y-%m-%d")


class RevenueAggregator:
    """
    Weekly revenue trends.

    Snapshots without a usable date are left out of every bucket. The
    result depends only on the set of snapshots, not their order.

    Example:
        aggregator = RevenueAggregator()
        seasonal = aggregator.aggregate(snapshots)
    """

    def aggregate(self, snapshots: Sequence[AppointmentSnapshot]) -> SeasonalAnalytics:
        dated = [snap for snap in snapshots if snap.date is not None]
        if len(dated) < len(snapshots):
            logger.debug("Undated snapshots excluded from weekly trends", excluded=len(snapshots) - len(dated))

        weeks = (
            appointments_frame(dated)
            .with_columns(
                week_key_expr("date").alias("week")
            )
            .group_by("week")
            .agg(
                pl.len().alias("appointment_count"),
                pl.col("revenue").sum().alias("revenue"),
            )
            .sort("week")
        )

        services = self._service_counts(dated)

        trends = [
            WeeklyTrend(
                week=row["week"],
                appointment_count=int(row["appointment_count"]),
                revenue=float(row["revenue"] or 0.0),
                services=services.get(row["week"], {}),
            )
            for row in weeks.iter_rows(named=True)
        ]

        logger.info("Weekly trends aggregated", weeks=len(trends), appointments=len(dated))
        return SeasonalAnalytics(weekly_trends=trends)

    def _service_counts(self, snapshots: Sequence[AppointmentSnapshot]) -> Dict[str, Dict[str, int]]:
        """week -> service name -> booking count, unnamed services under Unknown"""
        counts = (
            service_lines_frame(snapshots)
            .with_columns(
                week_key_expr("date").alias("week")
            )
            .group_by("week", "name")
            .agg(pl.len().alias("bookings"))
            .sort("week", "bookings", "name", descending=[False, True, False])
        )

        by_week: Dict[str, Dict[str, int]] = defaultdict(dict)
        for row in counts.iter_rows(named=True):
            by_week[row["week"]][row["name"]] = int(row["bookings"])
        return by_week
