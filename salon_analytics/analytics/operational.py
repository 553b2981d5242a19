"""
Operational Metrics

Lead time, completion and cancellation rates, cancellation patterns and
per-service efficiency computed over appointment snapshots.
"""

from collections import defaultdict
from typing import Dict, List, Sequence

import polars as pl
import structlog

from salon_analytics.database.models import AppointmentStatus
from .schemas import CancellationPatterns, OperationalAnalytics, ServiceEfficiency
from .snapshots import (
    CANCELLED_STATUSES,
    AppointmentSnapshot,
    appointments_frame,
    service_lines_frame,
)

logger = structlog.get_logger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
MS_PER_DAY = 86_400_000
MINUTES_PER_HOUR = 60

_CANCELLED = [status.value for status in CANCELLED_STATUSES]


def lead_days_expr() -> pl.Expr:
    """ceil((appointment date at midnight - created_at) in days)"""
    elapsed = pl.col("date").cast(pl.Datetime("us")) - pl.col("created_at")
    return (elapsed.dt.total_milliseconds() / MS_PER_DAY).ceil().cast(pl.Int64)


def _rate(part: int, total: int) -> float:
    return part / total * 100 if total > 0 else 0.0


class OperationalMetrics:
    """
    Operational metrics over a snapshot window.

    Lead times are only computed for snapshots that carry both a creation
    timestamp and an appointment date; negative lead times (booking created
    after the appointment date) are discarded as bad data.

    Service revenue per hour is averaged across every contributing
    appointment for a service rather than taken from the last one seen.
    Unnamed services are reported as "Unknown", and a line without a
    duration is billed as one hour.
    """

    def lead_times(self, frame: pl.DataFrame) -> pl.Series:
        """Non-negative lead days for the rows of `frame`"""
        return (
            frame.filter(pl.col("date").is_not_null() & pl.col("created_at").is_not_null())
            .select(lead_days_expr().alias("lead_days"))
            .filter(pl.col("lead_days") >= 0)
            .get_column("lead_days")
        )

    def cancellation_patterns(self, frame: pl.DataFrame) -> CancellationPatterns:
        cancelled = frame.filter(pl.col("status").is_in(_CANCELLED))

        by_time = {
            row["time"]: int(row["count"])
            for row in (
                cancelled.filter(pl.col("time").is_not_null())
                .group_by("time")
                .agg(pl.len().alias("count"))
                .sort("time")
                .iter_rows(named=True)
            )
        }

        day_counts = {
            row["day"]: int(row["count"])
            for row in (
                cancelled.filter(pl.col("date").is_not_null())
                .select(pl.col("date").dt.strftime("%A").alias("day"))
                .group_by("day")
                .agg(pl.len().alias("count"))
                .iter_rows(named=True)
            )
        }
        by_day = {day: day_counts[day] for day in DAY_NAMES if day in day_counts}

        return CancellationPatterns(
            by_time=by_time,
            by_day_of_week=by_day,
            by_lead_time=self.lead_times(cancelled).to_list(),
        )

    def service_efficiency(self, snapshots: Sequence[AppointmentSnapshot]) -> List[ServiceEfficiency]:
        lines = service_lines_frame(snapshots)
        if lines.height == 0:
            return []

        hourly = (
            pl.when(pl.col("duration_minutes") > 0)
            .then(pl.col("unit_price") / pl.col("duration_minutes") * MINUTES_PER_HOUR)
            .otherwise(None)
        )

        per_service = (
            lines.with_columns(hourly.alias("revenue_per_hour"))
            .group_by("name", maintain_order=True)
            .agg(
                pl.len().alias("bookings_count"),
                pl.col("revenue_per_hour").mean().alias("revenue_per_hour"),
                pl.col("duration_minutes").mean().alias("avg_duration"),
                pl.col("unit_price").mean().alias("avg_price"),
            )
        )

        popular: Dict[str, Dict[str, int]] = defaultdict(dict)
        for row in (
            lines.filter(pl.col("time").is_not_null())
            .group_by("name", "time")
            .agg(pl.len().alias("count"))
            .sort("name", "count", "time", descending=[False, True, False])
            .iter_rows(named=True)
        ):
            popular[row["name"]][row["time"]] = int(row["count"])

        entries = [
            ServiceEfficiency(
                name=row["name"],
                bookings_count=int(row["bookings_count"]),
                popular_times=popular.get(row["name"], {}),
                revenue_per_hour=row["revenue_per_hour"] or 0.0,
                avg_duration=row["avg_duration"] or 0.0,
                avg_price=row["avg_price"] or 0.0,
            )
            for row in per_service.iter_rows(named=True)
        ]
        entries.sort(key=lambda entry: entry.revenue_per_hour, reverse=True)
        return entries

    def analyze(self, snapshots: Sequence[AppointmentSnapshot]) -> OperationalAnalytics:
        frame = appointments_frame(snapshots)
        total = frame.height
        if total == 0:
            return OperationalAnalytics()

        confirmed = frame.filter(pl.col("status") == AppointmentStatus.CONFIRMED.value).height
        cancelled = frame.filter(pl.col("status").is_in(_CANCELLED)).height
        lead_times = self.lead_times(frame)

        result = OperationalAnalytics(
            total_appointments=total,
            completion_rate=_rate(confirmed, total),
            avg_lead_time=float(lead_times.mean()) if len(lead_times) > 0 else 0.0,
            cancellation_rate=_rate(cancelled, total),
            cancellation_patterns=self.cancellation_patterns(frame),
            service_efficiency=self.service_efficiency(snapshots),
        )

        logger.info(
            "Operational metrics computed",
            appointments=total,
            cancelled=cancelled,
            lead_time_samples=len(lead_times),
        )
        return result
