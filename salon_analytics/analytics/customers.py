"""
Customer Segmentation

Builds a profile per customer key from appointment snapshots and derives:
- Non-exclusive segments (high value, regular, new, registered)
- Average lifetime spend and average booking gap
- Top customers by spend with an extrapolated lifetime value

Extrapolated LTV:
    estimatedLTV = avgSpentPerBooking * (365 / bookingGap)   if bookingGap > 0
    estimatedLTV = totalSpent                                 otherwise
"""

from typing import Optional, Sequence

import polars as pl
import structlog

from salon_analytics.config import AnalyticsSettings, get_settings
from .schemas import CustomerAnalytics, CustomerSegments, TopCustomer
from .snapshots import AppointmentSnapshot

logger = structlog.get_logger(__name__)

DAYS_PER_YEAR = 365

PROFILE_INPUT_SCHEMA = {
    "customer_key": pl.Utf8,
    "date": pl.Date,
    "revenue": pl.Float64,
    "is_registered": pl.Boolean,
}


class CustomerSegmentation:
    """
    Per-customer profiling and segmentation.

    Profiles are keyed by email, then account reference. Guests with
    neither are treated as one customer per booking unless
    `collapse_anonymous` is set, which merges them into a single
    "anonymous" customer as the legacy reports did.

    Example:
        segmentation = CustomerSegmentation()
        customers = segmentation.analyze(snapshots)
    """

    def __init__(
        self,
        high_value_threshold: Optional[float] = None,
        regular_min_bookings: Optional[int] = None,
        top_limit: Optional[int] = None,
        collapse_anonymous: Optional[bool] = None,
        settings: Optional[AnalyticsSettings] = None,
    ):
        settings = settings or get_settings().analytics
        self.high_value_threshold = (
            settings.high_value_threshold if high_value_threshold is None else high_value_threshold
        )
        self.regular_min_bookings = (
            settings.regular_min_bookings if regular_min_bookings is None else regular_min_bookings
        )
        self.top_limit = settings.top_customers_limit if top_limit is None else top_limit
        self.collapse_anonymous = (
            settings.collapse_anonymous_customers if collapse_anonymous is None else collapse_anonymous
        )

    def _input_frame(self, snapshots: Sequence[AppointmentSnapshot]) -> pl.DataFrame:
        columns = {name: [] for name in PROFILE_INPUT_SCHEMA}
        for snap in snapshots:
            columns["customer_key"].append(snap.customer_key(self.collapse_anonymous))
            columns["date"].append(snap.date)
            columns["revenue"].append(float(snap.revenue))
            columns["is_registered"].append(snap.user_ref is not None)
        return pl.DataFrame(columns, schema=PROFILE_INPUT_SCHEMA)

    def build_profiles(self, snapshots: Sequence[AppointmentSnapshot]) -> pl.DataFrame:
        """
        Aggregate snapshots into one row per customer key.

        Columns: customer_key, booking_count, total_spent, first_booking_date,
        last_booking_date, is_registered, booking_gap, avg_spent_per_booking,
        estimated_ltv. Rows keep first-seen order.
        """
        profiles = (
            self._input_frame(snapshots)
            .group_by("customer_key", maintain_order=True)
            .agg(
                pl.len().cast(pl.Int64).alias("booking_count"),
                pl.col("revenue").sum().alias("total_spent"),
                pl.col("date").min().alias("first_booking_date"),
                pl.col("date").max().alias("last_booking_date"),
                pl.col("is_registered").any().alias("is_registered"),
            )
        )

        span_days = (pl.col("last_booking_date") - pl.col("first_booking_date")).dt.total_days()

        return profiles.with_columns(
            pl.when(
                (pl.col("booking_count") > 1)
                & pl.col("first_booking_date").is_not_null()
            )
            .then(span_days / (pl.col("booking_count") - 1))
            .otherwise(None)
            .cast(pl.Float64)
            .alias("booking_gap"),
            (pl.col("total_spent") / pl.col("booking_count")).alias("avg_spent_per_booking"),
        ).with_columns(
            pl.when(pl.col("booking_gap") > 0)
            .then(pl.col("avg_spent_per_booking") * (DAYS_PER_YEAR / pl.col("booking_gap")))
            .otherwise(pl.col("total_spent"))
            .alias("estimated_ltv"),
        )

    def segment_counts(self, profiles: pl.DataFrame) -> CustomerSegments:
        threshold = self.high_value_threshold
        return CustomerSegments(
            high_value=profiles.filter(pl.col("total_spent") > threshold).height,
            regular=profiles.filter(
                (pl.col("booking_count") >= self.regular_min_bookings)
                & (pl.col("total_spent") <= threshold)
            ).height,
            new_customers=profiles.filter(pl.col("booking_count") == 1).height,
            registered=profiles.filter(pl.col("is_registered")).height,
        )

    def top_customers(self, profiles: pl.DataFrame) -> list:
        ranked = profiles.sort("total_spent", descending=True, maintain_order=True).head(self.top_limit)
        return [
            TopCustomer(
                customer=row["customer_key"],
                booking_count=row["booking_count"],
                total_spent=row["total_spent"],
                first_booking_date=row["first_booking_date"],
                last_booking_date=row["last_booking_date"],
                is_registered=row["is_registered"],
                avg_booking_gap=row["booking_gap"] or 0.0,
                avg_spent_per_booking=row["avg_spent_per_booking"],
                estimated_ltv=row["estimated_ltv"],
            )
            for row in ranked.iter_rows(named=True)
        ]

    def analyze(self, snapshots: Sequence[AppointmentSnapshot]) -> CustomerAnalytics:
        profiles = self.build_profiles(snapshots)
        total = profiles.height
        if total == 0:
            return CustomerAnalytics()

        returning = profiles.filter(pl.col("booking_count") > 1).height
        gaps = profiles["booking_gap"].drop_nulls()

        result = CustomerAnalytics(
            total_customers=total,
            returning_customers=returning,
            retention_rate=returning / total * 100,
            segments=self.segment_counts(profiles),
            avg_lifetime_value=float(profiles["total_spent"].mean()),
            avg_booking_gap=float(gaps.mean()) if len(gaps) > 0 else 0.0,
            top_customers=self.top_customers(profiles),
        )

        logger.info(
            "Customer segmentation complete",
            customers=total,
            returning=returning,
            high_value=result.segments.high_value,
        )
        return result
