"""
Staff Performance

Per team member booking counts, completion rate and confirmed service
revenue. Appointments without an assigned staff member are left out.
"""

from typing import Sequence

import polars as pl
import structlog

from salon_analytics.database.models import AppointmentStatus
from .schemas import StaffAnalytics, StaffPerformance
from .snapshots import AppointmentSnapshot

logger = structlog.get_logger(__name__)

STAFF_INPUT_SCHEMA = {
    "staff_ref": pl.Utf8,
    "staff_name": pl.Utf8,
    "confirmed": pl.Boolean,
    "revenue": pl.Float64,
}


class StaffMetrics:
    """
    Staff performance over a snapshot window.

    `revenue` counts the service lines of confirmed appointments only;
    `efficiency` is that revenue per confirmed appointment. Members are
    ranked by revenue, ties in first-seen order.
    """

    def _input_frame(self, snapshots: Sequence[AppointmentSnapshot]) -> pl.DataFrame:
        columns = {name: [] for name in STAFF_INPUT_SCHEMA}
        for snap in snapshots:
            if snap.staff_ref is None:
                continue
            columns["staff_ref"].append(snap.staff_ref)
            columns["staff_name"].append(snap.staff_name)
            columns["confirmed"].append(snap.status == AppointmentStatus.CONFIRMED)
            columns["revenue"].append(float(snap.service_revenue))
        return pl.DataFrame(columns, schema=STAFF_INPUT_SCHEMA)

    def analyze(self, snapshots: Sequence[AppointmentSnapshot]) -> StaffAnalytics:
        frame = self._input_frame(snapshots)
        if frame.height == 0:
            return StaffAnalytics()

        per_staff = (
            frame.group_by("staff_ref", maintain_order=True)
            .agg(
                pl.col("staff_name").drop_nulls().first().alias("name"),
                pl.len().alias("appointments"),
                pl.col("confirmed").sum().alias("confirmed_appointments"),
                pl.col("revenue").filter(pl.col("confirmed")).sum().alias("revenue"),
            )
            .sort("revenue", descending=True, maintain_order=True)
        )

        performance = []
        for row in per_staff.iter_rows(named=True):
            appointments = int(row["appointments"])
            confirmed = int(row["confirmed_appointments"])
            revenue = float(row["revenue"] or 0.0)
            performance.append(StaffPerformance(
                staff_id=row["staff_ref"],
                name=row["name"] or f"Staff {row['staff_ref']}",
                appointments=appointments,
                confirmed_appointments=confirmed,
                revenue=revenue,
                completion_rate=confirmed / appointments * 100,
                efficiency=revenue / confirmed if confirmed > 0 else 0.0,
            ))

        logger.info("Staff performance computed", staff=len(performance))
        return StaffAnalytics(staff_performance=performance)
