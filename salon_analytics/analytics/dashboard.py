"""
Dashboard Summary

Single-day figures for the admin dashboard widget.
"""

from typing import Optional, Sequence

from salon_analytics.config import get_settings
from salon_analytics.database.models import AppointmentStatus
from .schemas import DashboardSummary
from .snapshots import AppointmentSnapshot


def summarize_day(
    snapshots: Sequence[AppointmentSnapshot],
    slot_capacity: Optional[int] = None,
) -> DashboardSummary:
    """
    Summarize one day of appointments.

    Revenue counts confirmed appointments only. Utilization is confirmed
    appointments over the bookable slots of the day.
    """
    if slot_capacity is None:
        slot_capacity = get_settings().analytics.daily_slot_capacity

    confirmed = [s for s in snapshots if s.status == AppointmentStatus.CONFIRMED]
    pending = sum(1 for s in snapshots if s.status == AppointmentStatus.PENDING)

    return DashboardSummary(
        todays_revenue=sum(s.revenue for s in confirmed),
        todays_appointments=len(confirmed),
        pending_appointments=pending,
        utilization_rate=len(confirmed) / slot_capacity * 100 if slot_capacity > 0 else 0.0,
    )
