"""
Appointment Record Loader

Fetches the appointments of a date window, joined with their service and
product line items, and adapts them into snapshots. A failed query is the
one fatal error of the analytics request.
"""

from datetime import date
from typing import Any, Dict, List

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from salon_analytics.database.models import (
    Appointment,
    AppointmentProduct,
    AppointmentService,
)
from .snapshots import AppointmentSnapshot, adapt_rows

logger = structlog.get_logger(__name__)


class AnalyticsError(Exception):
    """Base class for analytics errors with a stable kind"""
    kind = "analytics_error"


class RecordRetrievalError(AnalyticsError):
    """The appointment query failed; the request cannot proceed"""
    kind = "retrieval_failure"


def appointment_to_row(appointment: Appointment) -> Dict[str, Any]:
    """ORM appointment -> joined row in the portal's query shape"""
    return {
        "id": appointment.id,
        "appointment_date": appointment.appointment_date,
        "appointment_time": appointment.appointment_time,
        "status": appointment.status,
        "customer_email": appointment.customer_email,
        "user_id": appointment.user_id,
        "created_at": appointment.created_at,
        "staff_id": appointment.staff_id,
        "staff": (
            {"full_name": appointment.staff.full_name}
            if appointment.staff is not None else None
        ),
        "services": [
            {
                "name": item.service.name,
                "price": item.service.price,
                "duration": item.service.duration,
            }
            for item in appointment.service_items
            if item.service is not None
        ],
        "appointment_products": [
            {
                "quantity": item.quantity,
                "products": (
                    {"name": item.product.name, "price": item.product.price}
                    if item.product is not None else None
                ),
            }
            for item in appointment.product_items
        ],
    }


class AppointmentLoader:
    """
    Read-only appointment query.

    Example:
        async with get_db() as db:
            snapshots = await AppointmentLoader(db).load(start, end)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def fetch_rows(self, start_date: date, end_date: date) -> List[Dict[str, Any]]:
        stmt = (
            select(Appointment)
            .where(
                Appointment.appointment_date >= start_date,
                Appointment.appointment_date <= end_date,
            )
            .options(
                selectinload(Appointment.staff),
                selectinload(Appointment.service_items).selectinload(AppointmentService.service),
                selectinload(Appointment.product_items).selectinload(AppointmentProduct.product),
            )
        )
        result = await self.session.execute(stmt)
        return [appointment_to_row(appointment) for appointment in result.scalars().all()]

    async def load(self, start_date: date, end_date: date) -> List[AppointmentSnapshot]:
        """
        Load snapshots for the inclusive window [start_date, end_date].

        Raises:
            RecordRetrievalError: If the datastore query fails
        """
        logger.debug("Loading appointments", start_date=str(start_date), end_date=str(end_date))
        try:
            rows = await self.fetch_rows(start_date, end_date)
        except Exception as e:
            logger.error(
                "Appointment query failed",
                error=str(e),
                error_type=type(e).__name__,
                start_date=str(start_date),
                end_date=str(end_date),
            )
            raise RecordRetrievalError(f"Failed to fetch appointments: {e}") from e

        snapshots = adapt_rows(rows)
        logger.info("Appointments loaded", rows=len(rows), snapshots=len(snapshots))
        return snapshots
