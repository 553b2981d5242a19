"""
Database Models - Booking Read Schema

Read-side mapping of the booking portal tables the analytics engine queries.
The portal owns these tables; this service never writes to them.

Tables:
- appointments: one row per booking
- services / products: catalog entries referenced by line items
- staff: team members appointments are assigned to
- appointment_services: service line items of an appointment
- appointment_products: product line items (with quantity) of an appointment
"""

from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List
import uuid

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class AppointmentStatus(str, Enum):
    """Appointment status enumeration"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


def _uuid() -> str:
    return str(uuid.uuid4())


# =============================================================================
# CATALOG
# =============================================================================

class Service(Base):
    """Bookable salon service"""

    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200))
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    duration: Mapped[Optional[int]] = mapped_column(Integer, comment="Minutes")
    category_id: Mapped[Optional[str]] = mapped_column(String(36))


class Product(Base):
    """Retail product sold alongside appointments"""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200))
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))


class Staff(Base):
    """Stylist or therapist an appointment is assigned to"""

    __tablename__ = "staff"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    full_name: Mapped[str] = mapped_column(String(200))


# =============================================================================
# APPOINTMENTS
# =============================================================================

class Appointment(Base):
    """A single booking with its line items"""

    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    appointment_date: Mapped[Optional[date]] = mapped_column(Date)
    appointment_time: Mapped[Optional[str]] = mapped_column(String(8))
    status: Mapped[str] = mapped_column(String(20), default=AppointmentStatus.PENDING.value)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255))
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50))
    user_id: Mapped[Optional[str]] = mapped_column(String(36))
    staff_id: Mapped[Optional[str]] = mapped_column(ForeignKey("staff.id"))
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    staff: Mapped[Optional["Staff"]] = relationship()
    service_items: Mapped[List["AppointmentService"]] = relationship(
        back_populates="appointment"
    )
    product_items: Mapped[List["AppointmentProduct"]] = relationship(
        back_populates="appointment"
    )

    __table_args__ = (
        Index("idx_appointments_date", "appointment_date"),
        Index("idx_appointments_status", "status"),
    )


class AppointmentService(Base):
    """Service line item"""

    __tablename__ = "appointment_services"

    appointment_id: Mapped[str] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"), primary_key=True
    )
    service_id: Mapped[str] = mapped_column(ForeignKey("services.id"), primary_key=True)

    appointment: Mapped["Appointment"] = relationship(back_populates="service_items")
    service: Mapped[Optional["Service"]] = relationship()


class AppointmentProduct(Base):
    """Product line item"""

    __tablename__ = "appointment_products"

    appointment_id: Mapped[str] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"), primary_key=True
    )
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), primary_key=True)
    quantity: Mapped[Optional[int]] = mapped_column(Integer, default=1)

    appointment: Mapped["Appointment"] = relationship(back_populates="product_items")
    product: Mapped[Optional["Product"]] = relationship()
