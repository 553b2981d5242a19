"""
Integration Test Fixtures
"""
from datetime import date, datetime

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from salon_analytics.database.models import (
    Appointment,
    AppointmentProduct,
    AppointmentService,
    Product,
    Service,
    Staff,
)


@pytest_asyncio.fixture
async def session_factory(test_engine):
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def seeded_factory(session_factory):
    """
    Session factory over a datastore holding four bookings:

    - ap1 2024-03-04 confirmed, Haircut + 2x Shampoo, registered, with Maria
    - ap2 2024-03-06 cancelled, Haircut, with Maria
    - ap3 2024-03-20 confirmed, Color, guest
    - ap4 2024-05-01 confirmed, Color (outside March)
    """
    haircut = Service(id="svc-haircut", name="Haircut", price=60, duration=60)
    color = Service(id="svc-color", name="Color", price=200, duration=120)
    shampoo = Product(id="prd-shampoo", name="Shampoo", price=15)
    maria = Staff(id="staff-maria", full_name="Maria Lopez")

    appointments = [
        Appointment(
            id="ap1",
            appointment_date=date(2024, 3, 4),
            appointment_time="10:00",
            status="confirmed",
            customer_email="Ana@Example.com",
            user_id="user-1",
            created_at=datetime(2024, 3, 1, 9, 0),
            staff=maria,
            service_items=[AppointmentService(service=haircut)],
            product_items=[AppointmentProduct(product=shampoo, quantity=2)],
        ),
        Appointment(
            id="ap2",
            appointment_date=date(2024, 3, 6),
            appointment_time="14:00",
            status="cancelled",
            customer_email="ben@example.com",
            created_at=datetime(2024, 3, 5, 12, 0),
            staff=maria,
            service_items=[AppointmentService(service=haircut)],
        ),
        Appointment(
            id="ap3",
            appointment_date=date(2024, 3, 20),
            appointment_time="11:00",
            status="confirmed",
            created_at=datetime(2024, 3, 10, 8, 0),
            service_items=[AppointmentService(service=color)],
        ),
        Appointment(
            id="ap4",
            appointment_date=date(2024, 5, 1),
            appointment_time="09:00",
            status="confirmed",
            customer_email="ana@example.com",
            created_at=datetime(2024, 4, 20, 8, 0),
            service_items=[AppointmentService(service=color)],
        ),
    ]

    async with session_factory() as session:
        session.add_all([haircut, color, shampoo, maria, *appointments])
        await session.commit()

    return session_factory
