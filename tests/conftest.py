"""
Test Suite Configuration
"""
from datetime import date, datetime
from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from salon_analytics.analytics.snapshots import AppointmentSnapshot, ProductLine, ServiceLine
from salon_analytics.config import AnalyticsSettings
from salon_analytics.database.models import AppointmentStatus, Base


def make_snapshot(
    id: str,
    day: Optional[date],
    services: Optional[List[ServiceLine]] = None,
    products: Optional[List[ProductLine]] = None,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    time: Optional[str] = "10:00",
    created_at: Optional[datetime] = None,
    email: Optional[str] = None,
    user_ref: Optional[str] = None,
    staff_ref: Optional[str] = None,
    staff_name: Optional[str] = None,
) -> AppointmentSnapshot:
    """Build a snapshot with sensible defaults for tests"""
    return AppointmentSnapshot(
        id=id,
        date=day,
        time=time,
        status=status,
        created_at=created_at,
        email=email,
        user_ref=user_ref,
        line_items=tuple(services or ()) + tuple(products or ()),
        staff_ref=staff_ref,
        staff_name=staff_name,
    )


@pytest.fixture
def snapshot_factory():
    """Factory fixture for building snapshots inline"""
    return make_snapshot


@pytest.fixture
def analytics_settings() -> AnalyticsSettings:
    """Analytics settings with the documented defaults"""
    return AnalyticsSettings()


@pytest.fixture
def scenario_a_snapshots() -> List[AppointmentSnapshot]:
    """Three confirmed bookings over two Sunday-start weeks"""
    return [
        make_snapshot("a1", date(2024, 1, 1), [ServiceLine("Haircut", 100.0, 60)], email="a@example.com"),
        make_snapshot("a2", date(2024, 1, 3), [ServiceLine("Blow Dry", 50.0, 30)], email="b@example.com"),
        make_snapshot("a3", date(2024, 1, 8), [ServiceLine("Color", 200.0, 120)], email="a@example.com"),
    ]


@pytest.fixture
def mixed_snapshots() -> List[AppointmentSnapshot]:
    """Bookings covering statuses, products, missing dates and guests"""
    return [
        make_snapshot(
            "m1", date(2024, 3, 4),
            [ServiceLine("Haircut", 60.0, 60)],
            [ProductLine("Shampoo", 15.0, 2)],
            created_at=datetime(2024, 3, 1, 9, 0),
            email="ana@example.com", user_ref="user-1",
        ),
        make_snapshot(
            "m2", date(2024, 3, 6),
            [ServiceLine("Haircut", 80.0, 60)],
            status=AppointmentStatus.CANCELLED, time="14:00",
            created_at=datetime(2024, 3, 5, 12, 0),
            email="ben@example.com",
        ),
        make_snapshot(
            "m3", date(2024, 3, 9),
            [ServiceLine("Manicure", 40.0, 45)],
            status=AppointmentStatus.NO_SHOW, time="14:00",
            created_at=datetime(2024, 3, 10, 8, 0),
        ),
        make_snapshot(
            "m4", None,
            [ServiceLine("Haircut", 70.0, 60)],
            status=AppointmentStatus.PENDING,
            email="ana@example.com",
        ),
    ]


@pytest_asyncio.fixture
async def test_engine():
    """In-memory sqlite engine with the booking schema"""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Test database session"""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
