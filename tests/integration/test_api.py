"""
Integration Tests - Analytics API
"""
import asyncio
import csv
import io
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio

from salon_analytics.analytics.loader import AppointmentLoader, RecordRetrievalError
from salon_analytics.database.connection import get_db_dependency
from salon_analytics.serving.api import create_api_app
from salon_analytics.serving.api.routes.analytics import (
    ClientDisconnected,
    run_unless_disconnected,
)

MARCH = {"startDate": "2024-03-01", "endDate": "2024-03-31"}


def build_app(session_factory):
    app = create_api_app(lifespan_handler=None)

    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_dependency] = override_db
    return app


@pytest_asyncio.fixture
async def client(seeded_factory):
    transport = httpx.ASGITransport(app=build_app(seeded_factory))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def empty_client(session_factory):
    transport = httpx.ASGITransport(app=build_app(session_factory))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestDetailedAnalytics:
    """Tests for GET /api/v1/analytics/detailed"""

    @pytest.mark.asyncio
    async def test_report_for_window(self, client):
        response = await client.get("/api/v1/analytics/detailed", params=MARCH)

        assert response.status_code == 200
        assert "x-request-id" in response.headers
        body = response.json()

        weeks = body["seasonal"]["weeklyTrends"]
        assert [w["week"] for w in weeks] == ["2024-03-03", "2024-03-17"]
        assert weeks[0]["appointmentCount"] == 2
        assert weeks[0]["revenue"] == pytest.approx(150.0)
        assert weeks[0]["services"] == {"Haircut": 2}
        assert weeks[1]["revenue"] == pytest.approx(200.0)

        assert body["customers"]["totalCustomers"] == 3
        assert body["customers"]["segments"]["registered"] == 1
        assert body["customers"]["topCustomers"][0]["customer"] == "anonymous:ap3"

        operational = body["operational"]
        assert operational["totalAppointments"] == 3
        assert operational["cancellationPatterns"]["byDayOfWeek"] == {"Wednesday": 1}
        assert operational["cancellationPatterns"]["byLeadTime"] == [1]

        assert body["forecasting"]["method"] == "naive_moving_average"
        assert body["forecasting"]["monthlyGrowthRate"] == pytest.approx(100 / 3)

        revenue = body["revenue"]
        assert revenue["totalRevenue"] == pytest.approx(290.0)
        assert revenue["totalAppointments"] == 2
        assert revenue["averageOrderValue"] == pytest.approx(145.0)
        assert revenue["dailyAverage"] == pytest.approx(290.0 / 31)
        assert revenue["dailyRevenue"] == [
            {"date": "2024-03-04", "revenue": 90.0},
            {"date": "2024-03-20", "revenue": 200.0},
        ]
        assert revenue["productSales"] == [{"name": "Shampoo", "quantity": 2, "revenue": 30.0}]

        maria = body["staff"]["staffPerformance"][0]
        assert maria["name"] == "Maria Lopez"
        assert maria["appointments"] == 2
        assert maria["completionRate"] == pytest.approx(50.0)
        assert maria["revenue"] == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_empty_datastore_returns_defaults(self, empty_client):
        response = await empty_client.get("/api/v1/analytics/detailed", params=MARCH)

        assert response.status_code == 200
        body = response.json()
        assert body["seasonal"]["weeklyTrends"] == []
        assert body["customers"]["totalCustomers"] == 0
        assert body["operational"]["cancellationRate"] == 0
        assert body["forecasting"]["predictedRevenue"] == 0

    @pytest.mark.asyncio
    async def test_invalid_date_is_rejected(self, client):
        response = await client.get("/api/v1/analytics/detailed", params={"startDate": "March"})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_csv_format(self, client):
        response = await client.get("/api/v1/analytics/detailed", params={**MARCH, "format": "csv"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.headers["content-disposition"] == (
            'attachment; filename="salon-analytics-2024-03-01-to-2024-03-31.csv"'
        )
        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[2] == ["Period", "2024-03-01", "2024-03-31"]
        assert ["WEEKLY TRENDS"] in rows
        assert ["REVENUE METRICS"] in rows
        assert ["Total Revenue", "290.0"] in rows
        assert ["STAFF PERFORMANCE"] in rows

    @pytest.mark.asyncio
    async def test_export_defaults_to_csv(self, client):
        response = await client.get("/api/v1/analytics/export", params=MARCH)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "SERVICE EFFICIENCY" in response.text

    @pytest.mark.asyncio
    async def test_retrieval_failure_is_500(self, client, monkeypatch):
        async def failing_load(self, start_date, end_date):
            raise RecordRetrievalError("Failed to fetch appointments: timeout")

        monkeypatch.setattr(AppointmentLoader, "load", failing_load)

        response = await client.get("/api/v1/analytics/detailed", params=MARCH)

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Failed to fetch detailed analytics data"
        assert "timeout" in body["details"]
        # UTC-aware timestamps serialize with a Z suffix
        assert body["timestamp"].endswith("Z")


class TestDashboardSummary:
    """Tests for GET /api/v1/analytics/summary"""

    @pytest.mark.asyncio
    async def test_summary_shape(self, empty_client):
        response = await empty_client.get("/api/v1/analytics/summary")

        assert response.status_code == 200
        assert response.json() == {
            "todaysRevenue": 0.0,
            "todaysAppointments": 0,
            "pendingAppointments": 0,
            "utilizationRate": 0.0,
        }


class TestHealth:
    """Tests for health endpoints without a configured datastore"""

    @pytest.mark.asyncio
    async def test_liveness_and_readiness(self, empty_client):
        live = await empty_client.get("/api/v1/health/live")
        ready = await empty_client.get("/api/v1/health/ready")

        assert live.json() == {"status": "alive"}
        assert ready.status_code == 503
        assert ready.json()["reason"] == "database_unavailable"


class TestRunUnlessDisconnected:
    """Tests for cancelling work when the client goes away"""

    @pytest.mark.asyncio
    async def test_returns_result_when_connected(self):
        async def connected():
            return False

        request = SimpleNamespace(is_disconnected=connected, url=SimpleNamespace(path="/x"))

        async def work():
            return 42

        assert await run_unless_disconnected(request, work()) == 42

    @pytest.mark.asyncio
    async def test_cancels_work_on_disconnect(self):
        async def disconnected():
            return True

        request = SimpleNamespace(is_disconnected=disconnected, url=SimpleNamespace(path="/x"))
        cancelled = asyncio.Event()

        async def slow_query():
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        with pytest.raises(ClientDisconnected):
            await run_unless_disconnected(request, slow_query())

        await asyncio.wait_for(cancelled.wait(), timeout=1)
