"""
Unit Tests - Snapshot Adapter
"""
from datetime import date, datetime, time
from decimal import Decimal

import pytest

from salon_analytics.analytics.snapshots import (
    MalformedRecordError,
    ProductLine,
    ServiceLine,
    adapt_rows,
    appointments_frame,
    parse_date,
    parse_timestamp,
    snapshot_from_row,
)
from salon_analytics.database.models import AppointmentStatus


class TestFieldParsers:
    """Tests for individual field parsing"""

    def test_parse_date_variants(self):
        assert parse_date("2024-01-08") == date(2024, 1, 8)
        assert parse_date("2024-01-08T10:30:00Z") == date(2024, 1, 8)
        assert parse_date(datetime(2024, 1, 8, 23, 0)) == date(2024, 1, 8)
        assert parse_date(date(2024, 1, 8)) == date(2024, 1, 8)

    def test_parse_date_unusable(self):
        assert parse_date(None) is None
        assert parse_date("not-a-date") is None
        assert parse_date("2024-13-45") is None
        assert parse_date(12345) is None

    def test_parse_timestamp_normalizes_to_naive_utc(self):
        assert parse_timestamp("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, 0)
        assert parse_timestamp("2024-01-01T12:00:00+02:00") == datetime(2024, 1, 1, 10, 0)
        assert parse_timestamp("garbage") is None


class TestSnapshotFromRow:
    """Tests for the row adapter"""

    def test_list_of_services_and_nested_products(self):
        row = {
            "id": "appt-1",
            "appointment_date": "2024-01-01",
            "appointment_time": "10:00",
            "status": "Confirmed",
            "customer_email": "  Jane@Example.com ",
            "user_id": "user-9",
            "created_at": "2023-12-20T09:00:00Z",
            "services": [
                {"name": "Haircut", "price": "100", "duration": 60},
                {"name": "Wash", "price": Decimal("20.50"), "duration": None},
            ],
            "appointment_products": [
                {"quantity": 2, "products": [{"name": "Serum", "price": 15}]},
            ],
        }

        snap = snapshot_from_row(row)

        assert snap.id == "appt-1"
        assert snap.date == date(2024, 1, 1)
        assert snap.status == AppointmentStatus.CONFIRMED
        assert snap.email == "jane@example.com"
        assert snap.user_ref == "user-9"
        assert snap.created_at == datetime(2023, 12, 20, 9, 0)
        assert snap.line_items == (
            ServiceLine("Haircut", 100.0, 60),
            ServiceLine("Wash", 20.5, None),
            ProductLine("Serum", 15.0, 2),
        )
        assert snap.revenue == pytest.approx(150.5)

    def test_single_linked_service(self):
        row = {
            "id": "appt-2",
            "appointment_date": date(2024, 1, 3),
            "appointment_time": time(14, 30),
            "status": "pending",
            "services": {"name": "Color", "price": 200, "duration": 120},
            "appointment_products": {"quantity": None, "products": {"name": "Mask", "price": 10}},
        }

        snap = snapshot_from_row(row)

        assert snap.time == "14:30:00"
        assert snap.service_lines == [ServiceLine("Color", 200.0, 120)]
        assert snap.revenue == pytest.approx(210.0)

    def test_malformed_fields_degrade(self):
        row = {
            "id": "appt-3",
            "appointment_date": "tomorrow",
            "status": "rescheduled",
            "created_at": 42,
            "services": [{"name": None, "price": "free"}, "junk"],
            "appointment_products": None,
        }

        snap = snapshot_from_row(row)

        assert snap.date is None
        assert snap.status is None
        assert snap.created_at is None
        assert snap.line_items == (ServiceLine(None, 0.0, None),)
        assert snap.revenue == 0.0

    @pytest.mark.parametrize("bad", ["inf", "-inf", "nan", "Infinity", float("inf"), float("nan")])
    def test_non_finite_numbers_are_unusable(self, bad):
        row = {
            "id": "appt-4",
            "appointment_date": "2024-01-01",
            "services": [{"name": "Haircut", "price": bad, "duration": bad}],
            "appointment_products": [{"quantity": bad, "products": [{"name": "Serum", "price": 15}]}],
        }

        snap = snapshot_from_row(row)

        assert snap.line_items == (
            ServiceLine("Haircut", 0.0, None),
            ProductLine("Serum", 15.0, 1),
        )
        assert snap.revenue == pytest.approx(15.0)

    def test_staff_assignment(self):
        row = {
            "id": "appt-5",
            "appointment_date": "2024-01-01",
            "staff_id": "staff-1",
            "staff": {"full_name": " Maria Lopez "},
        }

        snap = snapshot_from_row(row)

        assert snap.staff_ref == "staff-1"
        assert snap.staff_name == "Maria Lopez"
        assert snapshot_from_row({"id": "appt-6"}).staff_ref is None

    def test_not_a_mapping_is_rejected(self):
        with pytest.raises(MalformedRecordError):
            snapshot_from_row(["appt", "2024-01-01"])

    def test_customer_key_precedence(self, snapshot_factory):
        by_email = snapshot_factory("s1", date(2024, 1, 1), email="a@example.com", user_ref="u1")
        by_user = snapshot_factory("s2", date(2024, 1, 1), user_ref="u1")
        guest = snapshot_factory("s3", date(2024, 1, 1))

        assert by_email.customer_key() == "a@example.com"
        assert by_user.customer_key() == "u1"
        assert guest.customer_key() == "anonymous:s3"
        assert guest.customer_key(collapse_anonymous=True) == "anonymous"


class TestAdaptRows:
    """Tests for batch adaptation"""

    def test_skips_unadaptable_rows(self):
        rows = [
            {"id": "ok-1", "appointment_date": "2024-01-01"},
            None,
            "garbage",
            {"appointment_date": "2024-01-02"},
        ]

        snapshots = adapt_rows(rows)

        assert [s.id for s in snapshots] == ["ok-1", "row-3"]

    def test_row_raising_while_read_does_not_sink_batch(self):
        class BrokenRow(dict):
            def get(self, key, default=None):
                raise TypeError(f"cannot read {key}")

        rows = [
            {"id": "ok-1", "services": [{"name": "Haircut", "price": "inf", "duration": "nan"}]},
            BrokenRow(id="broken"),
            {"id": "ok-2", "appointment_products": [{"quantity": "inf", "products": [{"price": "10"}]}]},
        ]

        snapshots = adapt_rows(rows)

        assert [s.id for s in snapshots] == ["ok-1", "ok-2"]
        assert sum(s.revenue for s in snapshots) == pytest.approx(10.0)

    def test_appointments_frame_schema(self, mixed_snapshots):
        frame = appointments_frame(mixed_snapshots)

        assert frame.height == 4
        assert frame.columns == ["id", "date", "time", "status", "created_at", "revenue"]
        assert frame["revenue"].to_list() == [90.0, 80.0, 40.0, 70.0]
        assert frame["date"].null_count() == 1

    def test_empty_frame_keeps_schema(self):
        frame = appointments_frame([])

        assert frame.height == 0
        assert "created_at" in frame.columns
