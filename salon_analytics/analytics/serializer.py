"""
Result Serialization

Assembles the analytics sections into one fixed-shape report and renders
it either as a JSON-ready dict or as sectioned CSV for export. Exported
numbers are written raw, without currency symbols or rounding.
"""

import csv
import io
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from salon_analytics.config import get_settings
from .schemas import (
    CustomerAnalytics,
    DetailedAnalytics,
    ForecastingAnalytics,
    OperationalAnalytics,
    RevenueOverview,
    SeasonalAnalytics,
    StaffAnalytics,
)


def build_report(
    seasonal: Optional[SeasonalAnalytics] = None,
    customers: Optional[CustomerAnalytics] = None,
    operational: Optional[OperationalAnalytics] = None,
    forecasting: Optional[ForecastingAnalytics] = None,
    revenue: Optional[RevenueOverview] = None,
    staff: Optional[StaffAnalytics] = None,
) -> DetailedAnalytics:
    """Assemble a report; any missing section takes its zero-default"""
    return DetailedAnalytics(
        revenue=revenue or RevenueOverview(),
        seasonal=seasonal or SeasonalAnalytics(),
        customers=customers or CustomerAnalytics(),
        operational=operational or OperationalAnalytics(),
        staff=staff or StaffAnalytics(),
        forecasting=forecasting or ForecastingAnalytics(),
    )


def to_payload(report: DetailedAnalytics) -> Dict[str, Any]:
    """JSON-ready dict with camelCase keys"""
    return report.model_dump(mode="json", by_alias=True)


def _histogram(counts: Dict[str, int]) -> str:
    return ";".join(f"{key}:{value}" for key, value in counts.items())


def _section(writer, title: str, header: List[str], rows: Iterable[List[Any]]) -> None:
    writer.writerow([title])
    writer.writerow(header)
    for row in rows:
        writer.writerow(row)
    writer.writerow([])


def render_csv(
    report: DetailedAnalytics,
    start_date: date,
    end_date: date,
    generated_at: Optional[datetime] = None,
    title: Optional[str] = None,
) -> str:
    """
    Render a report as delimited text with labelled sections.

    Args:
        report: Assembled analytics report
        start_date: First day of the reporting window
        end_date: Last day of the reporting window
        generated_at: Report timestamp (defaults to now, UTC)
        title: Header line (defaults to the configured report title)

    Returns:
        CSV document as a string
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    title = title or get_settings().analytics.report_title

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow([title])
    writer.writerow(["Generated", generated_at.isoformat()])
    writer.writerow(["Period", start_date.isoformat(), end_date.isoformat()])
    writer.writerow([])

    revenue = report.revenue
    _section(
        writer,
        "REVENUE METRICS",
        ["Metric", "Value"],
        [
            ["Total Revenue", revenue.total_revenue],
            ["Confirmed Appointments", revenue.total_appointments],
            ["Average Order Value", revenue.average_order_value],
            ["Daily Average", revenue.daily_average],
        ],
    )
    _section(
        writer,
        "DAILY REVENUE",
        ["Date", "Revenue"],
        ([day.day.isoformat(), day.revenue] for day in revenue.daily_revenue),
    )
    _section(
        writer,
        "SERVICE POPULARITY",
        ["Service", "Bookings", "Revenue"],
        ([s.name, s.count, s.revenue] for s in revenue.service_popularity),
    )
    _section(
        writer,
        "PRODUCT SALES",
        ["Product", "Quantity", "Revenue"],
        ([p.name, p.quantity, p.revenue] for p in revenue.product_sales),
    )
    _section(writer, "PEAK HOURS", ["Time", "Bookings"], ([h.time, h.count] for h in revenue.peak_hours))

    _section(
        writer,
        "WEEKLY TRENDS",
        ["Week", "Appointments", "Revenue", "Services"],
        (
            [week.week, week.appointment_count, week.revenue, _histogram(week.services)]
            for week in report.seasonal.weekly_trends
        ),
    )

    customers = report.customers
    _section(
        writer,
        "CUSTOMER METRICS",
        ["Metric", "Value"],
        [
            ["Total Customers", customers.total_customers],
            ["Returning Customers", customers.returning_customers],
            ["Retention Rate", customers.retention_rate],
            ["High Value Customers", customers.segments.high_value],
            ["Regular Customers", customers.segments.regular],
            ["New Customers", customers.segments.new_customers],
            ["Registered Customers", customers.segments.registered],
            ["Average Lifetime Value", customers.avg_lifetime_value],
            ["Average Booking Gap (days)", customers.avg_booking_gap],
        ],
    )

    _section(
        writer,
        "TOP CUSTOMERS",
        ["Customer", "Bookings", "Total Spent", "Avg Spent Per Booking", "Avg Booking Gap", "Estimated LTV", "Registered"],
        (
            [
                c.customer,
                c.booking_count,
                c.total_spent,
                c.avg_spent_per_booking,
                c.avg_booking_gap,
                c.estimated_ltv,
                c.is_registered,
            ]
            for c in customers.top_customers
        ),
    )

    operational = report.operational
    _section(
        writer,
        "OPERATIONAL METRICS",
        ["Metric", "Value"],
        [
            ["Total Appointments", operational.total_appointments],
            ["Completion Rate", operational.completion_rate],
            ["Average Lead Time (days)", operational.avg_lead_time],
            ["Cancellation Rate", operational.cancellation_rate],
        ],
    )

    patterns = operational.cancellation_patterns
    _section(writer, "CANCELLATIONS BY TIME", ["Time", "Cancellations"], patterns.by_time.items())
    _section(writer, "CANCELLATIONS BY DAY OF WEEK", ["Day", "Cancellations"], patterns.by_day_of_week.items())

    _section(
        writer,
        "SERVICE EFFICIENCY",
        ["Service", "Bookings", "Revenue Per Hour", "Avg Duration", "Avg Price", "Popular Times"],
        (
            [s.name, s.bookings_count, s.revenue_per_hour, s.avg_duration, s.avg_price, _histogram(s.popular_times)]
            for s in operational.service_efficiency
        ),
    )

    _section(
        writer,
        "STAFF PERFORMANCE",
        ["Staff", "Appointments", "Confirmed", "Revenue", "Completion Rate", "Revenue Per Appointment"],
        (
            [s.name, s.appointments, s.confirmed_appointments, s.revenue, s.completion_rate, s.efficiency]
            for s in report.staff.staff_performance
        ),
    )

    forecasting = report.forecasting
    _section(
        writer,
        "FORECAST",
        ["Metric", "Value"],
        [
            ["Method", forecasting.method],
            ["Note", forecasting.note],
            ["Monthly Growth Rate", forecasting.monthly_growth_rate],
            ["Predicted Revenue", forecasting.predicted_revenue],
        ],
    )

    return buffer.getvalue()
