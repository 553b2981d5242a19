"""
Analytics Aggregation & Forecasting Module
"""
from .customers import CustomerSegmentation
from .dashboard import summarize_day
from .forecasting import RevenueForecaster
from .loader import AnalyticsError, AppointmentLoader, RecordRetrievalError
from .operational import OperationalMetrics
from .overview import RevenueSummary
from .pipeline import AnalyticsPipeline, ModuleResult, PipelineResult
from .revenue import RevenueAggregator, week_start
from .serializer import build_report, render_csv, to_payload
from .staff import StaffMetrics
from .snapshots import (
    AppointmentSnapshot,
    ProductLine,
    ServiceLine,
    adapt_rows,
    snapshot_from_row,
)

__all__ = [
    "AnalyticsError",
    "AnalyticsPipeline",
    "AppointmentLoader",
    "AppointmentSnapshot",
    "CustomerSegmentation",
    "ModuleResult",
    "OperationalMetrics",
    "PipelineResult",
    "ProductLine",
    "RecordRetrievalError",
    "RevenueAggregator",
    "RevenueForecaster",
    "RevenueSummary",
    "ServiceLine",
    "StaffMetrics",
    "adapt_rows",
    "build_report",
    "render_csv",
    "snapshot_from_row",
    "summarize_day",
    "to_payload",
    "week_start",
]
