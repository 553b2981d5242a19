"""
Analytics Pipeline

Orchestrates the analytics modules over one immutable snapshot window:

    Overview   ─┐
    Revenue     │
    Customers   ├─ (concurrent) ─> Forecasting (needs Revenue) ─> DetailedAnalytics
    Operational │
    Staff      ─┘

Each module runs behind `_run_module`, which turns any failure into the
module's documented zero-default. Only retrieval failures (raised before
the pipeline runs) are fatal.
"""

import asyncio
import functools
from dataclasses import dataclass
from datetime import date
from typing import Callable, Generic, Optional, Sequence, TypeVar

import structlog

from salon_analytics.config import AnalyticsSettings, get_settings
from .customers import CustomerSegmentation
from .forecasting import RevenueForecaster
from .operational import OperationalMetrics
from .overview import RevenueSummary
from .revenue import RevenueAggregator
from .schemas import (
    CustomerAnalytics,
    DetailedAnalytics,
    ForecastingAnalytics,
    OperationalAnalytics,
    RevenueOverview,
    SeasonalAnalytics,
    StaffAnalytics,
)
from .serializer import build_report
from .snapshots import AppointmentSnapshot
from .staff import StaffMetrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class ModuleResult(Generic[T]):
    """Outcome of one analytics module: its value, or its default when degraded"""
    section: str
    value: T
    degraded: bool = False
    error: Optional[str] = None

    @classmethod
    def ok(cls, section: str, value: T) -> "ModuleResult[T]":
        return cls(section=section, value=value)

    @classmethod
    def fallback(cls, section: str, default: T, error: Exception) -> "ModuleResult[T]":
        return cls(
            section=section,
            value=default,
            degraded=True,
            error=f"{type(error).__name__}: {error}",
        )


@dataclass
class PipelineResult:
    """Assembled report plus per-section outcome"""
    report: DetailedAnalytics
    overview: ModuleResult[RevenueOverview]
    seasonal: ModuleResult[SeasonalAnalytics]
    customers: ModuleResult[CustomerAnalytics]
    operational: ModuleResult[OperationalAnalytics]
    staff: ModuleResult[StaffAnalytics]
    forecasting: ModuleResult[ForecastingAnalytics]

    @property
    def degraded_sections(self) -> list:
        return [
            result.section
            for result in (
                self.overview,
                self.seasonal,
                self.customers,
                self.operational,
                self.staff,
                self.forecasting,
            )
            if result.degraded
        ]


class AnalyticsPipeline:
    """
    Analytics pipeline over appointment snapshots.

    Example:
        pipeline = AnalyticsPipeline()
        result = await pipeline.run(snapshots, start_date, end_date)
        payload = result.report
    """

    def __init__(
        self,
        settings: Optional[AnalyticsSettings] = None,
        revenue: Optional[RevenueAggregator] = None,
        customers: Optional[CustomerSegmentation] = None,
        operational: Optional[OperationalMetrics] = None,
        forecaster: Optional[RevenueForecaster] = None,
        overview: Optional[RevenueSummary] = None,
        staff: Optional[StaffMetrics] = None,
    ):
        settings = settings or get_settings().analytics
        self.revenue = revenue or RevenueAggregator()
        self.customers = customers or CustomerSegmentation(settings=settings)
        self.operational = operational or OperationalMetrics()
        self.forecaster = forecaster or RevenueForecaster(window_weeks=settings.forecast_window_weeks)
        self.overview = overview or RevenueSummary(settings=settings)
        self.staff = staff or StaffMetrics()

    async def _run_module(
        self,
        section: str,
        func: Callable[..., T],
        data,
        default: Callable[[], T],
    ) -> ModuleResult[T]:
        try:
            value = await asyncio.to_thread(func, data)
        except Exception as e:
            logger.warning(
                "Analytics section degraded to default",
                section=section,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ModuleResult.fallback(section, default(), e)
        return ModuleResult.ok(section, value)

    async def run(
        self,
        snapshots: Sequence[AppointmentSnapshot],
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PipelineResult:
        snapshots = tuple(snapshots)
        logger.info("Running analytics pipeline", snapshots=len(snapshots))

        summarize = functools.partial(self.overview.analyze, start_date=start_date, end_date=end_date)
        overview, seasonal, customers, operational, staff = await asyncio.gather(
            self._run_module("revenue", summarize, snapshots, RevenueOverview),
            self._run_module("seasonal", self.revenue.aggregate, snapshots, SeasonalAnalytics),
            self._run_module("customers", self.customers.analyze, snapshots, CustomerAnalytics),
            self._run_module("operational", self.operational.analyze, snapshots, OperationalAnalytics),
            self._run_module("staff", self.staff.analyze, snapshots, StaffAnalytics),
        )

        forecasting = await self._run_module(
            "forecasting",
            self.forecaster.forecast,
            seasonal.value.weekly_trends,
            ForecastingAnalytics,
        )

        result = PipelineResult(
            report=build_report(
                revenue=overview.value,
                seasonal=seasonal.value,
                customers=customers.value,
                operational=operational.value,
                staff=staff.value,
                forecasting=forecasting.value,
            ),
            overview=overview,
            seasonal=seasonal,
            customers=customers,
            operational=operational,
            staff=staff,
            forecasting=forecasting,
        )

        if result.degraded_sections:
            logger.warning("Analytics completed with degraded sections", sections=result.degraded_sections)
        return result
