"""
Analytics Result Schemas

Fixed-shape response models. Every section defaults to its documented zero
shape, so a degraded or empty section still serializes with all keys
present. JSON keys are camelCase.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FORECAST_METHOD = "naive_moving_average"
FORECAST_NOTE = (
    "Naive moving-average trend extrapolation over recent weeks; "
    "not a statistical forecast (no seasonality, no confidence interval)."
)


class AnalyticsModel(BaseModel):
    """Base model emitting camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# SEASONAL
# =============================================================================

class WeeklyTrend(AnalyticsModel):
    """One Sunday-start calendar week"""
    week: str
    appointment_count: int = 0
    revenue: float = 0.0
    services: Dict[str, int] = Field(default_factory=dict)


class SeasonalAnalytics(AnalyticsModel):
    weekly_trends: List[WeeklyTrend] = Field(default_factory=list)


# =============================================================================
# CUSTOMERS
# =============================================================================

class CustomerSegments(AnalyticsModel):
    """Non-exclusive segment counts; they need not sum to the customer total"""
    high_value: int = 0
    regular: int = 0
    new_customers: int = 0
    registered: int = 0


class TopCustomer(AnalyticsModel):
    customer: str
    booking_count: int
    total_spent: float
    first_booking_date: Optional[date] = None
    last_booking_date: Optional[date] = None
    is_registered: bool = False
    avg_booking_gap: float = 0.0
    avg_spent_per_booking: float = 0.0
    estimated_ltv: float = Field(default=0.0, alias="estimatedLTV")


class CustomerAnalytics(AnalyticsModel):
    total_customers: int = 0
    returning_customers: int = 0
    retention_rate: float = 0.0
    segments: CustomerSegments = Field(default_factory=CustomerSegments)
    avg_lifetime_value: float = 0.0
    avg_booking_gap: float = 0.0
    top_customers: List[TopCustomer] = Field(default_factory=list)


# =============================================================================
# OPERATIONAL
# =============================================================================

class CancellationPatterns(AnalyticsModel):
    by_time: Dict[str, int] = Field(default_factory=dict)
    by_day_of_week: Dict[str, int] = Field(default_factory=dict)
    by_lead_time: List[int] = Field(default_factory=list)


class ServiceEfficiency(AnalyticsModel):
    name: str
    bookings_count: int = 0
    popular_times: Dict[str, int] = Field(default_factory=dict)
    revenue_per_hour: float = 0.0
    avg_duration: float = 0.0
    avg_price: float = 0.0


class OperationalAnalytics(AnalyticsModel):
    total_appointments: int = 0
    completion_rate: float = 0.0
    avg_lead_time: float = 0.0
    cancellation_rate: float = 0.0
    cancellation_patterns: CancellationPatterns = Field(default_factory=CancellationPatterns)
    service_efficiency: List[ServiceEfficiency] = Field(default_factory=list)


# =============================================================================
# REVENUE OVERVIEW
# =============================================================================

class DailyRevenue(AnalyticsModel):
    day: date = Field(alias="date")
    revenue: float = 0.0


class ServicePopularity(AnalyticsModel):
    name: str
    count: int = 0
    revenue: float = 0.0


class ProductSales(AnalyticsModel):
    name: str
    quantity: int = 0
    revenue: float = 0.0


class PeakHour(AnalyticsModel):
    time: str
    count: int = 0


class RevenueOverview(AnalyticsModel):
    """Confirmed-booking revenue for the window"""
    total_revenue: float = 0.0
    total_appointments: int = 0
    average_order_value: float = 0.0
    daily_average: float = 0.0
    daily_revenue: List[DailyRevenue] = Field(default_factory=list)
    service_popularity: List[ServicePopularity] = Field(default_factory=list)
    product_sales: List[ProductSales] = Field(default_factory=list)
    peak_hours: List[PeakHour] = Field(default_factory=list)


# =============================================================================
# STAFF
# =============================================================================

class StaffPerformance(AnalyticsModel):
    staff_id: str
    name: str
    appointments: int = 0
    confirmed_appointments: int = 0
    revenue: float = 0.0
    completion_rate: float = 0.0
    efficiency: float = 0.0


class StaffAnalytics(AnalyticsModel):
    staff_performance: List[StaffPerformance] = Field(default_factory=list)


# =============================================================================
# FORECASTING
# =============================================================================

class ForecastingAnalytics(AnalyticsModel):
    method: str = FORECAST_METHOD
    note: str = FORECAST_NOTE
    monthly_growth_rate: float = 0.0
    predicted_revenue: float = 0.0
    seasonal_multipliers: Dict[str, float] = Field(default_factory=dict)


# =============================================================================
# ENVELOPES
# =============================================================================

class DetailedAnalytics(AnalyticsModel):
    """Complete analytics result"""
    revenue: RevenueOverview = Field(default_factory=RevenueOverview)
    seasonal: SeasonalAnalytics = Field(default_factory=SeasonalAnalytics)
    customers: CustomerAnalytics = Field(default_factory=CustomerAnalytics)
    operational: OperationalAnalytics = Field(default_factory=OperationalAnalytics)
    staff: StaffAnalytics = Field(default_factory=StaffAnalytics)
    forecasting: ForecastingAnalytics = Field(default_factory=ForecastingAnalytics)


class DashboardSummary(AnalyticsModel):
    todays_revenue: float = 0.0
    todays_appointments: int = 0
    pending_appointments: int = 0
    utilization_rate: float = 0.0


class ErrorResponse(AnalyticsModel):
    error: str
    details: Optional[str] = None
    timestamp: datetime
