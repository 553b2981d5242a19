"""
Revenue Forecasting

Naive split-half trend extrapolation over the most recent weekly revenue:

    avgRevenue        = mean(last N weeks)
    monthlyGrowthRate = (mean(second half) - mean(first half)) / mean(first half) * 100
    predictedRevenue  = avgRevenue * (1 + monthlyGrowthRate / 100)

This is a moving-average heuristic, not a statistical time-series model.
"""

from typing import Optional, Sequence

import numpy as np
import structlog

from salon_analytics.config import get_settings
from .schemas import ForecastingAnalytics, WeeklyTrend

logger = structlog.get_logger(__name__)

MIN_WEEKS = 2


class RevenueForecaster:
    """Split-half growth forecast over an ascending weekly revenue series"""

    def __init__(self, window_weeks: Optional[int] = None):
        self.window_weeks = window_weeks or get_settings().analytics.forecast_window_weeks

    def forecast(self, weekly_trends: Sequence[WeeklyTrend]) -> ForecastingAnalytics:
        recent = weekly_trends[-self.window_weeks:]
        # both halves of the split need at least one week
        if len(recent) < MIN_WEEKS:
            logger.debug("Not enough weeks to forecast", weeks=len(recent), window=self.window_weeks)
            return ForecastingAnalytics()

        revenues = np.array([week.revenue for week in recent], dtype=float)
        midpoint = len(revenues) // 2

        avg_revenue = float(revenues.mean())
        first_half_avg = float(revenues[:midpoint].mean())
        second_half_avg = float(revenues[midpoint:].mean())

        if first_half_avg == 0:
            growth_rate = 0.0
        else:
            growth_rate = (second_half_avg - first_half_avg) / first_half_avg * 100

        logger.info(
            "Revenue forecast computed",
            weeks=len(recent),
            avg_revenue=avg_revenue,
            growth_rate=growth_rate,
        )
        return ForecastingAnalytics(
            monthly_growth_rate=growth_rate,
            predicted_revenue=avg_revenue * (1 + growth_rate / 100),
        )
