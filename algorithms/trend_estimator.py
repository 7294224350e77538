from __future__ import annotations

import datetime
from typing import Iterable, Sequence

from config import get_thresholds
from models import (
    Direction,
    PerformanceMetric,
    ProjectedGains,
    RegressionFit,
    TrendAnalysis,
)
from settings_schema import ThresholdSettings
from .math_tools import MathTools
from .metric_normalizer import MetricNormalizer


class TrendEstimator:
    """Estimate the strength trend of a single exercise.

    The estimated one-rep max is regressed against elapsed days. Confidence
    grows with the number of samples (saturating at
    ``confidence_saturation``) and with the fit quality::

        confidence = min(1, n / saturation) * max(0, R²)

    Fewer than ``min_trend_samples`` points give a neutral "insufficient
    data" result rather than an error.
    """

    PROJECTION_DAYS = {"one_week": 7, "one_month": 30, "three_months": 90}

    def __init__(self, thresholds: ThresholdSettings | None = None) -> None:
        self.thresholds = thresholds or get_thresholds()

    def classify(self, slope: float, epsilon: float | None = None) -> Direction:
        """Map a slope onto a direction; the epsilon boundary itself is stable."""
        eps = self.thresholds.slope_epsilon if epsilon is None else epsilon
        if slope > eps:
            return "improving"
        if slope < -eps:
            return "declining"
        return "stable"

    def sample_factor(self, samples: int) -> float:
        return min(1.0, samples / self.thresholds.confidence_saturation)

    def fit(
        self,
        days: Sequence[float],
        values: Sequence[float],
        epsilon: float | None = None,
    ) -> RegressionFit:
        """Run the regression test on any metric sampled at ``days``."""
        n = len(values)
        if n < self.thresholds.min_trend_samples:
            mean = MathTools.mean(values)
            return RegressionFit(0.0, mean, 0.0, "stable", 0.0, n)
        slope, intercept, r_squared = MathTools.linear_fit(days, values)
        confidence = self.sample_factor(n) * max(0.0, r_squared)
        return RegressionFit(
            slope=slope,
            intercept=intercept,
            r_squared=r_squared,
            direction=self.classify(slope, epsilon),
            confidence=confidence,
            samples=n,
        )

    @staticmethod
    def elapsed_days(dates: Iterable[datetime.date]) -> list[int]:
        dates = list(dates)
        if not dates:
            return []
        first = dates[0]
        return [(d - first).days for d in dates]

    def window(
        self,
        metrics: Iterable[PerformanceMetric],
        window_days: int | None = None,
        as_of: datetime.date | None = None,
    ) -> list[PerformanceMetric]:
        """Return the chronological samples inside the analysis window."""
        series = MetricNormalizer.chronological(metrics)
        if not series:
            return []
        days = self.thresholds.analysis_window_days if window_days is None else window_days
        anchor = as_of or series[-1].date
        cutoff = anchor - datetime.timedelta(days=days)
        return [m for m in series if cutoff <= m.date <= anchor]

    def analyze(
        self,
        metrics: Iterable[PerformanceMetric],
        window_days: int | None = None,
        as_of: datetime.date | None = None,
    ) -> TrendAnalysis:
        series = self.window(metrics, window_days, as_of)
        exercise = series[0].exercise if series else ""
        span = (series[-1].date - series[0].date).days if series else 0
        timeframe = f"{span} days"
        if len(series) < self.thresholds.min_trend_samples:
            return TrendAnalysis(
                exercise=exercise,
                direction="stable",
                slope=0.0,
                confidence=0.0,
                data_points=len(series),
                timeframe=timeframe,
            )

        days = self.elapsed_days(m.date for m in series)
        fit = self.fit(days, [m.one_rm for m in series])
        last = days[-1]
        projected = {
            name: round(max(0.0, fit.intercept + fit.slope * (last + ahead)), 2)
            for name, ahead in self.PROJECTION_DAYS.items()
        }
        return TrendAnalysis(
            exercise=exercise,
            direction=fit.direction,
            slope=fit.slope,
            confidence=fit.confidence,
            data_points=len(series),
            timeframe=timeframe,
            projected_gains=ProjectedGains(**projected),
        )
