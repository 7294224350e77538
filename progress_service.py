from __future__ import annotations

import datetime
import logging
from typing import Iterable

from algorithms.math_tools import MathTools
from algorithms.metric_normalizer import MetricNormalizer
from algorithms.plateau_detector import PlateauDetector
from algorithms.trend_estimator import TrendEstimator
from config import get_thresholds
from gamification_service import GamificationService
from models import (
    ComparisonMetrics,
    PerformanceMetric,
    PerformanceProjection,
    PeriodSummary,
    PlateauAnalysis,
    ProgressAnalysis,
    ProjectionPoint,
    TrendAnalysis,
)
from recommendation_service import RecommendationService
from settings_schema import ThresholdSettings

logger = logging.getLogger(__name__)

DIRECTION_SCORE = {"improving": 1.0, "stable": 0.0, "declining": -1.0}
# confidence multipliers for one week, one month, three and six months
PROJECTION_DECAY = (0.9, 0.8, 0.6, 0.4)


class ProgressService:
    """Build the whole-history progress report across all exercises."""

    def __init__(self, thresholds: ThresholdSettings | None = None) -> None:
        self.thresholds = thresholds or get_thresholds()
        self.trends = TrendEstimator(self.thresholds)
        self.plateaus = PlateauDetector(self.thresholds)
        self.gamification = GamificationService(self.thresholds)
        self.recommendations = RecommendationService(self.thresholds)

    @staticmethod
    def weekly_frequency(dates: Iterable[datetime.date]) -> float:
        """Return distinct training days per week over the span of ``dates``."""
        days = sorted(set(dates))
        if not days:
            return 0.0
        return len(days) / MathTools.weeks_between((days[-1] - days[0]).days)

    def period_summary(self, metrics: list[PerformanceMetric]) -> PeriodSummary:
        if not metrics:
            return PeriodSummary()
        return PeriodSummary(
            one_rm=MathTools.mean(m.one_rm for m in metrics),
            volume=MathTools.mean(m.volume for m in metrics),
            frequency=self.weekly_frequency(m.date for m in metrics),
        )

    def compare(self, metrics: Iterable[PerformanceMetric]) -> ComparisonMetrics:
        """Compare the recent half of an exercise's samples with the older half."""
        series = MetricNormalizer.chronological(metrics)
        midpoint = len(series) - len(series) // 2
        previous = self.period_summary(series[:midpoint])
        current = self.period_summary(series[midpoint:])
        changes = PeriodSummary(
            one_rm=current.one_rm - previous.one_rm,
            volume=current.volume - previous.volume,
            frequency=current.frequency - previous.frequency,
        )
        percent = PeriodSummary(
            one_rm=MathTools.percent_change(current.one_rm, previous.one_rm),
            volume=MathTools.percent_change(current.volume, previous.volume),
            frequency=MathTools.percent_change(current.frequency, previous.frequency),
        )
        return ComparisonMetrics(
            exercise=series[0].exercise if series else "",
            current=current,
            previous=previous,
            changes=changes,
            percent_changes=percent,
        )

    @staticmethod
    def overall_score(trends: list[TrendAnalysis]) -> float:
        """Rescale the confidence-weighted mean direction onto 0-100."""
        if not trends:
            return 0.0
        total = sum(t.confidence for t in trends)
        if total == 0:
            return 50.0
        weighted = sum(t.confidence * DIRECTION_SCORE[t.direction] for t in trends)
        score = 50.0 * (1 + weighted / total)
        return round(MathTools.clamp(score, 0.0, 100.0), 1)

    @staticmethod
    def project(trend: TrendAnalysis) -> PerformanceProjection:
        gains = trend.projected_gains
        six_months = max(0.0, gains.three_months + trend.slope * 90)
        values = (gains.one_week, gains.one_month, gains.three_months, six_months)
        points = [
            ProjectionPoint(value=round(v, 2), confidence=round(trend.confidence * k, 3))
            for v, k in zip(values, PROJECTION_DECAY)
        ]
        return PerformanceProjection(trend.exercise, "one_rm", *points)

    def analyze_progress(
        self,
        metrics: Iterable[PerformanceMetric],
        window_days: int | None = None,
        as_of: datetime.date | None = None,
        today: datetime.date | None = None,
    ) -> ProgressAnalysis:
        """Return trends, comparisons, achievements, advice and projections.

        Trends and comparisons only look at the analysis window ending at
        ``as_of`` (the latest sample by default). Achievements and plateau
        verdicts use the full history.
        """
        history = MetricNormalizer.chronological(metrics)
        if not history:
            return ProgressAnalysis(0.0, [], [], [], [], [])
        anchor = as_of or history[-1].date
        recent = self.trends.window(history, window_days, anchor)

        trends: list[TrendAnalysis] = []
        comparisons: list[ComparisonMetrics] = []
        recent_groups = MetricNormalizer.group_by_exercise(recent)
        for exercise in sorted(recent_groups):
            series = recent_groups[exercise]
            if len(series) < self.thresholds.min_trend_samples:
                logger.debug("Skipping %s with %d samples", exercise, len(series))
                continue
            trends.append(self.trends.analyze(series, window_days, anchor))
            comparisons.append(self.compare(series))

        plateaus: list[PlateauAnalysis] = [
            self.plateaus.analyze(exercise, series, today)
            for exercise, series in sorted(
                MetricNormalizer.group_by_exercise(history).items()
            )
        ]
        recommendations = self.recommendations.generate(
            trends,
            comparisons,
            plateaus,
            self.weekly_frequency(m.date for m in recent),
        )
        analysis = ProgressAnalysis(
            overall_score=self.overall_score(trends),
            trends=trends,
            comparisons=comparisons,
            achievements=self.gamification.detect_achievements(history),
            recommendations=recommendations,
            projections=[self.project(t) for t in trends],
        )
        logger.info(
            "Analyzed %d exercises, score %.1f", len(trends), analysis.overall_score
        )
        return analysis
