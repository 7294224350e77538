from __future__ import annotations

import datetime
import logging
from typing import Callable, Iterable, Optional

from config import get_thresholds
from models import (
    PerformanceMetric,
    PlateauAnalysis,
    PlateauRecommendation,
    PlateauTrend,
    PlateauType,
    RegressionFit,
    RPEPattern,
    SessionSummary,
    Severity,
)
from settings_schema import ThresholdSettings
from .math_tools import MathTools
from .metric_normalizer import MetricNormalizer
from .trend_estimator import TrendEstimator

logger = logging.getLogger(__name__)


def _rec(
    kind: str,
    description: str,
    implementation: str,
    weeks: int,
    metrics: tuple[str, ...],
    effectiveness: float,
) -> PlateauRecommendation:
    return PlateauRecommendation(kind, description, implementation, weeks, metrics, effectiveness)


class PlateauDetector:
    """Diagnose stalled progress for one exercise.

    Sessions are tested in a fixed order and the first matching pattern
    wins, so a verdict never carries more than one type:

    1. ``weight_stall``: the top working weight of the lookback window
       never rose above the window's first session while the lifter kept
       loading within ``stall_tolerance`` of it. A window shorter than the
       lookback only stalls while RPE is not rising and volume not falling.
    2. ``rpe_inflation``: session RPE trends upward while neither the top
       weight nor the volume does.
    3. ``volume_decline``: session volume trends downward without a rising
       top weight to compensate for it.

    The duration of a plateau is counted over the whole history, so it may
    exceed the lookback window. RPE and volume runs start where the value
    first moved, not at the start of a flat lead-in.
    """

    CATALOG: dict[str, PlateauRecommendation] = {
        "extended_deload": _rec(
            "deload",
            "Extended deload phase with technique analysis",
            "Two weeks: week one at 70%, week two at 80% of the stalled weight, "
            "film the top sets for form review",
            2,
            (
                "Session RPE at 80% load is at least 1.5 points lower than before",
                "Previous top weight moved for the same reps within 4 weeks",
            ),
            0.9,
        ),
        "deload": _rec(
            "deload",
            "Deload to 85% of the current working weight, then rebuild",
            "Reduce weight by 15% while keeping reps and sets, add 2.5 kg per "
            "session back up to the stalled weight",
            2,
            (
                "Top set weight increases by at least 2.5 kg within 3 weeks",
                "RPE at the previous top weight drops by at least 1 point",
            ),
            0.8,
        ),
        "recovery_deload": _rec(
            "deload",
            "Full deload week to restore neuromuscular efficiency",
            "Reduce weight, sets and reps by 20-30% for one week",
            1,
            (
                "Average session RPE drops below 8",
                "Working weight is restored within 2 weeks of the deload",
            ),
            0.8,
        ),
        "micro_loading": _rec(
            "micro_loading",
            "Progress in smaller increments",
            "Add 1-1.25 kg per session instead of full plate jumps",
            3,
            (
                "Top set weight increases by at least 2.5 kg within 3 weeks",
                "Reps per set stay within 1 of the current target",
            ),
            0.75,
        ),
        "volume_adjustment": _rec(
            "volume_adjustment",
            "Temporarily increase volume at a lower intensity",
            "Add 1-2 sets at 90% of the current weight or add 2-3 reps per set",
            3,
            (
                "Weekly volume rises by at least 10%",
                "Top set weight increases by at least 2.5 kg after the block",
            ),
            0.7,
        ),
        "frequency_change": _rec(
            "frequency_change",
            "Spread the same work over more sessions",
            "Split the current weekly volume across one additional session",
            4,
            (
                "Weekly volume is maintained or increased by at least 5%",
                "Per-session RPE stays at or below 8",
            ),
            0.7,
        ),
        "technique_focus": _rec(
            "technique_focus",
            "Refine technique at reduced load",
            "Drop weight 10-15% and use paused reps with a controlled tempo",
            2,
            (
                "RPE varies by no more than 1 point between sets",
                "Previous working weight feels at least 1 RPE point easier",
            ),
            0.65,
        ),
        "volume_rebuild": _rec(
            "volume_adjustment",
            "Rebuild lost volume gradually",
            "Add one set per week until previous session volume is restored",
            3,
            (
                "Session volume is back to its previous peak within 3 weeks",
                "Average session RPE stays at or below 8",
            ),
            0.65,
        ),
        "exercise_variation": _rec(
            "exercise_variation",
            "Introduce a close variation of the lift",
            "Replace the lift with a similar movement pattern for 4-6 weeks",
            6,
            (
                "Estimated 1RM on the variation rises by at least 5%",
                "Main lift top weight exceeds the stalled level on return",
            ),
            0.6,
        ),
    }

    RULES: dict[tuple[str, str], tuple[str, ...]] = {
        ("weight_stall", "mild"): ("micro_loading", "volume_adjustment", "technique_focus"),
        ("weight_stall", "moderate"): ("deload", "volume_adjustment", "technique_focus"),
        ("weight_stall", "severe"): ("extended_deload", "exercise_variation", "volume_adjustment"),
        ("rpe_inflation", "mild"): ("technique_focus", "recovery_deload"),
        ("rpe_inflation", "moderate"): ("recovery_deload", "technique_focus"),
        ("rpe_inflation", "severe"): ("extended_deload", "recovery_deload", "exercise_variation"),
        ("volume_decline", "mild"): ("volume_rebuild", "frequency_change"),
        ("volume_decline", "moderate"): ("frequency_change", "volume_rebuild", "recovery_deload"),
        ("volume_decline", "severe"): ("recovery_deload", "frequency_change", "exercise_variation"),
    }

    def __init__(self, thresholds: ThresholdSettings | None = None) -> None:
        self.thresholds = thresholds or get_thresholds()
        self.trends = TrendEstimator(self.thresholds)

    def severity(self, duration: int) -> Severity:
        if duration >= self.thresholds.severe_severity_sessions:
            return "severe"
        if duration >= self.thresholds.moderate_severity_sessions:
            return "moderate"
        return "mild"

    def review_date(
        self, severity: Severity, today: datetime.date | None = None
    ) -> datetime.date:
        buffer = {
            "mild": self.thresholds.review_days_mild,
            "moderate": self.thresholds.review_days_moderate,
            "severe": self.thresholds.review_days_severe,
        }[severity]
        return (today or datetime.date.today()) + datetime.timedelta(days=buffer)

    def recommendations(
        self, plateau_type: PlateauType, severity: Severity
    ) -> list[PlateauRecommendation]:
        """Return the remediation options for a verdict, most effective first."""
        keys = self.RULES[(plateau_type, severity)]
        recs = [self.CATALOG[k] for k in keys]
        return sorted(recs, key=lambda r: r.effectiveness, reverse=True)[:3]

    @staticmethod
    def _trailing_trend(
        sessions: list[SessionSummary],
        key: Callable[[SessionSummary], float],
        rising: bool,
    ) -> int:
        """Count the latest sessions that keep moving ``key`` one way.

        Flat stretches inside the run count, but a flat lead-in before the
        first real change does not: the run starts at the session just
        before ``key`` first moved.
        """
        values = [key(s) if rising else -key(s) for s in sessions]
        if not values:
            return 0
        start = len(values) - 1
        while start > 0 and values[start] >= values[start - 1]:
            start -= 1
        while start < len(values) - 1 and values[start + 1] == values[start]:
            start += 1
        return len(values) - start

    def _relative_fit(
        self, days: list[int], values: list[float], epsilon: float
    ) -> RegressionFit:
        mean = MathTools.mean(values)
        if mean > 0:
            values = [v / mean for v in values]
        return self.trends.fit(days, values, epsilon)

    def _weight_stall(
        self,
        sessions: list[SessionSummary],
        window: list[SessionSummary],
        weight_fit: RegressionFit,
        rpe_fit: RegressionFit,
        volume_fit: RegressionFit,
    ) -> Optional[tuple[PlateauType, int, float]]:
        # a short history only stalls while effort and volume hold steady
        if len(window) < self.thresholds.plateau_lookback_sessions and (
            rpe_fit.direction == "improving" or volume_fit.direction == "declining"
        ):
            return None
        level = window[0].top_weight
        floor = level * (1 - self.thresholds.stall_tolerance)
        if any(s.top_weight > level or s.top_weight < floor for s in window):
            return None
        duration = 0
        for s in reversed(sessions):
            if not floor <= s.top_weight <= level:
                break
            duration += 1
        flatness = 1.0 - max(0.0, weight_fit.r_squared)
        confidence = self.trends.sample_factor(len(window)) * flatness
        return "weight_stall", duration, confidence

    def _rpe_inflation(
        self,
        sessions: list[SessionSummary],
        rpe_fit: RegressionFit,
        weight_fit: RegressionFit,
        volume_fit: RegressionFit,
    ) -> Optional[tuple[PlateauType, int, float]]:
        if rpe_fit.direction != "improving":
            return None
        if weight_fit.direction == "improving" or volume_fit.direction == "improving":
            return None
        duration = self._trailing_trend(sessions, lambda s: s.average_rpe, rising=True)
        if duration < self.thresholds.plateau_min_sessions:
            return None
        return "rpe_inflation", duration, rpe_fit.confidence

    def _volume_decline(
        self,
        sessions: list[SessionSummary],
        volume_fit: RegressionFit,
        weight_fit: RegressionFit,
    ) -> Optional[tuple[PlateauType, int, float]]:
        if volume_fit.direction != "declining" or weight_fit.direction == "improving":
            return None
        duration = self._trailing_trend(sessions, lambda s: s.volume, rising=False)
        if duration < self.thresholds.plateau_min_sessions:
            return None
        return "volume_decline", duration, volume_fit.confidence

    def analyze(
        self,
        exercise: str,
        metrics: Iterable[PerformanceMetric],
        today: datetime.date | None = None,
    ) -> PlateauAnalysis:
        """Return the plateau verdict for ``exercise``.

        ``metrics`` may arrive in any order (most recent first is typical);
        samples of other exercises are ignored.
        """
        th = self.thresholds
        sessions = MetricNormalizer.session_summaries(
            m for m in metrics if m.exercise == exercise
        )
        if len(sessions) < th.plateau_min_sessions:
            return PlateauAnalysis(exercise=exercise, is_detected=False)

        window = sessions[-th.plateau_lookback_sessions:]
        days = self.trends.elapsed_days(s.date for s in window)
        weight_fit = self.trends.fit(days, [s.top_weight for s in window])
        volume_fit = self._relative_fit(
            days, [s.volume for s in window], th.volume_slope_epsilon
        )
        rpe_fit = self.trends.fit(
            days, [s.average_rpe for s in window], th.rpe_slope_epsilon
        )

        verdict = (
            self._weight_stall(sessions, window, weight_fit, rpe_fit, volume_fit)
            or self._rpe_inflation(sessions, rpe_fit, weight_fit, volume_fit)
            or self._volume_decline(sessions, volume_fit, weight_fit)
        )
        if verdict is None:
            logger.debug("No plateau for %s over %d sessions", exercise, len(window))
            return PlateauAnalysis(exercise=exercise, is_detected=False)

        plateau_type, duration, confidence = verdict
        severity = self.severity(duration)
        strength_fit = self.trends.fit(days, [s.best_one_rm for s in window])
        logger.debug(
            "%s plateau for %s: %s over %d sessions",
            plateau_type,
            exercise,
            severity,
            duration,
        )
        return PlateauAnalysis(
            exercise=exercise,
            is_detected=True,
            type=plateau_type,
            severity=severity,
            duration=duration,
            confidence=MathTools.clamp(confidence, 0.0, 1.0),
            trend=PlateauTrend(direction=strength_fit.direction, data_points=len(window)),
            recommendations=self.recommendations(plateau_type, severity),
            next_review_date=self.review_date(severity, today),
        )

    def analyze_rpe_pattern(
        self,
        exercise: str,
        metrics: Iterable[PerformanceMetric],
        target_rpe: float = 8.0,
    ) -> RPEPattern:
        """Summarise how effort ratings behave over the last ten sessions."""
        sessions = MetricNormalizer.session_summaries(
            m for m in metrics if m.exercise == exercise
        )[-10:]
        rpes = [s.average_rpe for s in sessions]
        average = round(MathTools.mean(rpes), 1)
        deviation = MathTools.mean(abs(r - target_rpe) for r in rpes)
        consistency = round(MathTools.clamp(1 - deviation / 10, 0.0, 1.0), 2) if rpes else 0.0
        if len(sessions) < self.thresholds.min_trend_samples:
            return RPEPattern(
                exercise=exercise,
                average_rpe=average,
                trend="stable",
                consistency=consistency,
                sessions=len(sessions),
                overreaching=False,
                underperforming=False,
                optimal_load=False,
                confidence=0.0,
                recommendations=["Track RPE consistently to enable pattern analysis"],
            )

        days = self.trends.elapsed_days(s.date for s in sessions)
        fit = self.trends.fit(days, rpes, self.thresholds.rpe_slope_epsilon)
        trend = {"improving": "increasing", "declining": "decreasing"}.get(
            fit.direction, "stable"
        )
        recent = MathTools.mean(rpes[-3:])
        overreaching = recent > 9 and trend == "increasing"
        underperforming = recent < 7 and trend == "decreasing"
        optimal = 7.5 <= recent <= 8.5 and trend == "stable"

        advice: list[str] = []
        if overreaching:
            advice.append("Reduce training intensity, RPE is consistently above 9")
            advice.append("Schedule a deload week to restore performance capacity")
        if underperforming:
            advice.append("Loads may be too light, consider increasing intensity")
            advice.append("Check RPE calibration to make sure ratings reflect effort")
        if optimal:
            advice.append("Loading is in the productive range, keep this intensity")
            advice.append("Look for chances to add weight while holding RPE steady")
        if trend == "increasing" and average > 8.5 and not overreaching:
            advice.append("RPE is creeping up, watch for signs of overreaching")
        if consistency < 0.7:
            advice.append("RPE ratings vary a lot, focus on consistent effort calibration")

        return RPEPattern(
            exercise=exercise,
            average_rpe=average,
            trend=trend,
            consistency=consistency,
            sessions=len(sessions),
            overreaching=overreaching,
            underperforming=underperforming,
            optimal_load=optimal,
            confidence=fit.confidence * min(1.0, len(sessions) / 5),
            recommendations=advice,
        )
