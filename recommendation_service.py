from __future__ import annotations

import logging
from typing import Iterable

from config import get_thresholds
from models import (
    ComparisonMetrics,
    PlateauAnalysis,
    Priority,
    ProgressRecommendation,
    RecommendationCategory,
    TrendAnalysis,
)
from settings_schema import ThresholdSettings

logger = logging.getLogger(__name__)


class RecommendationService:
    """Merge plateau verdicts, trends and frequency into ranked advice."""

    PRIORITY_RANK: dict[Priority, int] = {"high": 0, "medium": 1, "low": 2}
    SEVERITY_PRIORITY: dict[str, Priority] = {
        "severe": "high",
        "moderate": "medium",
        "mild": "low",
    }
    PLATEAU_CATEGORY: dict[str, RecommendationCategory] = {
        "weight_stall": "strength",
        "volume_decline": "volume",
        "rpe_inflation": "recovery",
    }
    PLATEAU_LABEL = {
        "weight_stall": "Top weight has not increased",
        "volume_decline": "Training volume has been dropping",
        "rpe_inflation": "Effort is rising without load increases",
    }

    def __init__(self, thresholds: ThresholdSettings | None = None) -> None:
        self.thresholds = thresholds or get_thresholds()

    def from_plateau(self, plateau: PlateauAnalysis) -> ProgressRecommendation | None:
        if not plateau.is_detected or plateau.dismissed or not plateau.recommendations:
            return None
        best = plateau.recommendations[0]
        return ProgressRecommendation(
            id=f"plateau-{plateau.exercise}",
            category=self.PLATEAU_CATEGORY[plateau.type],
            priority=self.SEVERITY_PRIORITY[plateau.severity],
            title=f"Break {plateau.exercise} plateau",
            description=(
                f"{self.PLATEAU_LABEL[plateau.type]} for {plateau.duration} sessions"
            ),
            action=f"{best.description}: {best.implementation}",
            expected_outcome=best.success_metrics[0],
            timeframe=_weeks(best.expected_duration_weeks),
            confidence=plateau.confidence or 0.0,
        )

    def from_trends(self, trends: Iterable[TrendAnalysis]) -> list[ProgressRecommendation]:
        result: list[ProgressRecommendation] = []
        for trend in trends:
            if trend.direction == "declining" and trend.confidence > 0.7:
                result.append(
                    ProgressRecommendation(
                        id=f"declining-{trend.exercise}",
                        category="strength",
                        priority="high",
                        title=f"Address declining {trend.exercise} performance",
                        description=(
                            f"Your {trend.exercise} has been declining for {trend.timeframe}"
                        ),
                        action="Consider a deload, a form check or a program variation",
                        expected_outcome="Restore the upward progress trend",
                        timeframe="2-3 weeks",
                        confidence=trend.confidence,
                    )
                )
            elif trend.direction == "stable" and trend.data_points > 8:
                result.append(
                    ProgressRecommendation(
                        id=f"plateau-{trend.exercise}",
                        category="strength",
                        priority="medium",
                        title=f"Break {trend.exercise} plateau",
                        description=f"Progress has stalled over {trend.timeframe}",
                        action="Increase volume, change rep ranges or add accessories",
                        expected_outcome="Resume strength gains",
                        timeframe="3-4 weeks",
                        confidence=0.8,
                    )
                )
        return result

    def from_comparisons(
        self, comparisons: Iterable[ComparisonMetrics]
    ) -> list[ProgressRecommendation]:
        return [
            ProgressRecommendation(
                id=f"frequency-{comp.exercise}",
                category="frequency",
                priority="medium",
                title=f"Increase {comp.exercise} frequency",
                description="Training frequency has decreased significantly",
                action="Add another training session per week",
                expected_outcome="Better skill retention and faster progress",
                timeframe="2 weeks",
                confidence=0.75,
            )
            for comp in comparisons
            if comp.percent_changes.frequency < -20
        ]

    def from_frequency(self, weekly_frequency: float) -> list[ProgressRecommendation]:
        if weekly_frequency >= self.thresholds.min_weekly_frequency:
            return []
        return [
            ProgressRecommendation(
                id="frequency-overall",
                category="frequency",
                priority="high",
                title="Train more often",
                description=(
                    f"You average {weekly_frequency:.1f} sessions per week"
                ),
                action=(
                    f"Schedule at least {self.thresholds.min_weekly_frequency:g} "
                    "sessions per week"
                ),
                expected_outcome="Steadier progress and better recovery rhythm",
                timeframe="4 weeks",
                confidence=0.85,
            )
        ]

    def generate(
        self,
        trends: Iterable[TrendAnalysis],
        comparisons: Iterable[ComparisonMetrics],
        plateaus: Iterable[PlateauAnalysis],
        weekly_frequency: float,
    ) -> list[ProgressRecommendation]:
        """Return deduplicated recommendations, most urgent first.

        Plateau verdicts are merged first, so a detected plateau replaces the
        generic advice for a stable trend of the same exercise.
        """
        found: list[ProgressRecommendation] = []
        for plateau in plateaus:
            rec = self.from_plateau(plateau)
            if rec is not None:
                found.append(rec)
        found += self.from_trends(trends)
        found += self.from_comparisons(comparisons)
        found += self.from_frequency(weekly_frequency)

        unique: dict[str, ProgressRecommendation] = {}
        for rec in found:
            unique.setdefault(rec.id, rec)
        ranked = sorted(
            unique.values(),
            key=lambda r: (self.PRIORITY_RANK[r.priority], -r.confidence),
        )
        logger.debug("Generated %d recommendations", len(ranked))
        return ranked[: self.thresholds.max_recommendations]


def _weeks(count: int) -> str:
    return f"{count} week" if count == 1 else f"{count} weeks"
