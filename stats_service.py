from __future__ import annotations

import datetime
import logging
from typing import Dict, Iterable, List, Optional

from algorithms.math_tools import MathTools
from algorithms.metric_normalizer import MetricNormalizer
from algorithms.one_rm_calculators import OneRMCalculators
from config import get_thresholds
from models import (
    ConsistencyStats,
    ExerciseBreakdown,
    PerformanceMetric,
    WorkoutAnalytics,
    WorkoutSession,
)
from settings_schema import ThresholdSettings

logger = logging.getLogger(__name__)


class StatisticsService:
    """Compute descriptive workout statistics over a bounded session window."""

    def __init__(self, thresholds: ThresholdSettings | None = None) -> None:
        self.thresholds = thresholds or get_thresholds()
        self.normalizer = MetricNormalizer(self.thresholds)

    @staticmethod
    def _week_start(day: datetime.date) -> datetime.date:
        return day - datetime.timedelta(days=day.weekday())

    def weekly_streak(
        self, dates: Iterable[datetime.date], today: Optional[datetime.date] = None
    ) -> dict[str, int]:
        """Return current and best runs of consecutive weeks with a session."""
        weeks = sorted({self._week_start(d) for d in dates})
        if not weeks:
            return {"current": 0, "best": 0}
        best = cur = 1
        for prev, nxt in zip(weeks, weeks[1:]):
            if (nxt - prev).days == 7:
                cur += 1
            else:
                best = max(best, cur)
                cur = 1
        best = max(best, cur)
        this_week = self._week_start(today or datetime.date.today())
        if (this_week - weeks[-1]).days > 7:
            return {"current": 0, "best": best}
        current = 1
        for prev, nxt in zip(reversed(weeks[:-1]), reversed(weeks[1:])):
            if (nxt - prev).days == 7:
                current += 1
            else:
                break
        return {"current": current, "best": best}

    def select_sessions(
        self,
        sessions: Iterable[WorkoutSession],
        max_sessions: Optional[int] = None,
        window_days: Optional[int] = None,
        today: Optional[datetime.date] = None,
    ) -> List[WorkoutSession]:
        """Return the most recent sessions inside the window, oldest first."""
        ordered = sorted(sessions, key=lambda s: MetricNormalizer.parse_date(s.date))
        if window_days is not None:
            cutoff = (today or datetime.date.today()) - datetime.timedelta(days=window_days)
            ordered = [s for s in ordered if MetricNormalizer.parse_date(s.date) >= cutoff]
        limit = self.thresholds.stats_max_sessions if max_sessions is None else max_sessions
        return ordered[-limit:] if limit > 0 else []

    def exercise_breakdown(
        self, per_session: List[List[PerformanceMetric]]
    ) -> List[ExerciseBreakdown]:
        stats: Dict[str, Dict[str, float]] = {}
        for metrics in per_session:
            for name in {m.exercise for m in metrics}:
                stats.setdefault(
                    name,
                    {"sessions": 0, "sets": 0, "volume": 0.0, "weight": 0.0, "count": 0},
                )["sessions"] += 1
            for m in metrics:
                item = stats[m.exercise]
                item["sets"] += m.sets
                item["volume"] += m.volume
                item["weight"] += m.weight
                item["count"] += 1
                last = item.get("last")
                if last is None or m.date > last:
                    item["last"] = m.date
        result = []
        for name, data in stats.items():
            result.append(
                ExerciseBreakdown(
                    exercise=name,
                    frequency=int(data["sessions"]),
                    total_sets=int(data["sets"]),
                    total_volume=round(data["volume"], 2),
                    average_weight=round(data["weight"] / data["count"], 2),
                    last_performed=data["last"],
                )
            )
        return sorted(result, key=lambda x: x.exercise)

    def workout_analytics(
        self,
        sessions: Iterable[WorkoutSession],
        max_sessions: Optional[int] = None,
        window_days: Optional[int] = None,
        today: Optional[datetime.date] = None,
    ) -> WorkoutAnalytics:
        """Summarise volume, effort, consistency and per-exercise usage."""
        selected = self.select_sessions(sessions, max_sessions, window_days, today)
        per_session = [self.normalizer.normalize_session(s) for s in selected]
        metrics = [m for items in per_session for m in items]
        dates = [MetricNormalizer.parse_date(s.date) for s in selected]

        durations = [s.duration_minutes for s in selected if s.duration_minutes]
        weekly_average = 0.0
        if dates:
            span = (max(dates) - min(dates)).days
            weekly_average = len(selected) / MathTools.weeks_between(span)
        streaks = self.weekly_streak(dates, today)
        logger.debug("Summarised %d sessions, %d sets", len(selected), len(metrics))
        return WorkoutAnalytics(
            total_workouts=len(selected),
            total_volume=round(sum(m.volume for m in metrics), 2),
            average_rpe=round(MathTools.mean(m.rpe for m in metrics), 2),
            average_duration=round(MathTools.mean(durations), 1),
            average_intensity=round(MathTools.mean(m.intensity for m in metrics), 1),
            consistency=ConsistencyStats(
                weekly_average=round(weekly_average, 2),
                streak=streaks["current"],
                longest_streak=streaks["best"],
            ),
            exercise_breakdown=self.exercise_breakdown(per_session),
        )

    def personal_records(
        self, metrics: Iterable[PerformanceMetric]
    ) -> List[Dict[str, float]]:
        """Return the best set for each exercise based on estimated 1RM.

        Each record carries the RPE-adjusted composite estimate and the
        confidence of the set as a 1RM predictor.
        """
        records: Dict[str, PerformanceMetric] = {}
        for m in metrics:
            current = records.get(m.exercise)
            if current is None or m.one_rm > current.one_rm:
                records[m.exercise] = m
        result = []
        for name, m in records.items():
            composite = OneRMCalculators.composite(m.weight, m.reps, m.rpe)
            quality = OneRMCalculators.validate_data(m.weight, m.reps, m.rpe)
            result.append(
                {
                    "exercise": name,
                    "date": m.date.isoformat(),
                    "reps": m.reps,
                    "weight": m.weight,
                    "rpe": m.rpe,
                    "est_1rm": round(m.one_rm, 2),
                    "composite_1rm": composite["composite"],
                    "estimate_confidence": quality["confidence"],
                }
            )
        return sorted(result, key=lambda x: x["exercise"])
