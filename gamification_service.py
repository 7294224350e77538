from __future__ import annotations

import datetime
import logging
from typing import Iterable

from algorithms.metric_normalizer import MetricNormalizer
from config import get_thresholds
from models import Achievement, PerformanceMetric, Rarity
from settings_schema import ThresholdSettings

logger = logging.getLogger(__name__)


class GamificationService:
    """Derive achievements from a metric history."""

    # one_rm in kg reaching the rare and legendary tiers
    PR_BENCHMARKS: dict[str, tuple[float, float]] = {
        "bench": (100.0, 140.0),
        "squat": (140.0, 180.0),
        "deadlift": (180.0, 225.0),
    }
    DEFAULT_BENCHMARK = (90.0, 135.0)
    VOLUME_MILESTONES: tuple[tuple[float, Rarity], ...] = (
        (50000.0, "legendary"),
        (25000.0, "rare"),
        (10000.0, "common"),
    )
    WORKOUT_MILESTONES: dict[int, Rarity] = {
        10: "common",
        25: "common",
        50: "rare",
        100: "legendary",
    }

    def __init__(self, thresholds: ThresholdSettings | None = None) -> None:
        self.thresholds = thresholds or get_thresholds()

    @classmethod
    def pr_rarity(cls, exercise: str, one_rm: float) -> Rarity:
        name = exercise.lower()
        rare, legendary = next(
            (b for key, b in cls.PR_BENCHMARKS.items() if key in name),
            cls.DEFAULT_BENCHMARK,
        )
        if one_rm >= legendary:
            return "legendary"
        if one_rm >= rare:
            return "rare"
        return "common"

    def personal_records(self, metrics: Iterable[PerformanceMetric]) -> list[Achievement]:
        """Return one achievement per session that beat every earlier session."""
        result: list[Achievement] = []
        for exercise, items in MetricNormalizer.group_by_exercise(metrics).items():
            sessions = MetricNormalizer.session_summaries(items)
            if not sessions:
                continue
            best = sessions[0].best_one_rm
            for s in sessions[1:]:
                if s.best_one_rm <= best:
                    continue
                best = s.best_one_rm
                result.append(
                    Achievement(
                        id=f"pr-{exercise}-{s.date.isoformat()}",
                        type="personal_record",
                        title=f"New PR: {exercise}",
                        description=f"Estimated 1RM of {best:.1f} kg",
                        date=s.date,
                        value=round(best, 2),
                        unit="kg",
                        rarity=self.pr_rarity(exercise, best),
                        exercise=exercise,
                    )
                )
        return result

    def volume_milestones(self, metrics: Iterable[PerformanceMetric]) -> list[Achievement]:
        result: list[Achievement] = []
        for exercise, items in MetricNormalizer.group_by_exercise(metrics).items():
            total = sum(m.volume for m in items)
            rarity = next((r for limit, r in self.VOLUME_MILESTONES if total >= limit), None)
            if rarity is None:
                continue
            result.append(
                Achievement(
                    id=f"volume-{exercise}",
                    type="volume",
                    title=f"Volume Milestone: {exercise}",
                    description=f"Moved {round(total):,} kg in total",
                    date=max(m.date for m in items),
                    value=round(total, 2),
                    unit="kg",
                    rarity=rarity,
                    exercise=exercise,
                )
            )
        return result

    def weekly_streak(self, dates: Iterable[datetime.date]) -> tuple[int, datetime.date | None]:
        """Return the longest run of consecutive qualifying weeks and its last day.

        A week qualifies when it holds at least
        ``consistency_sessions_per_week`` distinct training days.
        """
        days = sorted(set(dates))
        per_week: dict[datetime.date, list[datetime.date]] = {}
        for d in days:
            monday = d - datetime.timedelta(days=d.weekday())
            per_week.setdefault(monday, []).append(d)
        weeks = sorted(
            w
            for w, ds in per_week.items()
            if len(ds) >= self.thresholds.consistency_sessions_per_week
        )
        best, best_end = 0, None
        run = 0
        for i, week in enumerate(weeks):
            if i and (week - weeks[i - 1]).days == 7:
                run += 1
            else:
                run = 1
            if run > best:
                best, best_end = run, per_week[week][-1]
        return best, best_end

    def consistency(self, metrics: Iterable[PerformanceMetric]) -> list[Achievement]:
        streak, last_day = self.weekly_streak(m.date for m in metrics)
        if streak < self.thresholds.consistency_min_weeks or last_day is None:
            return []
        if streak >= 12:
            rarity: Rarity = "legendary"
        elif streak >= 8:
            rarity = "rare"
        else:
            rarity = "common"
        return [
            Achievement(
                id="consistency-streak",
                type="consistency",
                title="Consistency Champion",
                description=f"{streak} week training streak",
                date=last_day,
                value=float(streak),
                unit="weeks",
                rarity=rarity,
            )
        ]

    def workout_milestones(self, metrics: Iterable[PerformanceMetric]) -> list[Achievement]:
        days = sorted({m.date for m in metrics})
        result: list[Achievement] = []
        for count, rarity in self.WORKOUT_MILESTONES.items():
            if len(days) < count:
                continue
            result.append(
                Achievement(
                    id=f"milestone-{count}-workouts",
                    type="milestone",
                    title=f"{count} Workouts",
                    description=f"Completed {count} training sessions",
                    date=days[count - 1],
                    value=float(count),
                    unit="workouts",
                    rarity=rarity,
                )
            )
        return result

    def detect_achievements(self, metrics: Iterable[PerformanceMetric]) -> list[Achievement]:
        """Return the most recent achievements, newest first."""
        metrics = list(metrics)
        found = (
            self.personal_records(metrics)
            + self.volume_milestones(metrics)
            + self.consistency(metrics)
            + self.workout_milestones(metrics)
        )
        unique: dict[str, Achievement] = {}
        for a in found:
            unique.setdefault(a.id, a)
        ordered = sorted(unique.values(), key=lambda a: a.date, reverse=True)
        logger.debug("Detected %d achievements", len(ordered))
        return ordered[: self.thresholds.max_achievements]
