from __future__ import annotations

import datetime
import logging
from typing import Iterable, Mapping, Optional

from config import get_thresholds
from models import PerformanceMetric, RawSet, SessionSummary, WorkoutSession
from settings_schema import ThresholdSettings
from .math_tools import MathTools

logger = logging.getLogger(__name__)


class MetricNormalizer:
    """Turn logged sets into uniform :class:`PerformanceMetric` samples.

    Sets without a positive weight and rep count (bodyweight or cardio
    entries) cannot be tracked for strength and are dropped without error.
    """

    def __init__(self, thresholds: ThresholdSettings | None = None) -> None:
        self.thresholds = thresholds or get_thresholds()

    @staticmethod
    def parse_date(value: datetime.date | datetime.datetime | str) -> datetime.date:
        """Return ``value`` as a date; ISO timestamps keep only the day."""
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        return datetime.date.fromisoformat(str(value).strip()[:10])

    def normalize_set(
        self, raw: RawSet, date: datetime.date | str
    ) -> Optional[PerformanceMetric]:
        try:
            weight = float(raw.weight)
            reps = int(raw.reps)
            sets = int(raw.sets) if raw.sets is not None else 1
        except (TypeError, ValueError):
            logger.debug("Dropping unparseable set %r", raw)
            return None
        if not weight > 0 or reps <= 0 or sets <= 0:
            logger.debug("Dropping non-strength set %r", raw)
            return None
        rpe = self.thresholds.default_rpe if raw.rpe is None else float(raw.rpe)
        rpe = MathTools.clamp(rpe, 1.0, 10.0)
        one_rm = MathTools.epley_1rm(weight, reps)
        return PerformanceMetric(
            date=self.parse_date(date),
            exercise=raw.exercise,
            weight=weight,
            reps=reps,
            sets=sets,
            rpe=rpe,
            volume=weight * reps,
            one_rm=one_rm,
            intensity=weight / one_rm * 100,
        )

    def normalize_session(self, session: WorkoutSession) -> list[PerformanceMetric]:
        result: list[PerformanceMetric] = []
        for raw in session.sets:
            metric = self.normalize_set(raw, session.date)
            if metric is not None:
                result.append(metric)
        return result

    def normalize_sessions(
        self, sessions: Iterable[WorkoutSession]
    ) -> list[PerformanceMetric]:
        """Return metrics of all ``sessions`` in chronological order."""
        metrics: list[PerformanceMetric] = []
        for session in sessions:
            metrics.extend(self.normalize_session(session))
        return self.chronological(metrics)

    def normalize_rows(self, rows: Iterable[Mapping]) -> list[PerformanceMetric]:
        """Normalize raw data-store rows with date/exercise/weight/reps keys."""
        metrics: list[PerformanceMetric] = []
        for row in rows:
            try:
                date = self.parse_date(row["date"])
                raw = RawSet(
                    exercise=str(row["exercise"]),
                    weight=row["weight"],
                    reps=row["reps"],
                    rpe=_optional_float(row.get("rpe")),
                    sets=_optional_sets(row.get("sets")),
                )
            except (KeyError, TypeError, ValueError):
                logger.debug("Dropping malformed row %r", row)
                continue
            metric = self.normalize_set(raw, date)
            if metric is not None:
                metrics.append(metric)
        return self.chronological(metrics)

    @staticmethod
    def chronological(metrics: Iterable[PerformanceMetric]) -> list[PerformanceMetric]:
        """Sort by date; samples from the same day keep their input order."""
        return sorted(metrics, key=lambda m: m.date)

    @staticmethod
    def group_by_exercise(
        metrics: Iterable[PerformanceMetric],
    ) -> dict[str, list[PerformanceMetric]]:
        groups: dict[str, list[PerformanceMetric]] = {}
        for m in metrics:
            groups.setdefault(m.exercise, []).append(m)
        return groups

    @staticmethod
    def session_summaries(metrics: Iterable[PerformanceMetric]) -> list[SessionSummary]:
        """Collapse one exercise's metrics into one summary per training day."""
        by_date: dict[datetime.date, list[PerformanceMetric]] = {}
        for m in metrics:
            by_date.setdefault(m.date, []).append(m)
        result: list[SessionSummary] = []
        for date in sorted(by_date):
            items = by_date[date]
            result.append(
                SessionSummary(
                    date=date,
                    exercise=items[0].exercise,
                    top_weight=max(m.weight for m in items),
                    volume=sum(m.volume for m in items),
                    average_rpe=MathTools.mean(m.rpe for m in items),
                    best_one_rm=max(m.one_rm for m in items),
                    set_count=sum(m.sets for m in items),
                )
            )
        return result


def _optional_float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    value = float(value)
    # pandas hands over missing cells as NaN
    if value != value:
        return None
    return value


def _optional_sets(value) -> int:
    """Return the set count, 1 when missing; 0 is kept so the set is dropped."""
    count = _optional_float(value)
    return 1 if count is None else int(count)
