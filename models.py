"""Value objects exchanged between the analytics components and their callers."""

from __future__ import annotations

import dataclasses
import datetime
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

Direction = Literal["improving", "stable", "declining"]
PlateauType = Literal["weight_stall", "rpe_inflation", "volume_decline"]
Severity = Literal["mild", "moderate", "severe"]
Priority = Literal["low", "medium", "high"]
Rarity = Literal["common", "rare", "legendary"]
AchievementType = Literal["personal_record", "volume", "consistency", "milestone"]
RecommendationCategory = Literal["strength", "volume", "frequency", "recovery"]


@dataclass(frozen=True)
class RawSet:
    exercise: str
    weight: float
    reps: int
    rpe: Optional[float] = None
    sets: int = 1


@dataclass(frozen=True)
class WorkoutSession:
    id: int | str
    date: datetime.date
    sets: list[RawSet] = field(default_factory=list)
    duration_minutes: Optional[float] = None


@dataclass(frozen=True)
class PerformanceMetric:
    date: datetime.date
    exercise: str
    weight: float
    reps: int
    sets: int
    rpe: float
    volume: float
    one_rm: float
    intensity: float


@dataclass(frozen=True)
class SessionSummary:
    """Aggregate of all sets of one exercise performed on one date."""

    date: datetime.date
    exercise: str
    top_weight: float
    volume: float
    average_rpe: float
    best_one_rm: float
    set_count: int


@dataclass(frozen=True)
class RegressionFit:
    slope: float
    intercept: float
    r_squared: float
    direction: Direction
    confidence: float
    samples: int


@dataclass(frozen=True)
class ProjectedGains:
    one_week: float = 0.0
    one_month: float = 0.0
    three_months: float = 0.0


@dataclass(frozen=True)
class TrendAnalysis:
    exercise: str
    direction: Direction
    slope: float
    confidence: float
    data_points: int
    timeframe: str
    projected_gains: ProjectedGains = field(default_factory=ProjectedGains)


@dataclass(frozen=True)
class PeriodSummary:
    one_rm: float = 0.0
    volume: float = 0.0
    frequency: float = 0.0


@dataclass(frozen=True)
class ComparisonMetrics:
    exercise: str
    current: PeriodSummary
    previous: PeriodSummary
    changes: PeriodSummary
    percent_changes: PeriodSummary


@dataclass(frozen=True)
class ProjectionPoint:
    value: float
    confidence: float


@dataclass(frozen=True)
class PerformanceProjection:
    exercise: str
    metric: str
    one_week: ProjectionPoint
    one_month: ProjectionPoint
    three_months: ProjectionPoint
    six_months: ProjectionPoint
    methodology: str = "Linear regression of estimated 1RM over elapsed days"


@dataclass(frozen=True)
class Achievement:
    id: str
    type: AchievementType
    title: str
    description: str
    date: datetime.date
    value: float
    unit: str
    rarity: Rarity
    exercise: Optional[str] = None


@dataclass(frozen=True)
class ProgressRecommendation:
    id: str
    category: RecommendationCategory
    priority: Priority
    title: str
    description: str
    action: str
    expected_outcome: str
    timeframe: str
    confidence: float


@dataclass(frozen=True)
class ProgressAnalysis:
    overall_score: float
    trends: list[TrendAnalysis]
    comparisons: list[ComparisonMetrics]
    achievements: list[Achievement]
    recommendations: list[ProgressRecommendation]
    projections: list[PerformanceProjection]


@dataclass(frozen=True)
class PlateauRecommendation:
    type: str
    description: str
    implementation: str
    expected_duration_weeks: int
    success_metrics: tuple[str, ...]
    effectiveness: float


@dataclass(frozen=True)
class PlateauTrend:
    direction: Direction
    data_points: int


@dataclass(frozen=True)
class PlateauAnalysis:
    """Plateau verdict for one exercise.

    Only ``exercise`` and ``is_detected`` are meaningful when nothing was
    detected; every other field is ``None`` (or empty) in that case.
    ``dismissed`` belongs to the caller and is never set by the detector.
    """

    exercise: str
    is_detected: bool
    type: Optional[PlateauType] = None
    severity: Optional[Severity] = None
    duration: Optional[int] = None
    confidence: Optional[float] = None
    trend: Optional[PlateauTrend] = None
    recommendations: list[PlateauRecommendation] = field(default_factory=list)
    next_review_date: Optional[datetime.date] = None
    dismissed: bool = False


@dataclass(frozen=True)
class RPEPattern:
    exercise: str
    average_rpe: float
    trend: Literal["increasing", "decreasing", "stable"]
    consistency: float
    sessions: int
    overreaching: bool
    underperforming: bool
    optimal_load: bool
    confidence: float
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConsistencyStats:
    weekly_average: float = 0.0
    streak: int = 0
    longest_streak: int = 0


@dataclass(frozen=True)
class ExerciseBreakdown:
    exercise: str
    frequency: int
    total_sets: int
    total_volume: float
    average_weight: float
    last_performed: datetime.date


@dataclass(frozen=True)
class WorkoutAnalytics:
    total_workouts: int
    total_volume: float
    average_rpe: float
    average_duration: float
    average_intensity: float
    consistency: ConsistencyStats
    exercise_breakdown: list[ExerciseBreakdown]


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def as_dict(obj: Any) -> Any:
    """Return ``obj`` (a model or list of models) as JSON-ready data."""
    if isinstance(obj, (list, tuple)):
        return [as_dict(o) for o in obj]
    return _plain(dataclasses.asdict(obj))
