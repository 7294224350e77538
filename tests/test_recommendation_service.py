import datetime
import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms.plateau_detector import PlateauDetector
from models import (
    ComparisonMetrics,
    PeriodSummary,
    PlateauAnalysis,
    PlateauTrend,
    TrendAnalysis,
)
from recommendation_service import RecommendationService
from settings_schema import ThresholdSettings


def plateau(exercise, plateau_type="weight_stall", severity="moderate", **kwargs):
    detector = PlateauDetector(ThresholdSettings())
    return PlateauAnalysis(
        exercise=exercise,
        is_detected=True,
        type=plateau_type,
        severity=severity,
        duration=6,
        confidence=0.4,
        trend=PlateauTrend("stable", 6),
        recommendations=detector.recommendations(plateau_type, severity),
        next_review_date=datetime.date(2024, 3, 6),
        **kwargs,
    )


def trend(exercise, direction, confidence=0.5, points=5):
    return TrendAnalysis(exercise, direction, 0.0, confidence, points, "30 days")


def comparison(exercise, frequency_change):
    return ComparisonMetrics(
        exercise,
        PeriodSummary(),
        PeriodSummary(),
        PeriodSummary(),
        PeriodSummary(frequency=frequency_change),
    )


class RecommendationServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.service = RecommendationService(ThresholdSettings())

    def test_from_plateau(self) -> None:
        rec = self.service.from_plateau(plateau("Squat", "volume_decline", "severe"))
        self.assertEqual(rec.id, "plateau-Squat")
        self.assertEqual(rec.category, "volume")
        self.assertEqual(rec.priority, "high")
        self.assertAlmostEqual(rec.confidence, 0.4)
        self.assertEqual(rec.timeframe, "1 week")

    def test_plateau_categories(self) -> None:
        self.assertEqual(self.service.from_plateau(plateau("A")).category, "strength")
        rec = self.service.from_plateau(plateau("A", "rpe_inflation", "mild"))
        self.assertEqual(rec.category, "recovery")
        self.assertEqual(rec.priority, "low")

    def test_skipped_plateaus(self) -> None:
        self.assertIsNone(self.service.from_plateau(PlateauAnalysis("Squat", False)))
        self.assertIsNone(self.service.from_plateau(plateau("Squat", dismissed=True)))

    def test_from_trends(self) -> None:
        recs = self.service.from_trends(
            [
                trend("Bench", "declining", confidence=0.8),
                trend("Row", "declining", confidence=0.6),
                trend("Squat", "stable", points=9),
                trend("Press", "stable", points=8),
            ]
        )
        self.assertEqual([r.id for r in recs], ["declining-Bench", "plateau-Squat"])
        self.assertEqual(recs[0].priority, "high")
        self.assertEqual(recs[1].priority, "medium")

    def test_from_comparisons(self) -> None:
        recs = self.service.from_comparisons(
            [comparison("Bench", -25.0), comparison("Squat", -20.0)]
        )
        self.assertEqual([r.id for r in recs], ["frequency-Bench"])
        self.assertEqual(recs[0].category, "frequency")

    def test_from_frequency(self) -> None:
        self.assertEqual(self.service.from_frequency(2.0), [])
        recs = self.service.from_frequency(1.5)
        self.assertEqual(recs[0].id, "frequency-overall")
        self.assertEqual(recs[0].priority, "high")

    def test_generate_ranks_and_deduplicates(self) -> None:
        recs = self.service.generate(
            trends=[trend("Squat", "stable", points=12), trend("Bench", "declining", 0.9)],
            comparisons=[comparison("Row", -50.0)],
            plateaus=[plateau("Squat", severity="mild"), PlateauAnalysis("Row", False)],
            weekly_frequency=1.0,
        )
        ids = [r.id for r in recs]
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(ids, ["declining-Bench", "frequency-overall", "frequency-Row", "plateau-Squat"])
        squat = recs[-1]
        self.assertEqual(squat.priority, "low")
        self.assertAlmostEqual(squat.confidence, 0.4)

    def test_generate_is_capped(self) -> None:
        plateaus = [plateau(f"Lift {i}") for i in range(8)]
        recs = self.service.generate([], [], plateaus, weekly_frequency=3.0)
        self.assertEqual(len(recs), 5)


if __name__ == "__main__":
    unittest.main()
