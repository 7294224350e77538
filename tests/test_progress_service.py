import datetime
import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms.metric_normalizer import MetricNormalizer
from models import RawSet, TrendAnalysis
from progress_service import ProgressService
from settings_schema import ThresholdSettings

MONDAY = datetime.date(2024, 1, 1)
DAYS = [0, 3, 7, 10, 14, 17]


def history():
    normalizer = MetricNormalizer(ThresholdSettings())
    metrics = []
    for i, day in enumerate(DAYS):
        date = MONDAY + datetime.timedelta(days=day)
        metrics.append(normalizer.normalize_set(RawSet("Bench Press", 60 + 2.5 * i, 5, 8), date))
        metrics.append(normalizer.normalize_set(RawSet("Squat", 100.0, 5, 8), date))
    for day in (0, 7):
        metrics.append(
            normalizer.normalize_set(
                RawSet("Curl", 20.0, 10, 8), MONDAY + datetime.timedelta(days=day)
            )
        )
    return metrics


def trend(direction, confidence):
    return TrendAnalysis("Lift", direction, 0.0, confidence, 5, "30 days")


class ProgressServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.service = ProgressService(ThresholdSettings())

    def test_overall_score(self) -> None:
        self.assertEqual(ProgressService.overall_score([]), 0.0)
        self.assertEqual(ProgressService.overall_score([trend("improving", 0.0)]), 50.0)
        self.assertEqual(ProgressService.overall_score([trend("improving", 1.0)]), 100.0)
        self.assertEqual(ProgressService.overall_score([trend("declining", 0.4)]), 0.0)
        mixed = [trend("improving", 0.5), trend("declining", 0.5), trend("stable", 1.0)]
        self.assertEqual(ProgressService.overall_score(mixed), 50.0)
        self.assertEqual(
            ProgressService.overall_score([trend("improving", 0.6), trend("stable", 0.2)]), 87.5
        )

    def test_analyze_progress(self) -> None:
        analysis = self.service.analyze_progress(history(), today=datetime.date(2024, 1, 20))
        self.assertEqual([t.exercise for t in analysis.trends], ["Bench Press", "Squat"])
        bench, squat = analysis.trends
        self.assertEqual(bench.direction, "improving")
        self.assertEqual(squat.direction, "stable")
        self.assertEqual(squat.confidence, 0.0)
        self.assertEqual(analysis.overall_score, 100.0)
        self.assertEqual([c.exercise for c in analysis.comparisons], ["Bench Press", "Squat"])
        self.assertEqual([p.exercise for p in analysis.projections], ["Bench Press", "Squat"])
        self.assertEqual([r.id for r in analysis.recommendations], ["plateau-Squat"])
        self.assertEqual(analysis.recommendations[0].category, "strength")
        self.assertEqual(analysis.recommendations[0].priority, "medium")
        achievement_ids = [a.id for a in analysis.achievements]
        self.assertEqual(len(achievement_ids), 5)
        self.assertEqual(achievement_ids[0], "pr-Bench Press-2024-01-18")

    def test_analyze_progress_is_deterministic(self) -> None:
        today = datetime.date(2024, 1, 20)
        metrics = history()
        first = self.service.analyze_progress(metrics, today=today)
        again = self.service.analyze_progress(list(reversed(metrics)), today=today)
        self.assertEqual(first, again)

    def test_empty_history(self) -> None:
        analysis = self.service.analyze_progress([])
        self.assertEqual(analysis.overall_score, 0.0)
        self.assertEqual(analysis.trends, [])
        self.assertEqual(analysis.recommendations, [])

    def test_compare_splits_recent_and_older_halves(self) -> None:
        bench = [m for m in history() if m.exercise == "Bench Press"]
        comp = self.service.compare(bench)
        self.assertAlmostEqual(comp.previous.one_rm, 62.5 * (1 + 5 / 30))
        self.assertAlmostEqual(comp.current.one_rm, 70 * (1 + 5 / 30))
        self.assertAlmostEqual(comp.changes.one_rm, 7.5 * (1 + 5 / 30))
        self.assertAlmostEqual(comp.percent_changes.one_rm, 7.5 / 62.5 * 100)
        self.assertEqual(comp.percent_changes.frequency, 0.0)

    def test_low_frequency_recommendation(self) -> None:
        normalizer = MetricNormalizer(ThresholdSettings())
        metrics = [
            normalizer.normalize_set(
                RawSet("Row", 50 + 5 * i, 8, 8), MONDAY + datetime.timedelta(days=14 * i)
            )
            for i in range(4)
        ]
        analysis = self.service.analyze_progress(metrics)
        self.assertIn("frequency-overall", [r.id for r in analysis.recommendations])

    def test_projection_confidence_decays(self) -> None:
        analysis = self.service.analyze_progress(history())
        bench = analysis.projections[0]
        self.assertEqual(bench.metric, "one_rm")
        confidences = [
            bench.one_week.confidence,
            bench.one_month.confidence,
            bench.three_months.confidence,
            bench.six_months.confidence,
        ]
        self.assertEqual(confidences, sorted(confidences, reverse=True))
        self.assertGreater(bench.six_months.value, bench.three_months.value)


if __name__ == "__main__":
    unittest.main()
