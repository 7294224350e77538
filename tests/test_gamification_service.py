import datetime
import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms.metric_normalizer import MetricNormalizer
from gamification_service import GamificationService
from models import RawSet
from settings_schema import ThresholdSettings

MONDAY = datetime.date(2024, 1, 1)


def sets_on(days, exercise="Squat", weight=100.0, reps=5):
    normalizer = MetricNormalizer(ThresholdSettings())
    return [
        normalizer.normalize_set(
            RawSet(exercise, weight, reps), MONDAY + datetime.timedelta(days=d)
        )
        for d in days
    ]


class GamificationServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.service = GamificationService(ThresholdSettings())

    def test_pr_rarity(self) -> None:
        self.assertEqual(GamificationService.pr_rarity("Bench Press", 150), "legendary")
        self.assertEqual(GamificationService.pr_rarity("Bench Press", 110), "rare")
        self.assertEqual(GamificationService.pr_rarity("Bench Press", 70), "common")
        self.assertEqual(GamificationService.pr_rarity("Back Squat", 185), "legendary")
        self.assertEqual(GamificationService.pr_rarity("Curl", 50), "common")
        self.assertEqual(GamificationService.pr_rarity("Curl", 95), "rare")

    def test_personal_records_skip_first_session(self) -> None:
        metrics = (
            sets_on([0], weight=100.0)
            + sets_on([3], weight=105.0)
            + sets_on([6], weight=102.5)
            + sets_on([9], weight=110.0)
        )
        records = self.service.personal_records(metrics)
        self.assertEqual(
            [r.id for r in records], ["pr-Squat-2024-01-04", "pr-Squat-2024-01-10"]
        )
        self.assertEqual(records[0].type, "personal_record")
        self.assertEqual(records[0].exercise, "Squat")
        self.assertAlmostEqual(records[-1].value, round(110 * (1 + 5 / 30), 2))

    def test_single_session_has_no_record(self) -> None:
        self.assertEqual(self.service.personal_records(sets_on([0, 0])), [])

    def test_volume_milestones(self) -> None:
        # 500 kg per set
        common = self.service.volume_milestones(sets_on(range(24)))
        self.assertEqual(len(common), 1)
        self.assertEqual(common[0].id, "volume-Squat")
        self.assertEqual(common[0].rarity, "common")
        self.assertEqual(common[0].value, 12000.0)
        rare = self.service.volume_milestones(sets_on(range(60)))
        self.assertEqual(rare[0].rarity, "rare")
        self.assertEqual(self.service.volume_milestones(sets_on(range(10))), [])

    def test_consistency_streak(self) -> None:
        # two sessions a week for four weeks
        days = [0, 2, 7, 9, 14, 16, 21, 23]
        found = self.service.consistency(sets_on(days))
        self.assertEqual(len(found), 1)
        self.assertEqual(found[0].id, "consistency-streak")
        self.assertEqual(found[0].value, 4.0)
        self.assertEqual(found[0].rarity, "common")
        self.assertEqual(found[0].date, MONDAY + datetime.timedelta(days=23))

    def test_streak_breaks_on_light_week(self) -> None:
        days = [0, 2, 7, 14, 16, 21, 23]
        self.assertEqual(self.service.consistency(sets_on(days)), [])
        streak, _ = self.service.weekly_streak(MONDAY + datetime.timedelta(days=d) for d in days)
        self.assertEqual(streak, 2)

    def test_long_streak_rarity(self) -> None:
        days = [d for week in range(12) for d in (week * 7, week * 7 + 3)]
        found = self.service.consistency(sets_on(days))
        self.assertEqual(found[0].value, 12.0)
        self.assertEqual(found[0].rarity, "legendary")

    def test_workout_milestones(self) -> None:
        found = self.service.workout_milestones(sets_on(range(0, 75, 3)))
        self.assertEqual(
            [a.id for a in found], ["milestone-10-workouts", "milestone-25-workouts"]
        )
        self.assertEqual(found[0].date, MONDAY + datetime.timedelta(days=27))

    def test_detect_achievements_sorted_and_capped(self) -> None:
        metrics = []
        for i in range(30):
            metrics += sets_on([i], weight=100.0 + i)
        found = self.service.detect_achievements(metrics)
        self.assertEqual(len(found), 10)
        dates = [a.date for a in found]
        self.assertEqual(dates, sorted(dates, reverse=True))
        self.assertEqual(len({a.id for a in found}), 10)


if __name__ == "__main__":
    unittest.main()
