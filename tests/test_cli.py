import contextlib
import io
import json
import os
import sys
import tempfile
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import cli
import config

ROWS = [
    "date,exercise,weight,reps,rpe,sets,duration_minutes",
    "2024-01-01,Squat,100,8,,1,60",
    "2024-01-01,Bench Press,60,5,8,3,60",
    "2024-01-04,Squat,100,8,7,1,",
    "2024-01-04,Bench Press,62.5,5,8,3,",
    "2024-01-08,Squat,100,8,7,1,55",
    "2024-01-08,Bench Press,65,5,8,3,55",
    "2024-01-11,Squat,100,7,7,1,",
    "2024-01-15,Squat,100,7,7,1,",
    "2024-01-18,Squat,100,6,7,1,",
    "2024-01-18,Plank,0,1,,1,",
]


class CliTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.csv = os.path.join(self.tmpdir.name, "sets.csv")
        with open(self.csv, "w", encoding="utf-8") as f:
            f.write("\n".join(ROWS) + "\n")

    def tearDown(self) -> None:
        self.tmpdir.cleanup()
        config.configure(None)

    def run_cli(self, *argv):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = cli.main(list(argv))
        return code, out.getvalue()

    def test_load_rows(self) -> None:
        rows = cli.load_rows(self.csv)
        self.assertEqual(len(rows), 10)
        self.assertIsNone(rows[0]["rpe"])
        sessions = cli.rows_to_sessions(rows)
        self.assertEqual(len(sessions), 6)
        self.assertEqual(len(sessions[0].sets), 2)
        self.assertEqual(sessions[0].duration_minutes, 60)

    def test_rows_to_sessions_keeps_first_duration(self) -> None:
        rows = [
            {"date": "2024-01-01", "exercise": "Squat", "weight": 100, "reps": 5, "sets": 0},
            {"date": "2024-01-01", "exercise": "Bench", "weight": 60, "reps": 5,
             "duration_minutes": 45},
            {"date": "2024-01-01", "exercise": "Row", "weight": 50, "reps": 8,
             "duration_minutes": 30},
        ]
        (session,) = cli.rows_to_sessions(rows)
        self.assertEqual(session.duration_minutes, 45)
        self.assertEqual([s.sets for s in session.sets], [0, 1, 1])

    def test_plateau_command(self) -> None:
        code, out = self.run_cli("plateau", "--csv", self.csv, "--exercise", "Squat", "--today", "2024-01-20")
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertTrue(data["plateau"]["is_detected"])
        self.assertEqual(data["plateau"]["type"], "weight_stall")
        self.assertEqual(data["plateau"]["next_review_date"], "2024-01-25")
        self.assertEqual(data["rpe_pattern"]["exercise"], "Squat")

    def test_analyze_command(self) -> None:
        code, out = self.run_cli("analyze", "--csv", self.csv)
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual([t["exercise"] for t in data["trends"]], ["Bench Press", "Squat"])
        self.assertIn("overall_score", data)

    def test_stats_command(self) -> None:
        code, out = self.run_cli("stats", "--csv", self.csv, "--today", "2024-01-19")
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["analytics"]["total_workouts"], 6)
        self.assertEqual(
            [r["exercise"] for r in data["personal_records"]], ["Bench Press", "Squat"]
        )

    def test_settings_file(self) -> None:
        settings = os.path.join(self.tmpdir.name, "settings.yaml")
        with open(settings, "w", encoding="utf-8") as f:
            f.write("thresholds:\n  plateau_lookback_sessions: 10\n")
        code, out = self.run_cli(
            "--settings", settings, "plateau", "--csv", self.csv, "--exercise", "Squat"
        )
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["plateau"]["type"], "volume_decline")

    def test_errors_return_nonzero(self) -> None:
        bad = os.path.join(self.tmpdir.name, "bad.csv")
        with open(bad, "w", encoding="utf-8") as f:
            f.write("date,exercise\n2024-01-01,Squat\n")
        self.assertEqual(self.run_cli("stats", "--csv", bad)[0], 1)
        missing = os.path.join(self.tmpdir.name, "missing.csv")
        self.assertEqual(self.run_cli("analyze", "--csv", missing)[0], 1)
        settings = os.path.join(self.tmpdir.name, "settings.yaml")
        with open(settings, "w", encoding="utf-8") as f:
            f.write("thresholds:\n  bogus: 1\n")
        self.assertEqual(self.run_cli("--settings", settings, "analyze", "--csv", self.csv)[0], 1)


if __name__ == "__main__":
    unittest.main()
