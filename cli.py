import argparse
import datetime
import json
import logging
import sys
from typing import Optional

import pandas as pd

import config
from algorithms.metric_normalizer import MetricNormalizer
from algorithms.plateau_detector import PlateauDetector
from models import RawSet, WorkoutSession, as_dict
from progress_service import ProgressService
from stats_service import StatisticsService

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"date", "exercise", "weight", "reps"}


def load_rows(csv_path: str) -> list[dict]:
    """Read set rows from ``csv_path``; extra columns are kept as-is."""
    frame = pd.read_csv(csv_path)
    missing = REQUIRED_COLUMNS - set(frame.columns)
    if missing:
        raise ValueError(f"{csv_path} is missing columns: {', '.join(sorted(missing))}")
    frame = frame.astype(object).where(frame.notna(), None)
    return frame.to_dict("records")


def rows_to_sessions(rows: list[dict]) -> list[WorkoutSession]:
    """Group rows into sessions by their ``session`` column, else by date."""
    grouped: dict[tuple, dict] = {}
    for row in rows:
        try:
            date = MetricNormalizer.parse_date(row["date"])
        except (TypeError, ValueError):
            logger.debug("Dropping row with bad date %r", row)
            continue
        key = (date, row.get("session") or date.isoformat())
        item = grouped.setdefault(key, {"sets": [], "duration": None})
        if item["duration"] is None:
            item["duration"] = row.get("duration_minutes")
        sets = row.get("sets")
        item["sets"].append(
            RawSet(
                exercise=str(row["exercise"]),
                weight=row["weight"],
                reps=row["reps"],
                rpe=row.get("rpe"),
                sets=1 if sets is None else sets,
            )
        )
    return [
        WorkoutSession(
            id=str(session_id),
            date=date,
            sets=item["sets"],
            duration_minutes=item["duration"],
        )
        for (date, session_id), item in sorted(grouped.items(), key=lambda kv: kv[0][0])
    ]


def run_analyze(csv_path: str, window_days: Optional[int], today: Optional[datetime.date]) -> dict:
    metrics = MetricNormalizer().normalize_rows(load_rows(csv_path))
    return as_dict(ProgressService().analyze_progress(metrics, window_days, today=today))


def run_plateau(csv_path: str, exercise: str, today: Optional[datetime.date]) -> dict:
    metrics = MetricNormalizer().normalize_rows(load_rows(csv_path))
    detector = PlateauDetector()
    return {
        "plateau": as_dict(detector.analyze(exercise, metrics, today)),
        "rpe_pattern": as_dict(detector.analyze_rpe_pattern(exercise, metrics)),
    }


def run_stats(
    csv_path: str,
    max_sessions: Optional[int],
    window_days: Optional[int],
    today: Optional[datetime.date],
) -> dict:
    rows = load_rows(csv_path)
    stats = StatisticsService()
    analytics = stats.workout_analytics(rows_to_sessions(rows), max_sessions, window_days, today)
    records = stats.personal_records(MetricNormalizer().normalize_rows(rows))
    return {"analytics": as_dict(analytics), "personal_records": records}


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Training progress analytics")
    parser.add_argument("--settings", default=None, help="YAML file with a thresholds section")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    ana = sub.add_parser("analyze")
    ana.add_argument("--csv", required=True)
    ana.add_argument("--window-days", type=int, default=None)
    ana.add_argument("--today", type=datetime.date.fromisoformat, default=None)

    plat = sub.add_parser("plateau")
    plat.add_argument("--csv", required=True)
    plat.add_argument("--exercise", required=True)
    plat.add_argument("--today", type=datetime.date.fromisoformat, default=None)

    st = sub.add_parser("stats")
    st.add_argument("--csv", required=True)
    st.add_argument("--max-sessions", type=int, default=None)
    st.add_argument("--window-days", type=int, default=None)
    st.add_argument("--today", type=datetime.date.fromisoformat, default=None)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config.configure(args.settings)
        if args.cmd == "analyze":
            result = run_analyze(args.csv, args.window_days, args.today)
        elif args.cmd == "plateau":
            result = run_plateau(args.csv, args.exercise, args.today)
        else:
            result = run_stats(args.csv, args.max_sessions, args.window_days, args.today)
    except (ValueError, OSError) as e:
        logger.error("%s", e)
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
