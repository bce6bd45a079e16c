"""Back-fill ABSENT records for a day; meant to be run by a scheduler after hours.

Usage:
    python scripts/mark_absentees.py --date 2024-03-04 --student s1:p1 --student s2:p1
    python scripts/mark_absentees.py --csv expected.csv        # columns: student_id,placement_id
"""

from __future__ import annotations

import argparse
import csv
import json
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src" / "placement_attendance"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from dotenv import load_dotenv

from config import load_settings

from placement_attendance.common.datetime_utils import parse_iso_date
from placement_attendance.container import build_container
from placement_attendance.core.enums import Role
from placement_attendance.main import configure_logging


def parse_pair(value: str) -> tuple[str, str]:
    student_id, sep, placement_id = value.partition(":")
    if not sep or not student_id.strip() or not placement_id.strip():
        raise argparse.ArgumentTypeError(f"expected student:placement, got {value!r}")
    return student_id.strip(), placement_id.strip()


def read_csv(path: str) -> dict[str, str]:
    with open(path, newline="", encoding="utf-8") as fh:
        return {row["student_id"].strip(): row["placement_id"].strip() for row in csv.DictReader(fh)}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mark students without a record as absent.")
    parser.add_argument("--date", help="YYYY-MM-DD, defaults to today")
    parser.add_argument("--student", action="append", type=parse_pair, default=[], metavar="STUDENT:PLACEMENT")
    parser.add_argument("--csv", help="CSV file with student_id,placement_id columns")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv(override=False)
    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    expected = dict(args.student)
    if args.csv:
        expected.update(read_csv(args.csv))

    container = build_container(settings=settings)
    report = container.absence_marker.mark_absentees(
        parse_iso_date(args.date) if args.date else None,
        expected,
        current_role=Role.ADMIN,
    )
    print(json.dumps(report.to_dict(), indent=2))
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
