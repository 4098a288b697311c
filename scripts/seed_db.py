#!/usr/bin/env python3
import argparse
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

import cadence_db  # noqa: E402
import cohort_cadence as cadence  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the Cohort Cadence mirror tables with demonstration data.")
    parser.add_argument("--schema", default=cadence_db.DEFAULT_DB_SCHEMA, help="Postgres schema name")
    parser.add_argument("--today", help="Anchor date for the demo touchpoints (YYYY-MM-DD)")
    parser.add_argument("--summary", action="store_true", help="Print the mirror summary after seeding")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    today = date.today()
    if args.today:
        parsed = cadence.parse_date(args.today)
        if not parsed:
            raise SystemExit("Invalid --today date format. Use YYYY-MM-DD.")
        today = parsed

    try:
        mirror = cadence_db.CadenceMirror(schema=args.schema)
        result = mirror.seed(today)
        summary = mirror.summary(today, lookahead_days=30, stale_days=21) if args.summary else None
    except cadence.CadenceError as exc:
        raise SystemExit(f"Error: {exc}") from exc

    print(f"Seeded {result['cohorts']} cohorts and {result['touchpoints']} touchpoints into schema '{args.schema}'.")
    if summary:
        print(f"Mirror now holds {summary['cohort_count']} cohorts and {summary['touchpoint_count']} touchpoints.")
        for row in summary["stale_cohorts"]:
            print(f"  stale: {row['name']} ({row['days_since_last']} days since last touch)")


if __name__ == "__main__":
    main()
