#!/usr/bin/env python3
import argparse
import json
import os
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime, date
from enum import Enum
from typing import Dict, List, Optional, Sequence

import cohort_cadence as cadence
from cadence_db import DEFAULT_DB_SCHEMA, CadenceMirror
from cadence_ics import write_ics
from cadence_store import CadenceStore

DEFAULT_STORE_PATH = os.path.join("data", "cadence.json")


def to_jsonable(value: object) -> object:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(to_jsonable(key)): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def resolve_today(value: Optional[str]) -> date:
    if not value:
        return date.today()
    parsed = cadence.parse_date(value)
    if not parsed:
        raise cadence.ValidationError("Invalid --today date format. Use YYYY-MM-DD.")
    return parsed


def print_heading(title: str) -> None:
    print(f"\n{title}")
    print("-" * len(title))


def or_na(value: object) -> object:
    return "n/a" if value is None else value


def format_cohort(cohort: cadence.Cohort) -> str:
    return (
        f"{cohort.name} ({cohort.id}) | {cohort.start_date.isoformat()} -> {cohort.end_date.isoformat()} "
        f"| size {cohort.size} | {cohort.notes}"
    )


def format_touchpoint(touch: Optional[cadence.Touchpoint]) -> str:
    if touch is None:
        return "none"
    return (
        f"{touch.date.isoformat()} | {touch.title} | {touch.cohort_name} | "
        f"{cadence.normalize_owner(touch.owner)} via {cadence.normalize_channel(touch.channel)} | {touch.notes}"
    )


def format_rollup(counts: Dict[str, int]) -> str:
    if not counts:
        return "none"
    return ", ".join(f"{key} ({value})" for key, value in counts.items())


def print_touchpoints(touchpoints: Sequence[cadence.Touchpoint], indent: str = "  ") -> None:
    for touch in touchpoints:
        print(f"{indent}- {format_touchpoint(touch)}")


def print_cohort_list(cohorts: List[cadence.Cohort]) -> None:
    print_heading("Cohorts")
    if not cohorts:
        print("No cohorts yet.")
        return
    for cohort in cohorts:
        print(format_cohort(cohort))


def print_upcoming(touchpoints: List[cadence.Touchpoint], days: int) -> None:
    print_heading(f"Upcoming Touchpoints (next {days} days)")
    if not touchpoints:
        print(f"No touchpoints in the next {days} days.")
        return
    for touch in touchpoints:
        print(format_touchpoint(touch))


def print_summary(summary: Dict[str, object]) -> None:
    print_heading("Cohort Cadence Summary")
    print(f"Cohorts tracked: {summary['cohort_count']}")
    print(f"Touchpoints logged: {summary['touchpoint_count']}")
    print(f"Upcoming window: next {summary['days']} days")
    if not summary["upcoming"]:
        print("No upcoming touchpoints.")
        return
    print_touchpoints(summary["upcoming"], indent="")


def print_status(entries: List[Dict[str, object]], stale_days: int, lookahead_days: int) -> None:
    print_heading("Cohort Cadence Status")
    print(f"Stale threshold: > {stale_days} days without touchpoint")
    print(f"Lookahead window: {lookahead_days} days")
    if not entries:
        print("No cohorts yet.")
        return
    for entry in entries:
        cohort = entry["cohort"]
        print(f"\n{cohort.name} ({cohort.id})")
        print(f"  Status: {entry['status'].value}")
        print(f"  Days since last touchpoint: {or_na(entry['days_since_last'])}")
        print(f"  Last touchpoint: {format_touchpoint(entry['last_touchpoint'])}")
        print(f"  Next touchpoint: {format_touchpoint(entry['next_touchpoint'])}")
        if entry["stale"]:
            print(f"  Attention: stale cadence (over {entry['stale_days']} days)")
        print(f"  Upcoming within lookahead: {'yes' if entry['next_within_lookahead'] else 'no'}")


def print_gap_report(report: Dict[str, object]) -> None:
    print_heading("Cohort Cadence Gap Report")
    print(f"Lookback: {report['lookback_days']} days | Lookahead: {report['lookahead_days']} days")
    if report["status_filter"]:
        print(f"Status filter: {report['status_filter'].value}")
    counts = report["counts"]
    print(f"At-risk cohorts: {counts[cadence.GapStatus.AT_RISK]}")
    print(f"Stale cohorts: {counts[cadence.GapStatus.STALE]}")
    print(f"Unscheduled cohorts: {counts[cadence.GapStatus.UNSCHEDULED]}")
    print(f"On-track cohorts: {counts[cadence.GapStatus.ON_TRACK]}")
    if not report["entries"]:
        print("No cohorts match the current filter.")
        return
    header = f"{'Cohort':<24} {'Status':<12} {'Last':<10} {'Next':<10} {'Since':>5} {'Until':>5}"
    print(header)
    print("-" * len(header))
    for entry in report["entries"]:
        last_touch = entry["last_touchpoint"].isoformat() if entry["last_touchpoint"] else "none"
        next_touch = entry["next_touchpoint"].isoformat() if entry["next_touchpoint"] else "none"
        print(
            f"{entry['cohort'].name[:24]:<24} {entry['status'].value:<12} {last_touch:<10} {next_touch:<10} "
            f"{str(or_na(entry['days_since_last'])):>5} {str(or_na(entry['days_until_next'])):>5}"
        )


def print_cadence_metrics(report: Dict[str, object]) -> None:
    print_heading("Cohort Cadence Metrics")
    threshold = report["max_gap_days"]
    print(f"Gap flag threshold: {'> ' + str(threshold) + ' days' if threshold is not None else 'none'}")
    print(f"Cohorts tracked: {report['cohort_count']}")
    print(f"Flagged cohorts: {report['flagged_count']}")
    if not report["entries"]:
        print("No cohorts yet.")
        return
    header = f"{'Cohort':<24} {'Touches':>7} {'AvgGap':>7} {'MinGap':>7} {'MaxGap':>7} {'Flag':>5}"
    print(header)
    print("-" * len(header))
    for entry in report["entries"]:
        print(
            f"{entry['cohort'].name[:24]:<24} {entry['touchpoint_count']:>7} {str(or_na(entry['avg_gap_days'])):>7} "
            f"{str(or_na(entry['min_gap_days'])):>7} {str(or_na(entry['max_gap_days'])):>7} "
            f"{'yes' if entry['gap_flag'] else 'no':>5}"
        )


def print_cohort_report(report: Dict[str, object]) -> None:
    cohort = report["cohort"]
    print_heading("Cohort Cadence Report")
    print(f"Cohort: {cohort.name} ({cohort.id}) [{report['status'].value}]")
    print(f"Window: lookback {report['lookback_days']} days | lookahead {report['lookahead_days']} days")
    print(f"Total touchpoints: {report['touchpoint_count']}")
    print(f"Last touchpoint: {format_touchpoint(report['last_touchpoint'])}")
    print(f"Days since last: {or_na(report['days_since_last'])}")
    print(f"Next touchpoint: {format_touchpoint(report['next_touchpoint'])}")
    print(f"Days until next: {or_na(report['days_until_next'])}")
    if report["recent_touchpoints"]:
        print(f"Recent touchpoints (last {report['lookback_days']} days):")
        print_touchpoints(report["recent_touchpoints"])
    else:
        print(f"No touchpoints in the last {report['lookback_days']} days.")
    if report["upcoming_touchpoints"]:
        print(f"Upcoming touchpoints (next {report['lookahead_days']} days):")
        print_touchpoints(report["upcoming_touchpoints"])
    else:
        print(f"No touchpoints scheduled in the next {report['lookahead_days']} days.")


def print_owner_load(report: Dict[str, object]) -> None:
    print_heading("Owner Load")
    print(f"Window: {report['window_start'].isoformat()} -> {report['window_end'].isoformat()}")
    print(f"Total touchpoints: {report['total_touchpoints']}")
    if report["owner_filter"]:
        print(f"Owner filter: {report['owner_filter']}")
    if not report["owners"]:
        print("No touchpoints in the current window.")
        return
    for bucket in report["owners"]:
        print(f"\n{bucket['owner']} ({bucket['count']})")
        print(f"  Channels: {format_rollup(bucket['channels'])}")
        print(f"  Cohorts: {format_rollup(bucket['cohorts'])}")
        print_touchpoints(bucket["touchpoints"])


def print_owner_balance(report: Dict[str, object]) -> None:
    print_heading("Owner Balance")
    print(f"Window: next {report['days']} days")
    print(f"Imbalance threshold: {round(report['threshold'] * 100)}%")
    print(f"Total touchpoints: {report['total_touchpoints']}")
    print(f"Owners tracked: {report['owners_count']}")
    print(f"Average per owner: {or_na(report['avg_per_owner'])}")
    if not report["owners"]:
        print(f"No touchpoints in the next {report['days']} days.")
        return
    header = f"{'Owner':<18} {'Count':>5} {'Share':>7} {'Delta':>7}  {'Status':<11}"
    print(header)
    print("-" * len(header))
    for bucket in report["owners"]:
        print(
            f"{bucket['owner'][:18]:<18} {bucket['count']:>5} {bucket['share'] * 100:>6.1f}% "
            f"{bucket['delta_from_avg']:>+7.2f}  {bucket['status'].value:<11}"
        )


def print_channel_report(report: Dict[str, object]) -> None:
    print_heading("Channel Touchpoint Report")
    print(
        f"Window: {report['window_start'].isoformat()} -> {report['window_end'].isoformat()} "
        f"(lookback {report['lookback_days']} days, lookahead {report['lookahead_days']} days)"
    )
    print(f"Total touchpoints: {report['total_touchpoints']}")
    if report["owner_filter"]:
        print(f"Owner filter: {report['owner_filter']}")
    if report["cohort_filter"]:
        print(f"Cohort filter: {report['cohort_filter']}")
    if not report["channels"]:
        print("No touchpoints in the selected window.")
        return
    for bucket in report["channels"]:
        print(f"\n{bucket['channel']} ({bucket['count']})")
        print(f"  Past touchpoints: {bucket['past_count']}")
        print(f"  Upcoming touchpoints: {bucket['upcoming_count']}")
        print(f"  Last touchpoint: {format_touchpoint(bucket['last_touchpoint'])}")
        print(f"  Next touchpoint: {format_touchpoint(bucket['next_touchpoint'])}")
        print(f"  Owners: {format_rollup(bucket['owners'])}")
        print(f"  Cohorts: {format_rollup(bucket['cohorts'])}")


def print_weekday_report(report: Dict[str, object]) -> None:
    print_heading("Weekday Touchpoint Report")
    print(f"Window: {report['window_start'].isoformat()} -> {report['window_end'].isoformat()}")
    print(f"Total touchpoints: {report['total_touchpoints']}")
    if report["busiest_weekday"]:
        print(f"Busiest weekday: {report['busiest_weekday']}")
    header = f"{'Weekday':<10} {'Count':>5} {'Past':>5} {'Upcoming':>8}  Owners"
    print(header)
    print("-" * len(header))
    for row in report["weekdays"]:
        print(
            f"{row['weekday']:<10} {row['count']:>5} {row['past_count']:>5} {row['upcoming_count']:>8}  "
            f"{format_rollup(row['owners'])}"
        )


def print_weekly_agenda(report: Dict[str, object]) -> None:
    print_heading("Weekly Agenda")
    print(
        f"Window: {report['window_start'].isoformat()} -> {report['window_end'].isoformat()} "
        f"({report['weeks']} weeks)"
    )
    print(f"Total touchpoints: {report['total_touchpoints']}")
    if not report["weeks_list"]:
        print("No touchpoints scheduled in the current window.")
        return
    for week in report["weeks_list"]:
        print(f"\nWeek of {week['week_start'].isoformat()} ({week['count']})")
        print_touchpoints(week["touchpoints"])


def print_cohort_coverage(report: Dict[str, object]) -> None:
    print_heading("Cohort Coverage Report")
    print(
        f"Window: {report['window_start'].isoformat()} -> {report['window_end'].isoformat()} "
        f"({report['weeks']} weeks)"
    )
    print(f"Cohorts tracked: {report['cohort_count']}")
    if not report["entries"]:
        print("No cohorts found for this window.")
        return
    header = f"{'Cohort':<24} {'Touches':>7} {'Covered':>8} {'Rate':>6} {'Gap':>4}  Empty ranges"
    print(header)
    print("-" * len(header))
    for entry in report["entries"]:
        ranges = ", ".join(
            f"{run['start'].isoformat()}->{run['end'].isoformat()}" for run in entry["gap_ranges"]
        ) or "none"
        print(
            f"{entry['cohort'].name[:24]:<24} {entry['total_touchpoints']:>7} "
            f"{entry['weeks_with_touchpoints']:>3}/{entry['weeks_tracked']:<4} "
            f"{entry['coverage_rate'] * 100:>5.1f}% {entry['longest_gap_weeks']:>4}  {ranges}"
        )


def print_owner_capacity(report: Dict[str, object]) -> None:
    print_heading("Owner Capacity")
    print(
        f"Window: {report['window_start'].isoformat()} -> {report['window_end'].isoformat()} "
        f"({report['weeks']} weeks)"
    )
    limit = report["weekly_limit"]
    print(f"Weekly limit: {str(limit) + ' touchpoints per owner' if limit is not None else 'none'}")
    print(f"Total touchpoints: {report['total_touchpoints']}")
    print(f"Owners tracked: {report['owners_count']}")
    print(f"Over-limit weeks: {report['over_limit_weeks']}")
    if not report["owners"]:
        print("No touchpoints scheduled in the current window.")
        return
    for bucket in report["owners"]:
        print(f"\n{bucket['owner']} ({bucket['total_touchpoints']}, {bucket['over_limit_weeks']} over limit)")
        for week in bucket["weeks"]:
            flag = "OVER LIMIT" if week["over_limit"] else "ok"
            print(f"  Week of {week['week_start'].isoformat()}: {week['count']} ({flag})")


def print_owner_conflicts(report: Dict[str, object]) -> None:
    print_heading("Owner Conflicts")
    print(
        f"Window: {report['window_start'].isoformat()} -> {report['window_end'].isoformat()} "
        f"({report['days']} days)"
    )
    print(f"Daily limit: {report['daily_limit']} touchpoints per owner")
    print(f"Total touchpoints: {report['total_touchpoints']}")
    print(f"Owners with conflicts: {report['owners_count']}")
    print(f"Conflict days: {report['conflict_days']}")
    if not report["owners"]:
        print("No owner conflicts in the current window.")
        return
    for bucket in report["owners"]:
        print(f"\n{bucket['owner']} ({bucket['conflict_days']} conflict days)")
        for day in bucket["days"]:
            print(f"  {day['date'].isoformat()}: {day['count']} touchpoints")
            print_touchpoints(day["touchpoints"], indent="    ")


def print_action_plan(report: Dict[str, object]) -> None:
    print_heading("Action Plan")
    print(f"Target gap: {report['target_gap_days']} days | Lookahead: {report['lookahead_days']} days")
    print(f"Cohorts tracked: {report['cohort_count']}")
    print(f"Action needed: {report['action_count']}")
    if not report["entries"]:
        print("No cohorts need new touchpoints in the current window.")
        return
    header = f"{'Cohort':<24} {'Status':<9} {'Recommend':<10} {'Owner':<18} {'Soon':>4}"
    print(header)
    print("-" * len(header))
    for entry in report["entries"]:
        print(
            f"{entry['cohort'].name[:24]:<24} {entry['status'].value:<9} "
            f"{entry['recommended_date'].isoformat():<10} {entry['recommended_owner'][:18]:<18} "
            f"{'yes' if entry['within_lookahead'] else 'no':>4}"
        )
        print(f"      -> {entry['reason']}")


def print_db_summary(summary: Dict[str, object]) -> None:
    print_heading("Cohort Cadence DB Summary")
    print(f"Lookahead: {summary['lookahead_days']} days | Stale threshold: {summary['stale_days']} days")
    print(f"Cohorts in DB: {summary['cohort_count']}")
    print(f"Touchpoints in DB: {summary['touchpoint_count']}")
    last_sync = summary["last_sync"]
    if last_sync:
        print(
            f"Last sync: {last_sync['synced_at']} ({last_sync['cohorts_count']} cohorts, "
            f"{last_sync['touchpoints_count']} touchpoints)"
        )
    else:
        print("Last sync: none")
    if summary["upcoming"]:
        print("Upcoming touchpoints:")
        for row in summary["upcoming"]:
            print(
                f"  - {row['date']} | {row['title']} | {row['cohort_name']} | "
                f"{cadence.normalize_owner(row['owner'])} via {cadence.normalize_channel(row['channel'])}"
            )
    else:
        print(f"No upcoming touchpoints in the next {summary['lookahead_days']} days.")
    if summary["stale_cohorts"]:
        print("Stale active cohorts:")
        for row in summary["stale_cohorts"]:
            print(
                f"  - {row['name']} ({row['id']}) | last touch: {row['last_touchpoint'] or 'none'} "
                f"| days since: {row['days_since_last']}"
            )
    else:
        print("No stale active cohorts.")


def run_init(args: argparse.Namespace, today: date) -> None:
    store = CadenceStore(args.store)
    store.init()
    print(f"Initialized cadence store at {store.path}.")


def run_add_cohort(args: argparse.Namespace, today: date) -> object:
    cohort = CadenceStore(args.store).add_cohort(args.name, args.start_date, args.end_date, args.size, args.notes)
    print(format_cohort(cohort))
    return cohort


def run_add_touchpoint(args: argparse.Namespace, today: date) -> object:
    touch = CadenceStore(args.store).add_touchpoint(
        args.cohort, args.title, args.date, args.owner, args.channel, args.notes
    )
    print(format_touchpoint(touch))
    return touch


def run_list_cohorts(args: argparse.Namespace, today: date) -> object:
    cohorts = cadence.list_cohorts(CadenceStore(args.store).load())
    print_cohort_list(cohorts)
    return cohorts


def run_upcoming(args: argparse.Namespace, today: date) -> object:
    touches = cadence.upcoming(CadenceStore(args.store).load(), today, args.days)
    print_upcoming(touches, args.days)
    return touches


def run_summary(args: argparse.Namespace, today: date) -> object:
    summary = cadence.summary(CadenceStore(args.store).load(), today, args.days)
    print_summary(summary)
    return summary


def run_export_ics(args: argparse.Namespace, today: date) -> object:
    touches = cadence.upcoming(CadenceStore(args.store).load(), today, args.days)
    output = args.output or os.path.join(os.path.dirname(args.store) or ".", "cadence.ics")
    path = write_ics(output, touches, datetime.now())
    print(f"Exported {len(touches)} touchpoints to {path} (next {args.days} days).")
    return {"path": str(path), "count": len(touches), "days": args.days}


def run_status(args: argparse.Namespace, today: date) -> object:
    entries = cadence.cadence_status(CadenceStore(args.store).load(), today, args.stale_days, args.lookahead)
    print_status(entries, args.stale_days, args.lookahead)
    return entries


def run_gap_report(args: argparse.Namespace, today: date) -> object:
    report = cadence.gap_report(CadenceStore(args.store).load(), today, args.lookback, args.lookahead, args.status)
    print_gap_report(report)
    return report


def run_cadence_metrics(args: argparse.Namespace, today: date) -> object:
    report = cadence.cadence_metrics(CadenceStore(args.store).load(), today, args.max_gap)
    print_cadence_metrics(report)
    return report


def run_cohort_report(args: argparse.Namespace, today: date) -> object:
    report = cadence.cohort_report(CadenceStore(args.store).load(), today, args.cohort, args.lookback, args.lookahead)
    print_cohort_report(report)
    return report


def run_owner_load(args: argparse.Namespace, today: date) -> object:
    report = cadence.owner_load(CadenceStore(args.store).load(), today, args.days, args.owner)
    print_owner_load(report)
    return report


def run_owner_balance(args: argparse.Namespace, today: date) -> object:
    report = cadence.owner_balance(CadenceStore(args.store).load(), today, args.days, args.threshold)
    print_owner_balance(report)
    return report


def run_channel_report(args: argparse.Namespace, today: date) -> object:
    report = cadence.channel_report(
        CadenceStore(args.store).load(), today, args.lookback, args.lookahead, args.owner, args.cohort
    )
    print_channel_report(report)
    return report


def run_weekday_report(args: argparse.Namespace, today: date) -> object:
    report = cadence.weekday_report(
        CadenceStore(args.store).load(), today, args.lookback, args.lookahead, args.owner, args.cohort
    )
    print_weekday_report(report)
    return report


def run_weekly_agenda(args: argparse.Namespace, today: date) -> object:
    report = cadence.weekly_agenda(CadenceStore(args.store).load(), today, args.weeks, args.owner, args.cohort)
    print_weekly_agenda(report)
    return report


def run_coverage_report(args: argparse.Namespace, today: date) -> object:
    report = cadence.cohort_coverage(CadenceStore(args.store).load(), today, args.weeks, args.cohort)
    print_cohort_coverage(report)
    return report


def run_owner_capacity(args: argparse.Namespace, today: date) -> object:
    report = cadence.owner_capacity(CadenceStore(args.store).load(), today, args.weeks, args.limit, args.owner)
    print_owner_capacity(report)
    return report


def run_owner_conflicts(args: argparse.Namespace, today: date) -> object:
    report = cadence.owner_conflicts(CadenceStore(args.store).load(), today, args.days, args.limit, args.owner)
    print_owner_conflicts(report)
    return report


def run_action_plan(args: argparse.Namespace, today: date) -> object:
    report = cadence.action_plan(CadenceStore(args.store).load(), today, args.target_gap, args.lookahead)
    print_action_plan(report)
    return report


def run_sync_db(args: argparse.Namespace, today: date) -> object:
    snapshot = CadenceStore(args.store).load()
    result = CadenceMirror(schema=args.db_schema).sync(snapshot)
    print(f"Synced {result['cohorts']} cohorts and {result['touchpoints']} touchpoints to Postgres.")
    return result


def run_seed_db(args: argparse.Namespace, today: date) -> object:
    result = CadenceMirror(schema=args.db_schema).seed(today)
    print(f"Seeded Postgres with {result['cohorts']} cohorts and {result['touchpoints']} touchpoints.")
    return result


def run_db_summary(args: argparse.Namespace, today: date) -> object:
    summary = CadenceMirror(schema=args.db_schema).summary(today, args.lookahead, args.stale_days)
    print_db_summary(summary)
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cohort-cadence",
        description="Group Scholar Cohort Cadence: track cohort touchpoints and report on cadence health.",
    )
    parser.add_argument(
        "--store",
        default=os.getenv("GS_CADENCE_STORE", DEFAULT_STORE_PATH),
        help="Path to the cadence JSON store",
    )
    parser.add_argument("--today", help="Override today's date (YYYY-MM-DD)")
    parser.add_argument("--json", dest="json_path", help="Optional path to write JSON output")
    parser.add_argument("--db-schema", default=DEFAULT_DB_SCHEMA, help="Postgres schema for mirror tables")
    commands = parser.add_subparsers(dest="command", metavar="command")

    def command(name: str, handler, help_text: str) -> argparse.ArgumentParser:
        sub = commands.add_parser(name, help=help_text)
        sub.set_defaults(handler=handler)
        return sub

    command("init", run_init, "Create an empty cadence store")

    sub = command("add-cohort", run_add_cohort, "Add a cohort")
    sub.add_argument("--name", required=True, help="Cohort name")
    sub.add_argument("--start-date", required=True, help="Start date (YYYY-MM-DD)")
    sub.add_argument("--end-date", required=True, help="End date (YYYY-MM-DD)")
    sub.add_argument("--size", required=True, help="Number of participants")
    sub.add_argument("--notes", default="", help="Free-text notes")

    sub = command("add-touchpoint", run_add_touchpoint, "Add a touchpoint to a cohort")
    sub.add_argument("--cohort", required=True, help="Cohort id or name")
    sub.add_argument("--title", required=True, help="Touchpoint title")
    sub.add_argument("--date", required=True, help="Touchpoint date (YYYY-MM-DD)")
    sub.add_argument("--owner", default="", help="Owner name (blank means Unassigned)")
    sub.add_argument("--channel", default="", help="Channel (blank means Unspecified)")
    sub.add_argument("--notes", default="", help="Free-text notes")

    command("list-cohorts", run_list_cohorts, "List cohorts by start date")

    sub = command("upcoming", run_upcoming, "List upcoming touchpoints")
    sub.add_argument("--days", type=int, default=30, help="Days ahead to include")

    sub = command("summary", run_summary, "Counts plus upcoming touchpoints")
    sub.add_argument("--days", type=int, default=30, help="Days ahead to include")

    sub = command("export-ics", run_export_ics, "Export upcoming touchpoints as an ICS calendar")
    sub.add_argument("--days", type=int, default=90, help="Days ahead to export")
    sub.add_argument("--output", help="ICS output path (defaults next to the store)")

    sub = command("status", run_status, "Per-cohort cadence status")
    sub.add_argument("--stale-days", type=int, default=21, help="Days without a touchpoint before an active cohort is stale")
    sub.add_argument("--lookahead", type=int, default=30, help="Days ahead to look for the next touchpoint")

    sub = command("gap-report", run_gap_report, "Stale/unscheduled gap classification")
    sub.add_argument("--lookback", type=int, default=30, help="Days back to look for a recent touchpoint")
    sub.add_argument("--lookahead", type=int, default=30, help="Days ahead to look for a scheduled touchpoint")
    sub.add_argument("--status", help="Only list cohorts with this status (at-risk, stale, unscheduled, on-track)")

    sub = command("cadence-metrics", run_cadence_metrics, "Gap statistics between touchpoints")
    sub.add_argument("--max-gap", type=int, help="Flag cohorts whose largest gap exceeds this many days")

    sub = command("cohort-report", run_cohort_report, "Drill into one cohort")
    sub.add_argument("--cohort", required=True, help="Cohort id or name")
    sub.add_argument("--lookback", type=int, default=30, help="Days back to list")
    sub.add_argument("--lookahead", type=int, default=30, help="Days ahead to list")

    sub = command("owner-load", run_owner_load, "Upcoming touchpoints grouped by owner")
    sub.add_argument("--days", type=int, default=30, help="Days ahead to include")
    sub.add_argument("--owner", help="Only include this owner")

    sub = command("owner-balance", run_owner_balance, "Workload balance across owners")
    sub.add_argument("--days", type=int, default=30, help="Days ahead to include")
    sub.add_argument("--threshold", type=float, default=0.25, help="Allowed deviation from the average load")

    sub = command("channel-report", run_channel_report, "Touchpoints grouped by channel")
    sub.add_argument("--lookback", type=int, default=30, help="Days back to include")
    sub.add_argument("--lookahead", type=int, default=30, help="Days ahead to include")
    sub.add_argument("--owner", help="Only include this owner")
    sub.add_argument("--cohort", help="Only include this cohort (id or name)")

    sub = command("weekday-report", run_weekday_report, "Touchpoints grouped by weekday")
    sub.add_argument("--lookback", type=int, default=30, help="Days back to include")
    sub.add_argument("--lookahead", type=int, default=30, help="Days ahead to include")
    sub.add_argument("--owner", help="Only include this owner")
    sub.add_argument("--cohort", help="Only include this cohort (id or name)")

    sub = command("weekly-agenda", run_weekly_agenda, "Upcoming touchpoints by ISO week")
    sub.add_argument("--weeks", type=int, default=8, help="Weeks ahead to include")
    sub.add_argument("--owner", help="Only include this owner")
    sub.add_argument("--cohort", help="Only include this cohort (id or name)")

    sub = command("coverage-report", run_coverage_report, "Weekly touchpoint coverage per cohort")
    sub.add_argument("--weeks", type=int, default=8, help="Weeks to track from the current week")
    sub.add_argument("--cohort", help="Only include this cohort (id or name)")

    sub = command("owner-capacity", run_owner_capacity, "Weekly touchpoint load per owner")
    sub.add_argument("--weeks", type=int, default=8, help="Weeks ahead to include")
    sub.add_argument("--limit", type=int, help="Weekly touchpoint limit per owner")
    sub.add_argument("--owner", help="Only include this owner")

    sub = command("owner-conflicts", run_owner_conflicts, "Days where an owner exceeds the daily limit")
    sub.add_argument("--days", type=int, default=30, help="Days ahead to include")
    sub.add_argument("--limit", type=int, default=2, help="Daily touchpoint limit per owner")
    sub.add_argument("--owner", help="Only include this owner")

    sub = command("action-plan", run_action_plan, "Cohorts that need a new touchpoint")
    sub.add_argument("--target-gap", type=int, default=21, help="Target days between touchpoints")
    sub.add_argument("--lookahead", type=int, default=30, help="Days ahead that count as actionable")

    command("sync-db", run_sync_db, "Mirror the store into Postgres")
    command("seed-db", run_seed_db, "Seed Postgres with the demonstration dataset")

    sub = command("db-summary", run_db_summary, "Summarize the Postgres mirror")
    sub.add_argument("--lookahead", type=int, default=30, help="Days ahead for upcoming touchpoints")
    sub.add_argument("--stale-days", type=int, default=21, help="Days without a touchpoint before a cohort is stale")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "handler", None):
        parser.print_help()
        return 1

    try:
        today = resolve_today(args.today)
        payload = args.handler(args, today)
    except cadence.CadenceError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json_path and payload is not None:
        with open(args.json_path, "w", encoding="utf-8") as handle:
            json.dump(to_jsonable(payload), handle, indent=2)
        print(f"\nJSON report written to {args.json_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
