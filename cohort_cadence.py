from dataclasses import dataclass, field
from datetime import datetime, date, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

DATE_FMT = "%Y-%m-%d"
UNASSIGNED_OWNER = "Unassigned"
UNSPECIFIED_CHANNEL = "Unspecified"
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class CadenceError(Exception):
    pass


class NotFound(CadenceError):
    pass


class ValidationError(CadenceError):
    pass


class StoreNotInitialized(CadenceError):
    pass


class MirrorUnavailable(CadenceError):
    pass


class CohortStatus(str, Enum):
    ACTIVE = "active"
    UPCOMING = "upcoming"
    ENDED = "ended"

    @property
    def priority(self) -> int:
        return {"active": 0, "upcoming": 1, "ended": 2}[self.value]


class GapStatus(str, Enum):
    AT_RISK = "at-risk"
    STALE = "stale"
    UNSCHEDULED = "unscheduled"
    ON_TRACK = "on-track"

    @classmethod
    def classify(cls, stale: bool, unscheduled: bool) -> "GapStatus":
        if stale and unscheduled:
            return cls.AT_RISK
        if stale:
            return cls.STALE
        if unscheduled:
            return cls.UNSCHEDULED
        return cls.ON_TRACK


class BalanceStatus(str, Enum):
    OVERLOADED = "overloaded"
    BALANCED = "balanced"
    UNDERLOADED = "underloaded"


@dataclass(frozen=True)
class Cohort:
    id: str
    name: str
    start_date: date
    end_date: date
    size: int
    notes: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class Touchpoint:
    id: str
    cohort_id: str
    cohort_name: str
    title: str
    date: date
    owner: str = ""
    channel: str = ""
    notes: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class Snapshot:
    cohorts: Tuple[Cohort, ...] = field(default_factory=tuple)
    touchpoints: Tuple[Touchpoint, ...] = field(default_factory=tuple)

    def with_cohort(self, cohort: Cohort) -> "Snapshot":
        return Snapshot(cohorts=self.cohorts + (cohort,), touchpoints=self.touchpoints)

    def with_touchpoint(self, touchpoint: Touchpoint) -> "Snapshot":
        return Snapshot(cohorts=self.cohorts, touchpoints=self.touchpoints + (touchpoint,))


def parse_date(value: str) -> Optional[date]:
    value = (value or "").strip()
    if not value:
        return None
    try:
        return datetime.strptime(value, DATE_FMT).date()
    except ValueError:
        return None


def normalize_owner(owner: str) -> str:
    value = (owner or "").strip()
    return value or UNASSIGNED_OWNER


def normalize_channel(channel: str) -> str:
    value = (channel or "").strip()
    return value or UNSPECIFIED_CHANNEL


def same_text(value: str, query: str) -> bool:
    return (value or "").strip().casefold() == (query or "").strip().casefold()


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def window(today: date, lookback_days: int, lookahead_days: int) -> Tuple[date, date]:
    return today - timedelta(days=lookback_days), today + timedelta(days=lookahead_days)


def week_start(value: date) -> date:
    return value - timedelta(days=value.isoweekday() - 1)


def week_end(value: date) -> date:
    return week_start(value) + timedelta(days=6)


def week_buckets(today: date, weeks: int) -> List[Tuple[date, date]]:
    first = week_start(today)
    return [
        (first + timedelta(days=7 * offset), first + timedelta(days=7 * offset + 6))
        for offset in range(weeks)
    ]


def forward_window(today: date, weeks: int) -> Tuple[date, date]:
    return today, today + timedelta(days=weeks * 7 - 1)


def weeks_spanning(start: date, end: date) -> List[Tuple[date, date]]:
    buckets: List[Tuple[date, date]] = []
    current = week_start(start)
    while current <= end:
        buckets.append((current, current + timedelta(days=6)))
        current += timedelta(days=7)
    return buckets


def clamp_weeks(weeks: int) -> int:
    return max(1, int(weeks))


def clamp_days(days: int) -> int:
    return max(0, int(days))


def touchpoint_key(touchpoint: Touchpoint) -> Tuple[date, str]:
    return touchpoint.date, touchpoint.id


def sort_touchpoints(touchpoints: Iterable[Touchpoint]) -> List[Touchpoint]:
    return sorted(touchpoints, key=touchpoint_key)


def find_cohort(snapshot: Snapshot, identifier: str) -> Cohort:
    if is_blank(identifier):
        raise NotFound("Missing cohort identifier")
    wanted = identifier.strip()
    for cohort in snapshot.cohorts:
        if cohort.id == wanted or same_text(cohort.name, wanted):
            return cohort
    raise NotFound(f"Unknown cohort: {wanted}")


def group_by_cohort(snapshot: Snapshot) -> Dict[str, List[Touchpoint]]:
    grouped: Dict[str, List[Touchpoint]] = {}
    for touchpoint in sort_touchpoints(snapshot.touchpoints):
        grouped.setdefault(touchpoint.cohort_id, []).append(touchpoint)
    return grouped


def touchpoints_for(snapshot: Snapshot, cohort_id: str) -> List[Touchpoint]:
    return group_by_cohort(snapshot).get(cohort_id, [])


def filter_touchpoints(
    snapshot: Snapshot,
    start: date,
    end: date,
    owner: Optional[str] = None,
    cohort: Optional[str] = None,
) -> List[Touchpoint]:
    cohort_id = find_cohort(snapshot, cohort).id if not is_blank(cohort) else None
    selected = []
    for touchpoint in snapshot.touchpoints:
        if not start <= touchpoint.date <= end:
            continue
        if not is_blank(owner) and not same_text(normalize_owner(touchpoint.owner), owner):
            continue
        if cohort_id is not None and touchpoint.cohort_id != cohort_id:
            continue
        selected.append(touchpoint)
    return sort_touchpoints(selected)


def rollup(values: Iterable[str]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))


def last_and_next(touchpoints: Sequence[Touchpoint], today: date) -> Tuple[Optional[Touchpoint], Optional[Touchpoint]]:
    ordered = sort_touchpoints(touchpoints)
    past = [touchpoint for touchpoint in ordered if touchpoint.date <= today]
    future = [touchpoint for touchpoint in ordered if touchpoint.date >= today]
    return (past[-1] if past else None), (future[0] if future else None)


def days_between(earlier: Optional[date], later: Optional[date]) -> Optional[int]:
    if earlier is None or later is None:
        return None
    return (later - earlier).days


def lifecycle_status(cohort: Cohort, today: date) -> CohortStatus:
    if cohort.end_date < today:
        return CohortStatus.ENDED
    if cohort.start_date > today:
        return CohortStatus.UPCOMING
    return CohortStatus.ACTIVE


def split_past_upcoming(touchpoints: Sequence[Touchpoint], today: date) -> Tuple[List[Touchpoint], List[Touchpoint]]:
    past = [touchpoint for touchpoint in touchpoints if touchpoint.date < today]
    future = [touchpoint for touchpoint in touchpoints if touchpoint.date >= today]
    return past, future


def list_cohorts(snapshot: Snapshot) -> List[Cohort]:
    return sorted(snapshot.cohorts, key=lambda cohort: (cohort.start_date, cohort.name))


def upcoming(snapshot: Snapshot, today: date, days: int) -> List[Touchpoint]:
    start, end = window(today, 0, clamp_days(days))
    return filter_touchpoints(snapshot, start, end)


def summary(snapshot: Snapshot, today: date, days: int) -> Dict[str, object]:
    days = clamp_days(days)
    return {
        "today": today,
        "days": days,
        "cohort_count": len(snapshot.cohorts),
        "touchpoint_count": len(snapshot.touchpoints),
        "upcoming": upcoming(snapshot, today, days),
    }


def cadence_status(snapshot: Snapshot, today: date, stale_days: int, lookahead_days: int) -> List[Dict[str, object]]:
    grouped = group_by_cohort(snapshot)
    lookahead_date = today + timedelta(days=lookahead_days)
    entries: List[Dict[str, object]] = []
    for cohort in snapshot.cohorts:
        last_touch, next_touch = last_and_next(grouped.get(cohort.id, []), today)
        status = lifecycle_status(cohort, today)
        if last_touch:
            days_since_last = days_between(last_touch.date, today)
        elif cohort.start_date <= today:
            days_since_last = days_between(cohort.start_date, today)
        else:
            days_since_last = None
        entries.append(
            {
                "cohort": cohort,
                "status": status,
                "last_touchpoint": last_touch,
                "next_touchpoint": next_touch,
                "days_since_last": days_since_last,
                "days_until_next": days_between(today, next_touch.date) if next_touch else None,
                "next_within_lookahead": bool(next_touch and next_touch.date <= lookahead_date),
                "stale": status is CohortStatus.ACTIVE
                and days_since_last is not None
                and days_since_last > stale_days,
                "stale_days": stale_days,
            }
        )
    return sorted(
        entries,
        key=lambda item: (
            0 if item["stale"] else 1,
            item["status"].priority,
            -(item["days_since_last"] if item["days_since_last"] is not None else -1),
        ),
    )


def gap_report(
    snapshot: Snapshot,
    today: date,
    lookback_days: int,
    lookahead_days: int,
    status: Optional[str] = None,
) -> Dict[str, object]:
    status_filter = None
    if not is_blank(status):
        try:
            status_filter = GapStatus(status.strip())
        except ValueError:
            allowed = ", ".join(item.value for item in GapStatus)
            raise ValidationError(f"Invalid status {status}. Use one of: {allowed}") from None

    grouped = group_by_cohort(snapshot)
    entries: List[Dict[str, object]] = []
    counts = {item: 0 for item in GapStatus}
    for cohort in snapshot.cohorts:
        last_touch, next_touch = last_and_next(grouped.get(cohort.id, []), today)
        days_since_last = days_between(last_touch.date, today) if last_touch else None
        days_until_next = days_between(today, next_touch.date) if next_touch else None
        stale = days_since_last is None or days_since_last > lookback_days
        unscheduled = days_until_next is None or days_until_next > lookahead_days
        gap_status = GapStatus.classify(stale, unscheduled)
        counts[gap_status] += 1
        entries.append(
            {
                "cohort": cohort,
                "last_touchpoint": last_touch.date if last_touch else None,
                "next_touchpoint": next_touch.date if next_touch else None,
                "days_since_last": days_since_last,
                "days_until_next": days_until_next,
                "stale": stale,
                "unscheduled": unscheduled,
                "status": gap_status,
            }
        )

    entries.sort(key=lambda item: (item["cohort"].start_date, item["cohort"].name))
    if status_filter is not None:
        entries = [entry for entry in entries if entry["status"] is status_filter]
    return {
        "today": today,
        "lookback_days": lookback_days,
        "lookahead_days": lookahead_days,
        "status_filter": status_filter,
        "cohort_count": len(snapshot.cohorts),
        "counts": counts,
        "entries": entries,
    }


def cadence_metrics(snapshot: Snapshot, today: date, max_gap_days: Optional[int] = None) -> Dict[str, object]:
    grouped = group_by_cohort(snapshot)
    entries: List[Dict[str, object]] = []
    for cohort in snapshot.cohorts:
        touches = grouped.get(cohort.id, [])
        gaps = [(later.date - earlier.date).days for earlier, later in zip(touches, touches[1:])]
        last_touch, next_touch = last_and_next(touches, today)
        max_gap = max(gaps) if gaps else None
        entries.append(
            {
                "cohort": cohort,
                "touchpoint_count": len(touches),
                "gaps": gaps,
                "avg_gap_days": round(sum(gaps) / len(gaps), 2) if gaps else None,
                "min_gap_days": min(gaps) if gaps else None,
                "max_gap_days": max_gap,
                "gap_flag": max_gap_days is not None and max_gap is not None and max_gap > max_gap_days,
                "last_touchpoint": last_touch,
                "next_touchpoint": next_touch,
                "days_since_last": days_between(last_touch.date, today) if last_touch else None,
                "days_until_next": days_between(today, next_touch.date) if next_touch else None,
            }
        )
    entries.sort(
        key=lambda item: (
            0 if item["gap_flag"] else 1,
            -(item["max_gap_days"] if item["max_gap_days"] is not None else -1),
            item["cohort"].start_date,
        )
    )
    return {
        "today": today,
        "max_gap_days": max_gap_days,
        "cohort_count": len(entries),
        "flagged_count": sum(1 for entry in entries if entry["gap_flag"]),
        "entries": entries,
    }


def cohort_report(
    snapshot: Snapshot,
    today: date,
    identifier: str,
    lookback_days: int,
    lookahead_days: int,
) -> Dict[str, object]:
    cohort = find_cohort(snapshot, identifier)
    touches = touchpoints_for(snapshot, cohort.id)
    last_touch, next_touch = last_and_next(touches, today)
    start, end = window(today, clamp_days(lookback_days), clamp_days(lookahead_days))
    return {
        "today": today,
        "cohort": cohort,
        "status": lifecycle_status(cohort, today),
        "lookback_days": lookback_days,
        "lookahead_days": lookahead_days,
        "touchpoint_count": len(touches),
        "last_touchpoint": last_touch,
        "next_touchpoint": next_touch,
        "days_since_last": days_between(last_touch.date, today) if last_touch else None,
        "days_until_next": days_between(today, next_touch.date) if next_touch else None,
        "recent_touchpoints": [touch for touch in touches if start <= touch.date < today],
        "upcoming_touchpoints": [touch for touch in touches if today <= touch.date <= end],
    }


def owner_load(snapshot: Snapshot, today: date, days: int, owner: Optional[str] = None) -> Dict[str, object]:
    days = clamp_days(days)
    start, end = window(today, 0, days)
    selected = filter_touchpoints(snapshot, start, end, owner=owner)
    buckets: Dict[str, List[Touchpoint]] = {}
    for touchpoint in selected:
        buckets.setdefault(normalize_owner(touchpoint.owner), []).append(touchpoint)

    owners = [
        {
            "owner": name,
            "count": len(touches),
            "channels": rollup(normalize_channel(touch.channel) for touch in touches),
            "cohorts": rollup(touch.cohort_name for touch in touches),
            "touchpoints": touches,
        }
        for name, touches in buckets.items()
    ]
    owners.sort(key=lambda item: (-int(item["count"]), item["owner"]))
    return {
        "today": today,
        "days": days,
        "window_start": start,
        "window_end": end,
        "owner_filter": owner,
        "total_touchpoints": len(selected),
        "owners": owners,
    }


def owner_balance(snapshot: Snapshot, today: date, days: int, threshold: float = 0.25) -> Dict[str, object]:
    load = owner_load(snapshot, today, days)
    total = int(load["total_touchpoints"])
    owners_count = len(load["owners"])
    avg = round(total / owners_count, 2) if owners_count else None
    status_counts = {item: 0 for item in BalanceStatus}
    owners: List[Dict[str, object]] = []
    for bucket in load["owners"]:
        count = int(bucket["count"])
        if count > avg * (1 + threshold):
            status = BalanceStatus.OVERLOADED
        elif count < avg * (1 - threshold):
            status = BalanceStatus.UNDERLOADED
        else:
            status = BalanceStatus.BALANCED
        status_counts[status] += 1
        owners.append(
            {
                "owner": bucket["owner"],
                "count": count,
                "share": round(count / total, 3),
                "delta_from_avg": round(count - avg, 2),
                "status": status,
                "channels": bucket["channels"],
            }
        )
    return {
        "today": today,
        "days": load["days"],
        "window_start": load["window_start"],
        "window_end": load["window_end"],
        "threshold": threshold,
        "total_touchpoints": total,
        "owners_count": owners_count,
        "avg_per_owner": avg,
        "status_counts": status_counts,
        "owners": owners,
    }


def channel_report(
    snapshot: Snapshot,
    today: date,
    lookback_days: int,
    lookahead_days: int,
    owner: Optional[str] = None,
    cohort: Optional[str] = None,
) -> Dict[str, object]:
    lookback_days = clamp_days(lookback_days)
    lookahead_days = clamp_days(lookahead_days)
    start, end = window(today, lookback_days, lookahead_days)
    selected = filter_touchpoints(snapshot, start, end, owner=owner, cohort=cohort)
    buckets: Dict[str, List[Touchpoint]] = {}
    for touchpoint in selected:
        buckets.setdefault(normalize_channel(touchpoint.channel), []).append(touchpoint)

    channels: List[Dict[str, object]] = []
    for name, touches in buckets.items():
        past, future = split_past_upcoming(touches, today)
        channels.append(
            {
                "channel": name,
                "count": len(touches),
                "past_count": len(past),
                "upcoming_count": len(future),
                "last_touchpoint": past[-1] if past else None,
                "next_touchpoint": future[0] if future else None,
                "owners": rollup(normalize_owner(touch.owner) for touch in touches),
                "cohorts": rollup(touch.cohort_name for touch in touches),
                "touchpoints": touches,
            }
        )
    channels.sort(key=lambda item: (-int(item["count"]), item["channel"]))
    return {
        "today": today,
        "lookback_days": lookback_days,
        "lookahead_days": lookahead_days,
        "window_start": start,
        "window_end": end,
        "owner_filter": owner,
        "cohort_filter": cohort,
        "total_touchpoints": len(selected),
        "channels": channels,
    }


def weekday_report(
    snapshot: Snapshot,
    today: date,
    lookback_days: int,
    lookahead_days: int,
    owner: Optional[str] = None,
    cohort: Optional[str] = None,
) -> Dict[str, object]:
    lookback_days = clamp_days(lookback_days)
    lookahead_days = clamp_days(lookahead_days)
    start, end = window(today, lookback_days, lookahead_days)
    selected = filter_touchpoints(snapshot, start, end, owner=owner, cohort=cohort)
    by_weekday: Dict[int, List[Touchpoint]] = {index: [] for index in range(7)}
    for touchpoint in selected:
        by_weekday[touchpoint.date.weekday()].append(touchpoint)

    weekdays: List[Dict[str, object]] = []
    for index, name in enumerate(WEEKDAY_NAMES):
        touches = by_weekday[index]
        past, future = split_past_upcoming(touches, today)
        weekdays.append(
            {
                "weekday": name,
                "count": len(touches),
                "past_count": len(past),
                "upcoming_count": len(future),
                "owners": rollup(normalize_owner(touch.owner) for touch in touches),
                "channels": rollup(normalize_channel(touch.channel) for touch in touches),
            }
        )
    busiest = max(weekdays, key=lambda item: int(item["count"])) if selected else None
    return {
        "today": today,
        "lookback_days": lookback_days,
        "lookahead_days": lookahead_days,
        "window_start": start,
        "window_end": end,
        "owner_filter": owner,
        "cohort_filter": cohort,
        "total_touchpoints": len(selected),
        "busiest_weekday": busiest["weekday"] if busiest else None,
        "weekdays": weekdays,
    }


def weekly_agenda(
    snapshot: Snapshot,
    today: date,
    weeks: int,
    owner: Optional[str] = None,
    cohort: Optional[str] = None,
) -> Dict[str, object]:
    weeks = clamp_weeks(weeks)
    start, end = forward_window(today, weeks)
    selected = filter_touchpoints(snapshot, start, end, owner=owner, cohort=cohort)
    buckets: Dict[date, List[Touchpoint]] = {}
    for touchpoint in selected:
        buckets.setdefault(week_start(touchpoint.date), []).append(touchpoint)

    weeks_list = [
        {
            "week_start": bucket_start,
            "week_end": bucket_start + timedelta(days=6),
            "count": len(touches),
            "touchpoints": touches,
        }
        for bucket_start, touches in sorted(buckets.items())
    ]
    return {
        "today": today,
        "weeks": weeks,
        "window_start": start,
        "window_end": end,
        "owner_filter": owner,
        "cohort_filter": cohort,
        "total_touchpoints": len(selected),
        "weeks_list": weeks_list,
    }


def empty_runs(weeks: Sequence[Dict[str, object]]) -> List[Dict[str, object]]:
    runs: List[Dict[str, object]] = []
    current: Optional[Dict[str, object]] = None
    for week in weeks:
        if int(week["count"]) > 0:
            current = None
            continue
        if current is None:
            current = {"start": week["week_start"], "end": week["week_end"], "weeks": 0}
            runs.append(current)
        current["end"] = week["week_end"]
        current["weeks"] = int(current["weeks"]) + 1
    return runs


def cohort_coverage(snapshot: Snapshot, today: date, weeks: int, cohort: Optional[str] = None) -> Dict[str, object]:
    weeks = clamp_weeks(weeks)
    buckets = week_buckets(today, weeks)
    start, end = buckets[0][0], buckets[-1][1]
    cohorts = [find_cohort(snapshot, cohort)] if not is_blank(cohort) else list(snapshot.cohorts)
    grouped = group_by_cohort(snapshot)

    entries: List[Dict[str, object]] = []
    for item in cohorts:
        touches = [touch for touch in grouped.get(item.id, []) if start <= touch.date <= end]
        week_rows = [
            {
                "week_start": bucket_start,
                "week_end": bucket_end,
                "count": sum(1 for touch in touches if bucket_start <= touch.date <= bucket_end),
            }
            for bucket_start, bucket_end in buckets
        ]
        covered = sum(1 for row in week_rows if int(row["count"]) > 0)
        runs = empty_runs(week_rows)
        entries.append(
            {
                "cohort": item,
                "total_touchpoints": len(touches),
                "weeks_tracked": len(week_rows),
                "weeks_with_touchpoints": covered,
                "weeks_without_touchpoints": len(week_rows) - covered,
                "coverage_rate": covered / len(week_rows),
                "longest_gap_weeks": max((int(run["weeks"]) for run in runs), default=0),
                "empty_weeks": [
                    {"week_start": row["week_start"], "week_end": row["week_end"]}
                    for row in week_rows
                    if int(row["count"]) == 0
                ],
                "gap_ranges": runs,
                "weeks": week_rows,
            }
        )
    entries.sort(key=lambda entry: (-int(entry["total_touchpoints"]), entry["cohort"].name))
    return {
        "today": today,
        "weeks": weeks,
        "window_start": start,
        "window_end": end,
        "cohort_filter": cohort,
        "cohort_count": len(entries),
        "weeks_tracked": len(buckets),
        "entries": entries,
    }


def owner_capacity(
    snapshot: Snapshot,
    today: date,
    weeks: int,
    weekly_limit: Optional[int] = None,
    owner: Optional[str] = None,
) -> Dict[str, object]:
    weeks = clamp_weeks(weeks)
    start, end = forward_window(today, weeks)
    selected = filter_touchpoints(snapshot, start, end, owner=owner)
    spans = weeks_spanning(start, end)
    buckets: Dict[str, List[Touchpoint]] = {}
    for touchpoint in selected:
        buckets.setdefault(normalize_owner(touchpoint.owner), []).append(touchpoint)

    owners: List[Dict[str, object]] = []
    for name, touches in buckets.items():
        week_rows: List[Dict[str, object]] = []
        for bucket_start, bucket_end in spans:
            in_week = [touch for touch in touches if bucket_start <= touch.date <= bucket_end]
            week_rows.append(
                {
                    "week_start": bucket_start,
                    "week_end": bucket_end,
                    "count": len(in_week),
                    "over_limit": weekly_limit is not None and len(in_week) > weekly_limit,
                    "touchpoints": in_week,
                }
            )
        owners.append(
            {
                "owner": name,
                "total_touchpoints": len(touches),
                "weeks_tracked": len(week_rows),
                "over_limit_weeks": sum(1 for row in week_rows if row["over_limit"]),
                "peak_week_count": max(int(row["count"]) for row in week_rows),
                "weeks": week_rows,
            }
        )
    owners.sort(key=lambda item: (-int(item["total_touchpoints"]), item["owner"]))
    return {
        "today": today,
        "weeks": weeks,
        "weekly_limit": weekly_limit,
        "window_start": start,
        "window_end": end,
        "owner_filter": owner,
        "total_touchpoints": len(selected),
        "owners_count": len(owners),
        "over_limit_weeks": sum(int(item["over_limit_weeks"]) for item in owners),
        "owners": owners,
    }


def owner_conflicts(
    snapshot: Snapshot,
    today: date,
    days: int,
    daily_limit: int = 2,
    owner: Optional[str] = None,
) -> Dict[str, object]:
    days = clamp_days(days)
    start, end = window(today, 0, days)
    selected = filter_touchpoints(snapshot, start, end, owner=owner)
    buckets: Dict[str, Dict[date, List[Touchpoint]]] = {}
    totals: Dict[str, int] = {}
    for touchpoint in selected:
        name = normalize_owner(touchpoint.owner)
        buckets.setdefault(name, {}).setdefault(touchpoint.date, []).append(touchpoint)
        totals[name] = totals.get(name, 0) + 1

    owners: List[Dict[str, object]] = []
    for name, by_day in buckets.items():
        conflict_days = [
            {"date": day, "count": len(touches), "touchpoints": touches}
            for day, touches in sorted(by_day.items())
            if len(touches) > daily_limit
        ]
        if not conflict_days:
            continue
        owners.append(
            {
                "owner": name,
                "total_touchpoints": totals[name],
                "conflict_days": len(conflict_days),
                "peak_count": max(int(day["count"]) for day in conflict_days),
                "days": conflict_days,
            }
        )
    owners.sort(key=lambda item: (-int(item["conflict_days"]), item["owner"]))
    return {
        "today": today,
        "days": days,
        "daily_limit": daily_limit,
        "window_start": start,
        "window_end": end,
        "owner_filter": owner,
        "total_touchpoints": len(selected),
        "owners_count": len(owners),
        "conflict_days": sum(int(item["conflict_days"]) for item in owners),
        "owners": owners,
    }


def recommend_owner(touchpoints: Sequence[Touchpoint], last_touch: Optional[Touchpoint]) -> str:
    if last_touch and not is_blank(last_touch.owner):
        return last_touch.owner.strip()
    counts = rollup(touch.owner.strip() for touch in touchpoints if not is_blank(touch.owner))
    if counts:
        return next(iter(counts))
    return UNASSIGNED_OWNER


def action_plan(
    snapshot: Snapshot,
    today: date,
    target_gap_days: int = 21,
    lookahead_days: int = 30,
) -> Dict[str, object]:
    grouped = group_by_cohort(snapshot)
    lookahead_date = today + timedelta(days=lookahead_days)
    entries: List[Dict[str, object]] = []
    for cohort in snapshot.cohorts:
        status = lifecycle_status(cohort, today)
        if status is CohortStatus.ENDED:
            continue
        touches = grouped.get(cohort.id, [])
        last_touch, next_touch = last_and_next(touches, today)

        if status is CohortStatus.ACTIVE:
            if next_touch and next_touch.date <= today + timedelta(days=target_gap_days):
                continue
            if last_touch:
                recommended = max(today, last_touch.date + timedelta(days=target_gap_days))
                reason = f"No touchpoint scheduled within {target_gap_days} days of the last one"
            else:
                recommended = today
                reason = "Active cohort has no touchpoints yet"
        else:
            if next_touch and next_touch.date <= cohort.start_date + timedelta(days=target_gap_days):
                continue
            recommended = cohort.start_date
            reason = f"No touchpoint planned within {target_gap_days} days of the cohort start"

        entries.append(
            {
                "cohort": cohort,
                "status": status,
                "last_touchpoint": last_touch,
                "next_touchpoint": next_touch,
                "days_since_last": days_between(last_touch.date, today) if last_touch else None,
                "days_until_next": days_between(today, next_touch.date) if next_touch else None,
                "recommended_date": recommended,
                "recommended_owner": recommend_owner(touches, last_touch),
                "reason": reason,
                "within_lookahead": recommended <= lookahead_date,
            }
        )

    entries.sort(
        key=lambda item: (
            0 if item["within_lookahead"] else 1,
            item["recommended_date"],
            item["cohort"].start_date,
        )
    )
    return {
        "today": today,
        "target_gap_days": target_gap_days,
        "lookahead_days": lookahead_days,
        "cohort_count": len(snapshot.cohorts),
        "action_count": len(entries),
        "entries": entries,
    }
