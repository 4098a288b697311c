import json
import random
from dataclasses import asdict
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional, Set

from cohort_cadence import (
    Cohort,
    Snapshot,
    StoreNotInitialized,
    Touchpoint,
    ValidationError,
    find_cohort,
    is_blank,
    parse_date,
)

STORE_VERSION = 1


def timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).isoformat(timespec="seconds")


def cohort_to_row(cohort: Cohort) -> Dict[str, object]:
    row = asdict(cohort)
    row["start_date"] = cohort.start_date.isoformat()
    row["end_date"] = cohort.end_date.isoformat()
    return row


def touchpoint_to_row(touchpoint: Touchpoint) -> Dict[str, object]:
    row = asdict(touchpoint)
    row["date"] = touchpoint.date.isoformat()
    return row


def cohort_from_row(row: Dict[str, object]) -> Cohort:
    return Cohort(
        id=str(row["id"]),
        name=str(row["name"]),
        start_date=require_date(str(row["start_date"]), "start_date"),
        end_date=require_date(str(row["end_date"]), "end_date"),
        size=int(row["size"]),
        notes=str(row.get("notes") or ""),
        created_at=str(row.get("created_at") or ""),
    )


def touchpoint_from_row(row: Dict[str, object]) -> Touchpoint:
    return Touchpoint(
        id=str(row["id"]),
        cohort_id=str(row["cohort_id"]),
        cohort_name=str(row.get("cohort_name") or ""),
        title=str(row.get("title") or ""),
        date=require_date(str(row["date"]), "date"),
        owner=str(row.get("owner") or ""),
        channel=str(row.get("channel") or ""),
        notes=str(row.get("notes") or ""),
        created_at=str(row.get("created_at") or ""),
    )


def require_text(value: Optional[str], field: str) -> str:
    if is_blank(value):
        raise ValidationError(f"Missing --{field.replace('_', '-')}")
    return str(value).strip()


def require_date(value: Optional[str], field: str) -> date:
    text = require_text(value, field)
    parsed = parse_date(text)
    if parsed is None:
        raise ValidationError(f"Invalid {field} {text!r}. Use YYYY-MM-DD.")
    return parsed


def require_size(value: object) -> int:
    text = require_text(None if value is None else str(value), "size")
    try:
        size = int(text)
    except ValueError:
        raise ValidationError(f"Invalid size {text!r}. Use a positive whole number.") from None
    if size <= 0:
        raise ValidationError(f"Invalid size {size}. Use a positive whole number.")
    return size


class CadenceStore:
    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._meta: Dict[str, object] = {}

    def exists(self) -> bool:
        return self.path.exists()

    def init(self, now: Optional[datetime] = None) -> None:
        self._meta = {"created_at": timestamp(now), "version": STORE_VERSION}
        self.save(Snapshot())

    def load(self) -> Snapshot:
        if not self.path.exists():
            raise StoreNotInitialized(f"No cadence store found at {self.path}. Run `cohort-cadence init` first.")
        try:
            with open(self.path, encoding="utf-8") as handle:
                data = json.load(handle)
            self._meta = dict(data.get("meta") or {})
            return Snapshot(
                cohorts=tuple(cohort_from_row(row) for row in data.get("cohorts", [])),
                touchpoints=tuple(touchpoint_from_row(row) for row in data.get("touchpoints", [])),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise ValidationError(f"Corrupt cadence store at {self.path}: {exc!r}") from exc

    def save(self, snapshot: Snapshot) -> None:
        meta = self._meta or {"created_at": timestamp(), "version": STORE_VERSION}
        data = {
            "meta": meta,
            "cohorts": [cohort_to_row(cohort) for cohort in snapshot.cohorts],
            "touchpoints": [touchpoint_to_row(touchpoint) for touchpoint in snapshot.touchpoints],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)

    def add_cohort(
        self,
        name: str,
        start_date: str,
        end_date: str,
        size: object,
        notes: str = "",
        now: Optional[datetime] = None,
    ) -> Cohort:
        snapshot = self.load()
        start = require_date(start_date, "start_date")
        end = require_date(end_date, "end_date")
        if start > end:
            raise ValidationError(f"start_date {start.isoformat()} is after end_date {end.isoformat()}.")
        cohort = Cohort(
            id=generate_id("cohort", existing_ids(snapshot), now),
            name=require_text(name, "name"),
            start_date=start,
            end_date=end,
            size=require_size(size),
            notes=(notes or "").strip(),
            created_at=timestamp(now),
        )
        self.save(snapshot.with_cohort(cohort))
        return cohort

    def add_touchpoint(
        self,
        cohort: str,
        title: str,
        date: str,
        owner: str = "",
        channel: str = "",
        notes: str = "",
        now: Optional[datetime] = None,
    ) -> Touchpoint:
        snapshot = self.load()
        target = find_cohort(snapshot, require_text(cohort, "cohort"))
        touchpoint = Touchpoint(
            id=generate_id("touchpoint", existing_ids(snapshot), now),
            cohort_id=target.id,
            cohort_name=target.name,
            title=require_text(title, "title"),
            date=require_date(date, "date"),
            owner=(owner or "").strip(),
            channel=(channel or "").strip(),
            notes=(notes or "").strip(),
            created_at=timestamp(now),
        )
        self.save(snapshot.with_touchpoint(touchpoint))
        return touchpoint


def existing_ids(snapshot: Snapshot) -> Set[str]:
    ids: List[str] = [cohort.id for cohort in snapshot.cohorts]
    ids.extend(touchpoint.id for touchpoint in snapshot.touchpoints)
    return set(ids)


def generate_id(prefix: str, taken: Set[str], now: Optional[datetime] = None) -> str:
    seconds = int((now or datetime.now()).timestamp())
    while True:
        candidate = f"{prefix}-{seconds}-{random.randint(1000, 9999)}"
        if candidate not in taken:
            return candidate
