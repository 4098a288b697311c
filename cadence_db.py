import os
import re
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from cohort_cadence import Cohort, MirrorUnavailable, Snapshot, Touchpoint

DEFAULT_DB_SCHEMA = "groupscholar_cohort_cadence"

COHORT_UPSERT = """
    INSERT INTO {schema}.cohorts (id, name, start_date, end_date, size, notes, created_at)
    VALUES (%s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (id) DO UPDATE SET
        name = EXCLUDED.name,
        start_date = EXCLUDED.start_date,
        end_date = EXCLUDED.end_date,
        size = EXCLUDED.size,
        notes = EXCLUDED.notes,
        created_at = EXCLUDED.created_at
"""

TOUCHPOINT_UPSERT = """
    INSERT INTO {schema}.touchpoints (id, cohort_id, cohort_name, title, date, owner, channel, notes, created_at)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (id) DO UPDATE SET
        cohort_id = EXCLUDED.cohort_id,
        cohort_name = EXCLUDED.cohort_name,
        title = EXCLUDED.title,
        date = EXCLUDED.date,
        owner = EXCLUDED.owner,
        channel = EXCLUDED.channel,
        notes = EXCLUDED.notes,
        created_at = EXCLUDED.created_at
"""


def validate_schema_name(schema: str) -> str:
    if not re.match(r"^[A-Za-z_][A-Za-z0-9_]*$", schema or ""):
        raise MirrorUnavailable("Invalid schema name. Use letters, numbers, and underscores only.")
    return schema


def resolve_db_dsn() -> Optional[str]:
    explicit = os.getenv("GS_CADENCE_DATABASE_URL") or os.getenv("DATABASE_URL")
    if explicit:
        return explicit
    host = os.getenv("GS_DB_HOST")
    port = os.getenv("GS_DB_PORT", "5432")
    name = os.getenv("GS_DB_NAME")
    user = os.getenv("GS_DB_USER")
    password = os.getenv("GS_DB_PASSWORD")
    if not all([host, name, user, password]):
        return None
    sslmode = os.getenv("GS_DB_SSLMODE", "require")
    return f"postgresql://{user}:{password}@{host}:{port}/{name}?sslmode={sslmode}"


def require_psycopg() -> "module":
    try:
        import psycopg  # type: ignore
    except ImportError as exc:
        raise MirrorUnavailable("psycopg is required for database sync. Install with: pip install psycopg[binary]") from exc
    return psycopg


def ensure_db(conn: "object", schema: str) -> None:
    with conn.cursor() as cur:
        cur.execute(f"CREATE SCHEMA IF NOT EXISTS {schema}")
        cur.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {schema}.cohorts (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                start_date DATE NOT NULL,
                end_date DATE NOT NULL,
                size INTEGER NOT NULL,
                notes TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL
            )
            """
        )
        cur.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {schema}.touchpoints (
                id TEXT PRIMARY KEY,
                cohort_id TEXT NOT NULL REFERENCES {schema}.cohorts(id),
                cohort_name TEXT NOT NULL,
                title TEXT NOT NULL,
                date DATE NOT NULL,
                owner TEXT NOT NULL,
                channel TEXT NOT NULL,
                notes TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL
            )
            """
        )
        cur.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {schema}.sync_events (
                id BIGSERIAL PRIMARY KEY,
                synced_at TIMESTAMPTZ NOT NULL,
                cohorts INTEGER NOT NULL,
                touchpoints INTEGER NOT NULL
            )
            """
        )


def parse_created_at(value: str, fallback: datetime) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return fallback


class CadenceMirror:
    def __init__(self, dsn: Optional[str] = None, schema: str = DEFAULT_DB_SCHEMA) -> None:
        self.dsn = dsn or resolve_db_dsn()
        if not self.dsn:
            raise MirrorUnavailable(
                "Database env vars missing. Set GS_CADENCE_DATABASE_URL, DATABASE_URL, "
                "or GS_DB_HOST/GS_DB_NAME/GS_DB_USER/GS_DB_PASSWORD."
            )
        self.schema = validate_schema_name(schema)

    def connect(self) -> "object":
        psycopg = require_psycopg()
        try:
            return psycopg.connect(self.dsn)
        except psycopg.OperationalError as exc:
            raise MirrorUnavailable(f"Could not connect to Postgres: {exc}") from exc

    def sync(self, snapshot: Snapshot, now: Optional[datetime] = None) -> Dict[str, object]:
        synced_at = now or datetime.now()
        psycopg = require_psycopg()
        with self.connect() as conn:
            try:
                ensure_db(conn, self.schema)
                with conn.cursor() as cur:
                    cur.executemany(
                        COHORT_UPSERT.format(schema=self.schema),
                        [
                            (
                                cohort.id,
                                cohort.name,
                                cohort.start_date,
                                cohort.end_date,
                                cohort.size,
                                cohort.notes,
                                parse_created_at(cohort.created_at, synced_at),
                            )
                            for cohort in snapshot.cohorts
                        ],
                    )
                    cur.executemany(
                        TOUCHPOINT_UPSERT.format(schema=self.schema),
                        [
                            (
                                touch.id,
                                touch.cohort_id,
                                touch.cohort_name,
                                touch.title,
                                touch.date,
                                touch.owner,
                                touch.channel,
                                touch.notes,
                                parse_created_at(touch.created_at, synced_at),
                            )
                            for touch in snapshot.touchpoints
                        ],
                    )
                    cur.execute(
                        f"INSERT INTO {self.schema}.sync_events (synced_at, cohorts, touchpoints) VALUES (%s, %s, %s)",
                        (synced_at, len(snapshot.cohorts), len(snapshot.touchpoints)),
                    )
                conn.commit()
            except psycopg.Error as exc:
                conn.rollback()
                raise MirrorUnavailable(f"Postgres sync failed: {exc}") from exc
            except Exception:
                conn.rollback()
                raise
        return {
            "synced_at": synced_at,
            "cohorts": len(snapshot.cohorts),
            "touchpoints": len(snapshot.touchpoints),
        }

    def seed(self, today: date, now: Optional[datetime] = None) -> Dict[str, object]:
        return self.sync(demo_snapshot(today), now=now)

    def summary(self, today: date, lookahead_days: int, stale_days: int) -> Dict[str, object]:
        schema = self.schema
        psycopg = require_psycopg()
        try:
            with self.connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(f"SELECT COUNT(*) FROM {schema}.cohorts")
                    cohort_count = cur.fetchone()[0]
                    cur.execute(f"SELECT COUNT(*) FROM {schema}.touchpoints")
                    touchpoint_count = cur.fetchone()[0]
                    cur.execute(
                        f"SELECT synced_at, cohorts, touchpoints FROM {schema}.sync_events ORDER BY synced_at DESC, id DESC LIMIT 1"
                    )
                    last_sync_row = cur.fetchone()
                    cur.execute(
                        f"""
                        SELECT date, title, cohort_name, owner, channel
                        FROM {schema}.touchpoints
                        WHERE date >= %s AND date <= %s
                        ORDER BY date, id
                        """,
                        (today, today + timedelta(days=lookahead_days)),
                    )
                    upcoming_rows = cur.fetchall()
                    cur.execute(
                        f"""
                        SELECT c.id, c.name, MAX(t.date) AS last_touch,
                               %s::date - COALESCE(MAX(t.date), c.start_date) AS days_since_last
                        FROM {schema}.cohorts c
                        LEFT JOIN {schema}.touchpoints t ON t.cohort_id = c.id AND t.date <= %s
                        WHERE c.start_date <= %s AND c.end_date >= %s
                        GROUP BY c.id, c.name, c.start_date
                        HAVING %s::date - COALESCE(MAX(t.date), c.start_date) > %s
                        ORDER BY days_since_last DESC, c.name
                        """,
                        (today, today, today, today, today, stale_days),
                    )
                    stale_rows = cur.fetchall()
        except psycopg.Error as exc:
            raise MirrorUnavailable(f"Postgres summary failed: {exc}") from exc

        last_sync = None
        if last_sync_row:
            last_sync = {
                "synced_at": last_sync_row[0],
                "cohorts_count": last_sync_row[1],
                "touchpoints_count": last_sync_row[2],
            }
        return {
            "today": today,
            "lookahead_days": lookahead_days,
            "stale_days": stale_days,
            "cohort_count": cohort_count,
            "touchpoint_count": touchpoint_count,
            "last_sync": last_sync,
            "upcoming": [
                {"date": row[0], "title": row[1], "cohort_name": row[2], "owner": row[3], "channel": row[4]}
                for row in upcoming_rows
            ],
            "stale_cohorts": [
                {"id": row[0], "name": row[1], "last_touchpoint": row[2], "days_since_last": row[3]}
                for row in stale_rows
            ],
        }


def demo_snapshot(today: date) -> Snapshot:
    created_at = f"{today.isoformat()}T09:00:00"
    cohorts = [
        Cohort("cohort-demo-spring", "Spring Scholars", today - timedelta(days=60), today + timedelta(days=120), 24,
               "STEM pathway cohort", created_at),
        Cohort("cohort-demo-summer", "Summer Bridge", today - timedelta(days=14), today + timedelta(days=70), 18,
               "First-gen summer bridge", created_at),
        Cohort("cohort-demo-fall", "Fall Fellows", today + timedelta(days=40), today + timedelta(days=220), 30,
               "Arts and humanities fellows", created_at),
        Cohort("cohort-demo-alumni", "Alumni Circle", today - timedelta(days=365), today - timedelta(days=10), 12,
               "Closed alumni mentoring cohort", created_at),
    ]
    plan = [
        ("cohort-demo-spring", "Kickoff", -55, "Program Lead", "Zoom"),
        ("cohort-demo-spring", "Mid-term check-in", -30, "Program Lead", "Email"),
        ("cohort-demo-spring", "FAFSA workshop", 6, "Success Coach", "Zoom"),
        ("cohort-demo-summer", "Welcome call", -12, "Success Coach", "Phone"),
        ("cohort-demo-summer", "Mentor matching", 3, "Success Coach", ""),
        ("cohort-demo-fall", "Orientation", 40, "", "Zoom"),
        ("cohort-demo-alumni", "Closing circle", -12, "Program Lead", "In person"),
    ]
    names = {cohort.id: cohort.name for cohort in cohorts}
    touchpoints: List[Touchpoint] = [
        Touchpoint(
            id=f"touchpoint-demo-{index + 1:02d}",
            cohort_id=cohort_id,
            cohort_name=names[cohort_id],
            title=title,
            date=today + timedelta(days=offset),
            owner=owner,
            channel=channel,
            notes="Demo touchpoint",
            created_at=created_at,
        )
        for index, (cohort_id, title, offset, owner, channel) in enumerate(plan)
    ]
    return Snapshot(cohorts=tuple(cohorts), touchpoints=tuple(touchpoints))
