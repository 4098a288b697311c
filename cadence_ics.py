from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Sequence

from cohort_cadence import Touchpoint, normalize_channel, normalize_owner

PRODID = "-//Group Scholar//Cohort Cadence//EN"


def escape_text(value: str) -> str:
    return (
        (value or "")
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str, limit: int = 75) -> List[str]:
    # Continuation lines start with a space; never split a multi-byte character.
    parts: List[str] = []
    current = ""
    size = 0
    for char in line:
        width = len(char.encode("utf-8"))
        if size + width > limit:
            parts.append(current)
            current, size = " ", 1
        current += char
        size += width
    parts.append(current)
    return parts


def event_lines(touchpoint: Touchpoint, stamp: str) -> List[str]:
    start = touchpoint.date.strftime("%Y%m%d")
    end = (touchpoint.date + timedelta(days=1)).strftime("%Y%m%d")
    description = (
        f"Owner: {escape_text(normalize_owner(touchpoint.owner))}\\n"
        f"Channel: {escape_text(normalize_channel(touchpoint.channel))}\\n"
        f"{escape_text(touchpoint.notes)}"
    )
    return [
        "BEGIN:VEVENT",
        f"UID:{touchpoint.id}@groupscholar-cohort-cadence",
        f"DTSTAMP:{stamp}",
        f"DTSTART;VALUE=DATE:{start}",
        f"DTEND;VALUE=DATE:{end}",
        f"SUMMARY:{escape_text(touchpoint.title)} - {escape_text(touchpoint.cohort_name)}",
        f"DESCRIPTION:{description}",
        f"CATEGORIES:{escape_text(normalize_channel(touchpoint.channel))}",
        "END:VEVENT",
    ]


def render_ics(touchpoints: Sequence[Touchpoint], generated_at: datetime) -> str:
    stamp = generated_at.strftime("%Y%m%dT%H%M%S")
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "X-WR-CALNAME:Cohort Cadence Touchpoints",
    ]
    for touchpoint in touchpoints:
        lines.extend(event_lines(touchpoint, stamp))
    lines.append("END:VCALENDAR")
    folded = [part for line in lines for part in fold_line(line)]
    return "\r\n".join(folded) + "\r\n"


def write_ics(path: str, touchpoints: Sequence[Touchpoint], generated_at: datetime) -> Path:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_ics(touchpoints, generated_at), encoding="utf-8", newline="")
    return output_path
