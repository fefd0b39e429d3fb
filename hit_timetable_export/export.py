"""
Export timetable data to ICS, CSV, and JSON.
"""
from __future__ import annotations

import csv
import hashlib
import json
from dataclasses import fields
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List

import icalendar

from .models import CourseRecord
from .weeks import date_in_week, matches, max_week

CSV_FIELDS = [f.name for f in fields(CourseRecord)]


def _event_description(c: CourseRecord, week: int) -> str:
    lines = [f"{c.day_name} {c.section_label}", f"第{week}周"]
    if c.teacher:
        lines.append(f"教师: {c.teacher}")
    if c.week_spec:
        lines.append(f"周次: {c.week_spec}")
    return "\n".join(lines)


def export_ics(
    courses: Iterable[CourseRecord],
    out_path: str | Path,
    first_week: date,
    weeks: int | None = None,
) -> int:
    """
    Export one all-day event per course per teaching week it meets in.
    Returns the number of events written.
    """
    courses = list(courses)
    if weeks is None:
        weeks = max_week(c.week_spec for c in courses)

    cal = icalendar.Calendar()
    cal.add("prodid", "-//HIT Timetable Export//CN")
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("x-wr-calname", "HIT Timetable")

    count = 0
    for c in courses:
        for week in range(1, weeks + 1):
            if not matches(c.week_spec, week):
                continue
            day = date_in_week(first_week, week, c.day_index)

            event = icalendar.Event()
            # Deterministic UID (course, slot and date)
            uid_string = f"{c.course_name}-{c.section_order}-{c.day_index}-{day.isoformat()}"
            uid_hash = hashlib.md5(uid_string.encode("utf-8")).hexdigest()
            event.add("uid", f"{uid_hash}@hit-timetable-export")

            event.add("summary", c.course_name)
            event.add("description", _event_description(c, week))
            if c.location:
                event.add("location", c.location)
            event.add("dtstart", day)
            event.add("dtend", day + timedelta(days=1))
            event.add("dtstamp", datetime.now(timezone.utc))

            cal.add_component(event)
            count += 1

    Path(out_path).write_text(cal.to_ical().decode("utf-8"), encoding="utf-8")
    return count


def export_csv(courses: Iterable[CourseRecord], out_path: str | Path) -> None:
    """Export timetable to CSV."""
    with open(out_path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        w.writerows(c.to_dict() for c in courses)


def export_json(courses: Iterable[CourseRecord], out_path: str | Path) -> None:
    """Export timetable to JSON."""
    Path(out_path).write_text(
        json.dumps([c.to_dict() for c in courses], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


def export(
    courses: List[CourseRecord],
    out_path: str | Path,
    fmt: str,
    first_week: date | None = None,
    weeks: int | None = None,
) -> None:
    """Export to the given format: ics, csv, or json."""
    fmt = fmt.lower()
    if fmt == "ics":
        if first_week is None:
            raise ValueError(
                "ICS export needs the first-week date. Use --first-week YYYY-MM-DD "
                "or --set-first-week first."
            )
        export_ics(courses, out_path, first_week, weeks)
    elif fmt == "csv":
        export_csv(courses, out_path)
    elif fmt == "json":
        export_json(courses, out_path)
    else:
        raise ValueError(f"Unsupported format: {fmt}. Use ics, csv, or json.")
