"""
Teaching-week logic: does a course meet in week N, which courses to show
for a given day, and which week is "now".

Week specs look like "[1-16]周", "[1-8]单周", "[2,4,6-10]双周" or several of
those joined by "，". An empty spec (or one without any bracket) means the
course meets every week.
"""
from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Iterable, Iterator, List, NamedTuple, Optional

from .models import CourseRecord

ODD_WEEKS = "单周"
EVEN_WEEKS = "双周"
EVERY_WEEK = "周"

# Returned by current_week() while today is before the first teaching week.
NOT_STARTED = 0

DAY_NAMES = ("星期一", "星期二", "星期三", "星期四", "星期五", "星期六", "星期日")

WEEK_SEGMENT_RE = re.compile(r"\[(.+?)\](单周|双周|周)?")
_TOKEN_SPLIT_RE = re.compile(r"[，,、]")


class WeekSegment(NamedTuple):
    content: str   # text between the brackets, e.g. "1-8，10"
    marker: str    # 单周 / 双周 / 周 / ""


def iter_week_segments(week_spec: str) -> Iterator[WeekSegment]:
    for m in WEEK_SEGMENT_RE.finditer(week_spec or ""):
        yield WeekSegment(m.group(1).strip(), (m.group(2) or "").strip())


def _to_int(text: str) -> Optional[int]:
    text = text.strip()
    if not text.isascii() or not text.isdigit():
        return None
    return int(text)


def _range_matches(content: str, week: int) -> bool:
    """'1-8，10，12-14' style content; any token containing week is enough."""
    for token in _TOKEN_SPLIT_RE.split(content):
        token = token.strip()
        if not token:
            continue
        if "-" in token:
            parts = token.split("-")
            if len(parts) != 2:
                continue
            start, end = _to_int(parts[0]), _to_int(parts[1])
            if start is not None and end is not None and start <= week <= end:
                return True
        elif _to_int(token) == week:
            return True
    return False


def _parity_matches(marker: str, week: int) -> bool:
    if marker == ODD_WEEKS:
        return week % 2 == 1
    if marker == EVEN_WEEKS:
        return week % 2 == 0
    return True


def segment_matches(segment: WeekSegment, week: int) -> bool:
    return _range_matches(segment.content, week) and _parity_matches(segment.marker, week)


def matches(week_spec: str, current_week: int) -> bool:
    """
    True if a course with this week spec meets in current_week (1-based).

    Missing or unparsable week data never hides a course: an empty spec, or a
    spec without bracket segments, matches every week. Malformed numbers
    inside a segment simply do not match.
    """
    if not week_spec or not week_spec.strip():
        return True
    segments = list(iter_week_segments(week_spec))
    if not segments:
        return True
    return any(segment_matches(seg, current_week) for seg in segments)


def max_week(week_specs: Iterable[str], default: int = 20) -> int:
    """Largest week number mentioned in any spec; default when none is."""
    found = [
        int(n)
        for spec in week_specs
        for seg in iter_week_segments(spec)
        for n in re.findall(r"\d+", seg.content)
    ]
    return max(found) if found else default


# ──────────────────────────────────────────────────────────────────
#  Query helpers (course list + first-week date are passed in)
# ──────────────────────────────────────────────────────────────────

def sort_courses(courses: Iterable[CourseRecord]) -> List[CourseRecord]:
    return sorted(courses, key=lambda c: (c.day_index, c.section_order))


def courses_for_week(
    courses: Iterable[CourseRecord], day_index: int, current_week: int
) -> List[CourseRecord]:
    """Courses on day_index that meet in current_week, in section order."""
    selected = [
        c for c in courses
        if c.day_index == day_index and matches(c.week_spec, current_week)
    ]
    return sorted(selected, key=lambda c: c.section_order)


def current_week(first_week: date | None, today: date) -> Optional[int]:
    """
    None when no first-week date is stored, NOT_STARTED before it,
    otherwise the 1-based week number.
    """
    if first_week is None:
        return None
    diff_days = (today - first_week).days
    if diff_days < 0:
        return NOT_STARTED
    return max(1, diff_days // 7 + 1)


def date_in_week(first_week: date, week: int, day_index: int) -> date:
    """Date of weekday day_index (1 = Monday) inside teaching week `week`."""
    week_start = first_week + timedelta(days=7 * (week - 1))
    offset = (day_index - 1 - week_start.weekday()) % 7
    return week_start + timedelta(days=offset)


def day_name(day_index: int) -> str:
    if 1 <= day_index <= 7:
        return DAY_NAMES[day_index - 1]
    return DAY_NAMES[-1]


def describe_week(first_week: date | None, today: date) -> str:
    week = current_week(first_week, today)
    if week is None:
        return "第一周日期：未设置"
    if week == NOT_STARTED:
        return f"第一周日期：{first_week.isoformat()}（课程未开始）"
    return f"第一周日期：{first_week.isoformat()}（当前第{week}周）"
