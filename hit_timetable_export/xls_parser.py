"""
Parse a HIT weekly timetable sheet into a list of CourseRecord.

Sheet layout (first worksheet of the exported .xls):
- cell (0, 0) holds the title, e.g. "2025-2026学年秋季学期 张三 课表"
- somewhere below is the header row: 星期一 ... 星期日 in separate columns
- every row under the header is one section; column 1 holds its label
  (第1,2节 ...), each day column holds the courses of that slot.

A single cell can hold several courses, one block each:

    高等数学
    张老师[1-16]主楼203
    大学物理
    李老师[1-8]单周
    格物楼305

The line with the bracketed week range carries teacher + weeks + location.
A plain line directly followed by such a line is the name of the next course.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import HeaderNotFound, NoDayColumns, SourceUnreadable, TimetableImportError
from .models import CourseRecord, TimetableResult
from .sheet import Sheet, open_sheet
from .weeks import DAY_NAMES, EVERY_WEEK

_HEADER_MARKERS = DAY_NAMES[:5]
_HEADER_MIN_MARKERS = 3

SECTION_LABEL_COLUMN = 1

LOCATION_KEYWORDS = (
    "正心", "致知", "格物", "成教楼", "活动中心", "主楼", "教学楼", "实验楼",
)
_SHORT_LOCATION_RE = re.compile(r"^[A-Za-z]?\d{3,4}$")
_BUILDING_CODE_RE = re.compile(r"^[LG]\d{3,4}$")

_LEADING_WEEK_BLOCK_RE = re.compile(r"^\[(.+?)\](单周|双周|周)?")
_SEPARATORS = " ，,、"

_FULLWIDTH = str.maketrans({"［": "[", "］": "]", "（": "(", "）": ")", ",": "，"})
_WHITESPACE_RE = re.compile(r"\s+")

DaySpec = Dict[int, Tuple[int, str]]


# ──────────────────────────────────────────────────────────────────
#  Line helpers
# ──────────────────────────────────────────────────────────────────

def normalize_line(text: str) -> str:
    """Full-width brackets/parens to ASCII, ',' to '，', whitespace collapsed."""
    return _WHITESPACE_RE.sub(" ", text.translate(_FULLWIDTH)).strip()


def has_week_bracket(text: str) -> bool:
    normalized = normalize_line(text)
    return "[" in normalized and "]" in normalized


def _cell_lines(raw_text: str) -> List[str]:
    lines = (line.replace("　", " ").strip() for line in (raw_text or "").splitlines())
    return [line for line in lines if line]


# ──────────────────────────────────────────────────────────────────
#  Sheet locator
# ──────────────────────────────────────────────────────────────────

def _row_contains(sheet: Sheet, row: int, marker: str) -> bool:
    return any(marker in sheet.cell_text(row, col) for col in range(sheet.column_count))


def find_header_row(sheet: Sheet) -> Optional[int]:
    for row in range(sheet.row_count):
        hits = sum(1 for m in _HEADER_MARKERS if _row_contains(sheet, row, m))
        if hits >= _HEADER_MIN_MARKERS:
            return row
    return None


def find_day_columns(sheet: Sheet, header_row: int) -> DaySpec:
    columns: DaySpec = {}
    for col in range(sheet.column_count):
        title = sheet.cell_text(header_row, col).strip()
        if title in DAY_NAMES:
            columns[col] = (DAY_NAMES.index(title) + 1, title)
    return columns


def locate(sheet: Sheet) -> Tuple[int, DaySpec]:
    """
    Find the header row and map day columns to (weekday number, name).

    :raises HeaderNotFound: no row mentions at least 3 of 星期一..星期五.
    :raises NoDayColumns: the header row has no cell equal to a weekday name.
    """
    header_row = find_header_row(sheet)
    if header_row is None:
        raise HeaderNotFound()
    columns = find_day_columns(sheet, header_row)
    if not columns:
        raise NoDayColumns(header_row)
    return header_row, columns


# ──────────────────────────────────────────────────────────────────
#  Cell block splitter
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CourseBlock:
    day_index: int
    day_name: str
    section_label: str
    section_order: int
    course_name: str
    detail_lines: Tuple[str, ...]
    raw_text: str


class ScanState(Enum):
    AWAITING_COURSE_NAME = "awaiting_course_name"
    COLLECTING_DETAIL = "collecting_detail"


def segment_lines(lines: List[str]) -> List[Tuple[str, List[str]]]:
    """
    Group cell lines into (course_name, detail_lines) pairs.

    A bracketed line always belongs to the block being built (dropped when
    there is none yet). While collecting details, a plain line followed by a
    bracketed line is the next course's name.
    """
    blocks: List[Tuple[str, List[str]]] = []
    state = ScanState.AWAITING_COURSE_NAME

    for i, line in enumerate(lines):
        bracketed = has_week_bracket(line)
        next_bracketed = i + 1 < len(lines) and has_week_bracket(lines[i + 1])

        if state is ScanState.AWAITING_COURSE_NAME:
            if bracketed:
                if blocks:
                    blocks[-1][1].append(line)
                continue
            blocks.append((line, []))
            state = ScanState.COLLECTING_DETAIL

        elif state is ScanState.COLLECTING_DETAIL:
            if not bracketed and next_bracketed:
                blocks.append((line, []))
            else:
                blocks[-1][1].append(line)

    return blocks


def split_cell(
    day_index: int,
    day_name: str,
    section_label: str,
    section_order: int,
    raw_text: str,
) -> List[CourseBlock]:
    """Split one cell into course blocks; blank text gives an empty list."""
    lines = _cell_lines(raw_text)
    if not lines:
        return []
    pairs = segment_lines(lines)
    if not pairs:
        # only bracketed lines: keep them rather than lose the cell
        pairs = [(lines[0], lines[1:])]
    return [
        CourseBlock(
            day_index=day_index,
            day_name=day_name,
            section_label=section_label,
            section_order=section_order,
            course_name=name,
            detail_lines=tuple(details),
            raw_text=raw_text,
        )
        for name, details in pairs
    ]


# ──────────────────────────────────────────────────────────────────
#  Detail parser
# ──────────────────────────────────────────────────────────────────

def tokenize_week_blocks(text: str) -> Tuple[List[str], str]:
    """
    Consume leading "[...]单周/双周/周" blocks one at a time.

    Returns the rendered segments ("[1-8]单周", a missing marker rendered as
    "周") and whatever text is left after them.
    """
    segments: List[str] = []
    rest = text
    while True:
        rest = rest.lstrip(_SEPARATORS)
        m = _LEADING_WEEK_BLOCK_RE.match(rest)
        if not m:
            break
        marker = (m.group(2) or "").strip() or EVERY_WEEK
        segments.append(f"[{m.group(1).strip()}]{marker}")
        rest = rest[m.end():]

    rest = rest.lstrip(_SEPARATORS)
    if rest.startswith(EVERY_WEEK):
        rest = rest[len(EVERY_WEEK):].lstrip(_SEPARATORS)
    return segments, rest.strip()


def parse_teacher_weeks_location(detail: str) -> Optional[Tuple[str, str, str]]:
    """'张老师[1-16]主楼203' -> ('张老师', '[1-16]周', '主楼203'); None without a teacher."""
    normalized = normalize_line(detail)
    first_bracket = normalized.find("[")
    if first_bracket < 0:
        return None
    teacher = normalized[:first_bracket].strip()
    if not teacher:
        return None
    segments, location = tokenize_week_blocks(normalized[first_bracket:].strip())
    return teacher, "，".join(segments), location


def is_likely_location(line: str) -> bool:
    text = normalize_line(line)
    if not text:
        return False
    if any(k in text for k in LOCATION_KEYWORDS):
        return True
    return bool(_SHORT_LOCATION_RE.match(text) or _BUILDING_CODE_RE.match(text))


def parse_details(detail_lines: List[str]) -> Tuple[str, str, str]:
    """Return (teacher, week_spec, location) for a block's detail lines."""
    if not detail_lines:
        return "", "", ""

    structured_idx = next(
        (i for i, line in enumerate(detail_lines) if has_week_bracket(line)), None
    )
    if structured_idx is not None:
        structured = parse_teacher_weeks_location(detail_lines[structured_idx])
        if structured is not None:
            teacher, week_spec, location = structured
            extra = " ".join(
                normalize_line(line)
                for i, line in enumerate(detail_lines)
                if i != structured_idx
            ).strip()
            location = " ".join(p for p in (location, extra) if p).strip()
            return teacher, week_spec, location

    # No usable teacher[weeks] line; first line is assumed to be the teacher.
    if len(detail_lines) >= 2:
        return detail_lines[0].strip(), "", " ".join(detail_lines[1:]).strip()

    only = detail_lines[0].strip()
    if is_likely_location(only):
        return "", "", only
    return only, "", ""


def build_record(block: CourseBlock) -> CourseRecord:
    teacher, week_spec, location = parse_details(list(block.detail_lines))
    return CourseRecord(
        day_index=block.day_index,
        day_name=block.day_name,
        section_label=block.section_label,
        section_order=block.section_order,
        course_name=block.course_name,
        teacher=teacher,
        week_spec=week_spec,
        location=location,
        raw_cell_text=block.raw_text,
    )


# ──────────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────────

def parse_cell(
    day_index: int, day_name: str, section_label: str, section_order: int, cell_text: str
) -> List[CourseRecord]:
    return [
        build_record(b)
        for b in split_cell(day_index, day_name, section_label, section_order, cell_text)
    ]


def _read_courses(sheet: Sheet, header_row: int, day_columns: DaySpec) -> List[CourseRecord]:
    courses: List[CourseRecord] = []
    for row in range(header_row + 1, sheet.row_count):
        section_label = sheet.cell_text(row, SECTION_LABEL_COLUMN).strip()
        if not section_label:
            continue
        for col, (day_index, day_name) in sorted(day_columns.items()):
            cell_text = sheet.cell_text(row, col).strip()
            if not cell_text:
                continue
            courses.extend(parse_cell(day_index, day_name, section_label, row, cell_text))
    return courses


def parse(sheet: Sheet, now: datetime | None = None) -> TimetableResult:
    """
    Parse a whole sheet. Either every course is returned or an error is raised.

    :raises SourceUnreadable: reading the sheet failed.
    :raises HeaderNotFound: / NoDayColumns: see locate().
    """
    try:
        source_title = sheet.cell_text(0, 0).strip()
        header_row, day_columns = locate(sheet)
        courses = _read_courses(sheet, header_row, day_columns)
    except TimetableImportError:
        raise
    except Exception as e:
        raise SourceUnreadable(f"Could not read sheet: {e}") from e

    return TimetableResult(
        source_title=source_title,
        imported_at=now or datetime.now(),
        courses=tuple(courses),
    )


def parse_file(path: str | Path, now: datetime | None = None) -> TimetableResult:
    """open_sheet() + parse(); see both for the errors raised."""
    return parse(open_sheet(path), now=now)
