"""
Course records produced by one import pass.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Dict, Tuple


@dataclass(frozen=True)
class CourseRecord:
    """One course occurrence at one day / section slot."""

    day_index: int          # 1 = Monday ... 7 = Sunday
    day_name: str           # header text, e.g. 星期一
    section_label: str      # row label, e.g. 第1,2节
    section_order: int      # source row number, sort tie-break only
    course_name: str
    teacher: str = ""
    week_spec: str = ""     # e.g. "[1-8]单周，[10-16]周"; empty = every week
    location: str = ""
    raw_cell_text: str = ""

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "CourseRecord":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class TimetableResult:
    source_title: str
    imported_at: datetime
    courses: Tuple[CourseRecord, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict:
        return {
            "source_title": self.source_title,
            "imported_at": self.imported_at.isoformat(timespec="seconds"),
            "courses": [c.to_dict() for c in self.courses],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "TimetableResult":
        return cls(
            source_title=data.get("source_title", ""),
            imported_at=datetime.fromisoformat(data["imported_at"]),
            courses=tuple(CourseRecord.from_dict(c) for c in data.get("courses", [])),
        )
