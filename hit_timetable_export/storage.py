"""
JSON file holding the last imported timetable and the first-week date.

The parser and the week helpers never touch this file; callers load what
they need and pass it in.
"""
from __future__ import annotations

import json
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Dict, Optional

from .models import TimetableResult

DEFAULT_STORE_PATH = Path.home() / ".hit_timetable.json"

KEY_DATA = "timetable_data"
KEY_FIRST_WEEK_DATE = "first_week_date"


class TimetableStore:
    def __init__(self, path: str | Path = DEFAULT_STORE_PATH):
        self.path = Path(path)

    def _read(self) -> Dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict) -> None:
        # Temp file in the same directory, then os.replace over the target.
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".hit_timetable.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def save(self, result: TimetableResult) -> None:
        data = self._read()
        data[KEY_DATA] = result.to_dict()
        self._write(data)

    def load(self) -> Optional[TimetableResult]:
        raw = self._read().get(KEY_DATA)
        if not raw:
            return None
        try:
            return TimetableResult.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            return None

    def save_first_week_date(self, first_week: date) -> None:
        data = self._read()
        data[KEY_FIRST_WEEK_DATE] = first_week.isoformat()
        self._write(data)

    def load_first_week_date(self) -> Optional[date]:
        raw = self._read().get(KEY_FIRST_WEEK_DATE)
        if not raw:
            return None
        try:
            return date.fromisoformat(raw)
        except (TypeError, ValueError):
            return None

    def clear(self) -> None:
        data = self._read()
        data.pop(KEY_DATA, None)
        data.pop(KEY_FIRST_WEEK_DATE, None)
        self._write(data)
