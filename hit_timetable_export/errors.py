"""
Errors raised by the import entry points.

All of them are ValueErrors so callers that already catch parse failures
(like the CLI) keep working.
"""
from __future__ import annotations


class TimetableImportError(ValueError):
    """Base class: the whole import was aborted, nothing was produced."""


class HeaderNotFound(TimetableImportError):
    def __init__(self, message: str = "未识别到课表表头（找不到包含星期一~星期五的行）") -> None:
        super().__init__(message)


class NoDayColumns(TimetableImportError):
    def __init__(self, header_row: int) -> None:
        super().__init__(f"未识别到星期列（表头位于第 {header_row + 1} 行）")
        self.header_row = header_row


class SourceUnreadable(TimetableImportError):
    pass
