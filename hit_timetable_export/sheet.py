"""
Spreadsheet access for the timetable parser.

The parser only needs a tiny read-only view of the first worksheet:
row_count, column_count and cell_text(row, col), all 0-based, returning ""
for empty or out-of-range cells. open_sheet() loads a file into that view:

- legacy .xls (OLE2 compound file) through xlrd
- .xlsx through openpyxl
- HTML tables saved with an .xls extension (the usual "export to Excel"
  of web-based course systems) through BeautifulSoup

The format is sniffed from the file content, the extension is not trusted.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Protocol, Sequence

from bs4 import BeautifulSoup, Comment, NavigableString, Tag  # type: ignore[import]

from .errors import SourceUnreadable

_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_ZIP_MAGIC = b"PK\x03\x04"
_HTML_MARKERS = (b"<html", b"<table", b"<!doctype", b"<meta")


class Sheet(Protocol):
    @property
    def row_count(self) -> int: ...

    @property
    def column_count(self) -> int: ...

    def cell_text(self, row: int, col: int) -> str: ...


class GridSheet:
    """In-memory sheet built from a list of rows (ragged rows are fine)."""

    def __init__(self, rows: Sequence[Sequence[object]]):
        self._rows: List[List[str]] = [[_cell_to_text(v) for v in row] for row in rows]
        self._columns = max((len(r) for r in self._rows), default=0)

    @property
    def row_count(self) -> int:
        return len(self._rows)

    @property
    def column_count(self) -> int:
        return self._columns

    def cell_text(self, row: int, col: int) -> str:
        if row < 0 or col < 0 or row >= len(self._rows):
            return ""
        cells = self._rows[row]
        return cells[col] if col < len(cells) else ""

    def __repr__(self) -> str:
        return f"GridSheet(rows={self.row_count}, columns={self.column_count})"


def _cell_to_text(value: object) -> str:
    """Render a raw cell value; whole-number floats lose their '.0'."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# ──────────────────────────────────────────────────────────────────
#  Readers
# ──────────────────────────────────────────────────────────────────

def _read_xls(path: Path) -> GridSheet:
    import xlrd

    book = xlrd.open_workbook(str(path), on_demand=True)
    try:
        sh = book.sheet_by_index(0)
        rows = [
            [sh.cell_value(r, c) for c in range(sh.ncols)]
            for r in range(sh.nrows)
        ]
    finally:
        book.release_resources()
    return GridSheet(rows)


def _read_xlsx(path: Path) -> GridSheet:
    from openpyxl import load_workbook

    wb = load_workbook(filename=str(path), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        rows = [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
    return GridSheet(rows)


def _guess_grid_table(soup: BeautifulSoup):
    """Pick the table with the most rows; exported sheets have a single big one."""
    tables = soup.find_all("table")
    if not tables:
        return None
    return max(tables, key=lambda t: len(t.find_all("tr")))


def html_table_rows(table: Tag) -> List[List[str]]:
    """
    Lay out a <table> on a grid, the way a spreadsheet stores merged cells:
    text at the top-left position, the rest of the merged area empty.

    Positions already claimed by a rowspan from an earlier row are skipped
    when placing the cells of the current row.
    """
    grid: Dict[int, Dict[int, str]] = {}
    occupied: set[tuple[int, int]] = set()
    max_col = 0

    for row_idx, tr in enumerate(table.find_all("tr")):
        grid.setdefault(row_idx, {})
        col = 0
        for cell in tr.find_all(["td", "th"]):
            while (row_idx, col) in occupied:
                col += 1
            rowspan = _span(cell, "rowspan")
            colspan = _span(cell, "colspan")
            grid[row_idx][col] = cell_lines_text(cell)
            for dr in range(rowspan):
                for dc in range(colspan):
                    occupied.add((row_idx + dr, col + dc))
            col += colspan
            max_col = max(max_col, col)

    rows: List[List[str]] = []
    for row_idx in range(len(grid)):
        cells = grid[row_idx]
        rows.append([cells.get(c, "") for c in range(max_col)])
    return rows


def cell_lines_text(cell: Tag) -> str:
    """
    Text of a table cell with <br> as the only line break.

    Inline tags do not split lines, and whitespace inside a line (source
    newlines included) collapses to one space.
    """
    lines = [""]
    for node in cell.descendants:
        if isinstance(node, Tag):
            if node.name == "br":
                lines.append("")
        elif isinstance(node, NavigableString) and not isinstance(node, Comment):
            lines[-1] += str(node)
    return "\n".join(" ".join(line.split()) for line in lines).strip()


def _span(cell: Tag, attr: str) -> int:
    try:
        return max(1, int(cell.get(attr, 1)))
    except (TypeError, ValueError):
        return 1


def _read_html(path: Path) -> GridSheet:
    raw = path.read_bytes()
    soup = BeautifulSoup(raw, "html.parser")
    table = _guess_grid_table(soup)
    if table is None:
        raise SourceUnreadable(f"No table found in HTML file: {path}")
    return GridSheet(html_table_rows(table))


# ──────────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────────

def open_sheet(path: str | Path) -> GridSheet:
    """
    Load the first worksheet of a timetable file.

    :raises SourceUnreadable: missing file, unknown format, or a reader failure.
    """
    p = Path(path)
    try:
        with p.open("rb") as f:
            head = f.read(512)
    except OSError as e:
        raise SourceUnreadable(f"无法打开文件: {p} ({e})") from e

    if head.startswith(_OLE2_MAGIC):
        reader = _read_xls
    elif head.startswith(_ZIP_MAGIC):
        reader = _read_xlsx
    elif any(tag in head.lower() for tag in _HTML_MARKERS):
        reader = _read_html
    else:
        raise SourceUnreadable(f"Unrecognised spreadsheet format: {p}")

    try:
        return reader(p)
    except SourceUnreadable:
        raise
    except Exception as e:
        raise SourceUnreadable(f"Could not read sheet from {p}: {e}") from e
