"""Tests for sheet.py – in-memory sheets and file readers."""
import pytest
from bs4 import BeautifulSoup

from hit_timetable_export.errors import SourceUnreadable
from hit_timetable_export.sheet import GridSheet, html_table_rows, open_sheet
from hit_timetable_export.xls_parser import parse_cell, parse_file


class TestGridSheet:
    def test_counts_and_ragged_rows(self):
        sheet = GridSheet([["a"], ["b", "c", "d"]])
        assert sheet.row_count == 2
        assert sheet.column_count == 3
        assert sheet.cell_text(0, 2) == ""
        assert sheet.cell_text(1, 2) == "d"

    def test_out_of_range(self):
        sheet = GridSheet([["a"]])
        assert sheet.cell_text(5, 0) == ""
        assert sheet.cell_text(0, 5) == ""
        assert sheet.cell_text(-1, 0) == ""

    def test_values_rendered(self):
        sheet = GridSheet([[None, 101.0, 2.5, 7]])
        assert [sheet.cell_text(0, c) for c in range(4)] == ["", "101", "2.5", "7"]

    def test_empty(self):
        sheet = GridSheet([])
        assert (sheet.row_count, sheet.column_count) == (0, 0)


class TestHtmlTableRows:
    def test_rowspan_and_colspan(self):
        html = """
        <table>
          <tr><th colspan="2">课表</th><th>星期一</th></tr>
          <tr><td rowspan="2">上午</td><td>第1,2节</td><td>高等数学<br>张老师[1-16]主楼203</td></tr>
          <tr><td>第3,4节</td><td></td></tr>
        </table>
        """
        table = BeautifulSoup(html, "html.parser").find("table")
        assert html_table_rows(table) == [
            ["课表", "", "星期一"],
            ["上午", "第1,2节", "高等数学\n张老师[1-16]主楼203"],
            ["", "第3,4节", ""],
        ]

    def test_only_br_breaks_lines(self):
        html = """
        <table><tr>
          <td>高等数学<br><span>张老师</span>[1-16]主楼203</td>
          <td>高等
              数学<br>张老师[1-16]<b>主楼203</b><!-- note --></td>
        </tr></table>
        """
        table = BeautifulSoup(html, "html.parser").find("table")
        assert html_table_rows(table) == [[
            "高等数学\n张老师[1-16]主楼203",
            "高等 数学\n张老师[1-16]主楼203",
        ]]

    def test_inline_tags_keep_one_course(self):
        html = "<table><tr><td>高等数学<br><span>张老师</span>[1-16]主楼203</td></tr></table>"
        table = BeautifulSoup(html, "html.parser").find("table")
        [[text]] = html_table_rows(table)
        [course] = parse_cell(1, "星期一", "第1,2节", 3, text)
        assert (course.course_name, course.teacher, course.week_spec, course.location) == (
            "高等数学", "张老师", "[1-16]周", "主楼203",
        )


HTML_SHEET = """<html><head><meta charset="utf-8"></head><body>
<table>
  <tr><td colspan="9">2025-2026学年秋季学期 学生课表</td></tr>
  <tr><td></td><td>节次</td><td>星期一</td><td>星期二</td><td>星期三</td>
      <td>星期四</td><td>星期五</td><td>星期六</td><td>星期日</td></tr>
  <tr><td rowspan="2">上午</td><td>第1,2节</td>
      <td>高等数学<br>张老师[1-16]主楼203</td><td></td>
      <td>大学物理<br>李老师[1-8]单周<br>格物楼305</td>
      <td></td><td></td><td></td><td></td></tr>
  <tr><td>第3,4节</td><td></td><td>体育</td><td></td><td></td><td></td><td></td><td></td></tr>
</table>
</body></html>
"""


class TestOpenSheet:
    def test_html_saved_as_xls(self, tmp_path):
        path = tmp_path / "课表.xls"
        path.write_text(HTML_SHEET, encoding="utf-8")

        result = parse_file(path)
        assert result.source_title == "2025-2026学年秋季学期 学生课表"
        assert [(c.day_index, c.section_label, c.course_name) for c in result.courses] == [
            (1, "第1,2节", "高等数学"),
            (3, "第1,2节", "大学物理"),
            (2, "第3,4节", "体育"),
        ]
        physics = result.courses[1]
        assert (physics.teacher, physics.week_spec, physics.location) == ("李老师", "[1-8]单周", "格物楼305")

    def test_xlsx(self, tmp_path):
        openpyxl = pytest.importorskip("openpyxl")
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.append(["2025秋 课表"])
        ws.append([None, "节次", "星期一", "星期二", "星期三", "星期四", "星期五"])
        ws.append([None, "第1,2节", "高等数学\n张老师[1-16]主楼203", None, None, None, "课程A\n老师甲[1-16]L203\n课程B\n老师乙[1-16]G305"])
        path = tmp_path / "timetable.xlsx"
        wb.save(path)

        result = parse_file(path)
        assert result.source_title == "2025秋 课表"
        assert [(c.day_index, c.course_name, c.location) for c in result.courses] == [
            (1, "高等数学", "主楼203"),
            (5, "课程A", "L203"),
            (5, "课程B", "G305"),
        ]
        assert all(c.section_order == 2 for c in result.courses)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceUnreadable):
            open_sheet(tmp_path / "nope.xls")

    def test_unknown_format(self, tmp_path):
        path = tmp_path / "notes.xls"
        path.write_text("just some text", encoding="utf-8")
        with pytest.raises(SourceUnreadable):
            open_sheet(path)

    def test_corrupt_xlsx(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"PK\x03\x04" + b"\x00" * 64)
        with pytest.raises(SourceUnreadable):
            open_sheet(path)

    def test_html_without_table(self, tmp_path):
        path = tmp_path / "empty.xls"
        path.write_text("<html><body><p>nothing</p></body></html>", encoding="utf-8")
        with pytest.raises(SourceUnreadable):
            open_sheet(path)
