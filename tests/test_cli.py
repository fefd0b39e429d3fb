"""Tests for cli.py – end-to-end import / show / export."""
import json
from datetime import date, timedelta

from hit_timetable_export.cli import main
from hit_timetable_export.storage import TimetableStore

SHEET_HTML = """<html><body><table>
<tr><td>2025秋 课表</td></tr>
<tr><td></td><td>节次</td><td>星期一</td><td>星期二</td><td>星期三</td><td>星期四</td>
    <td>星期五</td><td>星期六</td><td>星期日</td></tr>
<tr><td></td><td>第1,2节</td>
    <td>高等数学<br>张老师[1-16]主楼203</td><td>高等数学<br>张老师[1-16]主楼203</td>
    <td>高等数学<br>张老师[1-16]主楼203</td><td>高等数学<br>张老师[1-16]主楼203</td>
    <td>高等数学<br>张老师[1-16]主楼203</td><td>高等数学<br>张老师[1-16]主楼203</td>
    <td>高等数学<br>张老师[1-16]主楼203</td></tr>
</table></body></html>
"""


def _write_sheet(tmp_path):
    path = tmp_path / "课表.xls"
    path.write_text(SHEET_HTML, encoding="utf-8")
    return path


def test_import_and_save(tmp_path, capsys):
    store_path = tmp_path / "state.json"
    code = main(["--xls", str(_write_sheet(tmp_path)), "--save", "--store", str(store_path)])
    assert code == 0
    out = capsys.readouterr().out
    assert "来源：2025秋 课表" in out
    assert "课程数：7" in out
    assert len(TimetableStore(store_path).load().courses) == 7


def test_import_failure_keeps_stored_data(tmp_path, capsys):
    store_path = tmp_path / "state.json"
    main(["--xls", str(_write_sheet(tmp_path)), "--save", "--store", str(store_path)])

    bad = tmp_path / "bad.xls"
    bad.write_text("<table><tr><td>nothing here</td></tr></table>", encoding="utf-8")
    code = main(["--xls", str(bad), "--save", "--store", str(store_path)])
    assert code == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "导入失败" in err
    assert len(TimetableStore(store_path).load().courses) == 7


def test_today_requires_first_week(tmp_path, capsys):
    store_path = tmp_path / "state.json"
    main(["--xls", str(_write_sheet(tmp_path)), "--save", "--store", str(store_path)])
    capsys.readouterr()

    assert main(["--today", "--store", str(store_path)]) == 0
    assert "请先设置第一周日期" in capsys.readouterr().out


def test_today_lists_courses(tmp_path, capsys):
    store_path = tmp_path / "state.json"
    main(["--xls", str(_write_sheet(tmp_path)), "--save", "--store", str(store_path)])
    first_week = date.today() - timedelta(days=7)
    main(["--set-first-week", first_week.isoformat(), "--store", str(store_path)])
    capsys.readouterr()

    assert main(["--today", "--day", "2", "--store", str(store_path)]) == 0
    out = capsys.readouterr().out
    assert "星期二 第2周" in out
    assert "第1,2节 高等数学@主楼203" in out


def test_today_not_imported(tmp_path, capsys):
    assert main(["--today", "--store", str(tmp_path / "state.json")]) == 0
    assert "未导入课表" in capsys.readouterr().out


def test_export_json(tmp_path, capsys):
    out = tmp_path / "out"
    code = main([
        "--xls", str(_write_sheet(tmp_path)),
        "--store", str(tmp_path / "state.json"),
        "-o", str(out), "-f", "json",
    ])
    assert code == 0
    data = json.loads((tmp_path / "out.json").read_text(encoding="utf-8"))
    assert [d["day_index"] for d in data] == [1, 2, 3, 4, 5, 6, 7]


def test_export_ics_without_first_week_fails(tmp_path, capsys):
    code = main([
        "--xls", str(_write_sheet(tmp_path)),
        "--store", str(tmp_path / "state.json"),
        "-o", str(tmp_path / "out"),
    ])
    assert code == 1
    assert "first-week" in capsys.readouterr().err


def test_clear(tmp_path, capsys):
    store_path = tmp_path / "state.json"
    main(["--xls", str(_write_sheet(tmp_path)), "--save", "--store", str(store_path)])
    assert main(["--clear", "--store", str(store_path)]) == 0
    assert TimetableStore(store_path).load() is None


def test_no_mode(tmp_path, capsys):
    assert main(["--store", str(tmp_path / "state.json")]) == 1
