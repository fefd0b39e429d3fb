"""
Command-line interface: import a HIT timetable sheet, show courses for a
week, and export to file.
"""
from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path
from typing import List, Sequence

from . import __version__
from .export import export
from .models import CourseRecord
from .storage import DEFAULT_STORE_PATH, TimetableStore
from .weeks import (
    NOT_STARTED,
    courses_for_week,
    current_week,
    day_name,
    describe_week,
    sort_courses,
)
from .xls_parser import parse_file


def _parse_date_arg(text: str) -> date:
    try:
        return date.fromisoformat(text.strip())
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {text!r}")


def _format_course(c: CourseRecord) -> str:
    info = "  ".join(p for p in (c.teacher, c.week_spec, c.location) if p)
    line = f"{c.day_name} {c.section_label} · {c.course_name}"
    return f"{line}\n    {info}" if info else line


def _print_summary(title: str, courses: Sequence[CourseRecord], imported_at) -> None:
    day_count = len({c.day_index for c in courses})
    print(f"来源：{title or '-'}")
    print(
        f"课程数：{len(courses)}   覆盖天数：{day_count}   "
        f"导入时间：{imported_at.strftime('%Y-%m-%d %H:%M')}"
    )


def _show_day(courses: List[CourseRecord], first_week: date | None, day_index: int) -> int:
    today = date.today()
    week = current_week(first_week, today)
    name = day_name(day_index)

    if not courses:
        print("今日课程")
        print("未导入课表")
        return 0
    if week is None:
        print(f"{name}课程")
        print("请先设置第一周日期（--set-first-week YYYY-MM-DD）")
        return 0
    if week == NOT_STARTED:
        print(f"{name}课程")
        print("课程未开始")
        return 0

    print(f"{name} 第{week}周")
    selected = courses_for_week(courses, day_index, week)
    if not selected:
        print("今天没有课程")
    for c in selected:
        print(f"{c.section_label} {c.course_name}@{c.location}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Import a HIT weekly timetable (.xls / .xlsx / saved HTML) and "
            "export it to ICS / CSV / JSON or show the courses of a day."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--xls",
        metavar="PATH",
        help="Timetable file exported from the course system.",
    )
    mode.add_argument(
        "--list",
        action="store_true",
        help="List the stored timetable sorted by day and section.",
    )
    mode.add_argument(
        "--today",
        action="store_true",
        help="Show the stored courses of today (or --day) for the current week.",
    )
    mode.add_argument(
        "--set-first-week",
        metavar="YYYY-MM-DD",
        type=_parse_date_arg,
        help="Store the first day of teaching week 1.",
    )
    mode.add_argument(
        "--clear",
        action="store_true",
        help="Remove the stored timetable and first-week date.",
    )

    parser.add_argument(
        "--store",
        default=str(DEFAULT_STORE_PATH),
        help=f"State file. Default: {DEFAULT_STORE_PATH}",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="(--xls) Replace the stored timetable with the imported one.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="(--xls / --list) Export path (without extension).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["ics", "csv", "json"],
        default="ics",
        help="Export format. Default: ics",
    )
    parser.add_argument(
        "--first-week",
        metavar="YYYY-MM-DD",
        type=_parse_date_arg,
        help="First day of week 1 for ICS export. Default: the stored date.",
    )
    parser.add_argument(
        "--weeks",
        type=int,
        help="Number of teaching weeks for ICS export. Default: largest week in the sheet.",
    )
    parser.add_argument(
        "--day",
        type=int,
        choices=range(1, 8),
        metavar="1-7",
        help="(--today) Weekday to show, 1 = Monday. Default: today.",
    )
    args = parser.parse_args(argv)

    store = TimetableStore(args.store)

    if args.set_first_week:
        store.save_first_week_date(args.set_first_week)
        print(f"第一周日期已设置为 {args.set_first_week.isoformat()}")
        print(describe_week(args.set_first_week, date.today()))
        return 0

    if args.clear:
        store.clear()
        print("已清空课表")
        return 0

    if args.today:
        saved = store.load()
        day_index = args.day or date.today().isoweekday()
        return _show_day(list(saved.courses) if saved else [], store.load_first_week_date(), day_index)

    if args.xls:
        try:
            result = parse_file(args.xls)
        except ValueError as e:
            print(f"Error: 导入失败：{e}", file=sys.stderr)
            return 1
        if args.save:
            store.save(result)
    elif args.list:
        result = store.load()
        if result is None:
            print("来源：未导入")
            print("请导入哈工大本部课程表（.xls）")
            return 0
    else:
        print(
            "No mode specified. Use --xls to import a timetable, "
            "--list / --today to show the stored one.",
            file=sys.stderr,
        )
        return 1

    courses = sort_courses(result.courses)
    _print_summary(result.source_title, courses, result.imported_at)
    print(describe_week(store.load_first_week_date(), date.today()))
    if args.list or not args.output:
        for c in courses:
            print(_format_course(c))

    if args.output:
        ext = {"ics": ".ics", "csv": ".csv", "json": ".json"}[args.format]
        out_path = Path(args.output) if Path(args.output).suffix else Path(args.output + ext)
        first_week = args.first_week or store.load_first_week_date()
        try:
            export(courses, out_path, args.format, first_week=first_week, weeks=args.weeks)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"Exported {len(courses)} course(s) to {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
