"""Tests for formatter module that turns task snapshots into documents."""

from datetime import datetime
from unittest.mock import patch

import pytest

from directives import AlignCenter, Bold, Cut, DoubleHeight, Newline, Text
from formatter import describe_days, format_task, format_task_list, format_test_page, render_text
from models import TaskSnapshot

NOW = datetime(2024, 3, 4, 7, 0)


def make_task(task_id="1", time="07:10", title="Shine sink", **kwargs):
    defaults = dict(description="Clean and dry the kitchen sink", category="morning")
    defaults.update(kwargs)
    return TaskSnapshot(id=task_id, title=title, time=time, **defaults)


def texts(document):
    return [d.text for d in document if isinstance(d, Text)]


def test_format_task_contains_all_fields():
    task = make_task(days=(1, 3), zone=2, priority="high", estimated_duration=10)
    lines = texts(format_task(task, NOW))
    assert "SHINE SINK" in lines
    assert "ID: 1" in lines
    assert "Description: Clean and dry the kitchen sink" in lines
    assert "Time: 07:10" in lines
    assert "Days: Mon, Wed" in lines
    assert "Category: morning" in lines
    assert "Priority: HIGH" in lines
    assert "Duration: 10 min" in lines
    assert "Zone: 2" in lines
    assert "Printed 04/03/2024 07:00" in lines


def test_format_task_omits_zone_when_absent():
    lines = texts(format_task(make_task(), NOW))
    assert not any(line.startswith("Zone:") for line in lines)


def test_format_task_banner_and_cut():
    doc = format_task(make_task(), NOW)
    assert doc[:3] == (AlignCenter(), Bold(True), DoubleHeight(True))
    assert doc[-1] == Cut()
    assert isinstance(doc, tuple)


def test_task_list_sorted_by_time_with_stable_ties():
    tasks = [
        make_task("a", "09:00", "Third"),
        make_task("b", "07:30", "First"),
        make_task("c", "08:00", "Tie one"),
        make_task("d", "08:00", "Tie two"),
    ]
    lines = texts(format_task_list(tasks, "UPCOMING TASKS", NOW))
    numbered = [line for line in lines if line[0].isdigit()]
    assert numbered == [
        "1. 07:30 - First",
        "2. 08:00 - Tie one",
        "3. 08:00 - Tie two",
        "4. 09:00 - Third",
    ]


def test_task_list_sort_compares_times_numerically():
    tasks = [make_task("a", "10:00", "Late"), make_task("b", "9:30", "Early")]
    numbered = [line for line in texts(format_task_list(tasks, "T", NOW)) if line[0].isdigit()]
    assert numbered == ["1. 9:30 - Early", "2. 10:00 - Late"]


def test_task_list_header_and_footer():
    tasks = [make_task("a"), make_task("b", "07:15")]
    doc = format_task_list(tasks, "UPCOMING TASKS", NOW)
    lines = texts(doc)
    assert lines[0] == "UPCOMING TASKS"
    assert "Date: 04/03/2024" in lines
    assert lines.count("Total: 2 tasks") == 2
    assert doc[-1] == Cut()


def test_task_list_three_line_block():
    task = make_task(repeat_daily=True, estimated_duration=5)
    lines = texts(format_task_list([task], "T", NOW))
    i = lines.index("1. 07:10 - Shine sink")
    assert lines[i + 1] == "   Clean and dry the kitchen sink"
    assert lines[i + 2] == "   daily | morning | 5 min"


def test_task_list_does_not_mutate_input():
    tasks = [make_task("a", "09:00"), make_task("b", "07:00")]
    before = list(tasks)
    format_task_list(tasks, "T", NOW)
    assert tasks == before


@pytest.mark.parametrize("days", [(), (0, 6), (1, 2, 3)])
def test_repeat_daily_always_renders_daily(days):
    assert describe_days(make_task(repeat_daily=True, days=days)) == "daily"


@pytest.mark.parametrize(
    "days, expected",
    [
        ((0,), "Sun"),
        ((6,), "Sat"),
        ((1, 5), "Mon, Fri"),
        ((), "-"),
        ((9,), "?"),
    ],
)
def test_day_names_are_zero_indexed_from_sunday(days, expected):
    assert describe_days(make_task(days=days)) == expected


def test_now_is_read_once_per_call():
    with patch("formatter.datetime") as mock_dt:
        mock_dt.now.return_value = NOW
        format_task_list([make_task()], "T")
        format_task(make_task())
    assert mock_dt.now.call_count == 2


def test_formatting_is_deterministic_for_fixed_now():
    tasks = [make_task("a"), make_task("b", "08:00")]
    assert format_task_list(tasks, "T", NOW) == format_task_list(tasks, "T", NOW)


def test_test_page_mentions_timestamp():
    lines = texts(format_test_page(NOW))
    assert "PRINTER TEST" in lines
    assert "Date/Time: 04/03/2024 07:00" in lines


def test_render_text_drops_styles_keeps_text():
    doc = (AlignCenter(), Bold(True), Text("HELLO"), Bold(False), Newline(), Text("x"), Newline(), Cut())
    assert render_text(doc) == "HELLO\nx\n[CUT]\n"
