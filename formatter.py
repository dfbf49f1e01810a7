"""Turn task snapshots into printable documents.

Formatting is pure: the only input besides the tasks is ``now``, read once per
call (or passed in) and threaded through the whole document so header and
footer never disagree.

Layout on the paper:

- single task: centered banner, title, one field per line, footer, cut
- task list:   centered title, date and count, then a three-line block per
               task sorted by time, summary footer, cut
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from directives import AlignCenter, AlignLeft, Bold, Cut, Document, DocumentBuilder, DoubleHeight, Newline, Text
from models import WEEKDAY_NAMES, TaskSnapshot

DAILY = "daily"
DEFAULT_LINE_WIDTH = 32
# Blank lines fed before the cut so the last line clears the cutter
FEED_LINES = 3


def _date(now: datetime) -> str:
    return now.strftime("%d/%m/%Y")


def _timestamp(now: datetime) -> str:
    return now.strftime("%d/%m/%Y %H:%M")


def describe_days(task: TaskSnapshot) -> str:
    """Human-readable day list: "daily", or weekday names in stored order."""
    if task.repeat_daily:
        return DAILY
    if not task.days:
        return "-"
    return ", ".join(WEEKDAY_NAMES[d] if 0 <= d < len(WEEKDAY_NAMES) else "?" for d in task.days)


def _banner(doc: DocumentBuilder, title: str) -> None:
    doc.add(AlignCenter(), Bold(True), DoubleHeight(True))
    doc.line(title)
    doc.add(DoubleHeight(False), Bold(False))


def _finish(doc: DocumentBuilder) -> Document:
    doc.feed(FEED_LINES)
    doc.add(AlignLeft(), Cut())
    return doc.build()


def format_task(task: TaskSnapshot, now: Optional[datetime] = None, line_width: int = DEFAULT_LINE_WIDTH) -> Document:
    now = now or datetime.now()
    rule = "=" * line_width

    doc = DocumentBuilder()
    _banner(doc, "HOUSEHOLD TASK")
    doc.line(rule)
    doc.add(Bold(True))
    doc.line(task.title.upper())
    doc.add(Bold(False), AlignLeft())
    doc.line(rule)
    doc.line(f"ID: {task.id}")
    doc.line(f"Description: {task.description}")
    doc.line(f"Time: {task.time}")
    doc.line(f"Days: {describe_days(task)}")
    doc.line(f"Category: {task.category}")
    doc.line(f"Priority: {task.priority.upper()}")
    doc.line(f"Duration: {task.estimated_duration} min")
    if task.zone is not None:
        doc.line(f"Zone: {task.zone}")
    doc.add(AlignCenter())
    doc.line(rule)
    doc.line(f"Printed {_timestamp(now)}")
    return _finish(doc)


def sort_by_time(tasks: Iterable[TaskSnapshot]) -> List[TaskSnapshot]:
    """Tasks by ``time`` ascending; ``sorted`` is stable so ties keep scan order."""
    return sorted(tasks, key=lambda t: t.minutes)


def format_task_list(
    tasks: Sequence[TaskSnapshot],
    title: str,
    now: Optional[datetime] = None,
    line_width: int = DEFAULT_LINE_WIDTH,
) -> Document:
    now = now or datetime.now()
    ordered = sort_by_time(tasks)
    total = f"Total: {len(ordered)} tasks"

    doc = DocumentBuilder()
    _banner(doc, title)
    doc.add(AlignLeft())
    doc.line(f"Date: {_date(now)}")
    doc.line(total)
    doc.line()

    for index, task in enumerate(ordered, start=1):
        doc.line(f"{index}. {task.time} - {task.title}")
        doc.line(f"   {task.description}")
        doc.line(f"   {describe_days(task)} | {task.category} | {task.estimated_duration} min")
        doc.line()

    doc.add(AlignCenter())
    doc.line("=" * line_width)
    doc.line(total)
    doc.line("Good work!")
    return _finish(doc)


def format_test_page(now: Optional[datetime] = None, line_width: int = DEFAULT_LINE_WIDTH) -> Document:
    now = now or datetime.now()
    doc = DocumentBuilder()
    _banner(doc, "PRINTER TEST")
    doc.add(AlignLeft())
    doc.line("Printer connected successfully!")
    doc.line(f"Date/Time: {_timestamp(now)}")
    doc.line()
    doc.line("If you can read this, the")
    doc.line("printer is configured and")
    doc.line("working.")
    doc.add(AlignCenter())
    doc.line("=" * line_width)
    return _finish(doc)


def render_text(document: Document) -> str:
    """Plain-text preview of a document for logs; style toggles are dropped."""
    parts: List[str] = []
    for directive in document:
        if isinstance(directive, Text):
            parts.append(directive.text)
        elif isinstance(directive, Newline):
            parts.append("\n")
        elif isinstance(directive, Cut):
            parts.append("[CUT]\n")
    return "".join(parts)
