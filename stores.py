"""Collaborator interfaces consumed by the scheduler, plus two adapters.

Task persistence belongs to the household-task backend. The pipeline only
reads through these narrow protocols:

- ``InMemoryStore`` for tests and dry runs
- ``SqliteStore`` reading the backend's SQLite database directly (read-only)
"""

from __future__ import annotations

import logging
import sqlite3
from collections import defaultdict
from contextlib import closing
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from models import PersonalReminder, TaskSnapshot

logger = logging.getLogger(__name__)


class TaskStore(Protocol):
    def list_user_ids(self) -> List[str]: ...

    def list_tasks_for_user_on_day(self, user_id: str, day_index: int) -> List[TaskSnapshot]: ...


class SettingsStore(Protocol):
    def get_advance_minutes(self, user_id: str) -> Optional[int]: ...


class ReminderStore(Protocol):
    def list_personal_reminders(self, user_id: str) -> List[PersonalReminder]: ...


class InMemoryStore:
    """Dict-backed implementation of all three store protocols."""

    def __init__(self) -> None:
        self.tasks: Dict[str, List[TaskSnapshot]] = defaultdict(list)
        self.advance_minutes: Dict[str, Optional[int]] = {}
        self.reminders: Dict[str, List[PersonalReminder]] = defaultdict(list)

    def add_user(self, user_id: str, advance_minutes: Optional[int] = None) -> None:
        self.advance_minutes[user_id] = advance_minutes
        self.tasks.setdefault(user_id, [])

    def add_tasks(self, user_id: str, tasks: Iterable[TaskSnapshot]) -> None:
        self.advance_minutes.setdefault(user_id, None)
        self.tasks[user_id].extend(tasks)

    def add_reminder(self, reminder: PersonalReminder) -> None:
        self.advance_minutes.setdefault(reminder.user_id, None)
        self.reminders[reminder.user_id].append(reminder)

    def list_user_ids(self) -> List[str]:
        return list(self.advance_minutes)

    def list_tasks_for_user_on_day(self, user_id: str, day_index: int) -> List[TaskSnapshot]:
        return [t for t in self.tasks.get(user_id, []) if t.runs_on(day_index)]

    def get_advance_minutes(self, user_id: str) -> Optional[int]:
        return self.advance_minutes.get(user_id)

    def list_personal_reminders(self, user_id: str) -> List[PersonalReminder]:
        return list(self.reminders.get(user_id, []))


class SqliteStore:
    """Read-only view over the household backend database.

    Tables used: ``users(id)``, ``tasks``, ``user_settings.print_advance_time``
    and ``personal_reminders``. ``tasks.days`` is JSON text of 0=Sunday indices.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def _connect(self) -> sqlite3.Connection:
        uri = f"{Path(self.path).resolve().as_uri()}?mode=ro"
        conn = sqlite3.connect(uri, uri=True)
        conn.row_factory = sqlite3.Row
        return conn

    def list_user_ids(self) -> List[str]:
        with closing(self._connect()) as conn:
            rows = conn.execute("SELECT id FROM users ORDER BY created_at, id").fetchall()
        return [str(r["id"]) for r in rows]

    def list_tasks_for_user_on_day(self, user_id: str, day_index: int) -> List[TaskSnapshot]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE user_id = ? AND enabled = 1 ORDER BY time ASC",
                (user_id,),
            ).fetchall()
        tasks: List[TaskSnapshot] = []
        for row in rows:
            try:
                task = TaskSnapshot.from_mapping(dict(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning("Skipping malformed task %s for user %s: %s", row["id"], user_id, e)
                continue
            if task.runs_on(day_index):
                tasks.append(task)
        return tasks

    def get_advance_minutes(self, user_id: str) -> Optional[int]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT print_advance_time FROM user_settings WHERE user_id = ?", (user_id,)
            ).fetchone()
        if row is None or row["print_advance_time"] is None:
            return None
        return int(row["print_advance_time"])

    def list_personal_reminders(self, user_id: str) -> List[PersonalReminder]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT * FROM personal_reminders WHERE user_id = ? ORDER BY created_at", (user_id,)
            ).fetchall()
        return [PersonalReminder.from_mapping(dict(r)) for r in rows]
