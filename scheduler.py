"""Notification scheduler.

One global tick scans every user:
- read the user's lookahead window (advance minutes); no window, no scan
- fetch today's tasks and keep the enabled ones starting within the window
- print them as one task list through the job runner

Users are scanned concurrently and independently; a failing store call or
printer for one user never skips the others. A second, faster tick does the
personal-reminder bookkeeping.

The scheduler has no memory by default: a task is printed on every tick while
it stays inside the window. Pass a ``NotifiedLedger`` to print each task at
most once per day.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Tuple, TypeVar

import config
from formatter import format_task_list
from models import TaskSnapshot, day_index
from printer import JobOutcome, JobStatus, PrintJobRunner
from stores import ReminderStore, SettingsStore, TaskStore

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

T = TypeVar("T")


def upcoming_tasks(tasks: Iterable[TaskSnapshot], now_minutes: int, advance_minutes: int) -> List[TaskSnapshot]:
    """Enabled tasks starting in ``(0, advance_minutes]`` minutes from now, in input order."""
    result: List[TaskSnapshot] = []
    for task in tasks:
        if not task.enabled:
            continue
        try:
            diff = task.minutes - now_minutes
        except ValueError:
            logger.warning("Task %s has invalid time %r, skipping", task.id, task.time)
            continue
        if 0 < diff <= advance_minutes:
            result.append(task)
    return result


class NotifiedLedger:
    """Remembers which (user, task, day) combinations were already notified."""

    def __init__(self) -> None:
        self._seen: Set[Tuple[str, str, date]] = set()

    def unseen(self, user_id: str, tasks: Iterable[TaskSnapshot], day: date) -> List[TaskSnapshot]:
        return [t for t in tasks if (user_id, t.id, day) not in self._seen]

    def mark(self, user_id: str, tasks: Iterable[TaskSnapshot], day: date) -> None:
        # Entries from previous days can never match again
        self._seen = {key for key in self._seen if key[2] >= day}
        self._seen.update((user_id, t.id, day) for t in tasks)

    def __len__(self) -> int:
        return len(self._seen)


class NotificationScheduler:
    def __init__(
        self,
        tasks: TaskStore,
        settings: SettingsStore,
        runner: PrintJobRunner,
        *,
        reminders: Optional[ReminderStore] = None,
        clock: Callable[[], datetime] = datetime.now,
        ledger: Optional[NotifiedLedger] = None,
        title: Optional[str] = None,
    ) -> None:
        self.tasks = tasks
        self.settings = settings
        self.reminders = reminders
        self.runner = runner
        self.ledger = ledger
        self.title = title or config.LIST_TITLE
        self._clock = clock

    async def _store_call(self, fn: Callable[..., T], *args: Any) -> T:
        # Store adapters block (sqlite3); keep them off the event loop
        return await asyncio.get_running_loop().run_in_executor(None, fn, *args)

    async def _advance_minutes(self, user_id: str) -> Optional[int]:
        advance = await self._store_call(self.settings.get_advance_minutes, user_id)
        if advance is None:
            return None
        if not 0 <= advance < MINUTES_PER_DAY:
            logger.warning("User %s has out-of-range advance time %s, skipping", user_id, advance)
            return None
        return advance

    async def _scan_user(self, user_id: str, now: datetime, now_minutes: int, today: int) -> Optional[JobOutcome]:
        try:
            advance = await self._advance_minutes(user_id)
            if advance is None:
                logger.debug("User %s has no print advance time, skipping", user_id)
                return None

            tasks = await self._store_call(self.tasks.list_tasks_for_user_on_day, user_id, today)
            upcoming = upcoming_tasks(tasks, now_minutes, advance)
            if self.ledger is not None:
                upcoming = self.ledger.unseen(user_id, upcoming, now.date())
            if not upcoming:
                return None

            logger.info("Found %d upcoming tasks for user %s", len(upcoming), user_id)
            document = format_task_list(upcoming, self.title, now, line_width=config.LINE_WIDTH)
            outcome = await self.runner.submit(document)
        except Exception:
            logger.exception("Upcoming task scan failed for user %s", user_id)
            return None

        if outcome.status is JobStatus.FAILED:
            logger.error("Printing upcoming tasks for user %s failed: %s", user_id, outcome.reason)
        else:
            logger.info("Upcoming tasks for user %s %s", user_id, outcome.status.value)
            if self.ledger is not None:
                self.ledger.mark(user_id, upcoming, now.date())
        return outcome

    async def run_tick(self, now: Optional[datetime] = None) -> Dict[str, JobOutcome]:
        """One lookahead scan over all users. Returns outcomes of submitted jobs."""
        now = now or self._clock()
        now_minutes = now.hour * 60 + now.minute
        today = day_index(now)
        logger.info("Checking upcoming tasks at %s (day %d)", now.strftime("%H:%M"), today)

        try:
            user_ids = list(await self._store_call(self.tasks.list_user_ids))
        except Exception:
            logger.exception("Listing users failed")
            return {}

        results = await asyncio.gather(
            *(self._scan_user(user_id, now, now_minutes, today) for user_id in user_ids)
        )
        return {user_id: outcome for user_id, outcome in zip(user_ids, results) if outcome is not None}

    async def run_reminder_tick(self) -> Dict[str, int]:
        """Personal reminder bookkeeping: count active reminders per user."""
        if self.reminders is None:
            return {}
        logger.info("Checking personal reminders")
        try:
            user_ids = list(await self._store_call(self.tasks.list_user_ids))
        except Exception:
            logger.exception("Listing users failed")
            return {}

        active: Dict[str, int] = {}
        for user_id in user_ids:
            try:
                reminders = await self._store_call(self.reminders.list_personal_reminders, user_id)
                count = sum(1 for r in reminders if r.enabled)
            except Exception:
                logger.exception("Reminder lookup failed for user %s", user_id)
                continue
            if count:
                logger.info("User %s has %d active reminders", user_id, count)
                active[user_id] = count
        return active

    async def _loop(self, name: str, interval_seconds: float, tick: Callable[[], Awaitable[object]]) -> None:
        sleep_s = max(1.0, float(interval_seconds))
        while True:
            try:
                await tick()
            except Exception:
                logger.exception("%s tick failed", name)
            await asyncio.sleep(sleep_s)

    async def run_forever(
        self,
        interval_seconds: Optional[float] = None,
        reminder_interval_seconds: Optional[float] = None,
    ) -> None:
        """Run the lookahead and reminder loops. Cancel the coroutine to stop."""
        interval = interval_seconds or config.SCAN_INTERVAL_SECONDS
        reminder_interval = reminder_interval_seconds or config.REMINDER_INTERVAL_SECONDS
        logger.info(
            "Scheduler started: upcoming tasks every %ds, personal reminders every %ds",
            interval,
            reminder_interval,
        )
        await asyncio.gather(
            self._loop("Upcoming tasks", interval, self.run_tick),
            self._loop("Personal reminders", reminder_interval, self.run_reminder_tick),
        )
