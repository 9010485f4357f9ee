"""Reminder notifications: fire-date calculation, records and scheduling.

Active only keeps Notification records and tells a scheduler about them;
delivery belongs to whatever the scheduler hands them to.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, tzinfo
from pathlib import Path
from typing import Iterable, Protocol

from active.dates import beginning_of_day, combine_fire_date
from active.days import habit_days
from active.errors import SchedulingError
from active.hooks import run_hooks
from active.models import Habit, Notification
from active.store import Context

logger = logging.getLogger(__name__)


class NotificationScheduler(Protocol):
    """Registers reminders with a delivery system.

    Implementations raise SchedulingError when the request is refused.
    """

    def schedule(self, notifications: list[Notification]) -> None: ...

    def unschedule(self, notifications: list[Notification]) -> None: ...


class HookNotificationScheduler:
    """Hands reminders to the workspace's on_schedule/on_unschedule hooks."""

    def __init__(self, root: Path | None = None):
        self.root = root

    def _run(self, hook_point: str, notifications: list[Notification]) -> None:
        if not notifications:
            return
        payload = {"notifications": [n.to_dict() for n in notifications]}
        failed = [r for r in run_hooks(hook_point, payload, self.root) if r["exit_code"] != 0]
        if failed:
            raise SchedulingError(
                f"{hook_point}: {len(failed)} hook(s) failed for {len(notifications)} reminder(s)"
            )

    def schedule(self, notifications: list[Notification]) -> None:
        self._run("on_schedule", notifications)

    def unschedule(self, notifications: list[Notification]) -> None:
        self._run("on_unschedule", notifications)


class NotificationStorage:
    """Creates a habit's Notification records from times of day."""

    def __init__(self, tz: tzinfo | None = None):
        self.tz = tz

    def make_fire_dates(
        self,
        context: Context,
        habit: Habit,
        fire_times: Iterable[time],
        now: datetime,
    ) -> list[datetime]:
        """Every fire time on every tracked day from today on, strictly after *now*."""
        fire_times = list(fire_times)
        today = beginning_of_day(now)
        fire_dates = set()
        for _habit_day, day in habit_days(context, habit):
            if day.date < today:
                continue
            for fire_time in fire_times:
                fire_date = combine_fire_date(day.date, fire_time, self.tz)
                if fire_date > now:
                    fire_dates.add(fire_date)
        return sorted(fire_dates)

    def create_notifications(
        self,
        context: Context,
        habit: Habit,
        fire_dates: Iterable[datetime],
    ) -> list[Notification]:
        notifications = []
        for fire_date in fire_dates:
            notification = context.insert(Notification(habit_id=habit.id, fire_date=fire_date))
            habit.notification_ids.append(notification.id)
            notifications.append(notification)
        logger.debug("Created %d notification(s) for habit %s", len(notifications), habit.id)
        return notifications
