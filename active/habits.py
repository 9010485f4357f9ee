"""Habit CRUD, challenge lookups and day marking for Active.

HabitStorage never commits: every operation reads and writes through the
Context it is given and the caller decides when to commit or roll back.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, tzinfo
from pathlib import Path
from typing import Callable, Sequence

from active.dates import beginning_of_day
from active.days import DaysChallengeStorage, DayStorage, challenge_days
from active.errors import ContractViolation, SchedulingError
from active.models import DaysChallenge, Habit, HabitColor, HabitDay, Notification, User
from active.notifications import (
    HookNotificationScheduler,
    NotificationScheduler,
    NotificationStorage,
)
from active.store import Context
from active.workspace import get_user_timezone

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _color(value: HabitColor | str) -> HabitColor:
    try:
        return HabitColor(value)
    except ValueError:
        raise ContractViolation(f"Unknown habit color: {value!r}") from None


class HabitStorage:

    def __init__(
        self,
        challenge_storage: DaysChallengeStorage,
        notification_storage: NotificationStorage,
        scheduler: NotificationScheduler,
        clock: Clock,
        tz: tzinfo | None = None,
    ):
        self.challenge_storage = challenge_storage
        self.notification_storage = notification_storage
        self.scheduler = scheduler
        self.clock = clock
        self.tz = tz

    @classmethod
    def for_workspace(
        cls,
        root: Path | None = None,
        scheduler: NotificationScheduler | None = None,
        clock: Clock | None = None,
    ) -> HabitStorage:
        """Wire a HabitStorage with the workspace's timezone and hooks."""
        tz = get_user_timezone(root)
        return cls(
            challenge_storage=DaysChallengeStorage(tz=tz),
            notification_storage=NotificationStorage(tz=tz),
            scheduler=scheduler or HookNotificationScheduler(root),
            clock=clock or (lambda: datetime.now(tz)),
            tz=tz,
        )

    @property
    def day_storage(self) -> DayStorage:
        return self.challenge_storage.day_storage

    # ── Create / edit / delete ────────────────────────────────

    def create(
        self,
        context: Context,
        user: User,
        name: str,
        color: HabitColor | str,
        days: Sequence[date | datetime],
        fire_times: Sequence[time] | None = None,
    ) -> Habit:
        """Create a habit tracking *days* as its first challenge.

        Reminders are created and scheduled when *fire_times* is given.
        The habit is left uncommitted in *context*.
        """
        self.challenge_storage.normalize(days)
        now = self.clock()

        habit = context.insert(
            Habit(name=name, created_at=now, color=_color(color), user_id=user.id)
        )
        user.habit_ids.append(habit.id)

        self.challenge_storage.create(context, days, habit, created_at=now)

        if fire_times is not None:
            self.make_notifications(context, habit, fire_times)

        logger.info("Created habit %s (%r, %d days)", habit.id, name, len(days))
        return habit

    def edit(
        self,
        context: Context,
        habit: Habit,
        name: str | None = None,
        color: HabitColor | str | None = None,
        days: Sequence[date | datetime] | None = None,
        fire_times: Sequence[time] | None = None,
    ) -> Habit:
        """Apply the given changes to *habit*; omitted arguments are left alone.

        New *days* replace only the days from today on: past days and their
        answers are kept, and a new challenge is started for the replacement
        dates. New *fire_times* replace every reminder of the habit.
        """
        new_color = _color(color) if color is not None else None
        plans = None
        if days is not None:
            plans = self._future_days(context, habit, days)
        if fire_times is not None and not fire_times:
            raise ContractViolation("edit: fire_times shouldn't be empty")

        if name is not None:
            habit.name = name

        if new_color is not None:
            habit.color = new_color

        if days is not None:
            reminder_times = None
            if fire_times is None and habit.notification_ids:
                reminder_times = self._reminder_times(context, habit)
            self._replace_future_days(context, habit, days, plans)
            if reminder_times:
                self._replace_notifications(context, habit, reminder_times)

        if fire_times is not None:
            self._replace_notifications(context, habit, fire_times)

        logger.info("Edited habit %s", habit.id)
        return habit

    def delete(self, context: Context, habit: Habit) -> None:
        """Unschedule the habit's reminders and delete it with everything it owns."""
        self._unschedule(context.get_many(Notification, habit.notification_ids))
        context.delete(habit)
        logger.info("Deleted habit %s", habit.id)

    def make_notifications(
        self,
        context: Context,
        habit: Habit,
        fire_times: Sequence[time],
    ) -> list[Notification]:
        """Create the habit's reminders for *fire_times* and schedule them."""
        fire_dates = self.notification_storage.make_fire_dates(
            context, habit, fire_times, self.clock()
        )
        notifications = self.notification_storage.create_notifications(context, habit, fire_dates)
        self._schedule(notifications)
        return notifications

    def _future_days(
        self,
        context: Context,
        habit: Habit,
        days: Sequence[date | datetime],
    ) -> list[tuple[DaysChallenge, list[HabitDay]]]:
        """Habit days from today on, per challenge, that *days* would replace."""
        starts = self.challenge_storage.normalize(days)
        today = beginning_of_day(self.clock())

        plans = []
        for challenge in self.challenges(context, habit):
            pairs = challenge_days(context, challenge)
            kept = [day for _hd, day in pairs if day.date < today]
            if kept and kept[0].date <= starts[-1] and starts[0] <= kept[-1].date:
                raise ContractViolation("edit: new days overlap days already tracked")
            future = [hd for hd, day in pairs if day.date >= today]
            if future:
                plans.append((challenge, future))
        return plans

    def _replace_future_days(
        self,
        context: Context,
        habit: Habit,
        days: Sequence[date | datetime],
        plans: list[tuple[DaysChallenge, list[HabitDay]]],
    ) -> None:
        for challenge, future in plans:
            for habit_day in future:
                context.delete(habit_day)
            self.challenge_storage.trim(context, challenge)

        self.challenge_storage.create(context, days, habit, created_at=self.clock())

    def _replace_notifications(
        self,
        context: Context,
        habit: Habit,
        fire_times: Sequence[time],
    ) -> list[Notification]:
        existing = context.get_many(Notification, habit.notification_ids)
        self._unschedule(existing)
        for notification in existing:
            context.delete(notification)
        return self.make_notifications(context, habit, fire_times)

    def _reminder_times(self, context: Context, habit: Habit) -> list[time]:
        """The distinct times of day the habit's reminders fire at."""
        times = set()
        for notification in context.get_many(Notification, habit.notification_ids):
            fire_date = notification.fire_date
            if self.tz is not None:
                fire_date = fire_date.astimezone(self.tz)
            times.add(fire_date.time())
        return sorted(times)

    def _schedule(self, notifications: list[Notification]) -> None:
        if not notifications:
            return
        try:
            self.scheduler.schedule(notifications)
        except SchedulingError as e:
            logger.warning("Scheduling %d reminder(s) failed: %s", len(notifications), e)

    def _unschedule(self, notifications: list[Notification]) -> None:
        if not notifications:
            return
        try:
            self.scheduler.unschedule(notifications)
        except SchedulingError as e:
            logger.warning("Unscheduling %d reminder(s) failed: %s", len(notifications), e)

    # ── Queries ───────────────────────────────────────────────

    def get(self, context: Context, habit_id: str) -> Habit | None:
        return context.get(Habit, habit_id)

    def habits(self, context: Context) -> list[Habit]:
        """All habits, newest first."""
        return context.fetch(Habit, key=lambda h: h.created_at, reverse=True)

    def challenges(self, context: Context, habit: Habit) -> list[DaysChallenge]:
        """The habit's challenges ordered by fromDate."""
        return sorted(
            context.get_many(DaysChallenge, habit.challenge_ids), key=lambda c: c.from_date
        )

    def challenge_for_date(
        self,
        context: Context,
        habit: Habit,
        value: date | datetime,
    ) -> DaysChallenge | None:
        """The challenge whose range holds *value*'s day, bounds included."""
        start = beginning_of_day(value, self.tz)
        for challenge in self.challenges(context, habit):
            if challenge.contains(start):
                return challenge
        return None

    def calendar_bounds(self, context: Context, habit: Habit) -> tuple[datetime, datetime]:
        challenges = self.challenges(context, habit)
        if not challenges:
            raise ContractViolation(f"Habit {habit.id} has no challenges")
        return challenges[0].from_date, challenges[-1].to_date

    def notifications(self, context: Context, habit: Habit) -> list[Notification]:
        return sorted(
            context.get_many(Notification, habit.notification_ids), key=lambda n: n.fire_date
        )

    def current_day(self, context: Context, habit: Habit) -> HabitDay | None:
        """Today's habit day, if today is tracked."""
        today = self.day_storage.get_day(context, self.clock())
        if today is None:
            return None
        challenge = self.challenge_for_date(context, habit, today.date)
        if challenge is None:
            return None
        for habit_day in context.get_many(HabitDay, challenge.habit_day_ids):
            if habit_day.day_id == today.id:
                return habit_day
        return None

    def mark_current_day(self, context: Context, habit: Habit, executed: bool) -> HabitDay:
        habit_day = self.current_day(context, habit)
        if habit_day is None:
            raise ContractViolation(f"Habit {habit.id} doesn't track today")
        habit_day.was_executed = executed
        return habit_day
