"""Day deduplication and day-sequence (challenge) construction."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Sequence

from active.dates import beginning_of_day, end_of_day
from active.errors import ContractViolation
from active.models import DayStatus, DaysChallenge, Day, Habit, HabitDay
from active.store import Context

logger = logging.getLogger(__name__)


class DayStorage:
    """Finds or creates the single Day record of a calendar date."""

    def __init__(self, tz: tzinfo | None = None):
        self.tz = tz

    def get_day(self, context: Context, value: date | datetime) -> Day | None:
        start = beginning_of_day(value, self.tz)
        end = end_of_day(value, self.tz)
        matches = context.fetch(Day, lambda d: start <= d.date <= end, key=lambda d: d.date)
        return matches[0] if matches else None

    def get_or_create(self, context: Context, value: date | datetime) -> Day:
        day = self.get_day(context, value)
        if day is None:
            day = context.insert(Day(date=beginning_of_day(value, self.tz)))
            logger.debug("Created day %s", day.date.date().isoformat())
        return day


class DaysChallengeStorage:
    """Builds challenges together with their habit days, all or nothing."""

    def __init__(self, day_storage: DayStorage | None = None, tz: tzinfo | None = None):
        self.tz = tz
        self.day_storage = day_storage or DayStorage(tz)

    def normalize(self, dates: Sequence[date | datetime]) -> list[datetime]:
        """Beginning-of-day instants of *dates*, checked non-empty, ascending and distinct."""
        if not dates:
            raise ContractViolation("A challenge needs at least one date")
        starts = [beginning_of_day(d, self.tz) for d in dates]
        for previous, current in zip(starts, starts[1:]):
            if current <= previous:
                raise ContractViolation("Challenge dates must be ascending and on distinct days")
        return starts

    def create(
        self,
        context: Context,
        dates: Sequence[date | datetime],
        habit: Habit,
        created_at: datetime | None = None,
    ) -> DaysChallenge:
        """Create a challenge tracking *dates* for *habit*.

        Dates must be non-empty, ascending and on distinct days, and their
        range must not overlap any other challenge of the habit. Nothing is
        written when a check fails.
        """
        starts = self.normalize(dates)
        from_date, to_date = starts[0], starts[-1]

        for other in context.get_many(DaysChallenge, habit.challenge_ids):
            if other.overlaps(from_date, to_date):
                raise ContractViolation(
                    f"Dates {from_date.date()}..{to_date.date()} overlap an existing challenge"
                )

        challenge = DaysChallenge(
            habit_id=habit.id,
            created_at=created_at or datetime.now(self.tz or timezone.utc),
            from_date=from_date,
            to_date=to_date,
        )
        for start in starts:
            day = self.day_storage.get_or_create(context, start)
            habit_day = context.insert(
                HabitDay(habit_id=habit.id, challenge_id=challenge.id, day_id=day.id)
            )
            challenge.habit_day_ids.append(habit_day.id)
        context.insert(challenge)

        habit.challenge_ids.append(challenge.id)
        ordered = sorted(
            context.get_many(DaysChallenge, habit.challenge_ids), key=lambda c: c.from_date
        )
        habit.challenge_ids = [c.id for c in ordered]

        logger.debug(
            "Created challenge %s..%s (%d days) for habit %s",
            from_date.date(), to_date.date(), len(starts), habit.id,
        )
        return challenge

    def trim(self, context: Context, challenge: DaysChallenge) -> DaysChallenge | None:
        """Re-derive bounds from the remaining days; delete the challenge if none remain."""
        days = challenge_days(context, challenge)
        if not days:
            context.delete(challenge)
            return None
        challenge.habit_day_ids = [hd.id for hd, _day in days]
        challenge.from_date = days[0][1].date
        challenge.to_date = days[-1][1].date
        return challenge


def challenge_days(context: Context, challenge: DaysChallenge) -> list[tuple[HabitDay, Day]]:
    """The challenge's habit days paired with their Day, ordered by date."""
    pairs = []
    for habit_day in context.get_many(HabitDay, challenge.habit_day_ids):
        day = context.get(Day, habit_day.day_id)
        if day is not None:
            pairs.append((habit_day, day))
    pairs.sort(key=lambda p: p[1].date)
    return pairs


def habit_days(context: Context, habit: Habit) -> list[tuple[HabitDay, Day]]:
    """Every habit day of *habit* across its challenges, ordered by date."""
    pairs = []
    for challenge in context.get_many(DaysChallenge, habit.challenge_ids):
        pairs.extend(challenge_days(context, challenge))
    pairs.sort(key=lambda p: p[1].date)
    return pairs


def execution_status(habit_day: HabitDay, day: Day, now: datetime) -> DayStatus:
    """Resolve the tri-state was_executed flag against the clock.

    An unanswered day is pending today, upcoming in the future and missed
    once it is over.
    """
    if habit_day.was_executed is True:
        return DayStatus.COMPLETED
    if habit_day.was_executed is False:
        return DayStatus.MISSED
    today = beginning_of_day(now)
    if day.date < today:
        return DayStatus.MISSED
    if day.date == today:
        return DayStatus.PENDING
    return DayStatus.UPCOMING
