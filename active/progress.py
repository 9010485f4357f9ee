"""Progress counting and streaks for habits and their challenges."""

from __future__ import annotations

from datetime import datetime

from active.days import challenge_days, execution_status, habit_days
from active.models import ChallengeProgress, DayStatus, DaysChallenge, Day, Habit, HabitDay
from active.store import Context


def _count(pairs: list[tuple[HabitDay, Day]], now: datetime) -> ChallengeProgress:
    progress = ChallengeProgress(total=len(pairs))
    for habit_day, day in pairs:
        status = execution_status(habit_day, day, now)
        if status is DayStatus.COMPLETED:
            progress.completed += 1
        elif status is DayStatus.MISSED:
            progress.missed += 1
        elif status is DayStatus.PENDING:
            progress.pending += 1
        else:
            progress.upcoming += 1
    progress.streak = _streak(pairs, now)
    return progress


def _streak(pairs: list[tuple[HabitDay, Day]], now: datetime) -> int:
    """Completed days in a row, walking back from the latest day already due.

    Upcoming days are skipped and an unanswered today doesn't break the run.
    """
    streak = 0
    for habit_day, day in reversed(pairs):
        status = execution_status(habit_day, day, now)
        if status in (DayStatus.UPCOMING, DayStatus.PENDING):
            continue
        if status is not DayStatus.COMPLETED:
            break
        streak += 1
    return streak


def challenge_progress(context: Context, challenge: DaysChallenge, now: datetime) -> ChallengeProgress:
    return _count(challenge_days(context, challenge), now)


def habit_progress(context: Context, habit: Habit, now: datetime) -> ChallengeProgress:
    """Progress over every challenge of the habit."""
    return _count(habit_days(context, habit), now)


def current_streak(context: Context, habit: Habit, now: datetime) -> int:
    return _streak(habit_days(context, habit), now)
