"""Tests for active.progress — counts and streaks."""

from __future__ import annotations

import pytest

from active.days import habit_days
from active.progress import challenge_progress, current_streak, habit_progress


@pytest.fixture
def habit(context, storage, user, day_after):
    """Five tracked days, today being the fourth."""
    return storage.create(
        context, user, "Read", "emerald",
        [day_after(-3), day_after(-2), day_after(-1), day_after(0), day_after(1)],
    )


def _answer(context, habit, answers):
    for (habit_day, _day), answer in zip(habit_days(context, habit), answers):
        habit_day.was_executed = answer


def test_counts(context, clock, habit):
    _answer(context, habit, [True, None, True])
    progress = habit_progress(context, habit, clock())

    assert progress.total == 5
    assert progress.completed == 2
    assert progress.missed == 1
    assert progress.pending == 1
    assert progress.upcoming == 1
    assert progress.to_dict()["completionRate"] == 0.667


def test_streak_ignores_unanswered_today(context, clock, habit):
    _answer(context, habit, [False, True, True])
    assert current_streak(context, habit, clock()) == 2


def test_streak_includes_today_once_answered(context, clock, habit):
    _answer(context, habit, [False, True, True, True])
    assert current_streak(context, habit, clock()) == 3


def test_streak_broken_by_missed_day(context, clock, habit):
    _answer(context, habit, [True, True, None, True])
    assert current_streak(context, habit, clock()) == 1


def test_challenge_progress(context, storage, clock, habit):
    (challenge,) = storage.challenges(context, habit)
    assert challenge_progress(context, challenge, clock()) == habit_progress(context, habit, clock())


def test_progress_moves_with_the_clock(context, clock, habit):
    clock.advance(days=2)
    progress = habit_progress(context, habit, clock())
    assert progress.missed == 5
    assert progress.pending == 0
    assert progress.upcoming == 0
    assert progress.streak == 0
