"""Tests for active.queries — the live habit list."""

from __future__ import annotations

from datetime import time

import pytest

from active.queries import HabitsChange, HabitsQuery
from active.users import UserStorage


@pytest.fixture
def query(store):
    query = HabitsQuery(store)
    yield query
    query.close()


@pytest.fixture
def changes(query) -> list[HabitsChange]:
    seen: list[HabitsChange] = []
    query.subscribe(seen.append)
    return seen


def test_fetch_newest_first(store, storage, clock, day_after, query):
    context = store.new_context()
    user = UserStorage().create(context)
    older = storage.create(context, user, "Read", "emerald", [day_after(0)])
    clock.advance(minutes=5)
    newer = storage.create(context, user, "Run", "amethyst", [day_after(0)])
    context.commit()

    assert [h.id for h in query.perform_fetch()] == [newer.id, older.id]


def test_reports_inserted_habits(store, storage, day_after, query, changes):
    query.perform_fetch()
    context = store.new_context()
    habit = storage.create(context, UserStorage().create(context), "Read", "emerald", [day_after(0)])

    assert changes == []
    context.commit()

    (change,) = changes
    assert change.inserted == [habit.id]
    assert change.updated == []
    assert [h.id for h in change.habits] == [habit.id]
    assert [h.id for h in query.habits] == [habit.id]


def test_reports_child_updates_as_habit_updates(store, storage, day_after, query, changes):
    context = store.new_context()
    habit = storage.create(context, UserStorage().create(context), "Read", "emerald", [day_after(0)])
    context.commit()
    query.perform_fetch()

    storage.mark_current_day(context, habit, True)
    context.commit()

    (change,) = changes
    assert change.updated == [habit.id]
    assert change.inserted == []


def test_reports_new_reminders_as_habit_updates(store, storage, day_after, query, changes):
    context = store.new_context()
    habit = storage.create(context, UserStorage().create(context), "Read", "emerald", [day_after(1)])
    context.commit()
    query.perform_fetch()

    storage.edit(context, habit, fire_times=[time(8, 0)])
    context.commit()

    assert changes[-1].updated == [habit.id]


def test_reports_deleted_habits(store, storage, day_after, query, changes):
    context = store.new_context()
    habit = storage.create(context, UserStorage().create(context), "Read", "emerald", [day_after(0)])
    context.commit()
    query.perform_fetch()

    storage.delete(context, habit)
    context.commit()

    (change,) = changes
    assert change.deleted == [habit.id]
    assert change.habits == []


def test_ignores_unrelated_commits(store, query, changes):
    query.perform_fetch()
    context = store.new_context()
    UserStorage().create(context)
    context.commit()
    assert changes == []


def test_close_stops_updates(store, storage, day_after, query, changes):
    query.perform_fetch()
    query.close()

    context = store.new_context()
    storage.create(context, UserStorage().create(context), "Read", "emerald", [day_after(0)])
    context.commit()

    assert changes == []
    assert query.habits == []


def test_query_context_is_read_only(query):
    assert query.context.read_only
