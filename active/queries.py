"""Live habit list for presentation code.

HabitsQuery keeps a read-only context over the store, re-fetches when a
commit touches habits or anything they own, and reports what changed to
its subscribers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from active.models import DaysChallenge, Habit, HabitDay, Notification
from active.store import ChangeSet, Store

_CHILDREN = (DaysChallenge, HabitDay, Notification)


@dataclass
class HabitsChange:
    habits: list[Habit] = field(default_factory=list)
    inserted: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


class HabitsQuery:
    """All habits ordered by creation date, newest first."""

    def __init__(self, store: Store):
        self.store = store
        self.context = store.new_context(read_only=True)
        self.habits: list[Habit] = []
        self._listeners: list[Callable[[HabitsChange], None]] = []
        self._unsubscribe: Callable[[], None] | None = None

    def perform_fetch(self) -> list[Habit]:
        """Fetch the committed habits and start following commits."""
        self.context.refresh()
        self.habits = self.context.fetch(Habit, key=lambda h: h.created_at, reverse=True)
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._store_did_change)
        return self.habits

    def subscribe(self, callback: Callable[[HabitsChange], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def _store_did_change(self, changes: ChangeSet) -> None:
        if not changes.touches(Habit, *_CHILDREN):
            return
        before = {h.id for h in self.habits}
        self.perform_fetch()
        after = {h.id for h in self.habits}

        touched = changes.ids(Habit, "updated")
        for model in _CHILDREN:
            for record_id in changes.ids(model, "inserted") | changes.ids(model, "updated"):
                record = self.context.get(model, record_id)
                if record is not None:
                    touched.add(record.habit_id)

        change = HabitsChange(
            habits=list(self.habits),
            inserted=[h.id for h in self.habits if h.id not in before],
            updated=[h.id for h in self.habits if h.id in before and h.id in touched],
            deleted=sorted(before - after),
        )
        for callback in list(self._listeners):
            callback(change)
