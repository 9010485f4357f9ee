"""Record store and unit-of-work contexts for Active.

The Store keeps one table per record type, keyed by record id, and
optionally mirrors them to a JSON file. Work happens in a Context: a
private snapshot of the tables that callers mutate freely and then
commit or roll back. Commits are serialized by the store and only write
back the records the context actually changed. At commit time:

- a Day the context created for a date that another context already
  committed is dropped in favour of the committed one;
- id lists on parent records (User.habit_ids, Habit.challenge_ids,
  Habit.notification_ids, DaysChallenge.habit_day_ids) are merged with
  what was committed meanwhile;
- any other field written by two contexts resolves last-write-wins.

After a commit the context sees every record committed so far.

Ownership is enforced by Context.delete:

    User -> Habit -> DaysChallenge -> HabitDay
                  -> Notification

cascade, found through each child's parent id, while HabitDay -> Day is
a shared reference and a Day that is still referenced cannot be deleted.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from active.errors import ContractViolation, StoreError
from active.fileio import read_json, write_json_atomic
from active.models import DaysChallenge, Day, Habit, HabitDay, Notification, User
from active.workspace import store_path

logger = logging.getLogger(__name__)

R = TypeVar("R")

_NEVER = datetime.min.replace(tzinfo=timezone.utc)

TABLES: dict[str, type] = {
    "users": User,
    "days": Day,
    "habits": Habit,
    "challenges": DaysChallenge,
    "habitDays": HabitDay,
    "notifications": Notification,
}
_TABLE_OF = {model: name for name, model in TABLES.items()}

Tables = dict[str, dict[str, Any]]


def table_for(model: type) -> str:
    try:
        return _TABLE_OF[model]
    except KeyError:
        raise ContractViolation(f"Not a stored record type: {model.__name__}") from None


# ── Change sets ───────────────────────────────────────────────


@dataclass
class ChangeSet:
    """Ids written by one commit, grouped by table."""

    inserted: dict[str, set[str]] = field(default_factory=dict)
    updated: dict[str, set[str]] = field(default_factory=dict)
    deleted: dict[str, set[str]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.inserted or self.updated or self.deleted)

    def touches(self, *models: type) -> bool:
        tables = {table_for(m) for m in models}
        return any(
            t in tables for part in (self.inserted, self.updated, self.deleted) for t in part
        )

    def ids(self, model: type, kind: str) -> set[str]:
        return set(getattr(self, kind).get(table_for(model), set()))

    def count(self) -> int:
        return sum(
            len(ids) for part in (self.inserted, self.updated, self.deleted) for ids in part.values()
        )


def _dump(tables: Tables) -> dict[str, dict[str, dict[str, Any]]]:
    return {t: {i: r.to_dict() for i, r in rows.items()} for t, rows in tables.items()}


# ── Store ─────────────────────────────────────────────────────


class Store:
    """Committed record tables, optionally backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        self.path = path
        self._tables: Tables = {t: {} for t in TABLES}
        self._observers: list[Callable[[ChangeSet], None]] = []
        self._lock = threading.RLock()
        if path is not None:
            self._tables = self._load(path)

    @classmethod
    def open(cls, root: Path | None = None) -> Store:
        """Open the store file of a workspace (created on first commit)."""
        return cls(store_path(root))

    # -- persistence --

    @staticmethod
    def _load(path: Path) -> Tables:
        data = read_json(path)
        tables: Tables = {t: {} for t in TABLES}
        for table, model in TABLES.items():
            rows = data.get(table) or []
            if not isinstance(rows, list):
                raise StoreError(f"Table {table!r} in {path} is not a list")
            for row in rows:
                if not isinstance(row, dict):
                    raise StoreError(f"Malformed {table} row in {path}: {row!r}")
                try:
                    record = model.from_dict(row)
                except (TypeError, ValueError) as e:
                    raise StoreError(f"Malformed {table} row in {path}: {e}") from e
                tables[table][record.id] = record
        logger.debug("Loaded store %s (%d habits)", path, len(tables["habits"]))
        return tables

    def reload(self) -> None:
        """Re-read the backing file, picking up commits made elsewhere."""
        if self.path is not None:
            self._tables = self._load(self.path)

    # -- contexts --

    def new_context(self, read_only: bool = False) -> Context:
        return Context(self, read_only=read_only)

    def snapshot(self) -> Tables:
        return copy.deepcopy(self._tables)

    def _apply(self, rows: Tables, changes: ChangeSet) -> None:
        tables = {t: dict(existing) for t, existing in self._tables.items()}
        for part in (changes.inserted, changes.updated):
            for table, ids in part.items():
                for record_id in ids:
                    tables[table][record_id] = copy.deepcopy(rows[table][record_id])
        for table, ids in changes.deleted.items():
            for record_id in ids:
                tables[table].pop(record_id, None)

        if self.path is not None:
            write_json_atomic(
                self.path,
                {t: [r.to_dict() for r in recs.values()] for t, recs in tables.items()},
            )
        self._tables = tables
        logger.debug("Committed %d record change(s)", changes.count())

        for callback in list(self._observers):
            callback(changes)

    # -- observers --

    def subscribe(self, callback: Callable[[ChangeSet], None]) -> Callable[[], None]:
        """Call *callback* after every non-empty commit. Returns an unsubscriber."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe


# ── Context ───────────────────────────────────────────────────


class Context:
    """A unit of work over a Store snapshot."""

    def __init__(self, store: Store, read_only: bool = False):
        self.store = store
        self.read_only = read_only
        self._rows: Tables = {}
        self._baseline: dict[str, dict[str, dict[str, Any]]] = {}
        self.refresh()

    def refresh(self) -> None:
        """Drop local state and re-read the committed tables."""
        self._rows = self.store.snapshot()
        self._baseline = _dump(self._rows)

    def rollback(self) -> None:
        if self.has_changes:
            logger.debug("Rolling back %d record change(s)", self.changes().count())
        self.refresh()

    def _check_writable(self) -> None:
        if self.read_only:
            raise ContractViolation("Cannot write through a read-only context")

    # -- reads --

    def get(self, model: type[R], record_id: str) -> R | None:
        return self._rows[table_for(model)].get(record_id)

    def get_many(self, model: type[R], record_ids: Iterable[str]) -> list[R]:
        rows = self._rows[table_for(model)]
        return [rows[i] for i in record_ids if i in rows]

    def all(self, model: type[R]) -> list[R]:
        return list(self._rows[table_for(model)].values())

    def fetch(
        self,
        model: type[R],
        predicate: Callable[[R], bool] | None = None,
        key: Callable[[R], Any] | None = None,
        reverse: bool = False,
    ) -> list[R]:
        results = [r for r in self.all(model) if predicate is None or predicate(r)]
        if key is not None:
            results.sort(key=key, reverse=reverse)
        return results

    # -- writes --

    def insert(self, record: R) -> R:
        self._check_writable()
        self._rows[table_for(type(record))][record.id] = record
        return record

    def delete(self, record: Any) -> None:
        """Delete *record* and everything it exclusively owns."""
        self._check_writable()
        table = table_for(type(record))
        own = self._rows[table].get(record.id)
        if own is None:
            return

        if isinstance(own, Day):
            if any(hd.day_id == own.id for hd in self.all(HabitDay)):
                raise ContractViolation("Cannot delete a day still tracked by a habit")
        elif isinstance(own, User):
            for habit in self.fetch(Habit, lambda h: h.user_id == own.id):
                self.delete(habit)
        elif isinstance(own, Habit):
            for challenge in self.fetch(DaysChallenge, lambda c: c.habit_id == own.id):
                self.delete(challenge)
            for notification in self.fetch(Notification, lambda n: n.habit_id == own.id):
                self.delete(notification)
            user = self.get(User, own.user_id)
            if user is not None and own.id in user.habit_ids:
                user.habit_ids.remove(own.id)
        elif isinstance(own, DaysChallenge):
            for habit_day in self.fetch(HabitDay, lambda hd: hd.challenge_id == own.id):
                self.delete(habit_day)
            habit = self.get(Habit, own.habit_id)
            if habit is not None and own.id in habit.challenge_ids:
                habit.challenge_ids.remove(own.id)
        elif isinstance(own, HabitDay):
            challenge = self.get(DaysChallenge, own.challenge_id)
            if challenge is not None and own.id in challenge.habit_day_ids:
                challenge.habit_day_ids.remove(own.id)
        elif isinstance(own, Notification):
            habit = self.get(Habit, own.habit_id)
            if habit is not None and own.id in habit.notification_ids:
                habit.notification_ids.remove(own.id)

        del self._rows[table][own.id]

    # -- unit of work --

    def changes(self) -> ChangeSet:
        changes = ChangeSet()
        for table, rows in self._rows.items():
            before = self._baseline.get(table, {})
            inserted = {i for i in rows if i not in before}
            deleted = {i for i in before if i not in rows}
            updated = {
                i for i, r in rows.items() if i in before and r.to_dict() != before[i]
            }
            if inserted:
                changes.inserted[table] = inserted
            if updated:
                changes.updated[table] = updated
            if deleted:
                changes.deleted[table] = deleted
        return changes

    @property
    def has_changes(self) -> bool:
        return not self.changes().is_empty()

    def commit(self) -> ChangeSet:
        """Write this context's changes to the store and notify observers."""
        self._check_writable()
        with self.store._lock:
            self._adopt_committed_days()
            changes = self.changes()
            if changes.is_empty():
                return changes
            self._merge_id_lists(changes)
            self.store._apply(self._rows, changes)
            self._rebase()
        return changes

    def _adopt_committed_days(self) -> None:
        """Swap Days created here for the ones already committed for the same date."""
        committed = {d.date: d for d in self.store._tables["days"].values()}
        days = self._rows["days"]
        baseline = self._baseline["days"]
        remap = {}
        for day_id, day in list(days.items()):
            if day_id in baseline:
                continue
            existing = committed.get(day.date)
            if existing is None:
                continue
            remap[day_id] = existing.id
            del days[day_id]
            days.setdefault(existing.id, copy.deepcopy(existing))
            baseline.setdefault(existing.id, existing.to_dict())
        if not remap:
            return
        for habit_day in self._rows["habitDays"].values():
            if habit_day.day_id in remap:
                habit_day.day_id = remap[habit_day.day_id]
        logger.debug("Reused %d day(s) committed by another context", len(remap))

    def _merge_id_lists(self, changes: ChangeSet) -> None:
        """Keep list entries other contexts added or removed since our snapshot."""
        for table, ids in changes.updated.items():
            for record_id in ids:
                theirs = self.store._tables[table].get(record_id)
                if theirs is None:
                    continue
                mine = self._rows[table][record_id]
                base = TABLES[table].from_dict(self._baseline[table][record_id])
                gained = False
                for f in fields(mine):
                    ours = getattr(mine, f.name)
                    if not isinstance(ours, list):
                        continue
                    before = set(getattr(base, f.name))
                    current = getattr(theirs, f.name)
                    dropped = before - set(current)
                    added = [i for i in current if i not in before and i not in ours]
                    merged = [i for i in ours if i not in dropped] + added
                    if merged != ours:
                        setattr(mine, f.name, merged)
                        gained = gained or bool(added)
                if gained and isinstance(mine, Habit):
                    mine.challenge_ids.sort(key=self._challenge_start)

    def _challenge_start(self, challenge_id: str) -> datetime:
        challenge = self._rows["challenges"].get(challenge_id)
        if challenge is None:
            challenge = self.store._tables["challenges"].get(challenge_id)
        return challenge.from_date if challenge is not None else _NEVER

    def _rebase(self) -> None:
        """Catch up with the committed tables, keeping the records callers hold."""
        for table, rows in self._rows.items():
            latest = self.store._tables[table]
            for record_id in [i for i in rows if i not in latest]:
                del rows[record_id]
            for record_id, record in latest.items():
                mine = rows.get(record_id)
                if mine is None:
                    rows[record_id] = copy.deepcopy(record)
                elif mine.to_dict() != record.to_dict():
                    vars(mine).update(copy.deepcopy(vars(record)))
        self._baseline = _dump(self._rows)
