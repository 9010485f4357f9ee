"""Shared test fixtures for Active tests."""

from __future__ import annotations

import os
from datetime import date, datetime, timedelta
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
import yaml

from active.days import DaysChallengeStorage
from active.errors import SchedulingError
from active.habits import HabitStorage
from active.notifications import NotificationStorage
from active.store import Store
from active.users import UserStorage

UTC = ZoneInfo("UTC")
START = datetime(2026, 3, 10, 9, 0, tzinfo=UTC)


class FakeClock:
    """A clock tests can move forward."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, minutes: int = 0) -> None:
        self.now += timedelta(days=days, minutes=minutes)


class FakeScheduler:
    """Records schedule/unschedule calls; refuses them when fail is set."""

    def __init__(self):
        self.calls: list[tuple[str, list[str]]] = []
        self.fail = False

    def _record(self, action: str, notifications) -> None:
        self.calls.append((action, [n.id for n in notifications]))
        if self.fail:
            raise SchedulingError("Notifications not authorized")

    def schedule(self, notifications) -> None:
        self._record("schedule", notifications)

    def unschedule(self, notifications) -> None:
        self._record("unschedule", notifications)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with a UTC profile."""
    root = tmp_path / "workspace"
    root.mkdir(parents=True)
    (root / "profile.yaml").write_text(
        yaml.dump({"timezone": "UTC"}, default_flow_style=False), encoding="utf-8"
    )

    os.environ["ACTIVE_ROOT"] = str(root)
    yield root
    if "ACTIVE_ROOT" in os.environ:
        del os.environ["ACTIVE_ROOT"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def store() -> Store:
    return Store()


@pytest.fixture
def context(store: Store):
    return store.new_context()


@pytest.fixture
def storage(clock: FakeClock, scheduler: FakeScheduler) -> HabitStorage:
    return HabitStorage(
        challenge_storage=DaysChallengeStorage(tz=UTC),
        notification_storage=NotificationStorage(tz=UTC),
        scheduler=scheduler,
        clock=clock,
        tz=UTC,
    )


@pytest.fixture
def user(context):
    return UserStorage().create(context, created_at=START)


@pytest.fixture
def day_after():
    """day_after(n): the calendar date n days after the first test day."""

    def _day_after(n: int) -> date:
        return (START + timedelta(days=n)).date()

    return _day_after
