"""Typed dataclasses for the Active data model.

All models use from_dict/to_dict for JSON serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.

Records never hold each other: relationships are stored as ids and
resolved through a store Context.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _dt(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return _EPOCH
    return datetime.fromisoformat(str(value))


def _iso(value: datetime) -> str:
    return value.isoformat()


# ── Enums ─────────────────────────────────────────────────────


class HabitColor(str, Enum):
    MIDNIGHT_BLUE = "midnightBlue"
    AMETHYST = "amethyst"
    POMEGRANATE = "pomegranate"
    EMERALD = "emerald"
    TANGERINE = "tangerine"
    ALIZARIN = "alizarin"
    PETER_RIVER = "peterRiver"
    SUN_FLOWER = "sunFlower"

    @property
    def hex(self) -> str:
        return _COLOR_HEX[self]


_COLOR_HEX = {
    HabitColor.MIDNIGHT_BLUE: "#2C3E50",
    HabitColor.AMETHYST: "#9B59B6",
    HabitColor.POMEGRANATE: "#C0392B",
    HabitColor.EMERALD: "#2ECC71",
    HabitColor.TANGERINE: "#E67E22",
    HabitColor.ALIZARIN: "#E74C3C",
    HabitColor.PETER_RIVER: "#3498DB",
    HabitColor.SUN_FLOWER: "#F1C40F",
}


class DayStatus(str, Enum):
    COMPLETED = "completed"
    MISSED = "missed"
    PENDING = "pending"
    UPCOMING = "upcoming"


# ── User ──────────────────────────────────────────────────────


@dataclass
class User:
    id: str = field(default_factory=new_id)
    created_at: datetime = _EPOCH
    habit_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> User:
        return cls(
            id=str(d.get("id", "")),
            created_at=_dt(d.get("createdAt")),
            habit_ids=[str(i) for i in (d.get("habitIds") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": _iso(self.created_at),
            "habitIds": list(self.habit_ids),
        }


# ── Days ──────────────────────────────────────────────────────


@dataclass
class Day:
    """One calendar date, stored as its beginning-of-day instant."""

    id: str = field(default_factory=new_id)
    date: datetime = _EPOCH

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Day:
        return cls(id=str(d.get("id", "")), date=_dt(d.get("date")))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "date": _iso(self.date)}


@dataclass
class HabitDay:
    id: str = field(default_factory=new_id)
    habit_id: str = ""
    challenge_id: str = ""
    day_id: str = ""
    # None: not answered yet. See active.days.execution_status.
    was_executed: bool | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> HabitDay:
        executed = d.get("wasExecuted")
        return cls(
            id=str(d.get("id", "")),
            habit_id=str(d.get("habitId", "")),
            challenge_id=str(d.get("challengeId", "")),
            day_id=str(d.get("dayId", "")),
            was_executed=None if executed is None else bool(executed),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "habitId": self.habit_id,
            "challengeId": self.challenge_id,
            "dayId": self.day_id,
            "wasExecuted": self.was_executed,
        }


@dataclass
class DaysChallenge:
    """A date-bounded run of habit days, inclusive on both ends."""

    id: str = field(default_factory=new_id)
    habit_id: str = ""
    created_at: datetime = _EPOCH
    from_date: datetime = _EPOCH
    to_date: datetime = _EPOCH
    habit_day_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> DaysChallenge:
        return cls(
            id=str(d.get("id", "")),
            habit_id=str(d.get("habitId", "")),
            created_at=_dt(d.get("createdAt")),
            from_date=_dt(d.get("fromDate")),
            to_date=_dt(d.get("toDate")),
            habit_day_ids=[str(i) for i in (d.get("habitDayIds") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "habitId": self.habit_id,
            "createdAt": _iso(self.created_at),
            "fromDate": _iso(self.from_date),
            "toDate": _iso(self.to_date),
            "habitDayIds": list(self.habit_day_ids),
        }

    def contains(self, day_start: datetime) -> bool:
        return self.from_date <= day_start <= self.to_date

    def overlaps(self, from_date: datetime, to_date: datetime) -> bool:
        return self.from_date <= to_date and from_date <= self.to_date


# ── Notifications ─────────────────────────────────────────────


@dataclass
class Notification:
    id: str = field(default_factory=new_id)
    habit_id: str = ""
    # Identifier handed to the delivery system when scheduling.
    user_notification_id: str = field(default_factory=new_id)
    fire_date: datetime = _EPOCH

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Notification:
        return cls(
            id=str(d.get("id", "")),
            habit_id=str(d.get("habitId", "")),
            user_notification_id=str(d.get("userNotificationId", "")),
            fire_date=_dt(d.get("fireDate")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "habitId": self.habit_id,
            "userNotificationId": self.user_notification_id,
            "fireDate": _iso(self.fire_date),
        }


# ── Habit ─────────────────────────────────────────────────────


@dataclass
class Habit:
    id: str = field(default_factory=new_id)
    name: str = ""
    created_at: datetime = _EPOCH
    color: HabitColor = HabitColor.MIDNIGHT_BLUE
    user_id: str = ""
    challenge_ids: list[str] = field(default_factory=list)  # ordered by fromDate
    notification_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Habit:
        try:
            color = HabitColor(d.get("color", HabitColor.MIDNIGHT_BLUE.value))
        except ValueError:
            color = HabitColor.MIDNIGHT_BLUE
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            created_at=_dt(d.get("createdAt")),
            color=color,
            user_id=str(d.get("userId", "")),
            challenge_ids=[str(i) for i in (d.get("challengeIds") or [])],
            notification_ids=[str(i) for i in (d.get("notificationIds") or [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": _iso(self.created_at),
            "color": self.color.value,
            "userId": self.user_id,
            "challengeIds": list(self.challenge_ids),
            "notificationIds": list(self.notification_ids),
        }


# ── Progress ──────────────────────────────────────────────────


@dataclass
class ChallengeProgress:
    total: int = 0
    completed: int = 0
    missed: int = 0
    pending: int = 0
    upcoming: int = 0
    streak: int = 0

    def completion_rate(self) -> float:
        """Completed share of the days already resolved (completed or missed)."""
        resolved = self.completed + self.missed
        if not resolved:
            return 0.0
        return self.completed / resolved

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "missed": self.missed,
            "pending": self.pending,
            "upcoming": self.upcoming,
            "streak": self.streak,
            "completionRate": round(self.completion_rate(), 3),
        }
