"""Active JSON API — habits, challenges and today's check-in over HTTP.

Run from the repository root:

    uvicorn api.app:app

Every request gets its own store Context; write endpoints commit it
explicitly once the storage call has succeeded.
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass
from datetime import date, time
from pathlib import Path
from typing import Any, Iterator

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from active import (
    Context,
    ContractViolation,
    Habit,
    HabitStorage,
    NotificationScheduler,
    Store,
    StoreError,
    UserStorage,
    challenge_days,
    execution_status,
    format_fire_time,
    habit_progress,
    parse_fire_time,
)
from active.habits import Clock


# ── Services ──────────────────────────────────────────────────


@dataclass
class Services:
    store: Store
    habits: HabitStorage
    users: UserStorage

    @classmethod
    def build(
        cls,
        root: Path | None = None,
        clock: Clock | None = None,
        scheduler: NotificationScheduler | None = None,
    ) -> Services:
        return cls(
            store=Store.open(root),
            habits=HabitStorage.for_workspace(root, scheduler=scheduler, clock=clock),
            users=UserStorage(),
        )


def get_services(request: Request) -> Services:
    state = request.app.state
    if state.services is None:
        state.services = Services.build(state.root, state.clock, state.scheduler)
    return state.services


def get_context(services: Services = Depends(get_services)) -> Iterator[Context]:
    context = services.store.new_context()
    try:
        yield context
    finally:
        if context.has_changes:
            context.rollback()


# ── Auth ──────────────────────────────────────────────────────

security = HTTPBasic(auto_error=False)


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("ACTIVE_USERNAME", "")
    expected_password = os.environ.get("ACTIVE_PASSWORD", "")

    if not expected_username or not expected_password:
        return "guest"

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Basic"},
        )

    correct_username = secrets.compare_digest(credentials.username.encode("utf-8"), expected_username.encode("utf-8"))
    correct_password = secrets.compare_digest(credentials.password.encode("utf-8"), expected_password.encode("utf-8"))

    if not (correct_username and correct_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username


# ── Payload helpers ───────────────────────────────────────────


def _parse_days(raw: Any) -> list[date]:
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail="days must be a list of YYYY-MM-DD dates")
    try:
        return [date.fromisoformat(str(d)) for d in raw]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid date: {e}")


def _parse_fire_times(raw: Any) -> list[time]:
    if not isinstance(raw, list):
        raise HTTPException(status_code=400, detail="fireTimes must be a list of HH:MM times")
    try:
        return [parse_fire_time(str(t)) for t in raw]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _get_habit(services: Services, context: Context, habit_id: str) -> Habit:
    habit = services.habits.get(context, habit_id)
    if habit is None:
        raise HTTPException(status_code=404, detail=f"Habit not found: {habit_id}")
    return habit


def _habit_json(services: Services, context: Context, habit: Habit, detail: bool = False) -> dict[str, Any]:
    storage = services.habits
    now = storage.clock()
    challenges = []
    for challenge in storage.challenges(context, habit):
        c: dict[str, Any] = {
            "id": challenge.id,
            "fromDate": challenge.from_date.date().isoformat(),
            "toDate": challenge.to_date.date().isoformat(),
        }
        if detail:
            c["days"] = [
                {
                    "date": day.date.date().isoformat(),
                    "wasExecuted": habit_day.was_executed,
                    "status": execution_status(habit_day, day, now).value,
                }
                for habit_day, day in challenge_days(context, challenge)
            ]
        challenges.append(c)

    d: dict[str, Any] = {
        "id": habit.id,
        "name": habit.name,
        "color": habit.color.value,
        "colorHex": habit.color.hex,
        "createdAt": habit.created_at.isoformat(),
        "challenges": challenges,
        "progress": habit_progress(context, habit, now).to_dict(),
    }
    if detail:
        notifications = storage.notifications(context, habit)
        d["notifications"] = [n.fire_date.isoformat() for n in notifications]
        d["fireTimes"] = sorted(
            {format_fire_time(n.fire_date.astimezone(storage.tz)) for n in notifications}
        )
    return d


# ── Endpoints ─────────────────────────────────────────────────

router = APIRouter()


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"ok": "true"}


@router.get("/api/habits")
def api_list_habits(
    services: Services = Depends(get_services),
    context: Context = Depends(get_context),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Habits, newest first, with their challenges and progress."""
    habits = services.habits.habits(context)
    return {"habits": [_habit_json(services, context, h) for h in habits]}


@router.post("/api/habits", status_code=201)
def api_create_habit(
    payload: dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
    context: Context = Depends(get_context),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Create a habit from {name, color?, days, fireTimes?}."""
    name = str(payload.get("name") or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Missing name")
    days = _parse_days(payload.get("days"))
    fire_times = None
    if payload.get("fireTimes") is not None:
        fire_times = _parse_fire_times(payload["fireTimes"])

    user = services.users.get_or_create(context)
    habit = services.habits.create(
        context,
        user,
        name,
        payload.get("color") or "midnightBlue",
        days,
        fire_times,
    )
    context.commit()
    return {"ok": True, "habit": _habit_json(services, context, habit, detail=True)}


@router.get("/api/habits/{habit_id}")
def api_get_habit(
    habit_id: str,
    services: Services = Depends(get_services),
    context: Context = Depends(get_context),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    habit = _get_habit(services, context, habit_id)
    return {"habit": _habit_json(services, context, habit, detail=True)}


@router.patch("/api/habits/{habit_id}")
def api_edit_habit(
    habit_id: str,
    payload: dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
    context: Context = Depends(get_context),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Partially update a habit; omitted fields are left alone."""
    habit = _get_habit(services, context, habit_id)
    name = payload.get("name")
    if name is not None and not str(name).strip():
        raise HTTPException(status_code=400, detail="name shouldn't be blank")
    days = _parse_days(payload["days"]) if payload.get("days") is not None else None
    fire_times = None
    if payload.get("fireTimes") is not None:
        fire_times = _parse_fire_times(payload["fireTimes"])

    services.habits.edit(
        context,
        habit,
        name=str(name).strip() if name is not None else None,
        color=payload.get("color"),
        days=days,
        fire_times=fire_times,
    )
    context.commit()
    return {"ok": True, "habit": _habit_json(services, context, habit, detail=True)}


@router.delete("/api/habits/{habit_id}")
def api_delete_habit(
    habit_id: str,
    services: Services = Depends(get_services),
    context: Context = Depends(get_context),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    habit = _get_habit(services, context, habit_id)
    services.habits.delete(context, habit)
    context.commit()
    return {"ok": True, "habit_id": habit_id}


@router.get("/api/habits/{habit_id}/challenge")
def api_challenge_for_date(
    habit_id: str,
    on: str = Query(..., alias="date"),
    services: Services = Depends(get_services),
    context: Context = Depends(get_context),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """The challenge covering a date, or null."""
    habit = _get_habit(services, context, habit_id)
    (day,) = _parse_days([on])
    challenge = services.habits.challenge_for_date(context, habit, day)
    if challenge is None:
        return {"challenge": None}
    return {
        "challenge": {
            "id": challenge.id,
            "fromDate": challenge.from_date.date().isoformat(),
            "toDate": challenge.to_date.date().isoformat(),
            "days": len(challenge.habit_day_ids),
        }
    }


def _today_json(services: Services, context: Context, habit: Habit) -> dict[str, Any]:
    habit_day = services.habits.current_day(context, habit)
    if habit_day is None:
        return {"tracked": False}
    day = services.habits.day_storage.get_day(context, services.habits.clock())
    return {
        "tracked": True,
        "date": day.date.date().isoformat(),
        "wasExecuted": habit_day.was_executed,
        "status": execution_status(habit_day, day, services.habits.clock()).value,
    }


@router.get("/api/habits/{habit_id}/today")
def api_get_today(
    habit_id: str,
    services: Services = Depends(get_services),
    context: Context = Depends(get_context),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    habit = _get_habit(services, context, habit_id)
    return _today_json(services, context, habit)


@router.post("/api/habits/{habit_id}/today")
def api_mark_today(
    habit_id: str,
    payload: dict[str, Any] = Body(...),
    services: Services = Depends(get_services),
    context: Context = Depends(get_context),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Answer today's prompt: {executed: true|false}."""
    habit = _get_habit(services, context, habit_id)
    executed = payload.get("executed")
    if not isinstance(executed, bool):
        raise HTTPException(status_code=400, detail="executed must be true or false")
    services.habits.mark_current_day(context, habit, executed)
    context.commit()
    return {"ok": True, **_today_json(services, context, habit)}


# ── App ───────────────────────────────────────────────────────


async def _contract_violation(request: Request, exc: ContractViolation) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": f"Store unavailable: {exc}"})


def create_app(
    root: Path | None = None,
    clock: Clock | None = None,
    scheduler: NotificationScheduler | None = None,
) -> FastAPI:
    """Build the API for a workspace. Services are wired on first request."""
    app = FastAPI(title="Active API", version="0.1.0")
    app.state.root = root
    app.state.clock = clock
    app.state.scheduler = scheduler
    app.state.services = None
    app.add_exception_handler(ContractViolation, _contract_violation)
    app.add_exception_handler(StoreError, _store_error)
    app.include_router(router)
    return app


app = create_app()
