"""Routinely HTTP bridge: JSON endpoints over the core library.

Run with: uvicorn ui.app:app
"""

from __future__ import annotations

import logging
import os
import secrets
from datetime import datetime
from typing import Any, Iterator

from fastapi import Body, Depends, FastAPI, HTTPException, Query, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from core import (
    workspace_root as _workspace_root,
    configure_logging,
    load_settings,
    save_settings,
    get_user_timezone,
    open_store,
    RoutineStore,
    Routine,
    Settings,
    list_routines,
    get_routine,
    save_routine,
    delete_routine,
    complete_task,
    get_history,
    get_task_history,
    get_all_histories,
    delete_completion,
    delete_completion_by_id,
    completion_counts,
    get_next_task,
    is_completed_today,
    generate_month_grid,
    month_range,
    aggregate_completions_by_date,
)

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Routinely", version="0.1.0")

security = HTTPBasic(auto_error=False)


# ── Auth ──────────────────────────────────────────────────────


def get_current_user(credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    expected_username = os.environ.get("ROUTINES_USERNAME", "")
    expected_password = os.environ.get("ROUTINES_PASSWORD", "")

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


# ── Workspace dependencies ────────────────────────────────────


def get_settings() -> Settings:
    return load_settings(_workspace_root())


def get_store(settings: Settings = Depends(get_settings)) -> Iterator[RoutineStore]:
    store = open_store(_workspace_root(), settings)
    try:
        yield store
    finally:
        store.close()


def _require_routine(store: RoutineStore, routine_id: str) -> Routine:
    routine = get_routine(store, routine_id)
    if routine is None:
        raise HTTPException(status_code=404, detail=f"Routine not found: {routine_id}")
    return routine


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


# ── Routines ──────────────────────────────────────────────────


@app.get("/api/routines")
def api_list_routines(
    store: RoutineStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    return {"routines": [s.to_dict() for s in list_routines(store)]}


@app.get("/api/routines/{routine_id}")
def api_get_routine(
    routine_id: str,
    store: RoutineStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    return _require_routine(store, routine_id).to_dict()


@app.post("/api/routines")
def api_create_routine(
    payload: dict[str, Any] = Body(...),
    store: RoutineStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Create a routine, or update one when the payload carries an existing id."""
    saved, errors = save_routine(store, Routine.from_dict(payload))
    if errors or saved is None:
        raise HTTPException(status_code=400, detail="; ".join(errors) or "Could not save routine")
    return {"ok": True, "routine": saved.to_dict()}


@app.put("/api/routines/{routine_id}")
def api_update_routine(
    routine_id: str,
    payload: dict[str, Any] = Body(...),
    store: RoutineStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    _require_routine(store, routine_id)
    routine = Routine.from_dict(payload)
    routine.id = routine_id
    saved, errors = save_routine(store, routine)
    if errors or saved is None:
        raise HTTPException(status_code=400, detail="; ".join(errors) or "Could not save routine")
    return {"ok": True, "routine": saved.to_dict()}


@app.delete("/api/routines/{routine_id}")
def api_delete_routine(
    routine_id: str,
    store: RoutineStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    if not delete_routine(store, routine_id):
        raise HTTPException(status_code=404, detail=f"Routine not found: {routine_id}")
    return {"ok": True, "routineId": routine_id}


@app.get("/api/routines/{routine_id}/next")
def api_next_task(
    routine_id: str,
    store: RoutineStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Next actionable task plus per-task counts and today's status."""
    routine = _require_routine(store, routine_id)
    history = get_history(store, routine_id)
    tz = get_user_timezone(settings=settings)
    now = datetime.now(tz)
    next_task = get_next_task(routine, history, policy=settings.next_task_policy)
    return {
        "policy": settings.next_task_policy,
        "nextTask": next_task.to_dict() if next_task else None,
        "completionCounts": completion_counts(routine, history),
        "completedToday": [t.id for t in routine.tasks if is_completed_today(t, history, now, tz)],
    }


# ── Completions ───────────────────────────────────────────────


@app.post("/api/routines/{routine_id}/complete")
def api_complete_task(
    routine_id: str,
    payload: dict[str, Any] = Body(...),
    store: RoutineStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Record a completion; ``completedAt`` backdates it (local time if no offset)."""
    _require_routine(store, routine_id)
    task_id = payload.get("taskId")
    if not task_id:
        raise HTTPException(status_code=400, detail="Missing taskId")
    completion_id = complete_task(
        store,
        routine_id,
        task_id,
        payload.get("completedAt"),
        tz=get_user_timezone(settings=settings),
    )
    if completion_id is None:
        raise HTTPException(status_code=400, detail="Could not record completion")
    return {"ok": True, "completionId": completion_id}


@app.get("/api/routines/{routine_id}/history")
def api_routine_history(
    routine_id: str,
    store: RoutineStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    return {"history": [c.to_dict() for c in get_history(store, routine_id)]}


@app.get("/api/routines/{routine_id}/tasks/{task_id}/history")
def api_task_history(
    routine_id: str,
    task_id: str,
    store: RoutineStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    return {"history": [c.to_dict() for c in get_task_history(store, routine_id, task_id)]}


@app.delete("/api/routines/{routine_id}/history")
def api_delete_completion(
    routine_id: str,
    task_id: str = Query(..., alias="taskId"),
    completed_at: str = Query(..., alias="completedAt"),
    store: RoutineStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    tz = get_user_timezone(settings=settings)
    if not delete_completion(store, routine_id, task_id, completed_at, tz=tz):
        raise HTTPException(status_code=404, detail="No single matching completion")
    return {"ok": True}


@app.delete("/api/routines/{routine_id}/history/{completion_id}")
def api_delete_completion_by_id(
    routine_id: str,
    completion_id: str,
    store: RoutineStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    if not delete_completion_by_id(store, routine_id, completion_id):
        raise HTTPException(status_code=404, detail=f"Completion not found: {completion_id}")
    return {"ok": True, "completionId": completion_id}


@app.get("/api/history")
def api_all_histories(
    store: RoutineStore = Depends(get_store),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    histories = get_all_histories(store)
    return {"histories": {rid: [c.to_dict() for c in items] for rid, items in histories.items()}}


# ── Calendar ──────────────────────────────────────────────────


@app.get("/api/calendar/{year}/{month_index}")
def api_calendar(
    year: int,
    month_index: int,
    store: RoutineStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    """Month grid (month_index 0 = January) with each day's completions grouped by routine."""
    if not 0 <= month_index <= 11 or not 1 < year < 9999:
        raise HTTPException(status_code=400, detail=f"Invalid month: {year}/{month_index}")
    grid = generate_month_grid(year, month_index, fixed_rows=settings.calendar_fixed_rows)
    routines = [r for r in (get_routine(store, s.id) for s in list_routines(store)) if r is not None]
    by_day = aggregate_completions_by_date(
        get_all_histories(store),
        routines,
        (grid[0].date, grid[-1].date),
        tz=get_user_timezone(settings=settings),
    )
    first, last = month_range(year, month_index)
    return {
        "year": year,
        "monthIndex": month_index,
        "start": first.isoformat(),
        "end": last.isoformat(),
        "days": [
            {**cell.to_dict(), "routines": [g.to_dict() for g in by_day.get(cell.date, [])]}
            for cell in grid
        ],
    }


# ── Settings ──────────────────────────────────────────────────


@app.get("/api/settings")
def api_get_settings(username: str = Depends(get_current_user)) -> dict[str, Any]:
    return get_settings().to_dict()


@app.put("/api/settings")
def api_update_settings(
    payload: dict[str, Any] = Body(...),
    username: str = Depends(get_current_user),
) -> dict[str, Any]:
    root = _workspace_root()
    merged = {**load_settings(root).to_dict(), **payload}
    settings = Settings.from_dict(merged)
    save_settings(settings, root)
    logger.info("Settings updated: %s", settings.to_dict())
    return {"ok": True, "settings": settings.to_dict()}
