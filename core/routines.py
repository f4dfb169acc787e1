"""Routine CRUD, validation, and task editing for Routinely."""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime
from typing import Any

from core.errors import StoreError
from core.models import Routine, RoutineSummary, Task
from core.store import RoutineStore, valid_routine_id
from core.timestamps import normalize_timestamp

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


# ── Validation ────────────────────────────────────────────────


def validate_routine(routine: Routine) -> list[str]:
    """Validate a routine before saving; returns list of errors (empty if valid)."""
    errors = []
    if routine.id and not valid_routine_id(routine.id):
        errors.append(f"Invalid routine id: {routine.id!r}")
    if not routine.name.strip():
        errors.append("Routine name is required")
    seen: set[str] = set()
    for i, task in enumerate(routine.tasks):
        if not task.name.strip():
            errors.append(f"Task {i + 1} has no name")
        if task.id:
            if task.id in seen:
                errors.append(f"Duplicate task id: {task.id}")
            seen.add(task.id)
    return errors


# ── CRUD ──────────────────────────────────────────────────────


def list_routines(store: RoutineStore) -> list[RoutineSummary]:
    """Summaries of every routine, most recently updated first."""
    try:
        return store.list_routine_summaries()
    except StoreError:
        logger.exception("Error listing routines")
        return []


def get_routine(store: RoutineStore, routine_id: str | None) -> Routine | None:
    """Full routine with ordered tasks, or None if absent or unreadable."""
    if not routine_id:
        logger.warning("get_routine: no routine id provided")
        return None
    try:
        routine = store.read_routine(routine_id)
    except StoreError:
        logger.exception("Error reading routine %s", routine_id)
        return None
    if routine is None:
        logger.warning("Routine not found: %s", routine_id)
    return routine


def save_routine(
    store: RoutineStore,
    routine: Routine,
    now: datetime | str | None = None,
) -> tuple[Routine | None, list[str]]:
    """Create or update a routine with its full task list.

    New routines get a generated id. Existing routines keep their stored
    created_at; updated_at is always refreshed. Tasks are written in list
    order with position == index, replacing the previously stored set.
    Returns (saved_routine, errors).
    """
    errors = validate_routine(routine)
    if errors:
        logger.warning("Not saving routine %r: %s", routine.name, "; ".join(errors))
        return None, errors

    stamp = normalize_timestamp(now)
    saved = copy.deepcopy(routine)

    existing = None
    if saved.id:
        try:
            existing = store.read_routine(saved.id)
        except StoreError:
            logger.exception("Stored copy of routine %s is unreadable; overwriting", saved.id)
    else:
        saved.id = new_id()

    saved.created_at = existing.created_at if existing and existing.created_at else stamp
    saved.updated_at = stamp
    for task in saved.tasks:
        if not task.id:
            task.id = new_id()
    reindex_tasks(saved)

    try:
        store.write_routine(saved)
    except StoreError as e:
        logger.exception("Error saving routine %s", saved.id)
        return None, [str(e)]

    logger.info("Saved routine %s (%d tasks)", saved.id, len(saved.tasks))
    return saved, []


def delete_routine(store: RoutineStore, routine_id: str | None) -> bool:
    """Delete a routine, its tasks, and its completion history."""
    if not routine_id:
        logger.warning("Cannot delete routine: no routine id provided")
        return False
    try:
        deleted = store.delete_routine_record(routine_id)
    except StoreError:
        logger.exception("Error deleting routine %s", routine_id)
        return False
    if deleted:
        logger.info("Deleted routine %s", routine_id)
    else:
        logger.warning("Routine not found: %s", routine_id)
    return deleted


# ── Task editing (in memory, persisted by save_routine) ───────


def find_task(routine: Routine, task_id: str) -> Task | None:
    for t in routine.tasks:
        if t.id == task_id:
            return t
    return None


def reindex_tasks(routine: Routine) -> None:
    """Rewrite positions so they equal list indexes 0..n-1."""
    for i, task in enumerate(routine.tasks):
        task.position = i


def new_task(name: str, description: str = "") -> Task:
    return Task(id=new_id(), name=name.strip(), description=description.strip())


def add_task(routine: Routine, name: str, description: str = "") -> tuple[Task | None, list[str]]:
    """Append a new task to the end of the routine. Returns (task, errors)."""
    if not name.strip():
        return None, ["Task name is required"]
    task = new_task(name, description)
    routine.tasks.append(task)
    reindex_tasks(routine)
    return task, []


def update_task(routine: Routine, task_id: str, updates: dict[str, Any]) -> tuple[Task | None, list[str]]:
    """Rename or re-describe a task in place. Its id never changes."""
    task = find_task(routine, task_id)
    if not task:
        return None, [f"Task not found: {task_id}"]
    if "name" in updates:
        name = str(updates["name"] or "").strip()
        if not name:
            return None, ["Task name is required"]
        task.name = name
    if "description" in updates:
        task.description = str(updates["description"] or "").strip()
    return task, []


def remove_task(routine: Routine, task_id: str) -> bool:
    """Remove a task. Its completions stay in history as orphans."""
    for i, t in enumerate(routine.tasks):
        if t.id == task_id:
            routine.tasks.pop(i)
            reindex_tasks(routine)
            return True
    return False


def move_task(routine: Routine, from_index: int, to_index: int) -> bool:
    """Move the task at from_index to to_index and reindex positions."""
    n = len(routine.tasks)
    if not (0 <= from_index < n and 0 <= to_index < n):
        return False
    task = routine.tasks.pop(from_index)
    routine.tasks.insert(to_index, task)
    reindex_tasks(routine)
    return True
