"""Completion ledger: append-only task completion records.

Task and routine names are resolved by current lookup at read time, so a
renamed task shows its new name and a removed task shows UNKNOWN_TASK.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, tzinfo

from core.errors import StoreError
from core.models import UNKNOWN_ROUTINE, UNKNOWN_TASK, Completion
from core.store import RoutineStore
from core.timestamps import normalize_timestamp

logger = logging.getLogger(__name__)


def _with_labels(completions: list[Completion]) -> list[Completion]:
    """Fill fallback labels and sort newest first."""
    for c in completions:
        if c.task_name is None:
            c.task_name = UNKNOWN_TASK
        if c.routine_name is None:
            c.routine_name = UNKNOWN_ROUTINE
    return sorted(completions, key=lambda c: c.completed_at, reverse=True)


def complete_task(
    store: RoutineStore,
    routine_id: str | None,
    task_id: str | None,
    completed_at: datetime | str | None = None,
    tz: tzinfo | None = None,
) -> str | None:
    """Record one completion of a task and return the new completion id.

    *completed_at* backdates the record; naive values are wall-clock time
    in *tz*. The task is not checked against the routine's task list.
    """
    if not routine_id or not task_id:
        logger.warning("complete_task: missing routine id or task id")
        return None
    try:
        stamp = normalize_timestamp(completed_at, tz)
    except ValueError:
        logger.warning("complete_task: invalid timestamp %r", completed_at)
        return None

    completion = Completion(
        id=uuid.uuid4().hex,
        routine_id=routine_id,
        task_id=task_id,
        completed_at=stamp,
    )
    try:
        completion_id = store.append_completion(completion)
    except StoreError:
        logger.exception("Error completing task %s in routine %s", task_id, routine_id)
        return None
    logger.info("Completed task %s in routine %s at %s", task_id, routine_id, stamp)
    return completion_id


def get_history(store: RoutineStore, routine_id: str | None) -> list[Completion]:
    """All completions of a routine, newest first."""
    if not routine_id:
        logger.warning("get_history: no routine id provided")
        return []
    try:
        return _with_labels(store.read_completions(routine_id))
    except StoreError:
        logger.exception("Error getting history for routine %s", routine_id)
        return []


def get_task_history(store: RoutineStore, routine_id: str | None, task_id: str) -> list[Completion]:
    return [c for c in get_history(store, routine_id) if c.task_id == task_id]


def get_all_histories(store: RoutineStore) -> dict[str, list[Completion]]:
    """Completions of every routine keyed by routine id, in one read."""
    try:
        histories = store.read_all_completions()
    except StoreError:
        logger.exception("Error getting all routine histories")
        return {}
    return {rid: _with_labels(items) for rid, items in histories.items()}


def delete_completion(
    store: RoutineStore,
    routine_id: str | None,
    task_id: str | None,
    completed_at: datetime | str | None,
    tz: tzinfo | None = None,
) -> bool:
    """Delete the one completion matching routine, task and timestamp.

    Returns False (and deletes nothing) when no record or more than one
    record matches. A timestamp without an offset is local time in *tz*,
    read the same way complete_task reads it.
    """
    if not routine_id or not task_id or not completed_at:
        logger.warning("Cannot delete completion: missing routine id, task id, or timestamp")
        return False
    try:
        stamp = normalize_timestamp(completed_at, tz)
    except ValueError:
        stamp = str(completed_at)
    try:
        deleted = store.delete_completion(routine_id, task_id, stamp)
    except StoreError:
        logger.exception("Error deleting completion for routine %s", routine_id)
        return False
    if deleted:
        logger.info("Deleted completion of task %s at %s in routine %s", task_id, stamp, routine_id)
    return deleted


def delete_completion_by_id(store: RoutineStore, routine_id: str | None, completion_id: str | None) -> bool:
    if not routine_id or not completion_id:
        logger.warning("Cannot delete completion: missing routine id or completion id")
        return False
    try:
        deleted = store.delete_completion_by_id(routine_id, completion_id)
    except StoreError:
        logger.exception("Error deleting completion %s", completion_id)
        return False
    if not deleted:
        logger.warning("Completion not found: %s in routine %s", completion_id, routine_id)
    return deleted
