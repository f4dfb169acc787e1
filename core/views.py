"""Derived read models over a loaded routine and its history.

Pure functions: no persistence access, same inputs give the same result.
Calendar dates come from core.timestamps.local_date so every view agrees
on which day a completion belongs to.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable

from core.models import Completion, Routine, Task
from core.timestamps import local_date


def get_completions_for_task(history: Iterable[Completion], task_id: str) -> list[Completion]:
    return [c for c in history if c.task_id == task_id]


def completion_counts(routine: Routine, history: Iterable[Completion]) -> dict[str, int]:
    """Number of recorded completions per task id (0 for never-completed tasks)."""
    counts = Counter(c.task_id for c in history)
    return {t.id: counts.get(t.id, 0) for t in routine.tasks}


def _first_uncounted(routine: Routine, counts: dict[str, int], policy: str) -> Task | None:
    if not routine.tasks:
        return None
    for task in routine.tasks:
        if counts.get(task.id, 0) == 0:
            return task
    if policy == "wrap":
        return routine.tasks[0]
    return None


def get_next_task(
    routine: Routine,
    history: Iterable[Completion],
    policy: str = "stop",
) -> Task | None:
    """First task in order that has never been completed.

    When every task has at least one completion, policy "stop" returns
    None and policy "wrap" returns the first task again.
    """
    return _first_uncounted(routine, completion_counts(routine, history), policy)


def get_next_task_for_day(
    routine: Routine,
    history: Iterable[Completion],
    day: date,
    tz: tzinfo | None = None,
    policy: str = "wrap",
) -> Task | None:
    """Like get_next_task but only completions on *day* count."""
    todays = completions_on(history, day, tz)
    return _first_uncounted(routine, completion_counts(routine, todays), policy)


def _as_date(reference: date | datetime, tz: tzinfo | None) -> date:
    if isinstance(reference, datetime):
        if reference.tzinfo is not None:
            reference = reference.astimezone(tz or timezone.utc)
        return reference.date()
    return reference


def completions_on(
    history: Iterable[Completion],
    day: date | datetime,
    tz: tzinfo | None = None,
) -> list[Completion]:
    target = _as_date(day, tz)
    return [c for c in history if local_date(c.completed_at, tz) == target]


def is_completed_today(
    task: Task,
    history: Iterable[Completion],
    reference_date: date | datetime,
    tz: tzinfo | None = None,
) -> bool:
    """True if the task has a completion on reference_date's calendar day in *tz*."""
    target = _as_date(reference_date, tz)
    return any(
        local_date(c.completed_at, tz) == target
        for c in history
        if c.task_id == task.id
    )
