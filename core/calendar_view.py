"""Month grid and per-day completion aggregation for the calendar view."""

from __future__ import annotations

import calendar
import dataclasses
from collections.abc import Mapping
from datetime import date, timedelta, tzinfo
from typing import Iterable

from core.models import (
    UNKNOWN_ROUTINE,
    UNKNOWN_TASK,
    CalendarDay,
    Completion,
    Routine,
    RoutineDayGroup,
    RoutineSummary,
)
from core.timestamps import local_date


GRID_CELLS = 42  # 6 weeks of 7 days

# Months are addressed by index: 0 = January ... 11 = December.


def month_range(year: int, month_index: int) -> tuple[date, date]:
    """First and last day of the month at *month_index* (0-based)."""
    month = month_index + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def shift_month(year: int, month_index: int, delta: int) -> tuple[int, int]:
    """Move (year, month_index) by *delta* months, e.g. (2024, 11) + 1 -> (2025, 0)."""
    index = year * 12 + month_index + delta
    return index // 12, index % 12


def generate_month_grid(year: int, month_index: int, fixed_rows: bool = False) -> list[CalendarDay]:
    """Calendar cells for a month, weeks starting on Sunday.

    *month_index* is 0-based, so (2024, 1) is February 2024.
    Includes trailing days of the previous month and leading days of the
    next month needed to complete whole weeks. With fixed_rows the grid
    is always 42 cells.
    """
    month = month_index + 1
    cal = calendar.Calendar(firstweekday=calendar.SUNDAY)
    days = list(cal.itermonthdates(year, month))
    while fixed_rows and len(days) < GRID_CELLS:
        days.append(days[-1] + timedelta(days=1))
    return [CalendarDay(date=d, is_current_month=(d.month == month and d.year == year)) for d in days]


def _flatten(all_histories: Mapping[str, list[Completion]] | Iterable[Completion]) -> list[Completion]:
    if isinstance(all_histories, Mapping):
        return [c for items in all_histories.values() for c in items]
    return list(all_histories)


def aggregate_completions_by_date(
    all_histories: Mapping[str, list[Completion]] | Iterable[Completion],
    routines: Iterable[Routine | RoutineSummary],
    date_range: tuple[date, date],
    tz: tzinfo | None = None,
) -> dict[date, list[RoutineDayGroup]]:
    """Group completions by local calendar day, then by routine.

    Every date in the inclusive range is present (possibly with no groups).
    Names come from the supplied routines first, then from the completion
    itself, then the fallback labels.
    """
    routine_names: dict[str, str] = {}
    task_names: dict[tuple[str, str], str] = {}
    for r in routines:
        routine_names[r.id] = r.name
        for t in getattr(r, "tasks", []):
            task_names[(r.id, t.id)] = t.name

    start, end = date_range
    result: dict[date, list[RoutineDayGroup]] = {}
    day = start
    while day <= end:
        result[day] = []
        day += timedelta(days=1)

    groups: dict[tuple[date, str], RoutineDayGroup] = {}
    for c in sorted(_flatten(all_histories), key=lambda c: c.completed_at):
        day = local_date(c.completed_at, tz)
        if day is None or day not in result:
            continue
        resolved = dataclasses.replace(
            c,
            task_name=task_names.get((c.routine_id, c.task_id)) or c.task_name or UNKNOWN_TASK,
            routine_name=routine_names.get(c.routine_id) or c.routine_name or UNKNOWN_ROUTINE,
        )
        key = (day, c.routine_id)
        group = groups.get(key)
        if group is None:
            group = RoutineDayGroup(routine_id=c.routine_id, routine_name=resolved.routine_name)
            groups[key] = group
            result[day].append(group)
        group.completions.append(resolved)
    return result
