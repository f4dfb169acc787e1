"""Typed dataclasses for the Routinely data model.

All persisted models use from_dict/to_dict for JSON/YAML serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any


UNKNOWN_TASK = "Unknown Task"
UNKNOWN_ROUTINE = "Unknown Routine"


# ── Routines ──────────────────────────────────────────────────


@dataclass
class Task:
    id: str = ""
    name: str = ""
    description: str = ""
    position: int = 0

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Task:
        return cls(
            id=str(d.get("id") or ""),
            name=str(d.get("name") or ""),
            description=str(d.get("description") or ""),
            position=int(d.get("position", 0) or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "position": self.position,
        }


@dataclass
class Routine:
    id: str = ""
    name: str = ""
    description: str = ""
    tasks: list[Task] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Routine:
        if not d or not isinstance(d, dict):
            return cls()
        tasks = [Task.from_dict(t) for t in (d.get("tasks") or []) if isinstance(t, dict)]
        return cls(
            id=str(d.get("id") or ""),
            name=str(d.get("name") or ""),
            description=str(d.get("description") or ""),
            tasks=tasks,
            created_at=str(d.get("createdAt") or ""),
            updated_at=str(d.get("updatedAt") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "tasks": [t.to_dict() for t in self.tasks],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def summary(self) -> RoutineSummary:
        return RoutineSummary(id=self.id, name=self.name, description=self.description)


@dataclass
class RoutineSummary:
    id: str = ""
    name: str = ""
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "description": self.description}


# ── Completions ───────────────────────────────────────────────


@dataclass
class Completion:
    id: str = ""
    routine_id: str = ""
    task_id: str = ""
    completed_at: str = ""  # UTC, YYYY-MM-DDTHH:MM:SS.mmmZ
    # Resolved at read time, never persisted
    task_name: str | None = None
    routine_name: str | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any], routine_id: str = "") -> Completion:
        return cls(
            id=str(d.get("id") or ""),
            routine_id=str(d.get("routineId") or routine_id),
            task_id=str(d.get("taskId") or ""),
            completed_at=str(d.get("completedAt") or ""),
        )

    def to_record(self) -> dict[str, Any]:
        """Persisted shape inside a per-routine history file."""
        return {"id": self.id, "taskId": self.task_id, "completedAt": self.completed_at}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "routineId": self.routine_id,
            "taskId": self.task_id,
            "completedAt": self.completed_at,
            "taskName": self.task_name if self.task_name is not None else UNKNOWN_TASK,
            "routineName": self.routine_name if self.routine_name is not None else UNKNOWN_ROUTINE,
        }


# ── Calendar ──────────────────────────────────────────────────


@dataclass
class CalendarDay:
    date: date
    is_current_month: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "isCurrentMonth": self.is_current_month}


@dataclass
class RoutineDayGroup:
    """One routine's completions on one calendar day."""

    routine_id: str = ""
    routine_name: str = UNKNOWN_ROUTINE
    completions: list[Completion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "routineId": self.routine_id,
            "routineName": self.routine_name,
            "completions": [c.to_dict() for c in self.completions],
        }


# ── Settings ──────────────────────────────────────────────────


TRUTHY = {"1", "true", "yes", "on"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY
    return bool(value)


NEXT_TASK_POLICIES = {"stop", "wrap"}
STORAGE_BACKENDS = {"json", "sqlite"}


@dataclass
class Settings:
    timezone: str = "UTC"
    storage: str = "json"
    next_task_policy: str = "stop"  # stop: None once every task is done; wrap: first task
    calendar_fixed_rows: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            return cls()
        storage = str(d.get("storage", "json")).strip().lower()
        policy = str(d.get("next_task_policy", "stop")).strip().lower()
        return cls(
            timezone=str(d.get("timezone") or "UTC"),
            storage=storage if storage in STORAGE_BACKENDS else "json",
            next_task_policy=policy if policy in NEXT_TASK_POLICIES else "stop",
            calendar_fixed_rows=_as_bool(d.get("calendar_fixed_rows", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timezone": self.timezone,
            "storage": self.storage,
            "next_task_policy": self.next_task_policy,
            "calendar_fixed_rows": self.calendar_fixed_rows,
        }
