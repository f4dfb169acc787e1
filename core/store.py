"""Persistence adapter contract for Routinely.

The repository (core.routines) and ledger (core.history) only talk to a
RoutineStore. Adapters raise core.errors.StoreError on I/O or database
failure and CorruptRecordError for unparsable stored payloads; they never
return half-applied results for a single-entity write.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path

from core.models import Completion, Routine, RoutineSummary, Settings
from core.workspace import load_settings, workspace_root


ROUTINE_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def valid_routine_id(routine_id: str | None) -> bool:
    return bool(routine_id) and bool(ROUTINE_ID_RE.match(routine_id))


class RoutineStore(ABC):
    """Durable storage of routines, their tasks, and completion records."""

    @abstractmethod
    def list_routine_summaries(self) -> list[RoutineSummary]:
        """All routines without tasks, most recently updated first."""

    @abstractmethod
    def read_routine(self, routine_id: str) -> Routine | None:
        """Full routine with tasks ordered by position, or None."""

    @abstractmethod
    def write_routine(self, routine: Routine) -> None:
        """Insert or replace a routine and its complete task list."""

    @abstractmethod
    def delete_routine_record(self, routine_id: str) -> bool:
        """Remove a routine, its tasks and its completions."""

    @abstractmethod
    def append_completion(self, completion: Completion) -> str:
        """Append one completion record and return its id."""

    @abstractmethod
    def read_completions(self, routine_id: str) -> list[Completion]:
        """Completions of one routine, task_name filled where the task exists."""

    @abstractmethod
    def read_all_completions(self) -> dict[str, list[Completion]]:
        """Completions of every routine keyed by routine id, names filled."""

    @abstractmethod
    def delete_completion(self, routine_id: str, task_id: str, completed_at: str) -> bool:
        """Delete the single record matching all three fields.

        Returns False and deletes nothing on zero or ambiguous matches.
        """

    @abstractmethod
    def delete_completion_by_id(self, routine_id: str, completion_id: str) -> bool:
        """Delete one completion by its unique id."""

    def close(self) -> None:
        pass


def open_store(root: Path | None = None, settings: Settings | None = None) -> RoutineStore:
    """Open the backend configured in config.yaml (``storage: json|sqlite``)."""
    if root is None:
        root = workspace_root()
    if settings is None:
        settings = load_settings(root)
    if settings.storage == "sqlite":
        from core.store_sqlite import SqliteRoutineStore
        return SqliteRoutineStore(root)
    from core.store_json import JsonRoutineStore
    return JsonRoutineStore(root)
