"""File-per-routine JSON adapter.

Layout under the workspace root:

    data/<routineId>.json     routine metadata and ordered task list
    history/<routineId>.json  list of {id, taskId, completedAt}

Every write replaces the whole file atomically.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from core.errors import CorruptRecordError, StoreError
from core.fileio import read_json, write_json_atomic
from core.models import Completion, Routine, RoutineSummary
from core.store import RoutineStore, valid_routine_id
from core.workspace import data_dir, history_dir

logger = logging.getLogger(__name__)


class JsonRoutineStore(RoutineStore):
    def __init__(self, root: Path) -> None:
        self.root = root
        self.data_dir = data_dir(root)
        self.history_dir = history_dir(root)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.history_dir.mkdir(parents=True, exist_ok=True)

    def _routine_file(self, routine_id: str) -> Path:
        return self.data_dir / f"{routine_id}.json"

    def _history_file(self, routine_id: str) -> Path:
        return self.history_dir / f"{routine_id}.json"

    # ── Raw file access ───────────────────────────────────────

    def _load(self, path: Path, default: Any) -> Any:
        try:
            return read_json(path, default)
        except json.JSONDecodeError as e:
            raise CorruptRecordError(f"Unparsable JSON in {path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Could not read {path}: {e}") from e

    def _save(self, path: Path, data: Any) -> None:
        try:
            write_json_atomic(path, data)
        except OSError as e:
            raise StoreError(f"Could not write {path}: {e}") from e

    def _load_history(self, routine_id: str) -> list[dict[str, Any]]:
        path = self._history_file(routine_id)
        records = self._load(path, [])
        if not isinstance(records, list):
            raise CorruptRecordError(f"History file is not a list: {path}")
        return [r for r in records if isinstance(r, dict)]

    def _task_names(self, routine: Routine | None) -> dict[str, str]:
        if routine is None:
            return {}
        return {t.id: t.name for t in routine.tasks}

    def _routine_for_names(self, routine_id: str) -> Routine | None:
        try:
            return self.read_routine(routine_id)
        except StoreError as e:
            logger.warning("Cannot resolve task names for routine %s: %s", routine_id, e)
            return None

    # ── Routines ──────────────────────────────────────────────

    def list_routine_summaries(self) -> list[RoutineSummary]:
        entries: list[tuple[str, RoutineSummary]] = []
        for path in sorted(self.data_dir.glob("*.json")):
            try:
                data = self._load(path, None)
            except StoreError as e:
                logger.warning("Skipping unreadable routine file: %s", e)
                continue
            if not isinstance(data, dict):
                logger.warning("Skipping malformed routine file: %s", path)
                continue
            routine = Routine.from_dict(data)
            summary = RoutineSummary(id=path.stem, name=routine.name, description=routine.description)
            entries.append((routine.updated_at, summary))
        entries.sort(key=lambda e: e[0], reverse=True)
        return [s for _, s in entries]

    def read_routine(self, routine_id: str) -> Routine | None:
        if not valid_routine_id(routine_id):
            return None
        data = self._load(self._routine_file(routine_id), None)
        if data is None:
            return None
        if not isinstance(data, dict):
            raise CorruptRecordError(f"Routine file is not an object: {routine_id}")
        routine = Routine.from_dict(data)
        routine.id = routine_id
        routine.tasks.sort(key=lambda t: t.position)
        return routine

    def write_routine(self, routine: Routine) -> None:
        if not valid_routine_id(routine.id):
            raise StoreError(f"Invalid routine id: {routine.id!r}")
        self._save(self._routine_file(routine.id), routine.to_dict())

    def delete_routine_record(self, routine_id: str) -> bool:
        if not valid_routine_id(routine_id):
            return False
        path = self._routine_file(routine_id)
        if not path.exists():
            return False
        try:
            path.unlink()
            self._history_file(routine_id).unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Could not delete routine {routine_id}: {e}") from e
        return True

    # ── Completions ───────────────────────────────────────────

    def append_completion(self, completion: Completion) -> str:
        if not valid_routine_id(completion.routine_id):
            raise StoreError(f"Invalid routine id: {completion.routine_id!r}")
        if not self._routine_file(completion.routine_id).exists():
            raise StoreError(f"Routine not found: {completion.routine_id}")
        records = self._load_history(completion.routine_id)
        records.append(completion.to_record())
        self._save(self._history_file(completion.routine_id), records)
        return completion.id

    def read_completions(self, routine_id: str) -> list[Completion]:
        if not valid_routine_id(routine_id):
            return []
        records = self._load_history(routine_id)
        routine = self._routine_for_names(routine_id)
        names = self._task_names(routine)
        result = []
        for r in records:
            c = Completion.from_dict(r, routine_id=routine_id)
            c.task_name = names.get(c.task_id)
            c.routine_name = routine.name if routine else None
            result.append(c)
        return result

    def read_all_completions(self) -> dict[str, list[Completion]]:
        result: dict[str, list[Completion]] = {}
        for path in sorted(self.history_dir.glob("*.json")):
            routine_id = path.stem
            try:
                result[routine_id] = self.read_completions(routine_id)
            except StoreError as e:
                logger.error("Error reading history for routine %s: %s", routine_id, e)
                result[routine_id] = []
        return result

    def delete_completion(self, routine_id: str, task_id: str, completed_at: str) -> bool:
        if not valid_routine_id(routine_id):
            return False
        records = self._load_history(routine_id)
        matches = [
            i for i, r in enumerate(records)
            if r.get("taskId") == task_id and r.get("completedAt") == completed_at
        ]
        if len(matches) != 1:
            logger.warning(
                "Refusing to delete completion of task %s at %s in routine %s: %d matches",
                task_id, completed_at, routine_id, len(matches),
            )
            return False
        records.pop(matches[0])
        self._save(self._history_file(routine_id), records)
        return True

    def delete_completion_by_id(self, routine_id: str, completion_id: str) -> bool:
        if not valid_routine_id(routine_id) or not completion_id:
            return False
        records = self._load_history(routine_id)
        remaining = [r for r in records if r.get("id") != completion_id]
        if len(remaining) == len(records):
            return False
        self._save(self._history_file(routine_id), remaining)
        return True
