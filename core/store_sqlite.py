"""Three-table SQLite adapter.

routines -> tasks -> completions, with ON DELETE CASCADE from routines.
Completions reference tasks only by id so history survives task removal;
task names are resolved with a LEFT JOIN at read time.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from core.errors import StoreError
from core.models import Completion, Routine, RoutineSummary, Task
from core.store import RoutineStore
from core.workspace import database_path

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS routines (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS tasks (
    routine_id TEXT NOT NULL REFERENCES routines (id) ON DELETE CASCADE,
    id TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    position INTEGER NOT NULL,
    PRIMARY KEY (routine_id, id)
);
CREATE TABLE IF NOT EXISTS completions (
    id TEXT PRIMARY KEY,
    routine_id TEXT NOT NULL REFERENCES routines (id) ON DELETE CASCADE,
    task_id TEXT NOT NULL,
    completed_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_completions_routine ON completions (routine_id, completed_at);
"""

_COMPLETION_SELECT = """
    SELECT c.id, c.routine_id, c.task_id, c.completed_at,
           t.name AS task_name, r.name AS routine_name
    FROM completions c
    LEFT JOIN tasks t ON t.routine_id = c.routine_id AND t.id = c.task_id
    LEFT JOIN routines r ON r.id = c.routine_id
"""


def _completion_from_row(row: sqlite3.Row) -> Completion:
    return Completion(
        id=row["id"],
        routine_id=row["routine_id"],
        task_id=row["task_id"],
        completed_at=row["completed_at"],
        task_name=row["task_name"],
        routine_name=row["routine_name"],
    )


class SqliteRoutineStore(RoutineStore):
    def __init__(self, root: Path | None = None, path: Path | str | None = None) -> None:
        self.path = str(path) if path is not None else str(database_path(root))
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self.conn = sqlite3.connect(self.path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database {self.path}: {e}") from e
        logger.debug("Opened routine database at %s", self.path)

    def close(self) -> None:
        self.conn.close()

    # ── Routines ──────────────────────────────────────────────

    def list_routine_summaries(self) -> list[RoutineSummary]:
        try:
            rows = self.conn.execute(
                "SELECT id, name, description FROM routines ORDER BY updated_at DESC"
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Could not list routines: {e}") from e
        return [RoutineSummary(id=r["id"], name=r["name"], description=r["description"] or "") for r in rows]

    def read_routine(self, routine_id: str) -> Routine | None:
        try:
            row = self.conn.execute("SELECT * FROM routines WHERE id = ?", (routine_id,)).fetchone()
            if row is None:
                return None
            task_rows = self.conn.execute(
                "SELECT id, name, description, position FROM tasks WHERE routine_id = ? ORDER BY position ASC",
                (routine_id,),
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Could not read routine {routine_id}: {e}") from e
        return Routine(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            tasks=[
                Task(id=t["id"], name=t["name"], description=t["description"] or "", position=t["position"])
                for t in task_rows
            ],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def write_routine(self, routine: Routine) -> None:
        # Upsert rather than REPLACE: REPLACE deletes the row and would cascade.
        try:
            with self.conn:
                self.conn.execute(
                    """
                    INSERT INTO routines (id, name, description, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT (id) DO UPDATE SET
                        name = excluded.name,
                        description = excluded.description,
                        updated_at = excluded.updated_at
                    """,
                    (routine.id, routine.name, routine.description, routine.created_at, routine.updated_at),
                )
                self.conn.execute("DELETE FROM tasks WHERE routine_id = ?", (routine.id,))
                self.conn.executemany(
                    "INSERT INTO tasks (routine_id, id, name, description, position) VALUES (?, ?, ?, ?, ?)",
                    [(routine.id, t.id, t.name, t.description, t.position) for t in routine.tasks],
                )
        except sqlite3.Error as e:
            raise StoreError(f"Could not save routine {routine.id}: {e}") from e

    def delete_routine_record(self, routine_id: str) -> bool:
        try:
            with self.conn:
                cur = self.conn.execute("DELETE FROM routines WHERE id = ?", (routine_id,))
        except sqlite3.Error as e:
            raise StoreError(f"Could not delete routine {routine_id}: {e}") from e
        return cur.rowcount > 0

    # ── Completions ───────────────────────────────────────────

    def append_completion(self, completion: Completion) -> str:
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT INTO completions (id, routine_id, task_id, completed_at) VALUES (?, ?, ?, ?)",
                    (completion.id, completion.routine_id, completion.task_id, completion.completed_at),
                )
        except sqlite3.IntegrityError as e:
            raise StoreError(f"Routine not found or duplicate completion: {e}") from e
        except sqlite3.Error as e:
            raise StoreError(f"Could not record completion: {e}") from e
        return completion.id

    def read_completions(self, routine_id: str) -> list[Completion]:
        try:
            rows = self.conn.execute(
                _COMPLETION_SELECT + " WHERE c.routine_id = ?", (routine_id,)
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Could not read history for {routine_id}: {e}") from e
        return [_completion_from_row(r) for r in rows]

    def read_all_completions(self) -> dict[str, list[Completion]]:
        try:
            rows = self.conn.execute(_COMPLETION_SELECT).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Could not read histories: {e}") from e
        result: dict[str, list[Completion]] = {}
        for r in rows:
            c = _completion_from_row(r)
            result.setdefault(c.routine_id, []).append(c)
        return result

    def delete_completion(self, routine_id: str, task_id: str, completed_at: str) -> bool:
        try:
            with self.conn:
                ids = [
                    r["id"] for r in self.conn.execute(
                        "SELECT id FROM completions WHERE routine_id = ? AND task_id = ? AND completed_at = ?",
                        (routine_id, task_id, completed_at),
                    ).fetchall()
                ]
                if len(ids) != 1:
                    logger.warning(
                        "Refusing to delete completion of task %s at %s in routine %s: %d matches",
                        task_id, completed_at, routine_id, len(ids),
                    )
                    return False
                self.conn.execute("DELETE FROM completions WHERE id = ?", (ids[0],))
        except sqlite3.Error as e:
            raise StoreError(f"Could not delete completion: {e}") from e
        return True

    def delete_completion_by_id(self, routine_id: str, completion_id: str) -> bool:
        try:
            with self.conn:
                cur = self.conn.execute(
                    "DELETE FROM completions WHERE routine_id = ? AND id = ?",
                    (routine_id, completion_id),
                )
        except sqlite3.Error as e:
            raise StoreError(f"Could not delete completion {completion_id}: {e}") from e
        return cur.rowcount > 0
