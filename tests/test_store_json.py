"""Tests for core/store_json.py: file layout and corrupt-data tolerance."""

import json

import pytest

from core.history import complete_task, get_all_histories, get_history
from core.models import Routine, Task
from core.routines import get_routine, list_routines, save_routine
from core.store_json import JsonRoutineStore


@pytest.fixture
def json_store(workspace):
    return JsonRoutineStore(workspace)


@pytest.fixture
def saved(json_store):
    routine, _ = save_routine(json_store, Routine(name="Morning", tasks=[Task(id="wake", name="Wake")]))
    return routine


def test_file_layout(workspace, json_store, saved):
    complete_task(json_store, saved.id, "wake", "2024-06-01T12:00:00Z")
    routine_file = workspace / "data" / f"{saved.id}.json"
    history_file = workspace / "history" / f"{saved.id}.json"
    assert json.loads(routine_file.read_text())["tasks"][0]["id"] == "wake"
    records = json.loads(history_file.read_text())
    assert records[0]["taskId"] == "wake"
    assert records[0]["completedAt"] == "2024-06-01T12:00:00.000Z"
    assert records[0]["id"]


def test_corrupt_routine_file_is_skipped(workspace, json_store, saved):
    (workspace / "data" / "broken.json").write_text("{not json", encoding="utf-8")
    assert [s.id for s in list_routines(json_store)] == [saved.id]
    assert get_routine(json_store, "broken") is None


def test_non_object_routine_file(workspace, json_store):
    (workspace / "data" / "listy.json").write_text("[1, 2]", encoding="utf-8")
    assert list_routines(json_store) == []
    assert get_routine(json_store, "listy") is None


def test_corrupt_history_file(workspace, json_store, saved):
    other, _ = save_routine(json_store, Routine(name="Other", tasks=[Task(id="x", name="X")]))
    complete_task(json_store, other.id, "x")
    history_file = workspace / "history" / f"{saved.id}.json"
    history_file.write_text("{not json", encoding="utf-8")

    assert get_history(json_store, saved.id) == []
    histories = get_all_histories(json_store)
    assert histories[saved.id] == []
    assert len(histories[other.id]) == 1


def test_append_does_not_overwrite_corrupt_history(workspace, json_store, saved):
    history_file = workspace / "history" / f"{saved.id}.json"
    history_file.write_text("{not json", encoding="utf-8")
    assert complete_task(json_store, saved.id, "wake") is None
    assert history_file.read_text(encoding="utf-8") == "{not json"


def test_legacy_history_without_ids(workspace, json_store, saved):
    history_file = workspace / "history" / f"{saved.id}.json"
    history_file.write_text(
        json.dumps([{"taskId": "wake", "completedAt": "2024-06-01T12:00:00.000Z"}]), encoding="utf-8"
    )
    history = get_history(json_store, saved.id)
    assert len(history) == 1
    assert history[0].id == ""
    assert history[0].task_name == "Wake"


def test_unsafe_routine_id_reads_as_absent(json_store):
    assert get_routine(json_store, "../config") is None
    assert get_history(json_store, "../config") == []
