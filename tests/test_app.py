"""Tests for ui/app.py: HTTP bridge over the core library."""

import pytest
from fastapi.testclient import TestClient

from ui.app import app


@pytest.fixture
def client(workspace):
    return TestClient(app)


@pytest.fixture
def evening(client):
    resp = client.post(
        "/api/routines",
        json={"name": "Evening", "description": "Wind down", "tasks": [{"name": "Read"}, {"name": "Sleep"}]},
    )
    assert resp.status_code == 200
    return resp.json()["routine"]


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_create_and_list(client, evening):
    assert evening["id"]
    assert [t["position"] for t in evening["tasks"]] == [0, 1]
    routines = client.get("/api/routines").json()["routines"]
    assert routines == [{"id": evening["id"], "name": "Evening", "description": "Wind down"}]


def test_create_invalid(client):
    resp = client.post("/api/routines", json={"name": ""})
    assert resp.status_code == 400


def test_get_missing_routine(client):
    assert client.get("/api/routines/nope").status_code == 404


def test_update_routine_reorders(client, evening):
    tasks = list(reversed(evening["tasks"]))
    resp = client.put(f"/api/routines/{evening['id']}", json={"name": "Evening", "tasks": tasks})
    assert resp.status_code == 200
    loaded = client.get(f"/api/routines/{evening['id']}").json()
    assert [t["name"] for t in loaded["tasks"]] == ["Sleep", "Read"]
    assert [t["position"] for t in loaded["tasks"]] == [0, 1]
    assert loaded["createdAt"] == evening["createdAt"]


def test_update_missing_routine(client):
    assert client.put("/api/routines/nope", json={"name": "X"}).status_code == 404


def test_complete_and_history(client, evening):
    read_id = evening["tasks"][0]["id"]
    resp = client.post(f"/api/routines/{evening['id']}/complete", json={"taskId": read_id})
    assert resp.status_code == 200
    completion_id = resp.json()["completionId"]

    history = client.get(f"/api/routines/{evening['id']}/history").json()["history"]
    assert history[0]["id"] == completion_id
    assert history[0]["taskName"] == "Read"
    assert history[0]["routineName"] == "Evening"

    task_history = client.get(f"/api/routines/{evening['id']}/tasks/{read_id}/history").json()["history"]
    assert len(task_history) == 1

    all_histories = client.get("/api/history").json()["histories"]
    assert len(all_histories[evening["id"]]) == 1


def test_complete_requires_task(client, evening):
    assert client.post(f"/api/routines/{evening['id']}/complete", json={}).status_code == 400
    assert client.post("/api/routines/nope/complete", json={"taskId": "x"}).status_code == 404


def test_next_task(client, evening):
    read_id, sleep_id = (t["id"] for t in evening["tasks"])
    assert client.get(f"/api/routines/{evening['id']}/next").json()["nextTask"]["id"] == read_id

    client.post(f"/api/routines/{evening['id']}/complete", json={"taskId": read_id})
    body = client.get(f"/api/routines/{evening['id']}/next").json()
    assert body["nextTask"]["id"] == sleep_id
    assert body["completionCounts"] == {read_id: 1, sleep_id: 0}
    assert body["completedToday"] == [read_id]

    client.post(f"/api/routines/{evening['id']}/complete", json={"taskId": sleep_id})
    body = client.get(f"/api/routines/{evening['id']}/next").json()
    assert body["policy"] == "stop"
    assert body["nextTask"] is None


def test_next_task_wrap_policy(client, evening):
    client.put("/api/settings", json={"next_task_policy": "wrap"})
    for task in evening["tasks"]:
        client.post(f"/api/routines/{evening['id']}/complete", json={"taskId": task["id"]})
    body = client.get(f"/api/routines/{evening['id']}/next").json()
    assert body["nextTask"]["id"] == evening["tasks"][0]["id"]


def test_delete_completion(client, evening):
    read_id = evening["tasks"][0]["id"]
    client.post(
        f"/api/routines/{evening['id']}/complete",
        json={"taskId": read_id, "completedAt": "2024-02-10T21:00:00"},
    )
    params = {"taskId": read_id, "completedAt": "2024-02-11T02:00:00.000Z"}
    assert client.delete(f"/api/routines/{evening['id']}/history", params=params).status_code == 200
    assert client.delete(f"/api/routines/{evening['id']}/history", params=params).status_code == 404


def test_delete_completion_with_local_time(client, evening):
    read_id = evening["tasks"][0]["id"]
    client.post(
        f"/api/routines/{evening['id']}/complete",
        json={"taskId": read_id, "completedAt": "2024-06-30T23:59:59"},
    )
    params = {"taskId": read_id, "completedAt": "2024-06-30T23:59:59"}
    assert client.delete(f"/api/routines/{evening['id']}/history", params=params).status_code == 200
    assert client.get(f"/api/routines/{evening['id']}/history").json()["history"] == []


def test_delete_completion_by_id(client, evening):
    read_id = evening["tasks"][0]["id"]
    completion_id = client.post(
        f"/api/routines/{evening['id']}/complete", json={"taskId": read_id}
    ).json()["completionId"]
    url = f"/api/routines/{evening['id']}/history/{completion_id}"
    assert client.delete(url).status_code == 200
    assert client.delete(url).status_code == 404


def test_calendar(client, evening):
    read_id = evening["tasks"][0]["id"]
    # Local New York time; stored as 2024-02-11T02:30:00.000Z
    client.post(
        f"/api/routines/{evening['id']}/complete",
        json={"taskId": read_id, "completedAt": "2024-02-10T21:30:00"},
    )
    body = client.get("/api/calendar/2024/1").json()
    assert body["monthIndex"] == 1
    assert body["start"] == "2024-02-01"
    assert len(body["days"]) % 7 == 0
    assert sum(1 for d in body["days"] if d["isCurrentMonth"]) == 29
    day = next(d for d in body["days"] if d["date"] == "2024-02-10")
    assert day["routines"][0]["routineName"] == "Evening"
    assert day["routines"][0]["completions"][0]["taskName"] == "Read"
    next_day = next(d for d in body["days"] if d["date"] == "2024-02-11")
    assert next_day["routines"] == []


def test_calendar_invalid_month(client):
    assert client.get("/api/calendar/2024/12").status_code == 400


def test_delete_routine(client, evening):
    assert client.delete(f"/api/routines/{evening['id']}").status_code == 200
    assert client.get(f"/api/routines/{evening['id']}").status_code == 404
    assert client.delete(f"/api/routines/{evening['id']}").status_code == 404


def test_settings_update(client):
    resp = client.put("/api/settings", json={"storage": "sqlite", "timezone": "Europe/Paris"})
    assert resp.json()["settings"]["storage"] == "sqlite"
    assert client.get("/api/settings").json()["timezone"] == "Europe/Paris"


def test_sqlite_backend_via_settings(client):
    client.put("/api/settings", json={"storage": "sqlite"})
    resp = client.post("/api/routines", json={"name": "Lunch", "tasks": [{"name": "Eat"}]})
    assert resp.status_code == 200
    assert client.get("/api/routines").json()["routines"][0]["name"] == "Lunch"


def test_basic_auth(client, monkeypatch):
    monkeypatch.setenv("ROUTINES_USERNAME", "me")
    monkeypatch.setenv("ROUTINES_PASSWORD", "secret")
    assert client.get("/api/routines").status_code == 401
    assert client.get("/api/routines", auth=("me", "wrong")).status_code == 401
    assert client.get("/api/routines", auth=("me", "secret")).status_code == 200


def test_settings_fixed_rows_string_false(client):
    client.put("/api/settings", json={"calendar_fixed_rows": "false"})
    assert client.get("/api/settings").json()["calendar_fixed_rows"] is False
    assert len(client.get("/api/calendar/2024/1").json()["days"]) == 35
