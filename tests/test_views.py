"""Tests for core/views.py: next task, counts, completed-today."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from core.models import Completion, Routine, Task
from core.timestamps import normalize_timestamp
from core.views import (
    completion_counts,
    completions_on,
    get_completions_for_task,
    get_next_task,
    get_next_task_for_day,
    is_completed_today,
)

NY = ZoneInfo("America/New_York")


def _routine() -> Routine:
    return Routine(
        id="r1",
        name="Morning",
        tasks=[Task(id=t, name=t.title(), position=i) for i, t in enumerate(["wake", "stretch", "shower", "coffee"])],
    )


def _done(task_id: str, when: str = "2024-06-01T12:00:00.000Z") -> Completion:
    return Completion(id=f"{task_id}-{when}", routine_id="r1", task_id=task_id, completed_at=when)


def test_get_completions_for_task():
    history = [_done("wake"), _done("stretch"), _done("wake", "2024-06-02T12:00:00.000Z")]
    assert len(get_completions_for_task(history, "wake")) == 2
    assert get_completions_for_task(history, "coffee") == []


def test_completion_counts_include_zero():
    counts = completion_counts(_routine(), [_done("wake"), _done("wake"), _done("orphan")])
    assert counts == {"wake": 2, "stretch": 0, "shower": 0, "coffee": 0}


def test_next_task_first_never_completed():
    assert get_next_task(_routine(), []).id == "wake"
    assert get_next_task(_routine(), [_done("wake"), _done("stretch")]).id == "shower"


def test_next_task_skips_any_completed_task():
    history = [_done("wake"), _done("shower")]
    assert get_next_task(_routine(), history).id == "stretch"


def test_next_task_all_done_stop_policy():
    history = [_done(t.id) for t in _routine().tasks]
    assert get_next_task(_routine(), history, policy="stop") is None


def test_next_task_all_done_wrap_policy():
    history = [_done(t.id) for t in _routine().tasks]
    assert get_next_task(_routine(), history, policy="wrap").id == "wake"


def test_next_task_empty_routine():
    assert get_next_task(Routine(name="Empty"), [], policy="wrap") is None


def test_next_task_is_idempotent():
    routine = _routine()
    history = [_done("wake")]
    first = get_next_task(routine, history)
    second = get_next_task(routine, history)
    assert first == second
    assert len(history) == 1


def test_next_task_for_day_ignores_other_days():
    history = [_done(t.id, "2024-06-01T12:00:00.000Z") for t in _routine().tasks]
    history.append(_done("wake", "2024-06-02T12:00:00.000Z"))
    assert get_next_task_for_day(_routine(), history, date(2024, 6, 2)).id == "stretch"
    assert get_next_task_for_day(_routine(), history, date(2024, 6, 1)).id == "wake"
    assert get_next_task_for_day(_routine(), history, date(2024, 6, 1), policy="stop") is None


def test_is_completed_today():
    task = _routine().tasks[0]
    history = [_done("wake", "2024-06-01T12:00:00.000Z")]
    assert is_completed_today(task, history, date(2024, 6, 1)) is True
    assert is_completed_today(task, history, date(2024, 6, 2)) is False
    assert is_completed_today(_routine().tasks[1], history, date(2024, 6, 1)) is False


def test_is_completed_today_day_boundary():
    task = _routine().tasks[0]
    late = _done("wake", normalize_timestamp("2024-06-30T23:59:59", NY))
    early = _done("wake", normalize_timestamp("2024-07-01T00:00:01", NY))
    # Both instants fall on 2024-07-01 in UTC but on different local days.
    assert is_completed_today(task, [late], date(2024, 6, 30), NY) is True
    assert is_completed_today(task, [late], date(2024, 7, 1), NY) is False
    assert is_completed_today(task, [early], date(2024, 6, 30), NY) is False
    assert is_completed_today(task, [early], date(2024, 7, 1), NY) is True


def test_is_completed_today_aware_reference():
    task = _routine().tasks[0]
    history = [_done("wake", "2024-07-01T03:00:00.000Z")]
    reference = datetime(2024, 7, 1, 3, 30, tzinfo=timezone.utc)
    assert is_completed_today(task, history, reference, NY) is True  # still June 30 in New York


def test_completions_on_skips_unparsable():
    history = [_done("wake", "garbage"), _done("stretch", "2024-06-01T12:00:00.000Z")]
    assert [c.task_id for c in completions_on(history, date(2024, 6, 1))] == ["stretch"]
