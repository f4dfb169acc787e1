"""Shared test fixtures for Routinely tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml

from core.models import Routine, Settings, Task
from core.routines import save_routine
from core.store import open_store


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace with a config.yaml."""
    root = tmp_path / "workspace"
    root.mkdir(parents=True)

    config = {
        "timezone": "America/New_York",
        "storage": "json",
        "next_task_policy": "stop",
        "calendar_fixed_rows": False,
    }
    (root / "config.yaml").write_text(
        yaml.dump(config, default_flow_style=False), encoding="utf-8"
    )

    os.environ["ROUTINES_ROOT"] = str(root)
    yield root
    if "ROUTINES_ROOT" in os.environ:
        del os.environ["ROUTINES_ROOT"]


@pytest.fixture(params=["json", "sqlite"])
def store(request, workspace: Path):
    """An open store for each backend, rooted in the temp workspace."""
    s = open_store(workspace, Settings(storage=request.param))
    yield s
    s.close()


@pytest.fixture
def morning(store) -> Routine:
    """A saved four-task routine."""
    routine = Routine(
        name="Morning",
        description="Start the day",
        tasks=[
            Task(id="wake", name="Wake up"),
            Task(id="stretch", name="Stretch", description="10 minutes"),
            Task(id="shower", name="Shower"),
            Task(id="coffee", name="Coffee"),
        ],
    )
    saved, errors = save_routine(store, routine, now="2024-06-01T08:00:00Z")
    assert errors == []
    return saved
