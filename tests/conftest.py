"""Shared fixtures for the day-tracker tests."""

import datetime as dt
import itertools
import sys
from pathlib import Path

import pytest

# Ensure the server directory is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "server"))

from core.task_tracker import TaskTracker  # noqa: E402
from integrations import config  # noqa: E402
from integrations.task_files import TaskPaths  # noqa: E402

TODAY = dt.date(2024, 6, 10)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    monkeypatch.delenv("DAYTRACK_CONFIG", raising=False)
    monkeypatch.delenv("DAYTRACK_API_TOKEN", raising=False)
    config.reset_config()
    yield
    config.reset_config()


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"t{next(counter)}"


@pytest.fixture
def paths(tmp_path):
    return TaskPaths.from_root(tmp_path / "tasks")


@pytest.fixture
def tracker(paths, id_factory):
    return TaskTracker(paths, today=lambda: TODAY, id_factory=id_factory)
