from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from taskpad.config import Config
from taskpad.repository import TaskRepository


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from a developer's real database settings."""
    monkeypatch.delenv("TASKPAD_DB", raising=False)
    monkeypatch.setenv("TASKPAD_ENV", "test")


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "tasks.db"


@pytest.fixture()
def repo(db_path: Path) -> Iterator[TaskRepository]:
    """A repository on a fresh SQLite file per test."""
    repository = TaskRepository(db_path)
    repository.initialize()
    yield repository
    repository.close()


@pytest.fixture()
def config(db_path: Path) -> Config:
    return Config(database=db_path)
