# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from gila.core.project import init_project
from gila.core.state import AppState
from gila.tasks.task_models import TaskPriority
from gila.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the caller's environment.
    """
    return SimpleNamespace(
        app_name="gila",
        log_level="WARNING",
        log_dir=None,
        dir_name=".gila",
        record_extension="md",
        user="alice",
        editor="true",
        default_priority=TaskPriority.MEDIUM,
        default_priority_value=50,
    )


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    """A working directory that already holds an initialized project."""
    init_project(tmp_path, ".gila")
    return tmp_path


@pytest.fixture()
def store(project_dir: Path) -> TaskStore:
    return TaskStore(project_dir / ".gila", extension="md")


@pytest.fixture()
def state(settings: SimpleNamespace, project_dir: Path) -> AppState:
    return AppState(settings=settings, cwd=project_dir)
