# src/gila/core/project.py

"""
Project root resolution.

A project is any directory holding the marker directory (`.gila` by default).
Commands run from anywhere below it, so lookup walks up from the working
directory until the marker is found or the filesystem root is reached.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..tasks.task_errors import AlreadyExists, ProjectNotFound
from ..tasks.task_models import TaskStatus
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)

MAX_PARENT_DEPTH = 128


def find_project_root(start: str | Path, dir_name: str = ".gila") -> Path | None:
    """Return the marker directory itself (e.g. `/repo/.gila`), or None."""
    current = Path(start).resolve()
    for _ in range(MAX_PARENT_DEPTH):
        candidate = current / dir_name
        if candidate.is_dir():
            logger.info("Found %s directory at %s", dir_name, candidate)
            return candidate
        if current.parent == current:
            break
        current = current.parent
    logger.debug("No %s directory in %s or its parents", dir_name, start)
    return None


def init_project(directory: str | Path, dir_name: str = ".gila", *, bare: bool = False) -> Path:
    """
    Create the marker directory inside `directory`.

    Unless `bare`, the `todo` status root is created too; other status roots
    appear on demand when a task first moves into them.
    """
    base = Path(directory).resolve()
    root = base / dir_name
    try:
        root.mkdir(parents=True)
    except FileExistsError:
        raise AlreadyExists(dir_name, root) from None

    if not bare:
        (root / TaskStatus.TODO.value).mkdir()
    logger.info("Initialized project at %s (bare=%s)", root, bare)
    return root


def open_store(start: str | Path, settings) -> TaskStore:
    dir_name = getattr(settings, "dir_name", ".gila")
    root = find_project_root(start, dir_name)
    if root is None:
        raise ProjectNotFound(start, dir_name)
    return TaskStore(root, extension=getattr(settings, "record_extension", "md"))
