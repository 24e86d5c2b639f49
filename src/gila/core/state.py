# src/gila/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..tasks.task_store import TaskStore
from .project import open_store


@dataclass
class AppState:
    """
    Runtime state shared by command handlers.

    The store is opened lazily: `init` and `help` must work outside a project,
    every other command needs one.
    """

    settings: Any
    cwd: Path

    verbose: bool = False

    _store: TaskStore | None = None

    @property
    def store(self) -> TaskStore:
        if self._store is None:
            self._store = open_store(self.cwd, self.settings)
        return self._store
