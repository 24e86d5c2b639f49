# src/gila/tasks/task_store.py

from __future__ import annotations

import contextlib
import errno
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .task_codec import decode, encode
from .task_errors import AlreadyExists, NotFound
from .task_ids import is_valid_task_id
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskLocation:
    task_id: str
    status: TaskStatus
    directory: Path
    record_path: Path


class TaskStore:
    """
    Directory-backed task store.

    Layout under the project root (the `.gila` directory):

        <root>/<status>/<task_id>/<task_id>.<ext>

    The task directory may hold other artifacts; moves always rename the whole
    directory so they travel with the record.

    Concurrency:
    - no locking; a move is a single os.rename and a rewrite is a temp file
      plus os.replace, so a reader sees either the old or the new state
    """

    def __init__(self, root: str | Path, *, extension: str = "md") -> None:
        self._root = Path(root)
        self._extension = extension.lstrip(".") or "md"
        logger.debug("TaskStore ready root=%s ext=%s", self._root, self._extension)

    @property
    def root(self) -> Path:
        return self._root

    # ---- paths ----

    def status_dir(self, status: TaskStatus) -> Path:
        return self._root / status.value

    def task_dir(self, task_id: str, status: TaskStatus) -> Path:
        return self.status_dir(status) / task_id

    def record_path(self, task_id: str, status: TaskStatus) -> Path:
        return self.task_dir(task_id, status) / f"{task_id}.{self._extension}"

    def _location(self, task_id: str, status: TaskStatus) -> TaskLocation:
        return TaskLocation(
            task_id=task_id,
            status=status,
            directory=self.task_dir(task_id, status),
            record_path=self.record_path(task_id, status),
        )

    # ---- lookup ----

    def list_ids(self, status: TaskStatus) -> list[str]:
        """Task ids under one status root (sorted, so oldest first)."""
        base = self.status_dir(status)
        if not base.is_dir():
            return []
        out: list[str] = []
        for entry in base.iterdir():
            if not entry.is_dir():
                continue
            if not is_valid_task_id(entry.name):
                logger.debug("Ignoring non-task directory %s", entry)
                continue
            out.append(entry.name)
        out.sort()
        return out

    def locate_all(self, task_id: str) -> list[TaskLocation]:
        return [self._location(task_id, s) for s in TaskStatus if self.task_dir(task_id, s).is_dir()]

    def locate(self, task_id: str) -> TaskLocation | None:
        """First status root (in declaration order) holding this task, or None."""
        for status in TaskStatus:
            if self.task_dir(task_id, status).is_dir():
                logger.debug("Found task %s under %s", task_id, status.value)
                return self._location(task_id, status)
        logger.debug("Task %s does not exist under %s", task_id, self._root)
        return None

    # ---- record I/O ----

    def read(self, task_id: str, status: TaskStatus) -> Task:
        path = self.record_path(task_id, status)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            raise NotFound(task_id, self.status_dir(status)) from None
        return decode(data, task_id=task_id)

    def write(self, task: Task, status: TaskStatus) -> Path:
        """Rewrite the record of an existing task directory atomically."""
        directory = self.task_dir(task.id, status)
        if not directory.is_dir():
            raise NotFound(task.id, self.status_dir(status))
        path = self.record_path(task.id, status)
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            tmp.write_bytes(encode(task))
            os.replace(tmp, path)
        except Exception:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise
        logger.debug("Wrote task %s to %s", task.id, path)
        return path

    def create(self, task: Task) -> TaskLocation:
        """
        Create the directory and record of a brand-new task under its status root.

        Raises AlreadyExists if the id is present under any status root. Ids are
        second-resolution, so a collision means "try again shortly".
        """
        existing = self.locate(task.id)
        if existing is not None:
            raise AlreadyExists(task.id, existing.directory)

        directory = self.task_dir(task.id, task.status)
        directory.parent.mkdir(parents=True, exist_ok=True)
        try:
            directory.mkdir()
        except FileExistsError:
            raise AlreadyExists(task.id, directory) from None

        try:
            self.write(task, task.status)
        except Exception:
            # Do not leave an empty task directory behind.
            with contextlib.suppress(OSError):
                directory.rmdir()
            raise
        logger.info("Created task %s under %s", task.id, task.status.value)
        return self._location(task.id, task.status)

    def move(self, task_id: str, from_status: TaskStatus, to_status: TaskStatus) -> TaskLocation:
        """
        Rename a task directory from one status root to another.

        The destination is never overwritten: AlreadyExists is raised and the
        source stays where it was. Other OS errors propagate unchanged.
        """
        if from_status == to_status:
            return self._location(task_id, to_status)

        src = self.task_dir(task_id, from_status)
        dst = self.task_dir(task_id, to_status)
        if not src.is_dir():
            raise NotFound(task_id, self.status_dir(from_status))
        if dst.exists():
            raise AlreadyExists(task_id, dst)

        dst.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.rename(src, dst)
        except OSError as e:
            if e.errno in (errno.EEXIST, errno.ENOTEMPTY):
                raise AlreadyExists(task_id, dst) from e
            raise

        logger.info("Moved task %s from %s to %s", task_id, from_status.value, to_status.value)
        return self._location(task_id, to_status)
