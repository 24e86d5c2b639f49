# src/gila/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Declaration order is significant: status roots are scanned and searched
    in this order. Each value is also the name of its status directory.
    """

    TODO = "todo"
    WAITING = "waiting"
    DONE = "done"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, raw: str) -> TaskStatus | None:
        try:
            return cls(raw.strip())
        except ValueError:
            return None


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, raw: str) -> TaskPriority | None:
        try:
            return cls(raw.strip())
        except ValueError:
            return None


_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds (the record resolution)."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(raw: str) -> datetime:
    """Parse `YYYY-MM-DDTHH:MM:SSZ`; raises ValueError on anything else."""
    return datetime.strptime(raw.strip(), TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


@dataclass(slots=True)
class Task:
    """
    One task record.

    `id` doubles as the task directory and file name, so it never changes.
    `extra_lines` holds header lines the codec did not recognize; they are
    written back verbatim so operator-added metadata survives a rewrite.
    """

    id: str
    title: str
    status: TaskStatus
    priority: TaskPriority
    priority_value: int
    owner: str
    created: datetime

    completed: datetime | None = None
    tags: list[str] = field(default_factory=list)
    waiting_on: list[str] = field(default_factory=list)
    description: str = ""
    extra_lines: list[str] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in (TaskStatus.DONE, TaskStatus.CANCELLED)
