# src/gila/tasks/task_errors.py

"""
Exception hierarchy for the task subsystem.

Scan-time errors (MalformedRecord, InvalidRecord) are reported and skipped by the
reconciliation pass. Operation-time errors (IllegalTransition, AlreadyExists,
NotFound) abort the single operation that raised them.
"""

from __future__ import annotations

from typing import Any


class TaskError(Exception):
    """Base class for every error raised by the task subsystem."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class MalformedRecord(TaskError):
    """The record bytes could not be parsed (markers, required keys, list syntax)."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        details = {"line": line} if line is not None else None
        super().__init__(message if line is None else f"line {line}: {message}", details)
        self.line = line


class InvalidRecord(TaskError):
    """The record parses but one of its fields violates the task invariants."""


class IllegalTransition(TaskError):
    def __init__(self, task_id: str, from_status: str, to_status: str, reason: str) -> None:
        super().__init__(
            f"Task '{task_id}' cannot move from '{from_status}' to '{to_status}': {reason}",
            {"task_id": task_id, "from": from_status, "to": to_status},
        )


class AlreadyExists(TaskError):
    def __init__(self, task_id: str, path: Any = None) -> None:
        where = f" at {path}" if path is not None else ""
        super().__init__(f"Task '{task_id}' already exists{where}", {"task_id": task_id, "path": str(path)})


class NotFound(TaskError):
    def __init__(self, task_id: str, where: Any = None) -> None:
        suffix = f" in {where}" if where is not None else ""
        super().__init__(f"Task '{task_id}' does not exist{suffix}", {"task_id": task_id})


class ProjectNotFound(TaskError):
    def __init__(self, start: Any, dir_name: str) -> None:
        super().__init__(
            f"Failed to find a '{dir_name}' directory in '{start}' or its parents. Run 'gila init' first.",
            {"start": str(start), "dir_name": dir_name},
        )
