# src/gila/tasks/task_validation.py

"""
Task validation.

The outcome is four-way rather than a boolean: a record that breaks a hard
invariant must stop processing, while status drift (the waiting status and
the waiting_on list disagreeing) is reported as a correction the caller can
apply on its own.
"""

from __future__ import annotations

from dataclasses import dataclass

from .task_codec import LIST_KEYS, MARKER, SCALAR_KEYS, has_control_chars, header_key
from .task_ids import is_valid_task_id
from .task_models import Task, TaskPriority, TaskStatus


@dataclass(frozen=True, slots=True)
class Valid:
    pass


@dataclass(frozen=True, slots=True)
class Invalid:
    reason: str


@dataclass(frozen=True, slots=True)
class NeedsTransitionToWaiting:
    pass


@dataclass(frozen=True, slots=True)
class NeedsTransitionFromWaiting:
    # Status implied by the directory the record sits in.
    prior_status: TaskStatus


ValidationOutcome = Valid | Invalid | NeedsTransitionToWaiting | NeedsTransitionFromWaiting

_RECOGNIZED_KEYS = SCALAR_KEYS + LIST_KEYS


def _check_text(name: str, value: object) -> str | None:
    if not isinstance(value, str) or not value:
        return f"Task {name} cannot be empty"
    if "\r" in value or "\n" in value:
        return f"Task {name} cannot contain '\\r' or '\\n'"
    if value != value.strip():
        return f"Task {name} cannot start or end with whitespace"
    return None


def _check_items(name: str, items: list[str], *, ids: bool) -> str | None:
    seen: set[str] = set()
    for item in items:
        if not item:
            return f"Task {name} item cannot be empty"
        if has_control_chars(item):
            return f"Task {name} item '{item!r}' contains a control character"
        if item != item.strip():
            return f"Task {name} item '{item}' cannot start or end with whitespace"
        if ids and not is_valid_task_id(item):
            return f"Task {name} item '{item}' is not a valid task id"
        if item in seen:
            return f"Task {name} item '{item}' is listed twice"
        seen.add(item)
    return None


def _hard_failure(task: Task) -> str | None:
    if not is_valid_task_id(task.id):
        return f"Task id '{task.id}' is not of the form YYYYMMDD_HHMMSS_owner"

    problem = _check_text("title", task.title) or _check_text("owner", task.owner)
    if problem:
        return problem

    if not isinstance(task.status, TaskStatus):
        return f"Unknown status '{task.status}'"
    if not isinstance(task.priority, TaskPriority):
        return f"Unknown priority '{task.priority}'"
    if isinstance(task.priority_value, bool) or not isinstance(task.priority_value, int):
        return "Task priority_value must be an integer"
    if not 0 <= task.priority_value <= 255:
        return f"Task priority_value {task.priority_value} is outside 0-255"

    problem = _check_items("tags", task.tags, ids=False) or _check_items("waiting_on", task.waiting_on, ids=True)
    if problem:
        return problem

    for line in task.extra_lines:
        if "\n" in line or line == MARKER:
            return f"Extra header line {line!r} would break the header"
        head = header_key(line)
        if head in _RECOGNIZED_KEYS:
            return f"Extra header line {line!r} shadows the '{head}' field"

    if task.status == TaskStatus.DONE and task.completed is None:
        return "Task cannot be in done state without a completed date"
    if task.status != TaskStatus.DONE and task.completed is not None:
        return f"Task cannot be in {task.status.value} state with a completed date"
    return None


def validate(task: Task, *, location: TaskStatus | None = None) -> ValidationOutcome:
    """
    Check `task` and classify the result.

    `location` is the status directory the record was found in; it becomes the
    fallback target when a waiting task has nothing left to wait on.
    """
    reason = _hard_failure(task)
    if reason is not None:
        return Invalid(reason)

    if task.status != TaskStatus.WAITING and task.waiting_on:
        return NeedsTransitionToWaiting()

    if task.status == TaskStatus.WAITING and not task.waiting_on:
        prior = location if location not in (None, TaskStatus.WAITING) else TaskStatus.TODO
        return NeedsTransitionFromWaiting(prior)

    return Valid()
