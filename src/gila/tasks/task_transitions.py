# src/gila/tasks/task_transitions.py

"""
Status state machine.

    todo    <-> waiting
    todo    ->  done | cancelled
    waiting ->  done | cancelled

done and cancelled are terminal. `transition` only mutates the Task; moving
the record between status directories is the store's job.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .task_errors import IllegalTransition
from .task_models import Task, TaskStatus, utc_now

logger = logging.getLogger(__name__)

_TERMINAL = frozenset({TaskStatus.DONE, TaskStatus.CANCELLED})

_ALLOWED: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.TODO: frozenset({TaskStatus.TODO, TaskStatus.WAITING, TaskStatus.DONE, TaskStatus.CANCELLED}),
    TaskStatus.WAITING: frozenset({TaskStatus.TODO, TaskStatus.WAITING, TaskStatus.DONE, TaskStatus.CANCELLED}),
    TaskStatus.DONE: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


def is_terminal(status: TaskStatus) -> bool:
    return status in _TERMINAL


def allowed_targets(status: TaskStatus) -> frozenset[TaskStatus]:
    return _ALLOWED[status]


def transition(task: Task, target: TaskStatus, *, now: datetime | None = None) -> Task:
    """
    Move `task` to `target` in place and return it.

    Side effects:
    - -> done stamps `completed` (UTC, whole seconds)
    - -> anything but waiting clears `waiting_on`
    - -> todo / cancelled leave `completed` unset

    Raises IllegalTransition when leaving a terminal status or when entering
    waiting with an empty waiting_on list.
    """
    current = task.status
    if target not in allowed_targets(current):
        raise IllegalTransition(task.id, current.value, target.value, f"'{current.value}' is a terminal status")

    if target == TaskStatus.WAITING:
        if not task.waiting_on:
            raise IllegalTransition(task.id, current.value, target.value, "waiting_on is empty")
        task.status = TaskStatus.WAITING
        task.completed = None
        return task

    if task.waiting_on:
        logger.debug("Task %s: dropping waiting_on %s on the way to %s", task.id, task.waiting_on, target.value)
    task.waiting_on = []
    task.status = target

    if target == TaskStatus.DONE:
        stamp = now if now is not None else utc_now()
        task.completed = stamp.replace(microsecond=0)
    else:
        task.completed = None

    logger.debug("Task %s: %s -> %s", task.id, current.value, target.value)
    return task
