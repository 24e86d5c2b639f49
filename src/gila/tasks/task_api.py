# src/gila/tasks/task_api.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from .task_errors import AlreadyExists, InvalidRecord, NotFound, TaskError
from .task_ids import new_task_id, owner_token
from .task_models import Task, TaskPriority, TaskStatus, utc_now
from .task_store import TaskStore
from .task_sync import Correction, ScanResult, SkippedRecord, reconcile
from .task_transitions import transition
from .task_validation import Invalid, validate

logger = logging.getLogger(__name__)

MatchOp = Literal["and", "or"]


@dataclass(frozen=True, slots=True)
class MatchFilter:
    op: MatchOp
    values: tuple[str, ...]

    def matches(self, items: list[str]) -> bool:
        if not self.values:
            return True
        have = set(items)
        if self.op == "and":
            return all(v in have for v in self.values)
        return any(v in have for v in self.values)


def parse_match(text: str) -> MatchFilter:
    """
    Parse `[and:|or:]a,b,c`.

    Without a prefix any listed value matches (`or`).
    """
    op: MatchOp = "or"
    raw = text.strip()
    head, sep, rest = raw.partition(":")
    if sep and head.strip().lower() in ("and", "or"):
        op = "and" if head.strip().lower() == "and" else "or"
        raw = rest
    values = tuple(v.strip() for v in raw.split(",") if v.strip())
    return MatchFilter(op=op, values=values)


@dataclass(frozen=True, slots=True)
class TaskQuery:
    """Every criterion that is set must match; an empty query matches all tasks."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    owner: str | None = None
    tags: MatchFilter | None = None
    waiting_on: MatchFilter | None = None

    def matches(self, task: Task) -> bool:
        if self.status is not None and task.status != self.status:
            return False
        if self.priority is not None and task.priority != self.priority:
            return False
        if self.owner is not None and task.owner != self.owner:
            return False
        if self.tags is not None and not self.tags.matches(task.tags):
            return False
        if self.waiting_on is not None and not self.waiting_on.matches(task.waiting_on):
            return False
        return True


@dataclass(slots=True)
class OperationResult:
    task: Task
    corrections: list[Correction] = field(default_factory=list)


@dataclass(slots=True)
class FindResult:
    tasks: list[Task] = field(default_factory=list)
    corrections: list[Correction] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)


@dataclass(slots=True)
class SyncResult:
    tasks: list[Task] = field(default_factory=list)
    corrections: list[Correction] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)


def add_task(
    store: TaskStore,
    *,
    title: str,
    owner: str,
    priority: TaskPriority = TaskPriority.MEDIUM,
    priority_value: int = 50,
    description: str = "",
    tags: list[str] | None = None,
    waiting_on: list[str] | None = None,
    now: datetime | None = None,
) -> Task:
    """
    Create a new task record.

    The task starts as `waiting` when it waits on other tasks, else `todo`.
    Raises InvalidRecord before touching the disk and AlreadyExists when the
    same owner already created a task within this second.
    """
    created = (now or utc_now()).replace(microsecond=0)
    token = owner_token(owner)
    waiting = list(waiting_on or [])

    task = Task(
        id=new_task_id(token, created),
        title=title.strip(),
        status=TaskStatus.WAITING if waiting else TaskStatus.TODO,
        priority=priority,
        priority_value=priority_value,
        owner=token,
        created=created,
        tags=list(tags or []),
        waiting_on=waiting,
        description=description,
    )

    outcome = validate(task)
    if isinstance(outcome, Invalid):
        raise InvalidRecord(outcome.reason, {"task_id": task.id})

    store.create(task)
    logger.info("Added task %s (%s): %s", task.id, task.status.value, task.title)
    return task


def _scanned_task(scan: ScanResult, store: TaskStore, task_id: str) -> Task:
    for skipped in scan.skipped:
        if skipped.task_id == task_id:
            raise InvalidRecord(
                f"Task '{task_id}' in {skipped.status.value} was skipped: {skipped.reason}",
                {"task_id": task_id, "status": skipped.status.value},
            )
    task = scan.get(task_id)
    if task is None:
        raise NotFound(task_id, store.root)
    return task


def _finish(store: TaskStore, task_id: str, target: TaskStatus, now: datetime | None) -> OperationResult:
    scan = reconcile(store, now=now)
    task = _scanned_task(scan, store, task_id)
    # Reconciled tasks sit in the directory named by their status.
    current = task.status

    transition(task, target, now=now)
    # Nothing is written until the destination is known to be free.
    dest = store.task_dir(task_id, target)
    if dest.exists():
        raise AlreadyExists(task_id, dest)

    store.write(task, current)
    store.move(task_id, current, target)

    logger.info("Task %s: %s -> %s", task_id, current.value, target.value)
    return OperationResult(task=task, corrections=scan.corrections)


def complete_task(store: TaskStore, task_id: str, *, now: datetime | None = None) -> OperationResult:
    return _finish(store, task_id, TaskStatus.DONE, now)


def cancel_task(store: TaskStore, task_id: str, *, now: datetime | None = None) -> OperationResult:
    return _finish(store, task_id, TaskStatus.CANCELLED, now)


def find_tasks(store: TaskStore, query: TaskQuery | None = None, *, now: datetime | None = None) -> FindResult:
    query = query or TaskQuery()
    scan = reconcile(store, now=now)
    tasks = sorted((t for t in scan.tasks if query.matches(t)), key=lambda t: t.id)
    logger.debug("find: %d of %d tasks match %s", len(tasks), len(scan.tasks), query)
    return FindResult(tasks=tasks, corrections=scan.corrections, skipped=scan.skipped)


def pick_tasks(store: TaskStore, query: TaskQuery | None = None, *, now: datetime | None = None) -> FindResult:
    """
    Todo tasks in the order they should be worked on.

    Ordering: priority (urgent first), priority_value (high first), then the
    oldest task first.
    """
    base = query or TaskQuery()
    todo_query = TaskQuery(
        status=TaskStatus.TODO,
        priority=base.priority,
        owner=base.owner,
        tags=base.tags,
        waiting_on=base.waiting_on,
    )
    found = find_tasks(store, todo_query, now=now)
    found.tasks.sort(key=lambda t: (-t.priority.rank, -t.priority_value, t.created, t.id))
    return found


def _prune_waiting_on(task: Task, finished: set[str], known: set[str]) -> list[str]:
    kept: list[str] = []
    for ref in task.waiting_on:
        if ref in finished:
            logger.info("Task %s no longer waits on %s (finished)", task.id, ref)
            continue
        if ref not in known:
            logger.warning("Task %s waits on unknown task %s", task.id, ref)
        kept.append(ref)
    return kept


def sync_tasks(store: TaskStore, *, now: datetime | None = None) -> SyncResult:
    """
    Reconcile, then release waiting tasks whose dependencies are finished.

    A reference to a done or cancelled task is dropped from `waiting_on`. A task
    with nothing left to wait on goes back to `todo`. References to tasks that
    cannot be found are kept.
    """
    scan: ScanResult = reconcile(store, now=now)
    result = SyncResult(corrections=list(scan.corrections), skipped=list(scan.skipped))

    finished = {t.id for t in scan.tasks if t.is_terminal}
    known = {t.id for t in scan.tasks} | {s.task_id for s in scan.skipped}

    for task in scan.tasks:
        if task.status != TaskStatus.WAITING:
            result.tasks.append(task)
            continue

        kept = _prune_waiting_on(task, finished, known)
        if kept == task.waiting_on:
            result.tasks.append(task)
            continue

        try:
            if kept:
                task.waiting_on = kept
                store.write(task, TaskStatus.WAITING)
                reason = "finished dependencies removed from waiting_on"
                target = TaskStatus.WAITING
            else:
                transition(task, TaskStatus.TODO, now=now)
                store.write(task, TaskStatus.WAITING)
                store.move(task.id, TaskStatus.WAITING, TaskStatus.TODO)
                reason = "all dependencies finished"
                target = TaskStatus.TODO
        except (TaskError, OSError) as e:
            logger.warning("Failed to sync task %s: %s", task.id, e)
            result.skipped.append(SkippedRecord(task_id=task.id, status=TaskStatus.WAITING, reason=str(e)))
            continue

        correction = Correction(task.id, TaskStatus.WAITING, target, reason)
        logger.info("Corrected task %s: waiting -> %s (%s)", task.id, target.value, reason)
        result.corrections.append(correction)
        result.tasks.append(task)

    return result
