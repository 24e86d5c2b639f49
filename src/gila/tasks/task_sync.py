# src/gila/tasks/task_sync.py

"""
Reconciliation pass.

The status field inside a record is the truth; the status directory the
record sits in is a cache of it. `reconcile` walks every status root, decodes
and validates each record, and repairs the cache (and the soft waiting/waiting_on
drift) before anyone reads the results.

Guarantees:
- listings are taken before anything moves, so a corrected task is never
  visited twice in one pass
- a record that cannot be decoded or validated is reported, never moved
- a second pass with no external edits in between makes no corrections
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .task_errors import AlreadyExists, IllegalTransition, InvalidRecord, MalformedRecord, NotFound
from .task_models import Task, TaskStatus
from .task_store import TaskStore
from .task_transitions import transition
from .task_validation import Invalid, NeedsTransitionFromWaiting, NeedsTransitionToWaiting, validate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Correction:
    task_id: str
    # Status directory the record was found in.
    from_status: TaskStatus
    to_status: TaskStatus
    reason: str


@dataclass(frozen=True, slots=True)
class SkippedRecord:
    task_id: str
    status: TaskStatus
    reason: str


@dataclass(slots=True)
class ScanResult:
    tasks: list[Task] = field(default_factory=list)
    corrections: list[Correction] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)

    def get(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


def _skip(result: ScanResult, task_id: str, status: TaskStatus, reason: str) -> None:
    logger.warning("Skipping task %s in %s: %s", task_id, status.value, reason)
    result.skipped.append(SkippedRecord(task_id=task_id, status=status, reason=reason))


def _record(result: ScanResult, correction: Correction) -> None:
    logger.info(
        "Corrected task %s: %s -> %s (%s)",
        correction.task_id,
        correction.from_status.value,
        correction.to_status.value,
        correction.reason,
    )
    result.corrections.append(correction)


def _apply(
    store: TaskStore,
    task: Task,
    root: TaskStatus,
    target: TaskStatus,
    now: datetime | None,
) -> None:
    """Transition, rewrite in place, then relocate if the directory is now stale."""
    transition(task, target, now=now)
    store.write(task, root)
    if target != root:
        store.move(task.id, root, target)


def _reconcile_one(
    store: TaskStore,
    task: Task,
    root: TaskStatus,
    now: datetime | None,
) -> Correction | str | None:
    """Returns the correction made, a skip reason, or None when nothing was needed."""
    outcome = validate(task, location=root)

    if isinstance(outcome, Invalid):
        return outcome.reason

    if isinstance(outcome, NeedsTransitionToWaiting):
        declared = task.status
        _apply(store, task, root, TaskStatus.WAITING, now)
        return Correction(
            task.id, root, TaskStatus.WAITING, f"status '{declared.value}' with a non-empty waiting_on"
        )

    if isinstance(outcome, NeedsTransitionFromWaiting):
        _apply(store, task, root, outcome.prior_status, now)
        return Correction(task.id, root, outcome.prior_status, "status 'waiting' with an empty waiting_on")

    if task.status != root:
        store.move(task.id, root, task.status)
        return Correction(task.id, root, task.status, f"record says '{task.status.value}'")

    return None


def reconcile(store: TaskStore, *, now: datetime | None = None) -> ScanResult:
    """
    Scan every status root and repair drift.

    Returns the valid tasks (as they are after correction) together with the
    ordered corrections and the skipped records.
    """
    listing = {status: store.list_ids(status) for status in TaskStatus}

    roots_by_id: dict[str, list[TaskStatus]] = {}
    for status, ids in listing.items():
        for task_id in ids:
            roots_by_id.setdefault(task_id, []).append(status)

    result = ScanResult()
    for root in TaskStatus:
        for task_id in listing[root]:
            roots = roots_by_id[task_id]
            if len(roots) > 1:
                names = ", ".join(s.value for s in roots)
                _skip(result, task_id, root, f"present in several status directories ({names})")
                continue

            try:
                task = store.read(task_id, root)
            except (MalformedRecord, InvalidRecord, NotFound) as e:
                _skip(result, task_id, root, str(e))
                continue
            except OSError as e:
                _skip(result, task_id, root, f"unreadable record: {e}")
                continue

            try:
                outcome = _reconcile_one(store, task, root, now)
            except (IllegalTransition, AlreadyExists, NotFound) as e:
                _skip(result, task_id, root, str(e))
                continue
            except OSError as e:
                _skip(result, task_id, root, f"filesystem error: {e}")
                continue

            if isinstance(outcome, str):
                _skip(result, task_id, root, outcome)
                continue
            if outcome is not None:
                _record(result, outcome)
            result.tasks.append(task)

    logger.debug(
        "Reconciled %s: %d tasks, %d corrections, %d skipped",
        store.root,
        len(result.tasks),
        len(result.corrections),
        len(result.skipped),
    )
    return result
