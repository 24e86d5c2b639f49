# tests/test_task_validation.py

from __future__ import annotations

import pytest

from gila.tasks.task_models import TaskStatus
from gila.tasks.task_validation import (
    Invalid,
    NeedsTransitionFromWaiting,
    NeedsTransitionToWaiting,
    Valid,
    validate,
)

from .builders import T0, make_task, task_id


def test_well_formed_tasks_are_valid() -> None:
    assert validate(make_task()) == Valid()
    assert validate(make_task(status=TaskStatus.DONE)) == Valid()
    assert validate(make_task(status=TaskStatus.CANCELLED)) == Valid()
    assert validate(make_task(status=TaskStatus.WAITING, waiting_on=[task_id(9)])) == Valid()


@pytest.mark.parametrize(
    "overrides",
    [
        {"id": "not-an-id"},
        {"id": "20251399_120000_alice"},
        {"title": ""},
        {"title": "two\nlines"},
        {"title": " padded"},
        {"owner": "al\rice"},
        {"priority_value": 256},
        {"priority_value": -1},
        {"priority_value": True},
        {"tags": ["ok", "ok"]},
        {"tags": ["bad\x07"]},
        {"waiting_on": ["nope"]},
        {"completed": T0},
        {"extra_lines": ["status: done"]},
        {"extra_lines": ["---"]},
    ],
)
def test_hard_failures_are_invalid(overrides: dict) -> None:
    outcome = validate(make_task(**overrides))
    assert isinstance(outcome, Invalid)
    assert outcome.reason


def test_done_without_completed_is_invalid() -> None:
    outcome = validate(make_task(status=TaskStatus.DONE, completed=None))
    assert isinstance(outcome, Invalid)
    assert "completed" in outcome.reason


def test_cancelled_with_completed_is_invalid() -> None:
    assert isinstance(validate(make_task(status=TaskStatus.CANCELLED, completed=T0)), Invalid)


def test_todo_with_waiting_on_needs_waiting() -> None:
    assert validate(make_task(waiting_on=[task_id(9)])) == NeedsTransitionToWaiting()


def test_done_with_waiting_on_needs_waiting() -> None:
    # Reported as drift; the state machine then refuses to leave done.
    outcome = validate(make_task(status=TaskStatus.DONE, waiting_on=[task_id(9)]))
    assert outcome == NeedsTransitionToWaiting()


@pytest.mark.parametrize(
    ("location", "expected"),
    [
        (TaskStatus.TODO, TaskStatus.TODO),
        (TaskStatus.WAITING, TaskStatus.TODO),
        (TaskStatus.CANCELLED, TaskStatus.CANCELLED),
        (None, TaskStatus.TODO),
    ],
)
def test_waiting_without_waiting_on_falls_back_to_directory(location, expected) -> None:
    outcome = validate(make_task(status=TaskStatus.WAITING), location=location)
    assert outcome == NeedsTransitionFromWaiting(expected)


def test_hard_failure_wins_over_drift() -> None:
    outcome = validate(make_task(title="", waiting_on=[task_id(9)]))
    assert isinstance(outcome, Invalid)
