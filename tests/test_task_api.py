# tests/test_task_api.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gila.tasks import task_api
from gila.tasks.task_api import (
    MatchFilter,
    TaskQuery,
    add_task,
    cancel_task,
    complete_task,
    find_tasks,
    parse_match,
    pick_tasks,
    sync_tasks,
)
from gila.tasks.task_errors import AlreadyExists, IllegalTransition, InvalidRecord, NotFound
from gila.tasks.task_models import TaskPriority, TaskStatus
from gila.tasks.task_store import TaskStore
from gila.tasks.task_sync import ScanResult, reconcile

from .builders import T0, make_task, place_record, task_id

NOW = datetime(2025, 3, 1, 8, 0, 0, tzinfo=timezone.utc)


def test_add_task_creates_todo_record(store: TaskStore) -> None:
    task = add_task(store, title="  Write tests ", owner="Alice Smith", tags=["dev"], now=T0)

    assert task.id == "20250107_120000_AliceSmith"
    assert task.title == "Write tests"
    assert task.status == TaskStatus.TODO
    assert store.read(task.id, TaskStatus.TODO) == task


def test_add_task_with_waiting_on_starts_waiting(store: TaskStore) -> None:
    task = add_task(store, title="Blocked", owner="alice", waiting_on=[task_id(9)], now=T0)
    assert task.status == TaskStatus.WAITING
    assert store.locate(task.id).status == TaskStatus.WAITING


def test_add_task_rejects_invalid_input_before_writing(store: TaskStore) -> None:
    with pytest.raises(InvalidRecord):
        add_task(store, title="ok", owner="alice", priority_value=300, now=T0)
    with pytest.raises(InvalidRecord):
        add_task(store, title="ok", owner="alice", waiting_on=["not-an-id"], now=T0)
    assert store.locate(task_id()) is None


def test_add_task_twice_in_one_second_collides(store: TaskStore) -> None:
    add_task(store, title="first", owner="alice", now=T0)
    with pytest.raises(AlreadyExists):
        add_task(store, title="second", owner="alice", now=T0)


def test_complete_task_moves_to_done(store: TaskStore) -> None:
    store.create(make_task())

    result = complete_task(store, task_id(), now=NOW)

    assert result.task.status == TaskStatus.DONE
    assert result.task.completed == NOW
    assert store.locate(task_id()).status == TaskStatus.DONE
    assert store.read(task_id(), TaskStatus.DONE).completed == NOW


def test_complete_task_reconciles_first(store: TaskStore) -> None:
    # Stale directory: the record already says waiting.
    place_record(store, make_task(status=TaskStatus.WAITING, waiting_on=[task_id(9)]), TaskStatus.TODO)

    result = complete_task(store, task_id(), now=NOW)

    assert [c.to_status for c in result.corrections] == [TaskStatus.WAITING]
    assert result.task.waiting_on == []
    assert store.locate(task_id()).status == TaskStatus.DONE


def test_complete_unknown_task(store: TaskStore) -> None:
    with pytest.raises(NotFound):
        complete_task(store, task_id(42), now=NOW)


def test_complete_twice_is_illegal(store: TaskStore) -> None:
    store.create(make_task())
    complete_task(store, task_id(), now=NOW)
    with pytest.raises(IllegalTransition):
        complete_task(store, task_id(), now=NOW)


def test_complete_refuses_a_record_the_scan_skipped(store: TaskStore) -> None:
    path = place_record(store, make_task(completed=T0, waiting_on=["nope"]), TaskStatus.TODO)
    before = path.read_bytes()

    with pytest.raises(InvalidRecord) as exc:
        complete_task(store, task_id(), now=NOW)

    assert "nope" in str(exc.value)
    assert path.read_bytes() == before
    assert not store.task_dir(task_id(), TaskStatus.DONE).exists()


def test_complete_leaves_duplicate_copies_untouched(store: TaskStore) -> None:
    todo_path = place_record(store, make_task(), TaskStatus.TODO)
    done_path = place_record(store, make_task(status=TaskStatus.DONE), TaskStatus.DONE)
    before = (todo_path.read_bytes(), done_path.read_bytes())

    with pytest.raises(InvalidRecord):
        complete_task(store, task_id(), now=NOW)

    assert (todo_path.read_bytes(), done_path.read_bytes()) == before


def test_cancel_checks_destination_before_writing(store: TaskStore, monkeypatch: pytest.MonkeyPatch) -> None:
    store.create(make_task())
    path = store.record_path(task_id(), TaskStatus.TODO)
    before = path.read_bytes()

    def reconcile_then_occupy(store: TaskStore, *, now=None) -> ScanResult:
        scan = reconcile(store, now=now)
        store.task_dir(task_id(), TaskStatus.CANCELLED).mkdir(parents=True)
        return scan

    monkeypatch.setattr(task_api, "reconcile", reconcile_then_occupy)

    with pytest.raises(AlreadyExists):
        cancel_task(store, task_id(), now=NOW)

    assert path.read_bytes() == before
    assert store.read(task_id(), TaskStatus.TODO).status == TaskStatus.TODO


def test_cancel_task(store: TaskStore) -> None:
    store.create(make_task())
    result = cancel_task(store, task_id(), now=NOW)
    assert result.task.status == TaskStatus.CANCELLED
    assert result.task.completed is None
    assert store.locate(task_id()).status == TaskStatus.CANCELLED


def test_parse_match() -> None:
    assert parse_match("a,b") == MatchFilter("or", ("a", "b"))
    assert parse_match("and:a, b") == MatchFilter("and", ("a", "b"))
    assert parse_match("OR:x") == MatchFilter("or", ("x",))
    assert parse_match("") == MatchFilter("or", ())


def test_match_filter_semantics() -> None:
    assert MatchFilter("and", ("a", "b")).matches(["a", "b", "c"])
    assert not MatchFilter("and", ("a", "b")).matches(["a"])
    assert MatchFilter("or", ("a", "z")).matches(["a"])
    assert not MatchFilter("or", ("z",)).matches(["a"])


def _seed(store: TaskStore) -> None:
    store.create(make_task(1, tags=["work", "q1"], priority=TaskPriority.HIGH))
    store.create(make_task(2, tags=["home"]))
    store.create(make_task(3, owner="bob", tags=["work"]))
    store.create(make_task(4, status=TaskStatus.WAITING, waiting_on=[task_id(1)], tags=["work"]))
    store.create(make_task(5, status=TaskStatus.DONE))


def test_find_with_empty_query_returns_everything_sorted(store: TaskStore) -> None:
    _seed(store)
    found = find_tasks(store, now=NOW)
    assert [t.id for t in found.tasks] == sorted(t.id for t in found.tasks)
    assert len(found.tasks) == 5


def test_find_criteria_are_combined(store: TaskStore) -> None:
    _seed(store)

    by_tags = find_tasks(store, TaskQuery(tags=parse_match("and:work,q1")), now=NOW)
    assert [t.id for t in by_tags.tasks] == [task_id(1)]

    work_todo = find_tasks(store, TaskQuery(status=TaskStatus.TODO, tags=parse_match("work")), now=NOW)
    assert [t.id for t in work_todo.tasks] == [task_id(1), task_id(3, "bob")]

    bobs = find_tasks(store, TaskQuery(owner="bob"), now=NOW)
    assert [t.id for t in bobs.tasks] == [task_id(3, "bob")]

    waiting = find_tasks(store, TaskQuery(waiting_on=parse_match(task_id(1))), now=NOW)
    assert [t.id for t in waiting.tasks] == [task_id(4)]


def test_pick_orders_todo_tasks(store: TaskStore) -> None:
    store.create(make_task(1, priority=TaskPriority.LOW, priority_value=200))
    store.create(make_task(2, priority=TaskPriority.URGENT, priority_value=10))
    store.create(make_task(3, priority=TaskPriority.URGENT, priority_value=90))
    store.create(make_task(4, priority=TaskPriority.URGENT, priority_value=90))
    store.create(make_task(5, status=TaskStatus.DONE, priority=TaskPriority.URGENT))

    picked = pick_tasks(store, now=NOW)

    assert [t.id for t in picked.tasks] == [task_id(3), task_id(4), task_id(2), task_id(1)]


def test_sync_releases_finished_dependencies(store: TaskStore) -> None:
    store.create(make_task(1, status=TaskStatus.DONE))
    store.create(make_task(2, status=TaskStatus.CANCELLED))
    store.create(make_task(3))
    store.create(make_task(4, status=TaskStatus.WAITING, waiting_on=[task_id(1), task_id(2)]))
    store.create(make_task(5, status=TaskStatus.WAITING, waiting_on=[task_id(1), task_id(3)]))
    store.create(make_task(6, status=TaskStatus.WAITING, waiting_on=[task_id(58)]))

    result = sync_tasks(store, now=NOW)

    released = store.read(task_id(4), TaskStatus.TODO)
    assert released.status == TaskStatus.TODO
    assert released.waiting_on == []
    assert not store.task_dir(task_id(4), TaskStatus.WAITING).exists()

    assert store.read(task_id(5), TaskStatus.WAITING).waiting_on == [task_id(3)]
    assert store.read(task_id(6), TaskStatus.WAITING).waiting_on == [task_id(58)]

    assert {(c.task_id, c.to_status) for c in result.corrections} == {
        (task_id(4), TaskStatus.TODO),
        (task_id(5), TaskStatus.WAITING),
    }
    assert sync_tasks(store, now=NOW).corrections == []
