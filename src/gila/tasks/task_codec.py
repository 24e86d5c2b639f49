# src/gila/tasks/task_codec.py

"""
Record codec.

A record is a header bounded by `---` marker lines followed by a free-text
body:

    ---
    title: Write the report
    status: waiting
    priority: high
    priority_value: 50
    owner: alice
    created: 2025-01-07T12:00:00Z
    waiting_on:
    - "[[20250107_110000_alice]]"
    tags:
    - work
    reviewer: bob
    ---
    Body text.

Header lines that are not recognized keys are kept verbatim in
`Task.extra_lines` and emitted after the recognized fields.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime

from .task_errors import InvalidRecord, MalformedRecord
from .task_models import Task, TaskPriority, TaskStatus, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

MARKER = "---"
ITEM_PREFIX = "- "

SCALAR_KEYS = ("title", "status", "priority", "priority_value", "owner", "created", "completed")
LIST_KEYS = ("waiting_on", "tags")
REQUIRED_KEYS = ("title", "status", "priority", "priority_value", "owner", "created")

_KEY_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)[ \t]*:(.*)$")
_LINK_RE = re.compile(r'^"?\[\[(.*)\]\]"?$')


def has_control_chars(value: str) -> bool:
    return any(ord(c) < 0x20 or ord(c) == 0x7F for c in value)


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def header_key(line: str) -> str | None:
    """Key name of a `key: value` header line, or None for free-form lines."""
    m = _KEY_RE.match(line)
    return m.group(1) if m else None


def unwrap_task_link(item: str) -> str:
    """`"[[id]]"`, `[[id]]` and a bare `id` all name the same task."""
    m = _LINK_RE.match(item.strip())
    return m.group(1).strip() if m else item.strip()


def wrap_task_link(task_id: str) -> str:
    return f'"[[{task_id}]]"'


def _split_lines(text: str) -> list[str]:
    # Only '\n' delimits lines; a trailing '\r' on header lines is tolerated.
    return text.split("\n")


def decode(data: bytes | str, *, task_id: str = "") -> Task:
    """
    Parse record bytes into a Task.

    Raises MalformedRecord for structural problems and InvalidRecord for
    values outside their domain. Unknown keys never fail.
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedRecord(f"Record is not valid UTF-8: {e}") from e
    else:
        text = data

    lines = _split_lines(text)
    if not lines or lines[0].rstrip("\r") != MARKER:
        raise MalformedRecord(f"Record does not start with '{MARKER}'", line=1)

    scalars: dict[str, str] = {}
    lists: dict[str, list[str]] = {}
    extra_lines: list[str] = []

    idx = 1
    closed = False
    while idx < len(lines):
        line = lines[idx].rstrip("\r")
        lineno = idx + 1

        if line == MARKER:
            closed = True
            idx += 1
            break

        m = _KEY_RE.match(line)
        key = m.group(1) if m else None

        if key in SCALAR_KEYS:
            if key in scalars:
                raise MalformedRecord(f"Parameter '{key}' is not unique", line=lineno)
            value = m.group(2).strip()  # type: ignore[union-attr]
            if not value:
                raise MalformedRecord(f"Missing value for '{key}'", line=lineno)
            scalars[key] = value
            idx += 1
            continue

        if key in LIST_KEYS:
            if key in lists:
                raise MalformedRecord(f"Parameter '{key}' is not unique", line=lineno)
            if m.group(2).strip():  # type: ignore[union-attr]
                raise MalformedRecord(f"Unexpected data after list key '{key}'", line=lineno)
            # A bare key with no items reads as an empty list; encode omits the key.
            items: list[str] = []
            idx += 1
            while idx < len(lines) and lines[idx].rstrip("\r").startswith(ITEM_PREFIX):
                item = lines[idx].rstrip("\r")[len(ITEM_PREFIX):].strip()
                if not item:
                    raise MalformedRecord(f"Empty item in list '{key}'", line=idx + 1)
                if has_control_chars(item):
                    raise MalformedRecord(f"Item in list '{key}' contains a control character", line=idx + 1)
                items.append(item)
                idx += 1
            lists[key] = items
            continue

        extra_lines.append(line)
        idx += 1

    if not closed:
        raise MalformedRecord("Failed to find end of header", line=len(lines))

    for key in REQUIRED_KEYS:
        if key not in scalars:
            raise MalformedRecord(f"Parameter '{key}' is missing")

    body = "\n".join(lines[idx:])
    if body.endswith("\n"):
        body = body[:-1]

    return Task(
        id=task_id,
        title=scalars["title"],
        status=_decode_status(scalars["status"]),
        priority=_decode_priority(scalars["priority"]),
        priority_value=_decode_priority_value(scalars["priority_value"]),
        owner=scalars["owner"],
        created=_decode_timestamp("created", scalars["created"]),
        completed=_decode_timestamp("completed", scalars["completed"]) if "completed" in scalars else None,
        tags=_dedupe(lists.get("tags", [])),
        waiting_on=_dedupe(unwrap_task_link(i) for i in lists.get("waiting_on", [])),
        description=body,
        extra_lines=extra_lines,
    )


def _decode_status(raw: str) -> TaskStatus:
    status = TaskStatus.parse(raw)
    if status is None:
        raise InvalidRecord(f"Unknown status '{raw}'", {"field": "status", "value": raw})
    return status


def _decode_priority(raw: str) -> TaskPriority:
    priority = TaskPriority.parse(raw)
    if priority is None:
        raise InvalidRecord(f"Unknown priority '{raw}'", {"field": "priority", "value": raw})
    return priority


def _decode_priority_value(raw: str) -> int:
    try:
        value = int(raw, 10)
    except ValueError:
        raise InvalidRecord(
            f"priority_value '{raw}' is not an integer", {"field": "priority_value", "value": raw}
        ) from None
    if not 0 <= value <= 255:
        raise InvalidRecord(
            f"priority_value {value} is outside 0-255", {"field": "priority_value", "value": raw}
        )
    return value


def _decode_timestamp(name: str, raw: str) -> datetime:
    try:
        return parse_timestamp(raw)
    except ValueError:
        raise InvalidRecord(
            f"'{name}' must look like YYYY-MM-DDTHH:MM:SSZ, got '{raw}'", {"field": name, "value": raw}
        ) from None


def encode(task: Task) -> bytes:
    # A leading "- " extra line placed after a list field would be read back as an item.
    extra_first = bool(task.extra_lines) and task.extra_lines[0].startswith(ITEM_PREFIX)

    out: list[str] = [MARKER]
    if extra_first:
        out.extend(task.extra_lines)
    out += [
        f"title: {task.title}",
        f"status: {task.status.value}",
        f"priority: {task.priority.value}",
        f"priority_value: {task.priority_value}",
        f"owner: {task.owner}",
        f"created: {format_timestamp(task.created)}",
    ]
    if task.completed is not None:
        out.append(f"completed: {format_timestamp(task.completed)}")
    if task.waiting_on:
        out.append("waiting_on:")
        out.extend(f"{ITEM_PREFIX}{wrap_task_link(t)}" for t in task.waiting_on)
    if task.tags:
        out.append("tags:")
        out.extend(f"{ITEM_PREFIX}{t}" for t in task.tags)
    if not extra_first:
        out.extend(task.extra_lines)
    out.append(MARKER)

    text = "\n".join(out) + "\n"
    if task.description:
        text += task.description + "\n"
    return text.encode("utf-8")
