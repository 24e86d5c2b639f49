# src/gila/tasks/task_ids.py

"""
Task id helpers.

Ids have the form `YYYYMMDD_HHMMSS_<owner>`: the UTC creation time to the
second plus the owner token. They sort lexically by creation time and are
unique as long as one owner does not create two tasks within one second.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from .task_models import utc_now

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"^(\d{8}_\d{6})_([A-Za-z0-9][A-Za-z0-9._-]*)$")
_OWNER_STRIP_RE = re.compile(r"[^A-Za-z0-9._-]+")

ID_TIME_FORMAT = "%Y%m%d_%H%M%S"


def owner_token(raw: str | None) -> str:
    """Reduce a user name to a token that is safe inside an id and a path."""
    token = _OWNER_STRIP_RE.sub("", (raw or "").strip())
    token = token.lstrip("._-")
    return token or "unknown"


def new_task_id(owner: str, now: datetime | None = None) -> str:
    if now is None:
        now = utc_now()
    stamp = now.astimezone(timezone.utc).strftime(ID_TIME_FORMAT)
    return f"{stamp}_{owner_token(owner)}"


def is_valid_task_id(value: str | None) -> bool:
    if not value:
        return False
    m = _ID_RE.match(value)
    if not m:
        return False
    try:
        datetime.strptime(m.group(1), ID_TIME_FORMAT)
    except ValueError:
        logger.debug("Task id %r has an impossible date/time part", value)
        return False
    return True
