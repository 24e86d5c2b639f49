# src/gila/cli/bootstrap.py

"""
CLI bootstrap helpers.

Composition root: loads settings once and wires them into AppState. The task
store itself is resolved lazily by AppState, because `init` runs before a
project exists.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import get_settings
from ..core.state import AppState

logger = logging.getLogger(__name__)


def create_initial_state(*, settings=None, cwd: str | Path | None = None, verbose: bool = False) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings(); tests pass their own.
    """
    if settings is None:
        settings = get_settings()

    state = AppState(settings=settings, cwd=Path(cwd) if cwd is not None else Path.cwd(), verbose=verbose)
    logger.debug("State ready cwd=%s user=%s", state.cwd, getattr(settings, "user", "?"))
    return state
