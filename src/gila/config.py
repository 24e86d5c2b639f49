# src/gila/config.py

"""Settings loaded from environment variables (+ optional .env).

- One Settings object for the whole app.
- Every variable has a usable default; nothing is required to run.
- Components take the settings object as an argument so tests can pass their own.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .tasks.task_models import TaskPriority

ENV_PREFIX = "GILA"

logger = logging.getLogger(__name__)

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer), using %d", name, raw, default)
        return default


def _env_path(name: str, default: Path | None) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_priority(name: str, default: TaskPriority) -> TaskPriority:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    parsed = TaskPriority.parse(raw.lower())
    if parsed is None:
        logger.warning("Ignoring %s=%r (unknown priority), using %s", name, raw, default.value)
        return default
    return parsed


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_dir: Path | None

    # ---- Project layout ----
    dir_name: str
    record_extension: str

    # ---- Environment collaborators ----
    user: str
    editor: str

    # ---- New task defaults ----
    default_priority: TaskPriority
    default_priority_value: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "gila") or "gila"
        log_level = _env(_k("LOG_LEVEL"), "WARNING")
        log_dir = _env_path(_k("LOG_DIR"), None)

        dir_name = _env(_k("DIR_NAME"), ".gila").strip() or ".gila"
        record_extension = _env(_k("RECORD_EXTENSION"), "md").strip().lstrip(".") or "md"

        user = (_first_env(_k("USER"), "USER", "USERNAME", default="unknown") or "unknown").strip()
        editor = (_first_env(_k("EDITOR"), "VISUAL", "EDITOR", default="vim") or "vim").strip()

        default_priority = _env_priority(_k("DEFAULT_PRIORITY"), TaskPriority.MEDIUM)
        default_priority_value = _env_int(_k("DEFAULT_PRIORITY_VALUE"), 50)
        if not 0 <= default_priority_value <= 255:
            logger.warning("Clamping %s=%d into 0-255", _k("DEFAULT_PRIORITY_VALUE"), default_priority_value)
            default_priority_value = min(255, max(0, default_priority_value))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_dir=log_dir,
            dir_name=dir_name,
            record_extension=record_extension,
            user=user,
            editor=editor,
            default_priority=default_priority,
            default_priority_value=default_priority_value,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
