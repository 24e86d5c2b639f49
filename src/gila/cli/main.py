# src/gila/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, dispatches one command and maps errors
to exit codes:
- 0 on success
- 1 on a task error (bad record, illegal transition, missing task, ...)
- 2 on anything unexpected
"""

from __future__ import annotations

import logging
import sys

from ..config import get_settings
from ..logging_setup import setup_logging
from ..tasks.task_errors import TaskError
from .bootstrap import create_initial_state
from .commands import registry

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TASK_ERROR = 1
EXIT_UNEXPECTED = 2


def _split_global_flags(argv: list[str]) -> tuple[list[str], bool]:
    verbose = "--verbose" in argv
    return [a for a in argv if a != "--verbose"], verbose


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    args, verbose = _split_global_flags(list(sys.argv[1:] if argv is None else argv))

    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = getattr(logging, level_name, logging.WARNING)
    if verbose:
        console_level = min(console_level, logging.INFO)
    setup_logging(log_dir=getattr(settings, "log_dir", None), console_level=console_level)

    logger.info("Starting %s %s", getattr(settings, "app_name", "gila"), " ".join(args))

    state = create_initial_state(settings=settings, verbose=verbose)

    try:
        output = registry.handle(state, args)
    except TaskError as e:
        logger.debug("Command failed: %s", e.to_dict())
        print(f"error: {e}", file=sys.stderr)
        return EXIT_TASK_ERROR
    except Exception:
        logger.exception("Unexpected error while running %s", args[:1])
        return EXIT_UNEXPECTED

    if output:
        print(output)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
