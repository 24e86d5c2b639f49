# src/gila/cli/commands.py

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..core.project import init_project
from ..core.state import AppState
from ..tasks.task_api import (
    TaskQuery,
    add_task,
    cancel_task,
    complete_task,
    find_tasks,
    parse_match,
    pick_tasks,
    sync_tasks,
)
from ..tasks.task_models import Task, TaskPriority, TaskStatus
from ..tasks.task_sync import Correction

logger = logging.getLogger(__name__)


class UsageError(ValueError):
    """Bad command line; reported to the user together with the command usage."""


@dataclass(slots=True)
class CommandArgs:
    """`--name=value` options, bare `--flag` switches and positionals."""

    options: dict[str, str] = field(default_factory=dict)
    flags: set[str] = field(default_factory=set)
    positionals: list[str] = field(default_factory=list)

    def get(self, name: str) -> str | None:
        return self.options.get(name)


CommandHandler = Callable[[AppState, CommandArgs], str]


def parse_args(argv: list[str]) -> CommandArgs:
    out = CommandArgs()
    rest_positional = False
    for arg in argv:
        if rest_positional or not arg.startswith("--"):
            out.positionals.append(arg)
            continue
        if arg == "--":
            rest_positional = True
            continue
        name, sep, value = arg[2:].partition("=")
        name = name.strip().lower()
        if not name:
            raise UsageError(f"Malformed option '{arg}'")
        if sep:
            out.options[name] = value
        else:
            out.flags.add(name)
    return out


class CommandRegistry:
    """Subcommand registry: `gila <name> [args]`."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, argv: list[str]) -> str:
        """
        Run `argv[0]` with the remaining arguments and return its output.

        Task errors propagate to the caller; usage errors become a message.
        """
        if not argv:
            return self.build_help()

        name = argv[0].lower()
        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: {name}. Use 'gila help' to list available commands."

        try:
            args = parse_args(argv[1:])
        except UsageError as e:
            return f"{e}\nUsage: gila {self._help.get(name, name)}"

        logger.debug("Running command %s with %s", name, args)
        try:
            return handler(state, args)
        except UsageError as e:
            return f"{e}\nUsage: gila {self._help.get(name, name)}"

    def build_help(self) -> str:
        lines = ["Usage: gila [--verbose] <command> [options]", "", "Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  {name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _split_list(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [p.strip() for p in raw.split(",") if p.strip()]


def _priority(raw: str | None, default: TaskPriority) -> TaskPriority:
    if raw is None:
        return default
    parsed = TaskPriority.parse(raw.lower())
    if parsed is None:
        raise UsageError(f"Unknown priority '{raw}' (expected one of: {', '.join(p.value for p in TaskPriority)})")
    return parsed


def _priority_value(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise UsageError(f"--priority-value must be an integer, got '{raw}'") from None


def _single_id(args: CommandArgs) -> str:
    if len(args.positionals) != 1:
        raise UsageError("Expected exactly one task id")
    return args.positionals[0].strip()


def _query(args: CommandArgs, *, with_status: bool) -> TaskQuery:
    status = None
    if with_status and args.get("status") is not None:
        status = TaskStatus.parse(args.options["status"].lower())
        if status is None:
            raise UsageError(f"Unknown status '{args.options['status']}'")
    priority = _priority(args.options["priority"], TaskPriority.MEDIUM) if "priority" in args.options else None
    tags = parse_match(args.options["tags"]) if "tags" in args.options else None
    waiting_on = parse_match(args.options["waiting-on"]) if "waiting-on" in args.options else None
    return TaskQuery(status=status, priority=priority, owner=args.get("owner"), tags=tags, waiting_on=waiting_on)


def _render_tasks(tasks: list[Task], *, header: str) -> str:
    if not tasks:
        return "No tasks found."
    lines = [header, f"|{'ID':^28}|{'Status':^10}|{'Priority':^8}|{'Value':^5}| Title"]
    for t in tasks:
        lines.append(f"|{t.id:^28}|{t.status.value:^10}|{t.priority.value:^8}|{t.priority_value:^5}| {t.title}")
    return "\n".join(lines)


def _render_corrections(corrections: list[Correction]) -> list[str]:
    return [
        f"Corrected {c.task_id}: {c.from_status.value} -> {c.to_status.value} ({c.reason})" for c in corrections
    ]


def open_in_editor(editor: str, path: Path) -> int:
    cmd = [*shlex.split(editor), str(path)]
    logger.debug("Launching editor: %s", cmd)
    try:
        return subprocess.run(cmd, check=False).returncode
    except OSError as e:
        logger.error("Failed to open editor %r: %s", editor, e)
        return -1


# ---- commands ----


def cmd_help(state: AppState, args: CommandArgs) -> str:
    return registry.build_help()


def cmd_init(state: AppState, args: CommandArgs) -> str:
    """
    init            -> create .gila with a todo directory here
    init <dir>      -> same, in <dir>
    init --bare     -> only the .gila directory
    """
    if len(args.positionals) > 1:
        raise UsageError("Expected at most one directory")
    target = state.cwd / args.positionals[0] if args.positionals else state.cwd
    root = init_project(target, state.settings.dir_name, bare="bare" in args.flags)
    return f"Initialized GILA project: {root}"


def cmd_todo(state: AppState, args: CommandArgs) -> str:
    title = " ".join(args.positionals).strip()
    if not title:
        raise UsageError("A task needs a title")

    settings = state.settings
    description = args.get("description") or ""
    task = add_task(
        state.store,
        title=title,
        owner=settings.user,
        priority=_priority(args.get("priority"), settings.default_priority),
        priority_value=_priority_value(args.get("priority-value"), settings.default_priority_value),
        description=description.replace("\\n", "\n"),
        tags=_split_list(args.get("tags")),
        waiting_on=_split_list(args.get("waiting-on")),
    )

    path = state.store.record_path(task.id, task.status)
    if "edit" in args.flags:
        open_in_editor(settings.editor, path)
    return f"New task created: {task.id}\n{path}"


def cmd_done(state: AppState, args: CommandArgs) -> str:
    result = complete_task(state.store, _single_id(args))
    path = state.store.record_path(result.task.id, result.task.status)
    if "edit" in args.flags:
        open_in_editor(state.settings.editor, path)
    lines = _render_corrections(result.corrections)
    lines.append(f"Task {result.task.id} marked as done")
    return "\n".join(lines)


def cmd_cancel(state: AppState, args: CommandArgs) -> str:
    result = cancel_task(state.store, _single_id(args))
    lines = _render_corrections(result.corrections)
    lines.append(f"Task {result.task.id} cancelled")
    return "\n".join(lines)


def cmd_find(state: AppState, args: CommandArgs) -> str:
    found = find_tasks(state.store, _query(args, with_status=True))
    lines = _render_corrections(found.corrections)
    lines.append(_render_tasks(found.tasks, header="Tasks found:"))
    return "\n".join(lines)


def cmd_pick(state: AppState, args: CommandArgs) -> str:
    found = pick_tasks(state.store, _query(args, with_status=False))
    lines = _render_corrections(found.corrections)
    lines.append(_render_tasks(found.tasks, header="Tasks to pick from:"))
    return "\n".join(lines)


def cmd_sync(state: AppState, args: CommandArgs) -> str:
    result = sync_tasks(state.store)
    lines = _render_corrections(result.corrections)
    if result.skipped:
        lines.append(f"Skipped {len(result.skipped)} record(s):")
        lines.extend(f"  {s.status.value}/{s.task_id}: {s.reason}" for s in result.skipped)
    if not result.corrections and not result.skipped:
        lines.append("Everything is in sync.")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["-h", "--help"])
registry.register("init", cmd_init, help_text="init [--bare] [<directory>]")
registry.register(
    "todo",
    cmd_todo,
    help_text=(
        "todo [--priority=low|medium|high|urgent] [--priority-value=N] [--description=TEXT]"
        " [--tags=a,b] [--waiting-on=id,id] [--edit] <title>"
    ),
    aliases=["add"],
)
registry.register("done", cmd_done, help_text="done [--edit] <task_id>")
registry.register("cancel", cmd_cancel, help_text="cancel <task_id>")
registry.register(
    "find",
    cmd_find,
    help_text=(
        "find [--status=S] [--priority=P] [--owner=O] [--tags=[and|or:]a,b] [--waiting-on=[and|or:]id,id]"
    ),
)
registry.register("pick", cmd_pick, help_text="pick [--priority=P] [--tags=...] [--waiting-on=...]")
registry.register("sync", cmd_sync, help_text="sync (release waiting tasks whose dependencies are finished)")

