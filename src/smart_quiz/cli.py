"""``smart-quiz`` command dispatcher.

Each subcommand lives in its own module exposing ``main(argv)``. The
dispatcher only routes: it imports the module on demand, runs it with
``sys.argv`` pointed at the subcommand, and turns ``SystemExit`` from
argparse into a return code.
"""

from __future__ import annotations

import inspect
import sys
from dataclasses import dataclass
from importlib import import_module, metadata
from typing import Callable, Mapping, Optional, Sequence

DIST_NAME = "smart-quiz"


@dataclass(frozen=True)
class CommandSpec:
    """A subcommand and the module implementing it."""

    name: str
    module: str
    summary: str
    is_interactive: bool = False

    @property
    def prog(self) -> str:
        return f"{DIST_NAME} {self.name}"


COMMANDS: Mapping[str, CommandSpec] = {
    spec.name: spec
    for spec in (
        CommandSpec(
            "init",
            "smart_quiz.workspace.cli",
            "Create the workspace (config, logs, ledger).",
        ),
        CommandSpec(
            "config",
            "smart_quiz.config_cli",
            "Write, validate or locate smart_quiz.toml.",
        ),
        CommandSpec(
            "play",
            "smart_quiz.play",
            "Take generated quizzes and record the scores.",
            is_interactive=True,
        ),
        CommandSpec(
            "history",
            "smart_quiz.history",
            "Show past quiz scores for a user.",
        ),
    )
}


def format_command_table() -> str:
    width = max(len(name) for name in COMMANDS)
    rows = ["Available commands:"]
    for spec in COMMANDS.values():
        note = " (interactive)" if spec.is_interactive else ""
        rows.append(f"  {spec.name:<{width}}  {spec.summary}{note}")
    return "\n".join(rows)


def format_usage() -> str:
    return "\n".join(
        [
            f"Usage: {DIST_NAME} <command> [args...]",
            f"Run `{DIST_NAME} help <command>` for details.",
            "",
            format_command_table(),
        ]
    )


def _out(text: str) -> None:
    sys.stdout.write(text + "\n")


def _err(text: str) -> None:
    sys.stderr.write(text + "\n")


def _unknown(name: str) -> int:
    _err(f"Unknown command '{name}'.")
    _err(format_command_table())
    return 2


def _version() -> int:
    try:
        _out(metadata.version(DIST_NAME))
    except metadata.PackageNotFoundError:
        _out("unknown")
    return 0


def _help(topic: Sequence[str]) -> int:
    if not topic:
        _out(format_usage())
        return 0
    spec = COMMANDS.get(topic[0])
    if spec is None:
        return _unknown(topic[0])
    _out(f"{spec.name}: {spec.summary}")
    _out(f"Run `{spec.prog} --help` for command options.")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        _out(format_usage())
        return 2

    command, rest = args[0], args[1:]
    if command in ("-h", "--help"):
        _out(format_usage())
        return 0
    if command in ("-V", "--version", "version"):
        return _version()
    if command == "list":
        _out(format_command_table())
        return 0
    if command == "help":
        return _help(rest)

    spec = COMMANDS.get(command)
    if spec is None:
        return _unknown(command)
    return run_command(spec, rest)


def run_command(spec: CommandSpec, argv: Sequence[str]) -> int:
    """Import ``spec.module`` and run its ``main`` as ``spec.prog``."""

    entry = getattr(import_module(spec.module), "main")
    saved = sys.argv
    sys.argv = [spec.prog, *argv]
    try:
        outcome = entry(list(argv)) if _takes_argv(entry) else entry()
    except SystemExit as exc:
        return _exit_code(exc.code)
    finally:
        sys.argv = saved
    return outcome if isinstance(outcome, int) else 0


def _takes_argv(func: Callable[..., object]) -> bool:
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    return any(param.kind in positional for param in params)


def _exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    _err(str(code))
    return 1


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(main())
