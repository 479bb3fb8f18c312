"""``smart-quiz history``: show recorded attempts for a user."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from .config import ConfigError
from .core.workspace import WorkspaceError
from .errors import QuizError
from .models import newest_first
from .play import render_history


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smart-quiz history",
        description="List past quiz scores for a user, newest first.",
    )
    parser.add_argument("--user", required=True, help="Name to look up.")
    parser.add_argument(
        "--limit",
        type=int,
        default=0,
        help="Show at most this many attempts (0 = all).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print attempts as JSON instead of a table.",
    )
    parser.add_argument("--config", type=Path, help="Path to smart_quiz.toml.")
    parser.add_argument(
        "--workspace", type=Path, help="Workspace root override."
    )
    return parser


def main(
    argv: Optional[Sequence[str]] = None, *, console: Optional[Console] = None
) -> int:
    from .runtime import prepare_runtime

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    if args.limit < 0:
        parser.error("--limit must be >= 0")

    try:
        runtime = prepare_runtime(
            config_path=args.config, workspace=args.workspace
        )
    except (ConfigError, WorkspaceError) as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2

    try:
        attempts = newest_first(runtime.ledger.get_history(args.user))
    except QuizError as exc:
        sys.stderr.write(f"Error: {exc.user_message}\n")
        return 2
    if args.limit:
        attempts = attempts[: args.limit]

    if args.json:
        payload = [attempt.to_dict() for attempt in attempts]
        sys.stdout.write(json.dumps(payload, indent=2) + "\n")
        return 0

    render_history(console or Console(), attempts)
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
