"""``smart-quiz init``: create the workspace and optional config file."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Mapping, Sequence

from smart_quiz import config as config_mod
from smart_quiz.core import workspace as workspace_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smart-quiz init",
        description=(
            "Bootstrap the smart-quiz workspace and ensure the config, logs "
            "and ledger subdirectories exist."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Override the workspace root (defaults to SMART_QUIZ_DATA_HOME "
            "or ~/.smart-quiz-data)."
        ),
    )
    parser.add_argument(
        "--with-config",
        action="store_true",
        help="Also write the default smart_quiz.toml if none exists yet.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )
    return parser


def _format_created(created: Mapping[str, bool], key: str) -> str:
    return "created" if created.get(key, False) else "exists"


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2

    config_note = None
    if args.with_config:
        target = layout.config_file
        if target.exists():
            config_note = f"Config kept at {target}"
        else:
            config_mod.write_template(target)
            config_note = f"Config written to {target}"

    if args.quiet:
        return 0

    created = layout.created
    home_status = _format_created(created, "home")
    lines = [f"Workspace ready at {layout.home} ({home_status})"]

    if layout.directories:
        lines.append("Subdirectories:")
        width = max(len(name) for name in layout.directories)
        for name, directory in layout.items():
            status = _format_created(created, name)
            lines.append(f"  {name.ljust(width)}  {directory} ({status})")
    if config_note:
        lines.append(config_note)

    sys.stdout.write("\n".join(lines) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
