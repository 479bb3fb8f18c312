"""``smart-quiz config``: write, validate and locate smart_quiz.toml."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from . import config as config_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smart-quiz config",
        description="Manage the smart-quiz configuration file.",
    )
    subparsers = parser.add_subparsers(dest="config_command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help="Write the default configuration template.",
    )
    init_parser.add_argument(
        "--path",
        type=str,
        help="Where to write smart_quiz.toml (defaults to <workspace>/config).",
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file if present.",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate the active configuration file.",
    )
    validate_parser.add_argument(
        "--path",
        type=str,
        help="Config file to check (defaults to the one play would load).",
    )
    validate_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Only report problems.",
    )

    path_parser = subparsers.add_parser(
        "path",
        help="Print the resolved config path.",
    )
    path_parser.add_argument(
        "--path",
        type=str,
        help="Explicit path to expand and print instead of the default.",
    )
    return parser


def _to_path(value: str | None) -> Path | None:
    if value is None:
        return None
    return Path(value).expanduser().resolve()


def _handle_init(args: argparse.Namespace) -> int:
    explicit_path = _to_path(args.path)
    try:
        target = config_mod.resolve_config_path(explicit_path=explicit_path)
        config_mod.write_template(target, overwrite=args.force)
    except config_mod.ConfigError as exc:
        _print_error(str(exc))
        return 2
    print(f"Wrote config template to {target}")
    return 0


def _handle_validate(args: argparse.Namespace) -> int:
    explicit_path = _to_path(args.path)
    try:
        cfg = config_mod.load_config(explicit_path=explicit_path)
    except config_mod.ConfigError as exc:
        _print_error(str(exc))
        return 2
    if not args.quiet:
        print("Configuration OK")
        print(f"  source: {cfg.source or '(defaults)'}")
        print(f"  chat_model: {cfg.openai.chat_model}")
        print(f"  temperature: {cfg.openai.temperature}")
        print(f"  logging.level: {cfg.logging.level}")
    return 0


def _handle_path(args: argparse.Namespace) -> int:
    explicit_path = _to_path(args.path)
    try:
        path = config_mod.resolve_config_path(explicit_path=explicit_path)
    except config_mod.ConfigError as exc:
        _print_error(str(exc))
        return 2
    print(path)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    handlers = {
        "init": _handle_init,
        "validate": _handle_validate,
        "path": _handle_path,
    }
    return handlers[args.config_command](args)


def _print_error(message: str) -> None:
    sys.stderr.write(message + "\n")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
