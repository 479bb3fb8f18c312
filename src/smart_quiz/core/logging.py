"""Structured logging for smart-quiz.

Library modules call :func:`get_logger` and stay silent until a command runs
:func:`configure_logger`, which attaches a rotating JSON-lines file handler
and, in verbose mode, a plain stderr handler.
"""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

__all__ = [
    "LOGGER_ROOT",
    "JsonLogFormatter",
    "configure_logger",
    "get_logger",
]


LOGGER_ROOT = "smart_quiz"

_FILE_MARKER = "_smart_quiz_file"
_CONSOLE_MARKER = "_smart_quiz_console"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}


class JsonLogFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RECORD_FIELDS
        }
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = record.stack_info
        return json.dumps(entry, ensure_ascii=True)


def get_logger(name: str) -> logging.Logger:
    """Return ``name`` as a child of the ``smart_quiz`` logger."""

    root = logging.getLogger(LOGGER_ROOT)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    if name == LOGGER_ROOT or name.startswith(LOGGER_ROOT + "."):
        return logging.getLogger(name)
    return root.getChild(name)


def configure_logger(
    name: str = LOGGER_ROOT,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
    max_bytes: int = 2 * 1024 * 1024,
    backup_count: int = 3,
    filename: str | None = None,
) -> tuple[logging.Logger, Path]:
    """Attach file (and optionally console) output to logger ``name``.

    Safe to call repeatedly: a file handler already writing to the same path
    is kept, one writing elsewhere is replaced. Returns the logger and the
    file actually written, which may sit under the temp dir when ``log_dir``
    is not writable.
    """

    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    target = _prepare_log_file(
        _prepare_log_dir(log_dir),
        filename or name.rsplit(".", 1)[-1] + ".log",
    )
    handler = _current_file_handler(logger, target)
    if handler is None:
        handler, target = _open_file_handler(target, max_bytes, backup_count)
        logger.addHandler(handler)
    handler.setLevel(logging.DEBUG if verbose else _coerce_level(level))

    console = _marked(logger, _CONSOLE_MARKER)
    if verbose and not console:
        logger.addHandler(_console_handler())
    elif not verbose:
        for stale in console:
            logger.removeHandler(stale)
            stale.close()

    return logger, target


def _coerce_level(level: str) -> int:
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.INFO


def _marked(logger: logging.Logger, marker: str) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, marker, False)]


def _current_file_handler(
    logger: logging.Logger, path: Path
) -> RotatingFileHandler | None:
    keep: RotatingFileHandler | None = None
    for handler in _marked(logger, _FILE_MARKER):
        if keep is None and Path(handler.baseFilename) == path:  # type: ignore[attr-defined]
            keep = handler  # type: ignore[assignment]
            continue
        logger.removeHandler(handler)
        handler.close()
    return keep


def _open_file_handler(
    path: Path, max_bytes: int, backup_count: int
) -> tuple[RotatingFileHandler, Path]:
    try:
        handler = RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    except PermissionError:
        path = _prepare_log_file(
            _prepare_log_dir(_fallback_log_dir()), path.name
        )
        handler = RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    handler.setFormatter(JsonLogFormatter())
    setattr(handler, _FILE_MARKER, True)
    return handler, path


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        logging.Formatter("%(levelname)s %(name)s %(message)s")
    )
    setattr(handler, _CONSOLE_MARKER, True)
    return handler


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    return repr(value)


def _prepare_log_dir(log_dir: Path) -> Path:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        log_dir = _fallback_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
    try:
        log_dir.chmod(0o700)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return log_dir


def _prepare_log_file(log_dir: Path, filename: str) -> Path:
    path = log_dir / filename
    try:
        path.touch(exist_ok=True)
    except PermissionError:  # pragma: no cover - depends on filesystem
        path = _prepare_log_dir(_fallback_log_dir()) / filename
        path.touch(exist_ok=True)
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / "smart-quiz-logs"
