from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from smart_quiz.core import logging as core_logging


def _close(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_configure_logger_writes_json(tmp_path):
    log_dir = tmp_path / "logs"
    logger, log_path = core_logging.configure_logger(
        "smart_quiz.test",
        log_dir=log_dir,
        level="INFO",
        verbose=False,
        filename="test.log",
    )

    logger.info("hello world", extra={"topic": "Space", "score": 7})
    logger.debug("filtered out")

    class _Helper:
        def __repr__(self):  # noqa: D401
            return "helper"

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception(
            "with error",
            extra={
                "value": {"items": [Path(log_dir), 1], "mapping": {"k": "v"}},
                "obj": _Helper(),
            },
        )
    for handler in logger.handlers:
        handler.flush()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["message"] == "hello world"
    assert first["level"] == "INFO"
    assert first["extra"] == {"topic": "Space", "score": 7}

    payload = json.loads(lines[-1])
    assert "ValueError: boom" in payload["exception"]
    assert payload["extra"]["obj"] == "helper"
    assert payload["extra"]["value"]["items"][0] == str(log_dir)

    _close(logger)


def test_configure_logger_defaults_file_name(tmp_path):
    logger, log_path = core_logging.configure_logger(
        "smart_quiz.named", log_dir=tmp_path / "logs"
    )

    assert log_path.name == "named.log"
    assert log_path.exists()

    _close(logger)


def test_configure_logger_reuses_file_handler(tmp_path):
    log_dir = tmp_path / "logs"
    logger, _ = core_logging.configure_logger(
        "smart_quiz.reuse", log_dir=log_dir, filename="a.log"
    )
    core_logging.configure_logger(
        "smart_quiz.reuse", log_dir=log_dir, filename="a.log"
    )
    assert len(logger.handlers) == 1

    _, new_path = core_logging.configure_logger(
        "smart_quiz.reuse", log_dir=log_dir, filename="b.log"
    )
    assert len(logger.handlers) == 1
    assert Path(logger.handlers[0].baseFilename) == new_path

    _close(logger)


def test_console_handler_toggle(tmp_path):
    log_dir = tmp_path / "logs"
    logger_name = "smart_quiz.test_toggle"

    def console_handlers(logger):
        return [
            handler
            for handler in logger.handlers
            if getattr(handler, "_smart_quiz_console", False)
        ]

    logger, _ = core_logging.configure_logger(
        logger_name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(console_handlers(logger)) == 1

    # Calling again with verbose=True reuses the handler.
    core_logging.configure_logger(
        logger_name, log_dir=log_dir, verbose=True, filename="toggle.log"
    )
    assert len(console_handlers(logger)) == 1

    core_logging.configure_logger(
        logger_name, log_dir=log_dir, verbose=False, filename="toggle.log"
    )
    assert not console_handlers(logger)

    _close(logger)


def test_configure_logger_fallback_directory(tmp_path, monkeypatch):
    target = tmp_path / "blocked"
    fallback = tmp_path / "fallback-logs"
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback)

    original_mkdir = Path.mkdir

    def fake_mkdir(self, *args, **kwargs):  # noqa: D401, ANN001
        if self == target:
            raise PermissionError("denied")
        return original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fake_mkdir)

    logger, log_path = core_logging.configure_logger(
        "smart_quiz.test_blocked", log_dir=target, filename="blocked.log"
    )

    assert log_path == fallback / "blocked.log"
    assert log_path.exists()

    _close(logger)


def test_configure_logger_rotating_handler_fallback(tmp_path, monkeypatch):
    calls = {"count": 0}
    fallback_dir = tmp_path / "rotate-fallback"
    original_handler = core_logging.RotatingFileHandler

    def fake_handler(path, *args, **kwargs):  # noqa: D401, ANN001
        calls["count"] += 1
        if calls["count"] == 1:
            raise PermissionError("denied")
        return original_handler(path, *args, **kwargs)

    monkeypatch.setattr(core_logging, "RotatingFileHandler", fake_handler)
    monkeypatch.setattr(core_logging, "_fallback_log_dir", lambda: fallback_dir)

    logger, log_path = core_logging.configure_logger(
        "smart_quiz.test_rotating_fallback",
        log_dir=tmp_path / "primary",
        filename="rotate.log",
    )

    assert log_path.parent == fallback_dir
    assert calls["count"] == 2

    _close(logger)


def test_fallback_log_dir_uses_tempdir(tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "gettempdir", lambda: str(tmp_path))

    assert core_logging._fallback_log_dir() == tmp_path / "smart-quiz-logs"


def test_get_logger_prefixes_namespace():
    logger = core_logging.get_logger("ledger")

    assert logger.name == "smart_quiz.ledger"
    assert core_logging.get_logger("smart_quiz.orchestrator").name == (
        "smart_quiz.orchestrator"
    )
    root = logging.getLogger(core_logging.LOGGER_ROOT)
    assert any(isinstance(h, logging.NullHandler) for h in root.handlers)


def test_coerce_level_defaults():
    assert core_logging._coerce_level("bogus") == logging.INFO
    assert core_logging._coerce_level("warning") == logging.WARNING
