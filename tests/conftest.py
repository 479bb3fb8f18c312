from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Ensure src/ is importable when the package is not installed
ROOT = TESTS_DIR.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from fixtures import (  # noqa: E402
    FakeChatClient,
    FakeClientFactory,
    WorkspaceBuilder,
)
from smart_quiz.core import ai as core_ai  # noqa: E402
from smart_quiz.core.logging import LOGGER_ROOT  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep tests away from the real workspace, .env and API key."""

    for name in (
        "OPENAI_API_KEY",
        "SMART_QUIZ_CONFIG",
        "SMART_QUIZ_LEDGER",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SMART_QUIZ_DATA_HOME", str(tmp_path / "data-home"))
    monkeypatch.setattr(core_ai, "load_dotenv", lambda *a, **k: False)
    yield


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger(LOGGER_ROOT)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_client() -> FakeChatClient:
    """A chat client with an empty response queue."""

    return FakeChatClient()


@pytest.fixture
def openai_factory(monkeypatch: pytest.MonkeyPatch) -> FakeClientFactory:
    """Patch ``OpenAI`` so client construction is recorded, not sent."""

    factory = FakeClientFactory()
    monkeypatch.setattr(core_ai, "OpenAI", factory)
    return factory


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)
