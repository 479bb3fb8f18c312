"""Shared testing fixtures and fakes for the smart_quiz test suite."""

from .openai import FakeChatClient, FakeClientFactory  # noqa: F401
from .quiz import (  # noqa: F401
    build_quiz,
    question_payload,
    quiz_payload,
    quiz_response,
)
from .workspace import WorkspaceBuilder  # noqa: F401

__all__ = [
    "FakeChatClient",
    "FakeClientFactory",
    "WorkspaceBuilder",
    "build_quiz",
    "question_payload",
    "quiz_payload",
    "quiz_response",
]
