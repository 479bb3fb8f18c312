"""Error taxonomy shared by the quiz workflow.

Every error carries a short ``user_message`` that is safe to show to the
person taking the quiz. The exception text itself may hold internal detail
and is meant for logs.
"""

from __future__ import annotations

from typing import Sequence

__all__ = [
    "QuizError",
    "ConfigurationError",
    "GenerationError",
    "ValidationError",
    "IncompleteAnswersError",
    "SessionStateError",
    "SessionBusyError",
    "LedgerError",
]


class QuizError(RuntimeError):
    """Base class for failures surfaced by the quiz workflow."""

    user_message = "Something went wrong. Please try again."


class ConfigurationError(QuizError):
    """Raised when the generation provider credential is missing or invalid."""

    user_message = (
        "The quiz service is not configured. Set OPENAI_API_KEY and try again."
    )


class GenerationError(QuizError):
    """Raised when the provider fails or returns malformed quiz content."""

    user_message = "Failed to generate quiz. Please try again."


class ValidationError(QuizError, ValueError):
    """Raised when the caller supplies input that it can correct."""

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return str(self)


class IncompleteAnswersError(ValidationError):
    """Raised when scoring is attempted before every question is answered."""

    def __init__(
        self,
        missing: Sequence[int] = (),
        message: str = "Please answer all questions.",
    ) -> None:
        super().__init__(message)
        self.missing = tuple(missing)


class SessionStateError(ValidationError):
    """Raised when an operation is not allowed in the current session phase."""


class SessionBusyError(SessionStateError):
    """Raised when an operation overlaps one that is still in flight."""

    def __init__(
        self, message: str = "Please wait for the current request to finish."
    ) -> None:
        super().__init__(message)


class LedgerError(QuizError):
    """Raised when the score ledger cannot persist an attempt."""

    user_message = "Your score could not be saved."
