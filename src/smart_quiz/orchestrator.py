"""Session-facing API that runs one user's quiz workflow.

The orchestrator owns no durable state. It drives :class:`QuizSession`,
asks the generator for quizzes, scores submissions and appends attempts to
the injected :class:`ScoreLedger`. Failures are logged in full and reduced
to a short message on ``session.error`` before being re-raised to the
caller.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional, Protocol

from .core.logging import get_logger
from .errors import (
    LedgerError,
    QuizError,
    SessionBusyError,
    SessionStateError,
    ValidationError,
)
from .ledger import ScoreLedger
from .models import Attempt, Quiz, newest_first
from .scoring import ScoreResult, score
from .session import QuizSession, SessionPhase

__all__ = ["QuizSource", "SessionOrchestrator"]

Clock = Callable[[], datetime]


class QuizSource(Protocol):
    def generate_quiz(self, topic: str) -> Quiz:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionOrchestrator:
    """Coordinate generation, answering, scoring and history for one user."""

    def __init__(
        self,
        generator: QuizSource,
        ledger: ScoreLedger,
        *,
        clock: Clock = _utcnow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._generator = generator
        self._ledger = ledger
        self._clock = clock
        self._logger = logger or get_logger(__name__)
        self._in_flight = threading.Lock()
        self.identity: Optional[str] = None
        self.session = QuizSession()
        self.history: list[Attempt] = []

    @property
    def phase(self) -> SessionPhase:
        return self.session.phase

    def login(self, identity: str) -> list[Attempt]:
        cleaned = (identity or "").strip()
        if not cleaned:
            raise ValidationError("Please enter your name.")
        self.identity = cleaned
        self.session = QuizSession()
        self._logger.info("User logged in", extra={"identity": cleaned})
        return self.refresh_history()

    def logout(self) -> None:
        if self.identity is not None:
            self._logger.info(
                "User logged out", extra={"identity": self.identity}
            )
        self.identity = None
        self.session = QuizSession()
        self.history = []

    def request_quiz(self, topic: str) -> Quiz:
        identity = self._require_identity()
        with self._guard():
            try:
                self.session.begin_request(topic)
            except QuizError as exc:
                self.session.error = exc.user_message
                raise
            try:
                quiz = self._generator.generate_quiz(self.session.topic)
            except QuizError as exc:
                self._logger.warning(
                    "Quiz request failed",
                    extra={
                        "identity": identity,
                        "topic": self.session.topic,
                        "error_type": type(exc).__name__,
                    },
                )
                self.session.fail_request(exc.user_message)
                raise
            except Exception:
                self.session.fail_request(QuizError.user_message)
                raise
            self.session.activate(quiz)
            return quiz

    def select_answer(self, question_index: int, option_index: int) -> None:
        self.session.select_answer(question_index, option_index)

    def submit(self) -> ScoreResult:
        identity = self._require_identity()
        with self._guard():
            session = self.session
            if session.phase is not SessionPhase.ACTIVE or session.quiz is None:
                raise SessionStateError("There is no quiz to submit.")
            try:
                result = score(session.quiz, session.answers)
            except QuizError as exc:
                session.error = exc.user_message
                raise
            session.attach_result(result)

            attempt = Attempt.record(
                session.topic,
                result.score,
                result.total,
                at=self._clock(),
            )
            try:
                self._ledger.append_attempt(identity, attempt)
            except LedgerError as exc:
                session.error = exc.user_message
                return result
            self.refresh_history()
            return result

    def take_another(self) -> list[Attempt]:
        self._require_identity()
        if self.session.phase is SessionPhase.REQUESTING:
            raise SessionBusyError()
        if self.session.phase is SessionPhase.ACTIVE:
            raise SessionStateError("Submit the current quiz first.")
        self.session.reset()
        return self.refresh_history()

    def get_history(self, identity: Optional[str] = None) -> list[Attempt]:
        target = identity if identity is not None else self._require_identity()
        return self._ledger.get_history(target)

    def refresh_history(self) -> list[Attempt]:
        identity = self._require_identity()
        self.history = newest_first(self._ledger.get_history(identity))
        return self.history

    def _require_identity(self) -> str:
        if not self.identity:
            raise SessionStateError("Please log in first.")
        return self.identity

    @contextmanager
    def _guard(self) -> Iterator[None]:
        if not self._in_flight.acquire(blocking=False):
            raise SessionBusyError()
        try:
            yield
        finally:
            self._in_flight.release()
