"""Transient state of one quiz interaction.

``QuizSession`` moves through ``IDLE -> REQUESTING -> ACTIVE -> SCORED``.
"Complete" is not a stored phase: it is the check that every answer slot is
set, performed when the answers are submitted.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from .errors import SessionStateError, ValidationError
from .models import Quiz
from .scoring import ScoreResult, missing_answers

__all__ = ["SessionPhase", "QuizSession"]


class SessionPhase(enum.Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    ACTIVE = "active"
    SCORED = "scored"


@dataclass
class QuizSession:
    """Mutable session state owned by one orchestrator."""

    phase: SessionPhase = SessionPhase.IDLE
    topic: str = ""
    quiz: Optional[Quiz] = None
    answers: list[Optional[int]] = field(default_factory=list)
    result: Optional[ScoreResult] = None
    error: Optional[str] = None

    @property
    def total_questions(self) -> int:
        return len(self.quiz) if self.quiz is not None else 0

    def answered_count(self) -> int:
        return sum(1 for answer in self.answers if answer is not None)

    def missing_answers(self) -> list[int]:
        return missing_answers(self.answers)

    @property
    def is_complete(self) -> bool:
        return self.phase is SessionPhase.ACTIVE and not self.missing_answers()

    def begin_request(self, topic: str) -> None:
        if self.phase is SessionPhase.REQUESTING:
            raise SessionStateError("A quiz is already being generated.")
        cleaned = (topic or "").strip()
        if not cleaned:
            raise ValidationError("Please enter a topic.")
        self._clear_quiz()
        self.topic = cleaned
        self.phase = SessionPhase.REQUESTING

    def activate(self, quiz: Quiz) -> None:
        self._require(SessionPhase.REQUESTING, "activate a quiz")
        self.quiz = quiz
        self.answers = [None] * len(quiz)
        self.phase = SessionPhase.ACTIVE

    def fail_request(self, message: str) -> None:
        self._require(SessionPhase.REQUESTING, "fail a request")
        self.quiz = None
        self.answers = []
        self.error = message
        self.phase = SessionPhase.IDLE

    def select_answer(self, question_index: int, option_index: int) -> None:
        self._require(SessionPhase.ACTIVE, "select an answer")
        assert self.quiz is not None
        if not 0 <= question_index < len(self.quiz):
            raise ValidationError(
                f"Question {question_index + 1} does not exist."
            )
        options = self.quiz[question_index].options
        if not 0 <= option_index < len(options):
            raise ValidationError(
                f"Option {option_index + 1} does not exist for question "
                f"{question_index + 1}."
            )
        self.answers[question_index] = option_index
        self.error = None

    def selected_for(self, question_index: int) -> Optional[int]:
        if not 0 <= question_index < len(self.answers):
            return None
        return self.answers[question_index]

    def attach_result(self, result: ScoreResult) -> None:
        self._require(SessionPhase.ACTIVE, "record a score")
        self.result = result
        self.error = None
        self.phase = SessionPhase.SCORED

    def reset(self) -> None:
        """Discard the quiz and return to IDLE for another round."""

        self._clear_quiz()
        self.topic = ""
        self.phase = SessionPhase.IDLE

    def _clear_quiz(self) -> None:
        self.quiz = None
        self.answers = []
        self.result = None
        self.error = None

    def _require(self, phase: SessionPhase, action: str) -> None:
        if self.phase is not phase:
            raise SessionStateError(
                f"Cannot {action} while the session is {self.phase.value}."
            )
