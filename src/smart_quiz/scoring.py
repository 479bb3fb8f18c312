"""Pure scoring of a completed quiz."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from .errors import IncompleteAnswersError, ValidationError
from .models import Question, Quiz

__all__ = ["QuestionFeedback", "ScoreResult", "missing_answers", "score"]


@dataclass(frozen=True)
class QuestionFeedback:
    """Verdict for a single question."""

    question: Question
    selected_index: int
    selected_text: str
    is_correct: bool
    correct_text: Optional[str]
    explanation: str


@dataclass(frozen=True)
class ScoreResult:
    """Aggregate score plus one feedback entry per question."""

    score: int
    total: int
    feedback: tuple[QuestionFeedback, ...]

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return self.score / self.total


def missing_answers(answers: Sequence[Optional[int]]) -> list[int]:
    """Return the indices of unanswered slots."""

    return [idx for idx, answer in enumerate(answers) if answer is None]


def score(quiz: Quiz, answers: Sequence[Optional[int]]) -> ScoreResult:
    """Score ``answers`` against ``quiz``.

    Every slot must hold an option index; unanswered slots raise
    :class:`IncompleteAnswersError`.
    """

    if len(answers) != len(quiz):
        raise ValidationError(
            f"Expected {len(quiz)} answers, received {len(answers)}."
        )
    missing = missing_answers(answers)
    if missing:
        raise IncompleteAnswersError(missing)

    feedback: list[QuestionFeedback] = []
    for question, selected in zip(quiz, answers):
        if isinstance(selected, bool) or not isinstance(selected, int):
            raise ValidationError("Answers must be option indices.")
        if not 0 <= selected < len(question.options):
            raise ValidationError(f"Option {selected} does not exist.")
        correct = selected == question.correct_index
        feedback.append(
            QuestionFeedback(
                question=question,
                selected_index=selected,
                selected_text=question.options[selected],
                is_correct=correct,
                correct_text=None if correct else question.correct_option,
                explanation=question.explanation,
            )
        )
    return ScoreResult(
        score=sum(1 for item in feedback if item.is_correct),
        total=len(feedback),
        feedback=tuple(feedback),
    )
