"""Value objects for quizzes and recorded attempts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping, MutableMapping, Sequence

from .errors import ValidationError

__all__ = [
    "QUESTION_COUNT",
    "OPTION_COUNT",
    "Question",
    "Quiz",
    "Attempt",
    "newest_first",
]


QUESTION_COUNT = 10
OPTION_COUNT = 4


@dataclass(frozen=True)
class Question:
    """A single multiple-choice question with exactly four options."""

    text: str
    options: tuple[str, ...]
    correct_index: int
    explanation: str = ""

    def __post_init__(self) -> None:
        if not self.text.strip():
            raise ValidationError("Question text must be non-empty.")
        if len(self.options) != OPTION_COUNT:
            raise ValidationError(
                f"Question must have exactly {OPTION_COUNT} options, "
                f"found {len(self.options)}."
            )
        if isinstance(self.correct_index, bool) or not isinstance(
            self.correct_index, int
        ):
            raise ValidationError("correct_index must be an integer.")
        if not 0 <= self.correct_index < OPTION_COUNT:
            raise ValidationError(
                f"correct_index must be between 0 and {OPTION_COUNT - 1}."
            )

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "question": self.text,
            "options": list(self.options),
            "correctIndex": self.correct_index,
            "explanation": self.explanation,
        }


@dataclass(frozen=True)
class Quiz:
    """An immutable set of questions generated for one topic."""

    topic: str
    questions: tuple[Question, ...]

    def __post_init__(self) -> None:
        if len(self.questions) != QUESTION_COUNT:
            raise ValidationError(
                f"Quiz must have exactly {QUESTION_COUNT} questions, "
                f"found {len(self.questions)}."
            )

    def __len__(self) -> int:
        return len(self.questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self.questions)

    def __getitem__(self, index: int) -> Question:
        return self.questions[index]

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "topic": self.topic,
            "questions": [question.to_dict() for question in self.questions],
        }


@dataclass(frozen=True)
class Attempt:
    """One completed and scored quiz for one identity."""

    topic: str
    score: int
    total: int
    timestamp: str

    @classmethod
    def record(
        cls,
        topic: str,
        score: int,
        total: int,
        *,
        at: datetime | None = None,
    ) -> "Attempt":
        moment = at or datetime.now(timezone.utc)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return cls(
            topic=topic,
            score=score,
            total=total,
            timestamp=moment.astimezone(timezone.utc).isoformat(),
        )

    @property
    def recorded_at(self) -> datetime:
        moment = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "topic": self.topic,
            "score": self.score,
            "total": self.total,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Attempt":
        if not isinstance(payload, Mapping):
            raise ValueError("Attempt payload must be a mapping.")
        topic = payload.get("topic")
        score = payload.get("score")
        total = payload.get("total")
        timestamp = payload.get("timestamp")
        if not isinstance(topic, str) or not topic:
            raise ValueError("Attempt topic must be a non-empty string.")
        for field_name, value in (("score", score), ("total", total)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Attempt {field_name} must be an integer.")
        if not isinstance(timestamp, str) or not timestamp:
            raise ValueError("Attempt timestamp must be a non-empty string.")
        return cls(topic=topic, score=score, total=total, timestamp=timestamp)


def newest_first(attempts: Sequence[Attempt]) -> list[Attempt]:
    """Return ``attempts`` ordered by timestamp, most recent first."""

    return sorted(attempts, key=_sort_key, reverse=True)


def _sort_key(attempt: Attempt) -> datetime:
    try:
        return attempt.recorded_at
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
