"""Generate, take and score AI-written multiple-choice quizzes."""

from .errors import (
    ConfigurationError,
    GenerationError,
    IncompleteAnswersError,
    LedgerError,
    QuizError,
    SessionBusyError,
    SessionStateError,
    ValidationError,
)
from .generation import QuizGenerator, generate_quiz, parse_quiz_payload
from .ledger import JsonFileStore, MemoryStore, ScoreLedger
from .models import Attempt, Question, Quiz, newest_first
from .orchestrator import SessionOrchestrator
from .scoring import QuestionFeedback, ScoreResult, score
from .session import QuizSession, SessionPhase

__all__ = [
    "Attempt",
    "ConfigurationError",
    "GenerationError",
    "IncompleteAnswersError",
    "JsonFileStore",
    "LedgerError",
    "MemoryStore",
    "Question",
    "QuestionFeedback",
    "Quiz",
    "QuizError",
    "QuizGenerator",
    "QuizSession",
    "ScoreLedger",
    "ScoreResult",
    "SessionBusyError",
    "SessionOrchestrator",
    "SessionPhase",
    "SessionStateError",
    "ValidationError",
    "generate_quiz",
    "newest_first",
    "parse_quiz_payload",
    "score",
]
