"""Quiz generation through the OpenAI chat completions API.

The provider is asked for a single JSON object holding exactly ten questions.
Whatever comes back is parsed and validated strictly: a response with the
wrong number of questions, a bad option list or an out-of-range answer index
fails the whole request with :class:`GenerationError` rather than being
patched up.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Mapping, Optional, Tuple

from .core.ai import load_client
from .core.logging import get_logger
from .errors import ConfigurationError, GenerationError, ValidationError
from .models import OPTION_COUNT, QUESTION_COUNT, Question, Quiz

__all__ = [
    "SYSTEM_PROMPT",
    "QuizGenerator",
    "build_prompts",
    "generate_quiz",
    "parse_quiz_payload",
    "validate_question",
]


SYSTEM_PROMPT = (
    "You are a helpful quiz generation assistant.\n"
    f"Your task is to generate a {QUESTION_COUNT}-question multiple-choice "
    "quiz on a given topic.\n"
    "You must return the response as a valid JSON object only, with no other "
    "text, markdown, or code fences.\n\n"
    'The JSON object must have a single key "questions", which is an array of '
    f"{QUESTION_COUNT} question objects.\n"
    "Each question object must have the following keys:\n"
    '- "question": A string (the question text)\n'
    f'- "options": An array of {OPTION_COUNT} distinct strings (the options)\n'
    f'- "correctIndex": A number (0-{OPTION_COUNT - 1}) representing the '
    "index of the correct option\n"
    '- "explanation": A string (a brief explanation of the correct answer)'
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.+?)\s*```$", re.DOTALL)


def build_prompts(topic: str) -> Tuple[str, str]:
    """Return the (system, user) prompt pair for ``topic``."""

    user_prompt = (
        f"Generate the {QUESTION_COUNT}-question quiz on the topic: "
        f'"{topic}"'
    )
    return SYSTEM_PROMPT, user_prompt


def validate_question(raw: Any, *, number: int) -> Question:
    """Validate one raw question object and return a :class:`Question`.

    Raises ``ValueError`` with an actionable message when the object is
    malformed.
    """

    if not isinstance(raw, Mapping):
        raise ValueError(f"question {number} must be an object")
    text = raw.get("question", raw.get("text"))
    if not isinstance(text, str) or not text.strip():
        raise ValueError(f"question {number} is missing its text")

    options = raw.get("options")
    if not isinstance(options, list):
        raise ValueError(f"question {number} options must be a list")
    if len(options) != OPTION_COUNT:
        raise ValueError(
            f"question {number} must have exactly {OPTION_COUNT} options, "
            f"found {len(options)}"
        )
    if not all(isinstance(opt, str) and opt.strip() for opt in options):
        raise ValueError(f"question {number} options must be non-empty text")
    cleaned = tuple(opt.strip() for opt in options)
    if len({opt.casefold() for opt in cleaned}) != len(cleaned):
        raise ValueError(f"question {number} has duplicate options")

    index = raw.get("correctIndex", raw.get("correct_index"))
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValueError(f"question {number} correctIndex must be an integer")
    if not 0 <= index < OPTION_COUNT:
        raise ValueError(
            f"question {number} correctIndex {index} is outside "
            f"0-{OPTION_COUNT - 1}"
        )

    explanation = raw.get("explanation", "")
    if explanation is None:
        explanation = ""
    if not isinstance(explanation, str):
        raise ValueError(f"question {number} explanation must be text")

    try:
        return Question(
            text=text.strip(),
            options=cleaned,
            correct_index=index,
            explanation=explanation.strip(),
        )
    except ValidationError as exc:
        raise ValueError(f"question {number}: {exc}") from exc


def parse_quiz_payload(content: str, *, topic: str) -> Quiz:
    """Parse raw provider output into a validated :class:`Quiz`."""

    text = (content or "").strip()
    if not text:
        raise GenerationError("Provider returned an empty response.")
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GenerationError(
            f"Provider response is not valid JSON: {exc}"
        ) from exc
    if not isinstance(data, Mapping):
        raise GenerationError("Provider response must be a JSON object.")
    raw_questions = data.get("questions")
    if not isinstance(raw_questions, list):
        raise GenerationError("Provider response lacks a 'questions' list.")
    if len(raw_questions) != QUESTION_COUNT:
        raise GenerationError(
            f"Expected {QUESTION_COUNT} questions, received "
            f"{len(raw_questions)}."
        )

    questions: List[Question] = []
    for number, raw in enumerate(raw_questions, start=1):
        try:
            questions.append(validate_question(raw, number=number))
        except ValueError as exc:
            raise GenerationError(f"Malformed quiz content: {exc}") from exc
    return Quiz(topic=topic, questions=tuple(questions))


class QuizGenerator:
    """Gateway that turns a topic into a validated quiz.

    A client may be injected (tests, alternative transports). Otherwise one is
    created from the environment on first use, which is also where a missing
    credential is reported, before any request is sent.
    """

    def __init__(
        self,
        client: object = None,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        max_tokens: int = 4000,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._api_base = api_base
        self._timeout = timeout
        self._logger = logger or get_logger(__name__)

    @classmethod
    def from_config(cls, config: Any, *, client: object = None) -> "QuizGenerator":
        """Build a generator from a loaded :class:`~smart_quiz.config.QuizConfig`."""

        provider = config.openai
        return cls(
            client,
            model=provider.chat_model,
            temperature=provider.temperature,
            max_tokens=provider.max_output_tokens,
            api_base=provider.api_base,
            timeout=float(provider.request_timeout_seconds),
        )

    def ensure_client(self) -> object:
        """Return the provider client, creating it on first use."""

        if self._client is None:
            try:
                self._client = load_client(
                    api_base=self._api_base, timeout=self._timeout
                )
            except ConfigurationError:
                self._logger.error("Provider credential unavailable")
                raise
        return self._client

    def generate_quiz(self, topic: str) -> Quiz:
        """Request a quiz on ``topic`` and return it once validated."""

        cleaned = (topic or "").strip()
        if not cleaned:
            raise ValidationError("Please enter a topic.")
        client = self.ensure_client()

        self._logger.info(
            "Requesting quiz", extra={"topic": cleaned, "model": self.model}
        )
        content = self._complete(client, cleaned)
        try:
            quiz = parse_quiz_payload(content, topic=cleaned)
        except GenerationError as exc:
            self._logger.error(
                "Rejected provider response",
                extra={"topic": cleaned, "reason": str(exc)},
            )
            raise
        self._logger.info(
            "Generated quiz",
            extra={"topic": cleaned, "question_count": len(quiz)},
        )
        return quiz

    def _complete(self, client: object, topic: str) -> str:
        system_prompt, user_prompt = build_prompts(topic)
        try:
            resp = client.chat.completions.create(  # type: ignore[attr-defined]
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )
            raw_content = resp.choices[0].message.content  # type: ignore[index]
        except Exception as exc:
            self._logger.error(
                "Provider request failed",
                extra={"topic": topic, "error": repr(exc)},
            )
            raise GenerationError(f"Provider request failed: {exc}") from exc
        return (raw_content or "").strip()


def generate_quiz(topic: str, *, client: object = None) -> Quiz:
    """Generate a quiz with default settings."""

    return QuizGenerator(client).generate_quiz(topic)
