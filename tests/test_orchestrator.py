from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fixtures import build_quiz, quiz_response
from smart_quiz.errors import (
    GenerationError,
    IncompleteAnswersError,
    LedgerError,
    SessionBusyError,
    SessionStateError,
    ValidationError,
)
from smart_quiz.generation import QuizGenerator
from smart_quiz.ledger import JsonFileStore, MemoryStore, ScoreLedger
from smart_quiz.models import Attempt
from smart_quiz.orchestrator import SessionOrchestrator
from smart_quiz.session import SessionPhase

NOW = datetime(2024, 6, 1, 15, 0, tzinfo=timezone.utc)
CORRECT = [0, 1, 2, 3, 0, 1, 2, 3, 0, 1]


class StaticSource:
    """Quiz source returning a fixed quiz and counting calls."""

    def __init__(self, quiz=None):
        self.quiz = quiz
        self.topics = []

    def generate_quiz(self, topic):
        self.topics.append(topic)
        return self.quiz or build_quiz(topic, correct_indices=CORRECT)


class FailingLedger(ScoreLedger):
    def append_attempt(self, identity, attempt):  # noqa: ANN001
        raise LedgerError("disk full")


@pytest.fixture
def ledger():
    return ScoreLedger(MemoryStore())


@pytest.fixture
def orchestrator(fake_client, ledger):
    generator = QuizGenerator(fake_client)
    orch = SessionOrchestrator(generator, ledger, clock=lambda: NOW)
    orch.login("ana")
    return orch


def _answer(orch, answers):
    for index, option in enumerate(answers):
        if option is not None:
            orch.select_answer(index, option)


def test_space_quiz_round_trip(orchestrator, fake_client, ledger):
    fake_client.queue_response(quiz_response(correct_indices=CORRECT))

    quiz = orchestrator.request_quiz("Space")

    assert orchestrator.phase is SessionPhase.ACTIVE
    assert orchestrator.session.answers == [None] * 10
    assert len(quiz) == 10

    answers = list(CORRECT[:7]) + [(c + 1) % 4 for c in CORRECT[7:]]
    _answer(orchestrator, answers)
    result = orchestrator.submit()

    assert result.score == 7
    assert result.total == 10
    assert len(result.feedback) == 10
    assert orchestrator.phase is SessionPhase.SCORED
    history = ledger.get_history("ana")
    assert history[-1] == Attempt(
        topic="Space", score=7, total=10, timestamp=NOW.isoformat()
    )
    assert orchestrator.history[0].topic == "Space"


def test_submit_with_unset_slot_keeps_session_active(orchestrator, ledger):
    orchestrator._generator = StaticSource()
    orchestrator.request_quiz("Space")
    answers = list(CORRECT)
    answers[3] = None
    _answer(orchestrator, answers)

    with pytest.raises(IncompleteAnswersError) as exc:
        orchestrator.submit()

    assert exc.value.missing == (3,)
    assert orchestrator.phase is SessionPhase.ACTIVE
    assert orchestrator.session.error == "Please answer all questions."
    assert ledger.get_history("ana") == []

    orchestrator.select_answer(3, CORRECT[3])
    assert orchestrator.submit().score == 10


def test_unparseable_response_leaves_session_idle(orchestrator, fake_client, ledger):
    fake_client.queue_response("Here is a quiz about space!")

    with pytest.raises(GenerationError):
        orchestrator.request_quiz("Space")

    assert orchestrator.phase is SessionPhase.IDLE
    assert orchestrator.session.quiz is None
    assert orchestrator.session.error == (
        "Failed to generate quiz. Please try again."
    )
    assert ledger.get_history("ana") == []


def test_request_after_failure_can_retry(orchestrator, fake_client):
    fake_client.queue_response("")
    fake_client.queue_response(quiz_response())

    with pytest.raises(GenerationError):
        orchestrator.request_quiz("Space")
    orchestrator.request_quiz("Space")

    assert orchestrator.phase is SessionPhase.ACTIVE
    assert orchestrator.session.error is None


def test_login_trims_and_requires_name(ledger):
    orch = SessionOrchestrator(StaticSource(), ledger)

    with pytest.raises(ValidationError):
        orch.login("   ")
    assert orch.identity is None

    orch.login("  ana ")
    assert orch.identity == "ana"


def test_login_loads_history_newest_first(ledger):
    ledger.append_attempt(
        "ana", Attempt.record("Old", 1, 10, at=datetime(2024, 1, 1))
    )
    ledger.append_attempt(
        "ana", Attempt.record("New", 2, 10, at=datetime(2024, 2, 1))
    )
    orch = SessionOrchestrator(StaticSource(), ledger)

    history = orch.login("ana")

    assert [a.topic for a in history] == ["New", "Old"]
    assert [a.topic for a in orch.get_history()] == ["Old", "New"]


def test_operations_require_login(ledger):
    orch = SessionOrchestrator(StaticSource(), ledger)

    with pytest.raises(SessionStateError):
        orch.request_quiz("Space")
    with pytest.raises(SessionStateError):
        orch.submit()
    with pytest.raises(SessionStateError):
        orch.take_another()


def test_submit_without_quiz_is_rejected(orchestrator):
    with pytest.raises(SessionStateError):
        orchestrator.submit()


def test_submit_twice_is_rejected(orchestrator, ledger):
    orchestrator._generator = StaticSource()
    orchestrator.request_quiz("Space")
    _answer(orchestrator, CORRECT)
    orchestrator.submit()

    with pytest.raises(SessionStateError):
        orchestrator.submit()
    assert len(ledger.get_history("ana")) == 1


def test_ledger_failure_still_returns_result():
    orch = SessionOrchestrator(
        StaticSource(), FailingLedger(MemoryStore()), clock=lambda: NOW
    )
    orch.login("ana")
    orch.request_quiz("Space")
    _answer(orch, CORRECT)

    result = orch.submit()

    assert result.score == 10
    assert orch.phase is SessionPhase.SCORED
    assert orch.session.error == "Your score could not be saved."


def test_take_another_resets_to_idle(orchestrator, ledger):
    orchestrator._generator = StaticSource()
    orchestrator.request_quiz("Space")
    _answer(orchestrator, CORRECT)
    orchestrator.submit()

    history = orchestrator.take_another()

    assert orchestrator.phase is SessionPhase.IDLE
    assert orchestrator.session.quiz is None
    assert [a.topic for a in history] == ["Space"]


def test_take_another_refuses_unsubmitted_quiz(orchestrator, ledger):
    orchestrator._generator = StaticSource()
    orchestrator.request_quiz("Space")
    orchestrator.select_answer(0, 2)

    with pytest.raises(SessionStateError):
        orchestrator.take_another()

    assert orchestrator.phase is SessionPhase.ACTIVE
    assert orchestrator.session.answers[0] == 2
    assert ledger.get_history("ana") == []


def test_take_another_from_idle_refreshes_history(orchestrator, ledger):
    ledger.append_attempt("ana", Attempt.record("Old", 4, 10, at=NOW))

    history = orchestrator.take_another()

    assert orchestrator.phase is SessionPhase.IDLE
    assert [a.topic for a in history] == ["Old"]


def test_request_replaces_active_quiz(orchestrator):
    source = StaticSource()
    orchestrator._generator = source
    orchestrator.request_quiz("Space")
    orchestrator.select_answer(0, 1)

    orchestrator.request_quiz("Rivers")

    assert source.topics == ["Space", "Rivers"]
    assert orchestrator.session.topic == "Rivers"
    assert orchestrator.session.answers == [None] * 10


def test_overlapping_calls_are_rejected_while_requesting(ledger):
    seen = {}

    class ReentrantSource:
        def __init__(self):
            self.orch = None

        def generate_quiz(self, topic):
            assert self.orch.phase is SessionPhase.REQUESTING
            for name, call in (
                ("request", lambda: self.orch.request_quiz("Other")),
                ("submit", self.orch.submit),
                ("take_another", self.orch.take_another),
            ):
                try:
                    call()
                except SessionBusyError as exc:
                    seen[name] = exc
            return build_quiz(topic)

    source = ReentrantSource()
    orch = SessionOrchestrator(source, ledger)
    source.orch = orch
    orch.login("ana")

    orch.request_quiz("Space")

    assert set(seen) == {"request", "submit", "take_another"}
    assert orch.phase is SessionPhase.ACTIVE
    assert orch.session.topic == "Space"


def test_logout_clears_identity_and_session(orchestrator):
    orchestrator._generator = StaticSource()
    orchestrator.request_quiz("Space")

    orchestrator.logout()

    assert orchestrator.identity is None
    assert orchestrator.phase is SessionPhase.IDLE
    assert orchestrator.history == []


def test_get_history_for_other_identity(orchestrator, ledger):
    ledger.append_attempt("ben", Attempt.record("Maths", 4, 10, at=NOW))

    assert [a.topic for a in orchestrator.get_history("ben")] == ["Maths"]


def test_undecodable_ledger_file_does_not_break_the_session(workspace):
    path = workspace.write("scores.json", b"\xff\xfe garbage")
    orch = SessionOrchestrator(
        StaticSource(), ScoreLedger(JsonFileStore(path)), clock=lambda: NOW
    )

    assert orch.login("ana") == []
    orch.request_quiz("Space")
    _answer(orch, CORRECT)
    result = orch.submit()

    assert result.score == 10
    assert orch.phase is SessionPhase.SCORED
    assert orch.session.error is None
    assert [a.topic for a in orch.history] == ["Space"]
