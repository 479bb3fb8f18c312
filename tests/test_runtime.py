from __future__ import annotations

import json

from fixtures import quiz_response
from smart_quiz import play
from smart_quiz.errors import ConfigurationError
from smart_quiz.play import PlayResult
from smart_quiz.runtime import prepare_runtime
from smart_quiz.session import SessionPhase


def test_prepare_runtime_wires_workspace_ledger_and_logs(tmp_path):
    runtime = prepare_runtime(workspace=tmp_path / "ws")

    home = (tmp_path / "ws").resolve()
    assert runtime.layout.home == home
    assert runtime.config.source is None
    assert runtime.ledger.store.path == home / "ledger" / "scores.json"
    assert runtime.log_path == home / "logs" / "smart_quiz.log"


def test_runtime_orchestrator_records_to_json_ledger(tmp_path, fake_client):
    runtime = prepare_runtime(workspace=tmp_path / "ws")
    fake_client.queue_response(quiz_response(correct_indices=[1] * 10))
    orchestrator = runtime.orchestrator(client=fake_client)

    orchestrator.login("ana")
    orchestrator.request_quiz("Space")
    for index in range(10):
        orchestrator.select_answer(index, 1)
    result = orchestrator.submit()

    assert result.score == 10
    stored = json.loads(runtime.ledger.store.path.read_text(encoding="utf-8"))
    assert stored["ana"][0]["topic"] == "Space"
    for handler in runtime.logger.handlers:
        handler.flush()
    log_lines = runtime.log_path.read_text(encoding="utf-8").splitlines()
    messages = [json.loads(line)["message"] for line in log_lines]
    assert "Recorded attempt" in messages


def test_runtime_without_api_key_reports_configuration_error(
    tmp_path, openai_factory
):
    runtime = prepare_runtime(workspace=tmp_path / "ws")
    orchestrator = runtime.orchestrator()
    orchestrator.login("ana")

    try:
        orchestrator.request_quiz("Space")
    except ConfigurationError as exc:
        assert "OPENAI_API_KEY" in exc.user_message
    else:  # pragma: no cover - failure path
        raise AssertionError("expected ConfigurationError")
    assert orchestrator.phase is SessionPhase.IDLE
    assert openai_factory.instances == []


def test_play_main_maps_exit_codes(tmp_path, monkeypatch):
    outcomes = iter(
        [
            PlayResult(identity="ana", exit_action="quit"),
            PlayResult(identity="ana", exit_action="interrupted"),
        ]
    )
    seen = {}

    def fake_run(orchestrator, console, provider, *, identity, topic):
        seen["identity"] = identity
        seen["topic"] = topic
        return next(outcomes)

    monkeypatch.setattr(play, "run_play_session", fake_run)
    args = ["--workspace", str(tmp_path / "ws"), "--user", "ana"]

    assert play.main(args + ["--topic", "Space"]) == 0
    assert seen == {"identity": "ana", "topic": "Space"}
    assert play.main(args) == 130


def test_play_main_reports_bad_config(tmp_path, capsys):
    bad = tmp_path / "bad.toml"
    bad.write_text("[providers.openai]\ntemperature = 9\n", encoding="utf-8")

    code = play.main(["--config", str(bad), "--workspace", str(tmp_path / "w")])

    assert code == 2
    assert "temperature" in capsys.readouterr().err
