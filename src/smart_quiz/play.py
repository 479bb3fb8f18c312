"""Rich-powered interactive quiz front-end (``smart-quiz play``).

The loop asks for a name, then repeatedly asks for a topic, renders the
generated questions, collects answers through short commands and shows the
scored feedback together with past scores. All state changes go through
:class:`~smart_quiz.orchestrator.SessionOrchestrator`; this module only reads
input and renders.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import ConfigError
from .core.workspace import WorkspaceError
from .errors import IncompleteAnswersError, QuizError
from .models import Attempt
from .orchestrator import SessionOrchestrator
from .scoring import ScoreResult

InputProvider = Callable[[str], str]
ExitAction = Literal["quit", "interrupted"]

_OPTION_KEYS = "ABCD"


@dataclass(frozen=True)
class PlayCommand:
    """Normalized command parsed from the answering prompt."""

    type: Literal["select", "next", "prev", "goto", "submit", "quit"]
    value: Optional[int] = None


@dataclass
class PlayResult:
    """What happened during one ``play`` run."""

    identity: Optional[str]
    results: list[ScoreResult] = field(default_factory=list)
    exit_action: ExitAction = "quit"


class _Interrupted(Exception):
    pass


def parse_play_command(raw: Optional[str]) -> Optional[PlayCommand]:
    """Parse answering-prompt input into a :class:`PlayCommand`."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in {"n", "next"}:
        return PlayCommand("next")
    if lowered in {"p", "prev", "previous"}:
        return PlayCommand("prev")
    if lowered in {"s", "submit"}:
        return PlayCommand("submit")
    if lowered in {"q", "quit", "exit"}:
        return PlayCommand("quit")
    head, _, tail = lowered.partition(" ")
    if head in {"g", "goto"} and tail.strip().isdigit():
        return PlayCommand("goto", int(tail.strip()) - 1)
    if len(text) == 1:
        key = text.upper()
        if key in _OPTION_KEYS:
            return PlayCommand("select", _OPTION_KEYS.index(key))
        if key.isdigit() and 1 <= int(key) <= len(_OPTION_KEYS):
            return PlayCommand("select", int(key) - 1)
    return None


def run_play_session(
    orchestrator: SessionOrchestrator,
    console: Console,
    input_provider: InputProvider,
    *,
    identity: Optional[str] = None,
    topic: Optional[str] = None,
) -> PlayResult:
    """Run the interactive quiz loop until the user quits."""

    result = PlayResult(identity=None)
    pending_topic = topic
    try:
        _login(orchestrator, console, input_provider, identity)
        result.identity = orchestrator.identity
        while True:
            render_history(console, orchestrator.history)
            chosen = _prompt_topic(
                orchestrator, console, input_provider, pending_topic
            )
            pending_topic = None
            if chosen is None:
                break
            if not _request(orchestrator, console, chosen):
                continue
            scored = _answer_loop(orchestrator, console, input_provider)
            if scored is None:
                break
            result.results.append(scored)
            render_results(console, scored, orchestrator.session.error)
            if not _ask_another(console, input_provider):
                break
            orchestrator.take_another()
    except _Interrupted:
        console.print("\n[bold yellow]Session interrupted.[/]")
        result.exit_action = "interrupted"
    orchestrator.logout()
    return result


def _read(input_provider: InputProvider, prompt: str) -> str:
    try:
        return input_provider(prompt)
    except (EOFError, KeyboardInterrupt, StopIteration) as exc:
        raise _Interrupted() from exc


def _login(
    orchestrator: SessionOrchestrator,
    console: Console,
    input_provider: InputProvider,
    identity: Optional[str],
) -> None:
    console.print(Panel("Welcome to Smart Quiz", border_style="cyan"))
    candidate = identity
    while True:
        if candidate is None:
            candidate = _read(input_provider, "Your name: ")
        try:
            orchestrator.login(candidate)
        except QuizError as exc:
            console.print(f"[red]{exc.user_message}[/red]")
            candidate = None
            continue
        name = escape(orchestrator.identity or "")
        console.print(f"User: [bold]{name}[/bold]")
        return


def _prompt_topic(
    orchestrator: SessionOrchestrator,
    console: Console,
    input_provider: InputProvider,
    preset: Optional[str],
) -> Optional[str]:
    previous = orchestrator.session.topic
    if preset:
        return preset
    hint = f" {escape(f'[{previous}]')}" if previous else ""
    while True:
        raw = _read(input_provider, f"Topic{hint} (or 'quit'): ").strip()
        if raw.lower() in {"q", "quit", "exit", "logout"}:
            return None
        if raw:
            return raw
        if previous:
            return previous
        console.print("[red]Please enter a topic.[/red]")


def _request(
    orchestrator: SessionOrchestrator, console: Console, topic: str
) -> bool:
    console.print(f"Generating quiz on [bold]{escape(topic)}[/bold]...")
    try:
        orchestrator.request_quiz(topic)
    except QuizError as exc:
        message = orchestrator.session.error or exc.user_message
        console.print(f"[red]{message}[/red]")
        return False
    return True


def _answer_loop(
    orchestrator: SessionOrchestrator,
    console: Console,
    input_provider: InputProvider,
) -> Optional[ScoreResult]:
    session = orchestrator.session
    index = 0
    while True:
        render_question(console, orchestrator, index)
        command = parse_play_command(_read(input_provider, "> "))
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type == "select" and command.value is not None:
            orchestrator.select_answer(index, command.value)
            if index + 1 < session.total_questions:
                index += 1
        elif command.type == "next":
            index = min(index + 1, session.total_questions - 1)
        elif command.type == "prev":
            index = max(index - 1, 0)
        elif command.type == "goto" and command.value is not None:
            if 0 <= command.value < session.total_questions:
                index = command.value
            else:
                console.print("[red]No such question.[/red]")
        elif command.type == "quit":
            console.print("\n[bold yellow]Ending session without submission.[/]")
            return None
        elif command.type == "submit":
            try:
                return orchestrator.submit()
            except IncompleteAnswersError as exc:
                numbers = ", ".join(str(i + 1) for i in exc.missing)
                console.print(
                    f"[red]{exc.user_message}[/red] Unanswered: {numbers}"
                )
                index = exc.missing[0] if exc.missing else index
            except QuizError as exc:
                console.print(f"[red]{exc.user_message}[/red]")


def _ask_another(console: Console, input_provider: InputProvider) -> bool:
    while True:
        raw = _read(
            input_provider, "Take another quiz? \\[Y/n] "
        ).strip().lower()
        if raw in {"", "y", "yes", "a", "another"}:
            return True
        if raw in {"n", "no", "q", "quit", "logout"}:
            return False
        console.print("[red]Please answer y or n.[/red]")


def render_question(
    console: Console, orchestrator: SessionOrchestrator, index: int
) -> None:
    session = orchestrator.session
    assert session.quiz is not None
    question = session.quiz[index]
    header = Text.assemble(
        (f"Question {index + 1}", "bold cyan"),
        (f" / {session.total_questions}", "dim"),
        (f"  Topic: {session.topic}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(question.text, style="bold"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Option")
    selected = session.selected_for(index)
    for option_index, option in enumerate(question.options):
        chosen = option_index == selected
        row = Text(("• " if chosen else "  ") + option)
        if chosen:
            row.stylize("bold green")
        table.add_row(_OPTION_KEYS[option_index], row)
    console.print(table)
    console.print(
        Text(
            f"Answered {session.answered_count()}/{session.total_questions} | "
            "Commands: A-D (select), n (next), p (prev), g <num>, submit, "
            "quit",
            style="dim",
        )
    )


def render_results(
    console: Console, result: ScoreResult, warning: Optional[str] = None
) -> None:
    console.print()
    console.rule(Text("Quiz Results", style="bold magenta"))
    console.print(
        Text(f"Score: {result.score} / {result.total}", style="bold")
    )
    for number, item in enumerate(result.feedback, start=1):
        lines = [f"Your answer: {item.selected_text}"]
        if not item.is_correct:
            lines.append(f"Correct: {item.correct_text}")
        if item.explanation:
            lines.append(item.explanation)
        console.print(
            Panel(
                Text("\n".join(lines)),
                title=Text(f"{number}. {item.question.text}", style="bold"),
                title_align="left",
                border_style="green" if item.is_correct else "red",
            )
        )
    if warning:
        console.print(f"[yellow]{warning}[/yellow]")


def render_history(console: Console, attempts: Sequence[Attempt]) -> None:
    console.print()
    if not attempts:
        console.print("Your Past Scores: [dim]No quizzes taken yet.[/dim]")
        return
    table = Table(title="Your Past Scores", box=box.SIMPLE, expand=False)
    table.add_column("Topic")
    table.add_column("Date")
    table.add_column("Score", justify="right")
    for attempt in attempts:
        table.add_row(
            Text(attempt.topic),
            _format_date(attempt),
            f"{attempt.score} / {attempt.total}",
        )
    console.print(table)


def _format_date(attempt: Attempt) -> str:
    try:
        return attempt.recorded_at.astimezone().strftime("%Y-%m-%d")
    except ValueError:
        return attempt.timestamp


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smart-quiz play",
        description="Generate a quiz on a topic, answer it and record the score.",
    )
    parser.add_argument("--user", help="Name to log in as (prompted if omitted).")
    parser.add_argument("--topic", help="Topic for the first quiz.")
    parser.add_argument("--config", type=Path, help="Path to smart_quiz.toml.")
    parser.add_argument(
        "--workspace", type=Path, help="Workspace root override."
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Echo logs to stderr."
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    from .runtime import prepare_runtime

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        runtime = prepare_runtime(
            config_path=args.config,
            workspace=args.workspace,
            verbose=args.verbose,
        )
    except (ConfigError, WorkspaceError) as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2

    console = Console()
    orchestrator = runtime.orchestrator()
    outcome = run_play_session(
        orchestrator,
        console,
        lambda prompt: console.input(prompt),
        identity=args.user,
        topic=args.topic,
    )
    runtime.logger.info(
        "Play session finished",
        extra={
            "identity": outcome.identity,
            "quizzes": len(outcome.results),
            "exit_action": outcome.exit_action,
        },
    )
    return 130 if outcome.exit_action == "interrupted" else 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
