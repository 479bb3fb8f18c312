"""Wire configuration, logging and collaborators for CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import QuizConfig, load_config
from .core import workspace as workspace_mod
from .core.logging import LOGGER_ROOT, configure_logger
from .generation import QuizGenerator
from .ledger import JsonFileStore, ScoreLedger
from .orchestrator import SessionOrchestrator


@dataclass(frozen=True)
class Runtime:
    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    logger: logging.Logger
    log_path: Path
    ledger: ScoreLedger

    def orchestrator(self, *, client: object = None) -> SessionOrchestrator:
        generator = QuizGenerator.from_config(self.config, client=client)
        return SessionOrchestrator(generator, self.ledger)


def prepare_runtime(
    *,
    config_path: Optional[Path] = None,
    workspace: Optional[Path] = None,
    verbose: bool = False,
) -> Runtime:
    """Load config, prepare the workspace and configure logging.

    Raises :class:`~smart_quiz.config.ConfigError` or
    :class:`~smart_quiz.core.workspace.WorkspaceError` for the caller to
    report.
    """

    layout = workspace_mod.ensure_workspace(path=workspace)
    config = load_config(explicit_path=config_path, layout=layout)
    logger, log_path = configure_logger(
        LOGGER_ROOT,
        log_dir=layout.log_dir,
        level=config.logging.level,
        verbose=verbose or config.logging.verbose,
        filename=workspace_mod.LOG_FILENAME,
    )
    ledger_path = config.ledger_path(layout)
    logger.debug(
        "Runtime prepared",
        extra={
            "workspace": str(layout.home),
            "config": str(config.source) if config.source else None,
            "ledger": str(ledger_path),
        },
    )
    ledger = ScoreLedger(JsonFileStore(ledger_path))
    return Runtime(
        config=config,
        layout=layout,
        logger=logger,
        log_path=log_path,
        ledger=ledger,
    )
