"""Core shared helpers for smart-quiz commands."""

from __future__ import annotations

from .ai import API_KEY_ENV, load_client, resolve_api_key
from .logging import JsonLogFormatter, configure_logger, get_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    describe_layout,
    ensure_workspace,
)

__all__ = [
    "API_KEY_ENV",
    "load_client",
    "resolve_api_key",
    "JsonLogFormatter",
    "configure_logger",
    "get_logger",
    "WORKSPACE_ENV",
    "WorkspaceError",
    "WorkspaceLayout",
    "describe_layout",
    "ensure_workspace",
]
