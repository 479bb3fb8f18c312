"""Workspace management commands for smart-quiz."""

from .cli import main

__all__ = ["main"]
