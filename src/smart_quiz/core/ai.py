"""Shared AI helper utilities."""

from __future__ import annotations

import os
from typing import Any, Mapping

from dotenv import load_dotenv

from ..errors import ConfigurationError

try:  # Allow module import even when the OpenAI dependency is absent.
    from openai import OpenAI  # type: ignore
except Exception:  # pragma: no cover - optional dependency guard
    OpenAI = None  # type: ignore

__all__ = ["API_KEY_ENV", "load_client", "resolve_api_key"]


API_KEY_ENV = "OPENAI_API_KEY"

# Values shipped in sample .env files that were never replaced.
_PLACEHOLDER_MARKERS = ("paste_your", "your_api_key", "your-api-key")


def resolve_api_key(env: Mapping[str, str] | None = None) -> str:
    """Return a usable API key or raise :class:`ConfigurationError`."""

    env_map = os.environ if env is None else env
    api_key = (env_map.get(API_KEY_ENV) or "").strip()
    if not api_key:
        raise ConfigurationError(
            f"{API_KEY_ENV} not found in environment. Set it or add to .env"
        )
    lowered = api_key.lower()
    if any(marker in lowered for marker in _PLACEHOLDER_MARKERS):
        raise ConfigurationError(
            f"{API_KEY_ENV} still holds a placeholder value; replace it with "
            "a real key."
        )
    return api_key


def load_client(
    *,
    api_base: str | None = None,
    timeout: float | None = None,
) -> Any:
    """Initialize an OpenAI client using environment-derived credentials."""

    if OpenAI is None:
        raise ConfigurationError(
            "The 'openai' package is required to create a client. "
            "Install it and retry."
        )
    load_dotenv()
    api_key = resolve_api_key()
    kwargs: dict[str, Any] = {"api_key": api_key}
    if api_base:
        kwargs["base_url"] = api_base
    if timeout is not None:
        kwargs["timeout"] = timeout
    return OpenAI(**kwargs)
