"""TOML configuration for smart-quiz.

Defaults live in ``_DEFAULTS``; a user file may override any known key and
unknown keys are rejected so typos surface early. Secrets such as the OpenAI
API key are read from the environment (or ``.env``), never from this file.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover - should never happen
    raise RuntimeError("Python 3.11+ required for tomllib support") from exc

from .core import workspace as workspace_mod


CONFIG_PATH_ENV = "SMART_QUIZ_CONFIG"
LEDGER_PATH_ENV = "SMART_QUIZ_LEDGER"
CONFIG_FILENAME = workspace_mod.CONFIG_FILENAME
LEDGER_FILENAME = workspace_mod.LEDGER_FILENAME


class ConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class OpenAIConfig:
    chat_model: str
    temperature: float
    max_output_tokens: int
    request_timeout_seconds: int
    api_base: Optional[str]


@dataclass(frozen=True)
class LedgerConfig:
    path_override: Optional[Path]


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizConfig:
    openai: OpenAIConfig
    ledger: LedgerConfig
    logging: LoggingConfig
    source: Optional[Path] = None

    def ledger_path(
        self,
        layout: workspace_mod.WorkspaceLayout,
        *,
        env: Mapping[str, str] | None = None,
    ) -> Path:
        """Return the ledger file, honouring env and config overrides."""

        env_map = os.environ if env is None else env
        env_override = (env_map.get(LEDGER_PATH_ENV) or "").strip()
        if env_override:
            return Path(env_override).expanduser().resolve()
        if self.ledger.path_override is not None:
            return self.ledger.path_override
        return layout.ledger_file


def _merge_dict(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise ConfigError(f"Unknown configuration key '{dotted}'.")
        base_value = base[key]
        if isinstance(base_value, MutableMapping):
            if not isinstance(value, Mapping):
                raise ConfigError(
                    "Expected table for '{0}', found {1}.".format(
                        dotted,
                        type(value).__name__,
                    )
                )
            _merge_dict(base_value, value, path=f"{dotted}.")
        else:
            base[key] = value


def _require_positive_int(value: Any, *, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"'{field}' must be a positive integer.")
    return value


def _require_bool(value: Any, *, field: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"'{field}' must be a boolean.")
    return value


def _require_float_range(
    value: Any, *, field: str, min_value: float, max_value: float
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{field}' must be a number.")
    number = float(value)
    if not (min_value <= number <= max_value):
        raise ConfigError(
            f"'{field}' must be between {min_value} and {max_value}."
        )
    return number


def _require_string(value: Any, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _coerce_optional_string(value: Any, *, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{field}' must be a non-empty string when set.")
    return value.strip()


def _build_openai(section: Mapping[str, Any]) -> OpenAIConfig:
    return OpenAIConfig(
        chat_model=_require_string(
            section.get("chat_model"), field="providers.openai.chat_model"
        ),
        temperature=_require_float_range(
            section.get("temperature"),
            field="providers.openai.temperature",
            min_value=0.0,
            max_value=2.0,
        ),
        max_output_tokens=_require_positive_int(
            section.get("max_output_tokens"),
            field="providers.openai.max_output_tokens",
        ),
        request_timeout_seconds=_require_positive_int(
            section.get("request_timeout_seconds"),
            field="providers.openai.request_timeout_seconds",
        ),
        api_base=_coerce_optional_string(
            section.get("api_base"), field="providers.openai.api_base"
        ),
    )


def _build_ledger(section: Mapping[str, Any]) -> LedgerConfig:
    raw = _coerce_optional_string(section.get("path"), field="ledger.path")
    override = Path(raw).expanduser().resolve() if raw else None
    return LedgerConfig(path_override=override)


def _build_logging(section: Mapping[str, Any]) -> LoggingConfig:
    level = _require_string(section.get("level"), field="logging.level").upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigError(
            "logging.level must be one of "
            "DEBUG, INFO, WARNING, ERROR, CRITICAL."
        )
    verbose = _require_bool(section.get("verbose"), field="logging.verbose")
    return LoggingConfig(level=level, verbose=verbose)


def _build_config(
    tree: Mapping[str, Any], *, source: Optional[Path]
) -> QuizConfig:
    providers = tree["providers"]
    return QuizConfig(
        openai=_build_openai(providers["openai"]),
        ledger=_build_ledger(tree["ledger"]),
        logging=_build_logging(tree["logging"]),
        source=source,
    )


def _load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse config TOML: {exc}") from exc


def resolve_config_path(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    layout: workspace_mod.WorkspaceLayout | None = None,
) -> Path:
    """Return the config path that :func:`load_config` would read."""

    env_map = os.environ if env is None else env
    if explicit_path is not None:
        return explicit_path.expanduser().resolve()
    env_override = (env_map.get(CONFIG_PATH_ENV) or "").strip()
    if env_override:
        return Path(env_override).expanduser().resolve()
    if layout is None:
        layout = workspace_mod.ensure_workspace(env=env_map, create=False)
    return layout.config_file


def load_config(
    *,
    explicit_path: Optional[Path] = None,
    env: Mapping[str, str] | None = None,
    layout: workspace_mod.WorkspaceLayout | None = None,
) -> QuizConfig:
    """Load the TOML config, applying defaults and validation.

    An explicitly requested file must exist. The default location is
    optional: when nothing is there the built-in defaults are used.
    """

    path = resolve_config_path(explicit_path=explicit_path, env=env, layout=layout)
    tree = default_tree()
    if path.exists() or explicit_path is not None:
        toml_data = _load_toml(path)
        _merge_dict(tree, toml_data)
        return _build_config(tree, source=path)
    return _build_config(tree, source=None)


def default_tree() -> Dict[str, Any]:
    """Return a copy of the default configuration tree."""

    return copy.deepcopy(_DEFAULTS)


def config_template() -> str:
    """Return the TOML template recommended for new installs."""

    return _CONFIG_TEMPLATE.strip() + "\n"


def write_template(
    path: Path, *, overwrite: bool = False, mode: int = 0o600
) -> Path:
    """Write the default template to ``path``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise ConfigError(f"Config already exists: {path}")
    with path.open("w", encoding="utf-8") as fh:
        fh.write(config_template())
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


_DEFAULTS: Dict[str, Any] = {
    "providers": {
        "openai": {
            "chat_model": "gpt-4o-mini",
            "temperature": 0.7,
            "max_output_tokens": 4000,
            "request_timeout_seconds": 60,
            "api_base": None,
        },
    },
    "ledger": {
        "path": None,
    },
    "logging": {
        "level": "INFO",
        "verbose": False,
    },
}


_CONFIG_TEMPLATE = """
# smart-quiz configuration
# The OpenAI API key is read from OPENAI_API_KEY (environment or .env).

[providers.openai]
# Chat completion model used to write quizzes
chat_model = "gpt-4o-mini"
# Sampling temperature (0.0-2.0)
temperature = 0.7
# Ten questions with explanations fit comfortably in this budget
max_output_tokens = 4000
request_timeout_seconds = 60
# Optional API base override
# api_base = "https://api.openai.com/v1"

[ledger]
# Score history file (defaults to <workspace>/ledger/scores.json)
# path = "~/smart-quiz-scores.json"

[logging]
level = "INFO"
verbose = false
"""
