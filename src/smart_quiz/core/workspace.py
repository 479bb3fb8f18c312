"""Per-user data directory holding config, logs and the score ledger."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, MutableMapping


WORKSPACE_ENV = "SMART_QUIZ_DATA_HOME"
DEFAULT_WORKSPACE = Path.home() / ".smart-quiz-data"

CONFIG_FILENAME = "smart_quiz.toml"
LEDGER_FILENAME = "scores.json"
LOG_FILENAME = "smart_quiz.log"

SUBDIRECTORIES = ("config", "logs", "ledger")


class WorkspaceError(RuntimeError):
    """Raised when the workspace layout cannot be prepared."""


@dataclass(frozen=True)
class WorkspaceLayout:
    """Resolved workspace paths and which of them were just created."""

    home: Path
    directories: Mapping[str, Path]
    created: Mapping[str, bool]

    def path_for(self, key: str) -> Path:
        if key not in self.directories:
            raise KeyError(f"Unknown workspace directory '{key}'.")
        return self.directories[key]

    def items(self) -> tuple[tuple[str, Path], ...]:
        return tuple(self.directories.items())

    @property
    def config_file(self) -> Path:
        return self.directories["config"] / CONFIG_FILENAME

    @property
    def ledger_file(self) -> Path:
        return self.directories["ledger"] / LEDGER_FILENAME

    @property
    def log_dir(self) -> Path:
        return self.directories["logs"]


def ensure_workspace(
    *,
    env: Mapping[str, str] | None = None,
    path: Path | None = None,
    create: bool = True,
) -> WorkspaceLayout:
    """Resolve the workspace and, unless ``create`` is false, build it.

    The root comes from ``path``, then ``SMART_QUIZ_DATA_HOME``, then
    ``~/.smart-quiz-data``. Only the last one may fall back to a directory
    under the system temp dir when it is not writable; a root the user chose
    explicitly fails with :class:`WorkspaceError` instead.
    """

    env_map = os.environ if env is None else env
    root, chosen = _resolve_root(env_map, override=path)

    roots = [root]
    if create and not chosen and _fallback_base() != root:
        roots.append(_fallback_base())

    denied: PermissionError | None = None
    for candidate in roots:
        try:
            return _build_layout(candidate, create=create)
        except PermissionError as exc:
            denied = exc
    raise WorkspaceError(f"Unable to prepare workspace at {root}") from denied


def describe_layout(
    *, env: Mapping[str, str] | None = None, path: Path | None = None
) -> Mapping[str, Path]:
    """Return ``home`` plus each subdirectory without touching the disk."""

    layout = ensure_workspace(env=env, path=path, create=False)
    return MappingProxyType({"home": layout.home, **layout.directories})


def _resolve_root(
    env: Mapping[str, str], *, override: Path | None
) -> tuple[Path, bool]:
    from_env = (env.get(WORKSPACE_ENV) or "").strip()
    if override is not None:
        root, chosen = override, True
    elif from_env:
        root, chosen = Path(from_env), True
    else:
        root, chosen = DEFAULT_WORKSPACE, False
    root = root.expanduser()
    try:
        return root.resolve(), chosen
    except FileNotFoundError:
        return root.absolute(), chosen


def _fallback_base() -> Path:
    return Path(tempfile.gettempdir()) / "smart-quiz-data"


def _build_layout(root: Path, *, create: bool) -> WorkspaceLayout:
    _reject_file(root, "Configured workspace exists and is not a directory")

    created: MutableMapping[str, bool] = {"home": False}
    if create:
        created["home"] = _ensure_dir(root)

    directories: MutableMapping[str, Path] = {}
    for name in SUBDIRECTORIES:
        target = root / name
        if create:
            created[name] = _ensure_dir(target)
        else:
            _reject_file(target, f"Workspace entry '{name}' is a file")
            created[name] = False
        directories[name] = target

    return WorkspaceLayout(
        home=root,
        directories=MappingProxyType(dict(directories)),
        created=MappingProxyType(dict(created)),
    )


def _reject_file(path: Path, message: str) -> None:
    if path.exists() and not path.is_dir():
        raise WorkspaceError(f"{message}: {path}")


def _ensure_dir(path: Path) -> bool:
    """Create ``path`` (mode 700) and report whether it was new."""

    is_new = not path.exists()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError as exc:  # pragma: no cover - depends on platform
        raise WorkspaceError(f"Not a directory: {path}") from exc
    try:
        path.chmod(0o700)
    except (PermissionError, NotImplementedError):
        pass
    if not path.is_dir():
        raise WorkspaceError(f"Not a directory: {path}")
    return is_new
