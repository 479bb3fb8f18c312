"""Append-only score history keyed by user identity.

The ledger talks to a small key-value store collaborator exposing ``read``,
``write`` and ``lock``. :class:`JsonFileStore` keeps everything in one JSON
document on disk; :class:`MemoryStore` keeps it in process memory.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
import time
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .core.logging import get_logger
from .errors import LedgerError, ValidationError
from .models import Attempt

__all__ = [
    "LedgerStore",
    "MemoryStore",
    "JsonFileStore",
    "ScoreLedger",
]


_LOCK_SUFFIX = ".lock"
_LOCK_TIMEOUT_SECONDS = 5.0
# A lock older than this was left behind by a process that died holding it.
_LOCK_STALE_SECONDS = 5.0
_CORRUPT_SUFFIX = ".corrupt"

LedgerData = Dict[str, List[Dict[str, Any]]]


class LedgerStore(Protocol):
    """Persistence boundary used by :class:`ScoreLedger`."""

    def read(self) -> LedgerData:
        ...

    def write(self, data: Mapping[str, List[Mapping[str, Any]]]) -> None:
        ...

    def lock(self) -> AbstractContextManager[Any]:
        ...


class MemoryStore:
    """In-memory store, handy for tests and embedding."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None) -> None:
        self._data: LedgerData = copy.deepcopy(dict(initial or {}))
        self._lock = threading.Lock()

    def read(self) -> LedgerData:
        return copy.deepcopy(self._data)

    def write(self, data: Mapping[str, List[Mapping[str, Any]]]) -> None:
        self._data = copy.deepcopy(dict(data))

    def lock(self) -> AbstractContextManager[Any]:
        return self._lock


class JsonFileStore:
    """Single JSON document mapping identity to a list of attempts.

    A missing, unreadable or corrupt file reads as an empty ledger so a
    damaged history never blocks a quiz session. Writes replace the file
    atomically. Before the first write over a corrupt file the old bytes are
    moved to ``<name>.corrupt``, and entries that are not attempt lists are
    written back untouched.
    """

    def __init__(
        self, path: Path, *, logger: Optional[logging.Logger] = None
    ) -> None:
        self._path = Path(path)
        self._logger = logger or get_logger(__name__)
        self._damaged = False
        self._unrecognised: Dict[str, Any] = {}

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> LedgerData:
        self._damaged = False
        self._unrecognised = {}
        if not self._path.is_file():
            return {}
        try:
            raw = self._path.read_bytes()
        except OSError as exc:
            self._logger.warning(
                "Ledger file unreadable; treating as empty",
                extra={"path": str(self._path), "error": repr(exc)},
            )
            return {}
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            self._damaged = True
            self._logger.warning(
                "Ledger file is not valid JSON; treating as empty",
                extra={"path": str(self._path), "error": str(exc)},
            )
            return {}
        if not isinstance(data, dict):
            self._damaged = True
            self._logger.warning(
                "Ledger root is not an object; treating as empty",
                extra={"path": str(self._path)},
            )
            return {}
        cleaned: LedgerData = {}
        for identity, history in data.items():
            if not isinstance(history, list):
                self._logger.warning(
                    "Skipping non-list history",
                    extra={"path": str(self._path), "identity": identity},
                )
                self._unrecognised[str(identity)] = history
                continue
            cleaned[str(identity)] = history
        return cleaned

    def write(self, data: Mapping[str, List[Mapping[str, Any]]]) -> None:
        payload: Dict[str, Any] = dict(data)
        for identity, value in self._unrecognised.items():
            payload.setdefault(identity, value)
        if self._damaged:
            self._set_aside()
        _atomic_write_json(self._path, payload)

    def _set_aside(self) -> None:
        backup = self._path.with_name(self._path.name + _CORRUPT_SUFFIX)
        if backup.exists():
            stamp = time.strftime("%Y%m%d%H%M%S")
            backup = backup.with_name(f"{backup.name}.{stamp}")
        if self._path.is_file():
            os.replace(self._path, backup)
            self._logger.warning(
                "Moved corrupt ledger file aside",
                extra={"path": str(self._path), "backup": str(backup)},
            )
        self._damaged = False

    def lock(self) -> AbstractContextManager[Any]:
        return _FileLock(self._path.with_name(self._path.name + _LOCK_SUFFIX))


class ScoreLedger:
    """Durable mapping from identity to an ordered list of attempts."""

    def __init__(
        self,
        store: LedgerStore,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._logger = logger or get_logger(__name__)

    @property
    def store(self) -> LedgerStore:
        return self._store

    def get_history(self, identity: str) -> list[Attempt]:
        """Return the attempts recorded for ``identity`` in insertion order."""

        _require_identity(identity)
        entries = self._store.read().get(identity, [])
        history: list[Attempt] = []
        for position, entry in enumerate(entries):
            try:
                history.append(Attempt.from_dict(entry))
            except ValueError as exc:
                self._logger.warning(
                    "Skipping malformed attempt",
                    extra={
                        "identity": identity,
                        "position": position,
                        "reason": str(exc),
                    },
                )
        return history

    def append_attempt(self, identity: str, attempt: Attempt) -> None:
        """Append ``attempt`` to the end of ``identity``'s history."""

        _require_identity(identity)
        if not attempt.topic or not attempt.topic.strip():
            raise ValidationError("Attempt topic is required.")
        try:
            with self._store.lock():
                data = self._store.read()
                data.setdefault(identity, []).append(dict(attempt.to_dict()))
                self._store.write(data)
        except (OSError, LedgerError) as exc:
            self._logger.error(
                "Failed to persist attempt",
                extra={"identity": identity, "error": repr(exc)},
            )
            if isinstance(exc, LedgerError):
                raise
            raise LedgerError(f"Failed to persist attempt: {exc}") from exc
        self._logger.info(
            "Recorded attempt",
            extra={
                "identity": identity,
                "topic": attempt.topic,
                "score": attempt.score,
                "total": attempt.total,
            },
        )


def _require_identity(identity: str) -> None:
    if not isinstance(identity, str) or not identity:
        raise ValidationError("Username is required.")


class _FileLock:
    """Simple filesystem lock using exclusive file creation."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def __enter__(self) -> "_FileLock":
        self._path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.time() + _LOCK_TIMEOUT_SECONDS
        while True:
            try:
                fd = os.open(self._path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                os.close(fd)
                return self
            except FileExistsError:
                if self._clear_stale():
                    continue
                if time.time() > deadline:
                    raise LedgerError(
                        f"Timed out waiting for ledger lock: {self._path}"
                    )
                time.sleep(0.05)

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self._path.unlink(missing_ok=True)

    def _clear_stale(self) -> bool:
        try:
            age = time.time() - self._path.stat().st_mtime
        except FileNotFoundError:
            return True
        if age <= _LOCK_STALE_SECONDS:
            return False
        get_logger(__name__).warning(
            "Removing stale ledger lock",
            extra={"path": str(self._path), "age_seconds": round(age, 1)},
        )
        self._path.unlink(missing_ok=True)
        return True


def _atomic_write_json(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = tempfile.NamedTemporaryFile(
        "w",
        delete=False,
        encoding="utf-8",
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.flush()
        os.fsync(handle.fileno())
    except BaseException:
        handle.close()
        Path(handle.name).unlink(missing_ok=True)
        raise
    handle.close()
    os.replace(handle.name, path)
    try:
        path.chmod(0o600)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
