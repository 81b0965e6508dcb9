"""JSON file implementation of the document store."""

from __future__ import annotations

import copy
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict

from robin_sync.application.exceptions import StorageError
from robin_sync.domain.document_store import DocumentStore
from robin_sync.infrastructure.log_utils import log_message

# Keyed by resolved file path and shared by every store instance.
_LOCKS: Dict[str, threading.Lock] = {}
_REGISTRY_LOCK = threading.Lock()


def _lock_for_path(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _REGISTRY_LOCK:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[key] = lock
        return lock


class JsonFileDocumentStore(DocumentStore):
    """Persist named documents as ``<name>.json`` files inside one directory.

    Every load or save runs under a process-wide lock keyed by the resolved
    file path, so two threads touching the same document are serialized even
    through different store instances, while different documents proceed
    independently. Locks are created lazily and never removed.
    Writes go through a temporary file and ``os.replace`` so a crash mid-write
    leaves the previous document intact.
    """

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise StorageError(f"Invalid document name: {name!r}")
        return self._directory / f"{name}.json"

    def lock_for(self, name: str) -> threading.Lock:
        return _lock_for_path(self.path_for(name))

    def load(self, name: str, default: Any) -> Any:
        path = self.path_for(name)
        with self.lock_for(name):
            try:
                with path.open("r", encoding="utf-8") as handle:
                    return json.load(handle)
            except FileNotFoundError:
                log_message(f"No document at {path}; initializing with default value.", "INFO")
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise StorageError(f"Malformed document at {path}: {exc}", path=str(path)) from exc
            except OSError as exc:
                raise StorageError(f"Could not read document at {path}: {exc}", path=str(path)) from exc

            try:
                self._write(path, default)
            except StorageError as exc:
                raise StorageError(
                    f"Could not write default value to {path}: {exc}", path=str(path)
                ) from exc
            return copy.deepcopy(default)

    def save(self, name: str, value: Any) -> None:
        path = self.path_for(name)
        with self.lock_for(name):
            self._write(path, value)

    def _write(self, path: Path, value: Any) -> None:
        try:
            body = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for {path} is not JSON serializable: {exc}", path=str(path)) from exc

        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=".tmp", dir=path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(body)
                handle.flush()
                os.fsync(handle.fileno())
            try:
                os.chmod(tmp_name, 0o600)
            except OSError as exc:  # pragma: no cover - depends on platform
                log_message(f"Could not set permissions on {path}: {exc}", "WARN")
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise StorageError(f"Could not save to {path}: {exc}", path=str(path)) from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass


__all__ = ["JsonFileDocumentStore"]
