# authcore/infra/file/json_store.py
from __future__ import annotations

import json
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from authcore.services._shared.errors import StorageUnavailable

_registry_guard = threading.Lock()
_file_locks: dict[Path, threading.Lock] = {}


def _lock_for(path: Path) -> threading.Lock:
    """Return the process-wide lock guarding ``path``."""
    with _registry_guard:
        return _file_locks.setdefault(path, threading.Lock())


class JsonFileStore:
    """
    A JSON array persisted in a single file.

    Every mutation is a read-modify-write under a per-file lock, and writes go
    to a temporary file in the same directory followed by :func:`os.replace`,
    so readers never observe a half-written document.

    .. note::
       The lock is in-process only; run file-backed deployments with a single
       worker process.

    :param path: Target JSON file. Parent directories are created on demand.
    :param timeout: Seconds to wait for the lock before giving up.
    """

    def __init__(self, path: str | os.PathLike[str], *, timeout: float = 5.0) -> None:
        self.path = Path(path).resolve()
        self.timeout = timeout
        self._lock = _lock_for(self.path)

    # -------------------- helpers --------------------

    def _read(self) -> list[dict[str, Any]]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageUnavailable(f"Cannot read {self.path.name}") from exc
        if not isinstance(data, list):
            raise StorageUnavailable(f"{self.path.name} does not hold a JSON array")
        return data

    def _write(self, rows: list[dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(rows, fh, indent=2)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp, self.path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageUnavailable(f"Cannot write {self.path.name}") from exc

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self.timeout):
            raise StorageUnavailable(f"Timed out waiting for {self.path.name}")
        try:
            yield
        finally:
            self._lock.release()

    # -------------------- API ------------------------

    def load(self) -> list[dict[str, Any]]:
        """Return a snapshot of all rows (``[]`` when the file does not exist)."""
        with self._locked():
            return self._read()

    @contextmanager
    def transaction(self) -> Iterator[list[dict[str, Any]]]:
        """
        Hold the lock and yield the rows for in-place mutation.

        The (possibly mutated) list is written back when the block exits
        without error; on error the file is left untouched.
        """
        with self._locked():
            rows = self._read()
            yield rows
            self._write(rows)
