"""Artifact stores for compiled and rendered templates.

A store maps string keys to text artifacts and reports when each artifact
was last written. The Environment keeps two of them: one for compiled
artifacts (invalidated by source modification time) and one for rendered
output (invalidated by age).

Concurrency:
Several processes may render the same template at once and race on the
same key. Writes are idempotent: `FileSystemStore` writes to a temporary
file in the target directory and renames it over the key, so readers see
either the old or the new artifact and the last writer wins. No locking.

Built-in Stores:
- `FileSystemStore`: One file per key under a directory
- `MemoryStore`: Process-local dict (testing/embedded)

"""

from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path
from typing import Protocol

from tagtpl.environment.exceptions import StorageError


class ArtifactStore(Protocol):
    def read(self, key: str) -> str: ...

    def write(self, key: str, data: str) -> None: ...

    def exists(self, key: str) -> bool: ...

    def mtime(self, key: str) -> float: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class FileSystemStore:
    """Store artifacts as files in a single directory.

    The directory is created on first write. An existing directory that is
    not writable raises `StorageError` instead of letting the caller carry
    on with stale artifacts.

    Example:
            >>> store = FileSystemStore("templates_c/")
            >>> store.write("page.compiled", "Hello")
            >>> store.read("page.compiled")
            'Hello'
    """

    __slots__ = ("_directory", "_encoding")

    def __init__(self, directory: str | Path, encoding: str = "utf-8"):
        self._directory = Path(directory)
        self._encoding = encoding

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / key

    def _ensure_writable(self) -> None:
        if not self._directory.is_dir():
            try:
                self._directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError("Cannot create artifact directory", str(self._directory)) from e
        elif not os.access(self._directory, os.W_OK):
            raise StorageError("Artifact directory is not writable", str(self._directory))

    def read(self, key: str) -> str:
        return self._path(key).read_text(self._encoding)

    def write(self, key: str, data: str) -> None:
        self._ensure_writable()
        try:
            fd, tmp = tempfile.mkstemp(dir=self._directory, prefix=".tmp-")
        except OSError as e:
            raise StorageError("Artifact directory is not writable", str(self._directory)) from e
        try:
            with os.fdopen(fd, "w", encoding=self._encoding) as fh:
                fh.write(data)
            os.replace(tmp, self._path(key))
        except OSError as e:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise StorageError("Cannot write artifact", str(self._path(key))) from e

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def mtime(self, key: str) -> float:
        return self._path(key).stat().st_mtime

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass

    def keys(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(
            p.name
            for p in self._directory.iterdir()
            if p.is_file() and not p.name.startswith(".tmp-")
        )

    def stats(self) -> dict[str, int]:
        """Return file count and total bytes of stored artifacts."""
        keys = self.keys()
        return {
            "file_count": len(keys),
            "total_bytes": sum(self._path(k).stat().st_size for k in keys),
        }


class MemoryStore:
    """Keep artifacts in a process-local dict.

    Write times come from ``time.time()``; `touch` lets callers backdate an
    artifact, which is how tests simulate an expired page cache.
    """

    __slots__ = ("_data",)

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, float]] = {}

    def read(self, key: str) -> str:
        return self._data[key][0]

    def write(self, key: str, data: str) -> None:
        self._data[key] = (data, time.time())

    def exists(self, key: str) -> bool:
        return key in self._data

    def mtime(self, key: str) -> float:
        return self._data[key][1]

    def touch(self, key: str, mtime: float) -> None:
        data, _ = self._data[key]
        self._data[key] = (data, mtime)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)

    def stats(self) -> dict[str, int]:
        return {
            "file_count": len(self._data),
            "total_bytes": sum(len(d.encode()) for d, _ in self._data.values()),
        }
