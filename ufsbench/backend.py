from __future__ import annotations

import collections
import io
import logging
import os
import threading
from typing import Protocol

from .errors import IOFailure
from .stream import ReopenAndSkip, SeekableResourceStream, native_seek

LOGGER = logging.getLogger("ufsbench.backend")


class StorageClient(Protocol):
    """Open/length capability the harness and the pool depend on."""

    def open(self, path: str) -> SeekableResourceStream:
        ...

    def get_length(self, path: str) -> int:
        ...


class LocalStorageClient:
    """Storage client over the local filesystem."""

    def __init__(self) -> None:
        self.counters: collections.Counter[str] = collections.Counter()
        self._lock = threading.Lock()

    def open(self, path: str) -> SeekableResourceStream:
        try:
            raw = open(path, "rb")
        except OSError as exc:
            raise IOFailure(f"failed to open {path}: {exc}") from exc
        with self._lock:
            self.counters[path] += 1
        LOGGER.debug("Opened %s", path)
        return SeekableResourceStream(raw, native_seek, file_path=path)

    def get_length(self, path: str) -> int:
        try:
            return os.stat(path).st_size
        except OSError as exc:
            raise IOFailure(f"failed to stat {path}: {exc}") from exc


class MemoryStorageClient:
    """In-memory object store.

    With ``native_seek=False`` streams behave like forward-only object
    downloads and reposition through :class:`ReopenAndSkip`.
    """

    def __init__(self, objects: dict[str, bytes] | None = None, native_seek: bool = True) -> None:
        self._objects: dict[str, bytes] = dict(objects or {})
        self._native_seek = native_seek
        self.counters: collections.Counter[str] = collections.Counter()
        self._lock = threading.Lock()

    def put(self, path: str, data: bytes) -> None:
        with self._lock:
            self._objects[path] = bytes(data)

    def open(self, path: str) -> SeekableResourceStream:
        raw = self._open_raw(path)
        if self._native_seek:
            return SeekableResourceStream(raw, native_seek, file_path=path)
        return SeekableResourceStream(
            raw, ReopenAndSkip(lambda: self._open_raw(path)), file_path=path
        )

    def get_length(self, path: str) -> int:
        return len(self._lookup(path))

    def _open_raw(self, path: str) -> io.BytesIO:
        data = self._lookup(path)
        with self._lock:
            self.counters[path] += 1
        return io.BytesIO(data)

    def _lookup(self, path: str) -> bytes:
        with self._lock:
            data = self._objects.get(path)
        if data is None:
            raise IOFailure(f"no such object: {path}")
        return data


__all__ = [
    "StorageClient",
    "LocalStorageClient",
    "MemoryStorageClient",
]
