"""
Stream pool keyed by ``(path, resource id)``.

The pool hands an idle open stream for a path back to the next caller that asks
for the same path instead of reopening the backing resource. Every stream it
opens gets the next resource id; a stream is leased to at most one holder at a
time.
"""

from __future__ import annotations

import collections
import itertools
import logging
import threading

from .backend import StorageClient
from .errors import BackendException, InvalidArgument, IOFailure
from .stream import SeekableResourceStream

LOGGER = logging.getLogger("ufsbench.pool")


class StreamPool:
    def __init__(self, client: StorageClient, max_idle_per_path: int | None = None) -> None:
        if max_idle_per_path is not None and max_idle_per_path < 0:
            raise InvalidArgument(f"max_idle_per_path must be >= 0, got {max_idle_per_path}")
        self._client = client
        self._max_idle_per_path = max_idle_per_path
        self._lock = threading.Lock()
        self._ids = itertools.count()
        self._handles: dict[tuple[str, int], SeekableResourceStream] = {}
        self._idle: dict[str, collections.deque[int]] = collections.defaultdict(collections.deque)
        self._leased: set[tuple[str, int]] = set()
        self._closed = False
        self.counters: collections.Counter[str] = collections.Counter()

    def acquire(self, path: str) -> SeekableResourceStream:
        with self._lock:
            self._check_open()
            idle = self._idle.get(path)
            if idle:
                key = (path, idle.popleft())
                self._leased.add(key)
                self.counters["reused"] += 1
                LOGGER.debug("Reusing stream %s#%d", path, key[1])
                return self._handles[key]

        # Backend open happens without holding the lock.
        handle = self._client.open(path)
        handle.set_file_path(path)
        with self._lock:
            if self._closed:
                handle.close()
                raise BackendException("stream pool is closed")
            handle.set_resource_id(next(self._ids))
            key = (path, handle.resource_id)
            self._handles[key] = handle
            self._leased.add(key)
            self.counters["opened"] += 1
        LOGGER.debug("Opened pooled stream %s#%d", path, key[1])
        return handle

    def release(self, handle: SeekableResourceStream) -> None:
        key = self._key(handle)
        with self._lock:
            if key not in self._leased:
                raise InvalidArgument(f"stream {key[0]}#{key[1]} is not leased from this pool")
            self._leased.discard(key)
            keep = not self._closed and (
                self._max_idle_per_path is None
                or len(self._idle[key[0]]) < self._max_idle_per_path
            )
            if not keep:
                del self._handles[key]

        if keep:
            try:
                handle.seek(0)
            except IOFailure:
                LOGGER.warning("Dropping stream %s#%d that failed to rewind", key[0], key[1])
                keep = False
                with self._lock:
                    self._handles.pop(key, None)
        if not keep:
            handle.close()
            self.counters["closed"] += 1
            return

        with self._lock:
            self._idle[key[0]].append(key[1])

    def idle_count(self, path: str) -> int:
        with self._lock:
            return len(self._idle.get(path, ()))

    def leased_count(self) -> int:
        with self._lock:
            return len(self._leased)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            handles = list(self._handles.items())
            leased = set(self._leased)
            self._handles.clear()
            self._idle.clear()
            self._leased.clear()

        for key, handle in handles:
            if key in leased:
                LOGGER.warning("Closing stream %s#%d that is still leased", key[0], key[1])
            handle.close()
            self.counters["closed"] += 1

    def __enter__(self) -> StreamPool:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _key(self, handle: SeekableResourceStream) -> tuple[str, int]:
        if handle.file_path is None or not handle.has_resource_id():
            raise InvalidArgument(f"{handle!r} carries no pool identity")
        return handle.file_path, handle.resource_id

    def _check_open(self) -> None:
        if self._closed:
            raise BackendException("stream pool is closed")


class PooledStream:
    """Lease on a pooled stream; ``close`` returns it to the pool."""

    def __init__(self, pool: StreamPool, handle: SeekableResourceStream) -> None:
        self._pool = pool
        self._handle: SeekableResourceStream | None = handle

    @property
    def handle(self) -> SeekableResourceStream:
        if self._handle is None:
            raise IOFailure("operation on a released stream")
        return self._handle

    @property
    def resource_id(self) -> int | None:
        return self.handle.resource_id

    def seek(self, position: int) -> None:
        self.handle.seek(position)

    def tell(self) -> int:
        return self.handle.tell()

    def read(self, size: int = -1) -> bytes:
        return self.handle.read(size)

    def read_at(self, position: int, length: int) -> bytes:
        return self.handle.read_at(position, length)

    def close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self._pool.release(handle)

    def __enter__(self) -> PooledStream:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class PooledStorageClient:
    """Storage client whose opens are served from a :class:`StreamPool`."""

    def __init__(self, pool: StreamPool, client: StorageClient) -> None:
        self._pool = pool
        self._client = client

    @property
    def pool(self) -> StreamPool:
        return self._pool

    def open(self, path: str) -> PooledStream:
        return PooledStream(self._pool, self._pool.acquire(path))

    def get_length(self, path: str) -> int:
        return self._client.get_length(path)


__all__ = [
    "StreamPool",
    "PooledStream",
    "PooledStorageClient",
]
