"""
Resource-tracked seekable streams.

A :class:`SeekableResourceStream` wraps one raw byte stream opened against a
storage backend and carries the identity a stream pool uses to hand the same
open stream to later requests for the same path. How the handle repositions is
a pluggable :class:`Repositioner` rather than a subclass hook, so backends with
a native ``seek`` and backends that can only reopen-and-skip share one handle
type.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Callable, Protocol

from .errors import InvalidArgument, IOFailure

LOGGER = logging.getLogger("ufsbench.stream")

SKIP_CHUNK_BYTES = 1024 * 1024


class Repositioner(Protocol):
    """Moves a raw stream to ``position`` and returns the stream to read from next."""

    def __call__(self, raw: BinaryIO, position: int) -> BinaryIO:
        ...


def native_seek(raw: BinaryIO, position: int) -> BinaryIO:
    raw.seek(position)
    return raw


class ReopenAndSkip:
    """Reposition by reopening the object and discarding ``position`` bytes.

    Used for backends whose streams only read forward, e.g. HTTP range-less
    object store downloads.
    """

    def __init__(self, opener: Callable[[], BinaryIO], chunk_size: int = SKIP_CHUNK_BYTES) -> None:
        if chunk_size <= 0:
            raise InvalidArgument(f"chunk_size must be > 0, got {chunk_size}")
        self._opener = opener
        self._chunk_size = chunk_size

    def __call__(self, raw: BinaryIO, position: int) -> BinaryIO:
        raw.close()
        fresh = self._opener()
        remaining = position
        try:
            while remaining > 0:
                skipped = len(fresh.read(min(self._chunk_size, remaining)))
                if skipped == 0:
                    raise IOFailure(
                        f"cannot seek to {position}: stream ended {remaining} bytes short"
                    )
                remaining -= skipped
        except BaseException:
            fresh.close()
            raise
        return fresh


class SeekableResourceStream:
    """Seekable wrapper around a backend stream, tagged for pooling.

    ``resource_id`` and ``file_path`` are assigned by the owner after
    construction. Closing is the owner's job; the handle does no locking and
    must not be shared between concurrent readers.
    """

    def __init__(
        self,
        raw: BinaryIO,
        repositioner: Repositioner = native_seek,
        file_path: str | None = None,
    ) -> None:
        self._raw = raw
        self._repositioner = repositioner
        self._resource_id: int | None = None
        self._file_path = file_path
        self._position = 0
        self._closed = False

    @property
    def resource_id(self) -> int | None:
        return self._resource_id

    def has_resource_id(self) -> bool:
        return self._resource_id is not None

    def get_resource_id(self) -> int | None:
        return self._resource_id

    def set_resource_id(self, resource_id: int) -> None:
        if resource_id < 0:
            raise InvalidArgument(f"resource id should be non-negative, got {resource_id}")
        self._resource_id = resource_id

    @property
    def file_path(self) -> str | None:
        return self._file_path

    def get_file_path(self) -> str | None:
        return self._file_path

    def set_file_path(self, file_path: str | None) -> None:
        self._file_path = file_path

    @property
    def closed(self) -> bool:
        return self._closed

    def tell(self) -> int:
        return self._position

    def seek(self, position: int) -> None:
        self._check_open()
        if position < 0:
            raise IOFailure(f"cannot seek to negative position {position}")
        try:
            self._raw = self._repositioner(self._raw, position)
        except IOFailure:
            raise
        except (OSError, ValueError) as exc:
            raise IOFailure(f"seek to {position} failed on {self._file_path}: {exc}") from exc
        self._position = position

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        try:
            data = self._raw.read(size)
        except (OSError, ValueError) as exc:
            raise IOFailure(f"read failed on {self._file_path}: {exc}") from exc
        self._position += len(data)
        return data

    def read_at(self, position: int, length: int) -> bytes:
        """Positional read: ``length`` bytes (fewer at end of file) from ``position``."""
        self.seek(position)
        return self.read(length)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._raw.close()
        except OSError as exc:
            raise IOFailure(f"close failed on {self._file_path}: {exc}") from exc
        LOGGER.debug("Closed stream %s (resource id %s)", self._file_path, self._resource_id)

    def __enter__(self) -> SeekableResourceStream:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"SeekableResourceStream(file_path={self._file_path!r}, "
            f"resource_id={self._resource_id!r}, position={self._position}, "
            f"closed={self._closed})"
        )

    def _check_open(self) -> None:
        if self._closed:
            raise IOFailure(f"operation on a closed stream {self._file_path}")


__all__ = [
    "Repositioner",
    "ReopenAndSkip",
    "SeekableResourceStream",
    "native_seek",
]
