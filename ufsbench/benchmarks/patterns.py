from __future__ import annotations

import random
import threading
from dataclasses import dataclass
from typing import Iterator

from ..errors import InvalidArgument
from .config import AccessMode

_local = threading.local()


@dataclass(frozen=True)
class ReadRequest:
    position: int
    length: int


def thread_random() -> random.Random:
    """Per-thread generator so parallel runs never contend on one instance."""
    rng = getattr(_local, "rng", None)
    if rng is None:
        rng = random.Random()
        _local.rng = rng
    return rng


def sequential_reads(file_length: int, buffer_length: int) -> Iterator[ReadRequest]:
    _check_lengths(file_length, buffer_length)
    position = 0
    while position < file_length:
        length = min(buffer_length, file_length - position)
        yield ReadRequest(position, length)
        position += length


def random_reads(
    file_length: int,
    buffer_length: int,
    rng: random.Random | None = None,
) -> Iterator[ReadRequest]:
    """``floor(L / B)`` full-buffer reads at independently drawn block offsets.

    Offsets may repeat and the tail ``L mod B`` bytes are never read.
    """
    _check_lengths(file_length, buffer_length)
    rng = rng or thread_random()
    iterations = file_length // buffer_length
    for _ in range(iterations):
        yield ReadRequest(rng.randrange(iterations) * buffer_length, buffer_length)


def build_pattern(
    mode: AccessMode,
    file_length: int,
    buffer_length: int,
    rng: random.Random | None = None,
) -> Iterator[ReadRequest]:
    if mode is AccessMode.RANDOM:
        return random_reads(file_length, buffer_length, rng)
    if mode is AccessMode.SEQUENTIAL:
        return sequential_reads(file_length, buffer_length)
    raise InvalidArgument(f"unknown access mode {mode!r}")


def _check_lengths(file_length: int, buffer_length: int) -> None:
    if file_length < 0:
        raise InvalidArgument(f"file length must be >= 0, got {file_length}")
    if buffer_length <= 0:
        raise InvalidArgument(f"buffer length must be > 0, got {buffer_length}")
