from __future__ import annotations

import pytest

from ufsbench.errors import IOFailure

MB = 1024 * 1024


class RecordingStream:
    """Positional-read stream that records every request and close."""

    def __init__(self, fail_after: int | None = None) -> None:
        self.reads: list[tuple[int, int]] = []
        self.close_calls = 0
        self._fail_after = fail_after

    def read_at(self, position: int, length: int) -> bytes:
        if self._fail_after is not None and len(self.reads) >= self._fail_after:
            raise IOFailure(f"injected failure at {position}")
        self.reads.append((position, length))
        return b""

    def close(self) -> None:
        self.close_calls += 1


class RecordingClient:
    """Storage client handing out :class:`RecordingStream` objects."""

    def __init__(self, length: int, fail_trials: set[int] | None = None, fail_after: int = 0) -> None:
        self.length = length
        self.streams: list[RecordingStream] = []
        self._fail_trials = fail_trials or set()
        self._fail_after = fail_after

    def open(self, path: str) -> RecordingStream:
        trial = len(self.streams)
        stream = RecordingStream(self._fail_after if trial in self._fail_trials else None)
        self.streams.append(stream)
        return stream

    def get_length(self, path: str) -> int:
        return self.length


class FakeClock:
    """Advances by ``step`` seconds on every call."""

    def __init__(self, step: float = 0.25) -> None:
        self._now = 0.0
        self._step = step

    def __call__(self) -> float:
        self._now += self._step
        return self._now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def data_file(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(bytes(range(256)) * 40)
    return path
