from __future__ import annotations

import random
import threading

import pytest

from ufsbench.benchmarks.config import AccessMode
from ufsbench.benchmarks.patterns import (
    ReadRequest,
    build_pattern,
    random_reads,
    sequential_reads,
    thread_random,
)
from ufsbench.errors import InvalidArgument


@pytest.mark.parametrize(
    "file_length,buffer_length",
    [(10, 3), (12, 4), (1, 8), (8 * 1024 + 5, 1024), (0, 4)],
)
def test_sequential_covers_file_exactly(file_length, buffer_length):
    requests = list(sequential_reads(file_length, buffer_length))
    assert sum(r.length for r in requests) == file_length
    assert [r.position for r in requests] == list(range(0, file_length, buffer_length))
    if requests:
        tail = file_length % buffer_length
        assert requests[-1].length == (tail or buffer_length)
        assert all(r.length == buffer_length for r in requests[:-1])


@pytest.mark.parametrize(
    "file_length,buffer_length",
    [(10, 3), (12, 4), (2, 8), (10 * 1024 * 1024, 1024 * 1024)],
)
def test_random_reads_whole_blocks_inside_range(file_length, buffer_length):
    iterations = file_length // buffer_length
    requests = list(random_reads(file_length, buffer_length, random.Random(3)))
    assert len(requests) == iterations
    for request in requests:
        assert request.length == buffer_length
        assert request.position % buffer_length == 0
        assert 0 <= request.position < iterations * buffer_length


def test_random_reads_are_reproducible_with_seeded_rng():
    first = list(random_reads(100, 10, random.Random(11)))
    second = list(random_reads(100, 10, random.Random(11)))
    assert first == second


def test_build_pattern_dispatches_on_mode():
    assert list(build_pattern(AccessMode.SEQUENTIAL, 5, 2)) == [
        ReadRequest(0, 2),
        ReadRequest(2, 2),
        ReadRequest(4, 1),
    ]
    assert len(list(build_pattern(AccessMode.RANDOM, 5, 2, random.Random(0)))) == 2


def test_invalid_lengths_rejected():
    with pytest.raises(InvalidArgument):
        list(sequential_reads(10, 0))
    with pytest.raises(InvalidArgument):
        list(random_reads(-1, 4))


def test_thread_random_is_per_thread():
    seen = {}

    def grab(name):
        seen[name] = thread_random()

    worker = threading.Thread(target=grab, args=("worker",))
    worker.start()
    worker.join()
    grab("main")
    assert seen["main"] is thread_random()
    assert seen["worker"] is not seen["main"]
