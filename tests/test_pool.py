from __future__ import annotations

import pytest

from ufsbench.backend import MemoryStorageClient
from ufsbench.errors import BackendException, InvalidArgument, IOFailure
from ufsbench.pool import PooledStorageClient, StreamPool


@pytest.fixture
def client():
    return MemoryStorageClient({"/a": b"a" * 64, "/b": b"b" * 32})


def test_acquire_assigns_increasing_resource_ids(client):
    pool = StreamPool(client)
    first = pool.acquire("/a")
    second = pool.acquire("/a")
    third = pool.acquire("/b")
    assert [first.resource_id, second.resource_id, third.resource_id] == [0, 1, 2]
    assert first.file_path == "/a"
    assert third.file_path == "/b"
    assert pool.leased_count() == 3


def test_released_stream_is_reused_for_same_path(client):
    pool = StreamPool(client)
    handle = pool.acquire("/a")
    handle.read(10)
    pool.release(handle)
    assert pool.idle_count("/a") == 1

    again = pool.acquire("/a")
    assert again is handle
    assert again.tell() == 0
    assert client.counters["/a"] == 1
    assert pool.counters["reused"] == 1

    other = pool.acquire("/b")
    assert other is not handle


def test_leased_stream_is_not_handed_out_twice(client):
    pool = StreamPool(client)
    first = pool.acquire("/a")
    second = pool.acquire("/a")
    assert first is not second
    assert first.resource_id != second.resource_id


def test_release_unknown_stream_rejected(client):
    pool = StreamPool(client)
    handle = pool.acquire("/a")
    pool.release(handle)
    with pytest.raises(InvalidArgument):
        pool.release(handle)
    with pytest.raises(InvalidArgument):
        pool.release(client.open("/a"))


def test_max_idle_closes_extra_streams(client):
    pool = StreamPool(client, max_idle_per_path=1)
    first = pool.acquire("/a")
    second = pool.acquire("/a")
    pool.release(first)
    pool.release(second)
    assert pool.idle_count("/a") == 1
    assert second.closed
    assert not first.closed


def test_close_closes_everything(client):
    pool = StreamPool(client)
    idle = pool.acquire("/a")
    leased = pool.acquire("/b")
    pool.release(idle)
    pool.close()
    assert idle.closed
    assert leased.closed
    with pytest.raises(BackendException):
        pool.acquire("/a")


def test_pooled_client_reuses_across_opens(client):
    with StreamPool(client) as pool:
        pooled = PooledStorageClient(pool, client)
        for _ in range(5):
            with pooled.open("/a") as stream:
                assert stream.read_at(0, 4) == b"aaaa"
                assert stream.resource_id == 0
        assert pooled.get_length("/b") == 32
        assert client.counters["/a"] == 1
        assert pool.counters["opened"] == 1
        assert pool.counters["reused"] == 4


def test_pooled_stream_close_is_idempotent(client):
    pool = StreamPool(client)
    stream = PooledStorageClient(pool, client).open("/a")
    stream.close()
    stream.close()
    assert pool.idle_count("/a") == 1
    with pytest.raises(IOFailure):
        stream.read(1)
