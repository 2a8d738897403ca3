from __future__ import annotations

import pytest

from ufsbench.backend import LocalStorageClient, MemoryStorageClient
from ufsbench.errors import IOFailure
from ufsbench.stream import ReopenAndSkip


def test_local_client_open_and_length(data_file):
    client = LocalStorageClient()
    assert client.get_length(str(data_file)) == 10240
    with client.open(str(data_file)) as stream:
        assert stream.file_path == str(data_file)
        assert not stream.has_resource_id()
        assert stream.read_at(256, 3) == bytes([0, 1, 2])
    assert client.counters[str(data_file)] == 1


def test_local_client_missing_file(tmp_path):
    client = LocalStorageClient()
    missing = str(tmp_path / "missing.bin")
    with pytest.raises(IOFailure):
        client.open(missing)
    with pytest.raises(IOFailure):
        client.get_length(missing)


def test_memory_client_native_seek():
    client = MemoryStorageClient({"/a": b"0123456789"})
    with client.open("/a") as stream:
        assert stream.read_at(4, 3) == b"456"
        assert stream.read_at(1, 2) == b"12"
    assert client.counters["/a"] == 1


def test_memory_client_forward_only_reopens_on_seek():
    client = MemoryStorageClient(native_seek=False)
    client.put("/a", b"abcdefghij")
    with client.open("/a") as stream:
        assert isinstance(stream._repositioner, ReopenAndSkip)
        assert stream.read_at(5, 2) == b"fg"
        assert stream.read_at(0, 1) == b"a"
    assert client.counters["/a"] == 3


def test_memory_client_missing_object():
    client = MemoryStorageClient()
    with pytest.raises(IOFailure):
        client.open("/nope")
    with pytest.raises(IOFailure):
        client.get_length("/nope")
