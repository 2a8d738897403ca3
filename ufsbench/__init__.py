from .backend import LocalStorageClient, MemoryStorageClient, StorageClient
from .errors import BackendException, InvalidArgument, IOFailure, UfsBenchError
from .pool import PooledStorageClient, PooledStream, StreamPool
from .stream import ReopenAndSkip, SeekableResourceStream, native_seek

__all__ = [
    "BackendException",
    "InvalidArgument",
    "IOFailure",
    "UfsBenchError",
    "LocalStorageClient",
    "MemoryStorageClient",
    "StorageClient",
    "PooledStorageClient",
    "PooledStream",
    "StreamPool",
    "ReopenAndSkip",
    "SeekableResourceStream",
    "native_seek",
]
