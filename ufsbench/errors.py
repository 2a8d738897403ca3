from __future__ import annotations


class UfsBenchError(Exception):
    """Base class for errors raised by ufsbench."""


class InvalidArgument(UfsBenchError, ValueError):
    """Raised when a caller passes a value outside the accepted range."""


class IOFailure(UfsBenchError, OSError):
    """Raised when opening, seeking, reading or closing a backing stream fails."""


class BackendException(UfsBenchError):
    """Raised for any other failure surfaced by a storage client."""


__all__ = [
    "UfsBenchError",
    "InvalidArgument",
    "IOFailure",
    "BackendException",
]
