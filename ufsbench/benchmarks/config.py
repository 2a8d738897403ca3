from __future__ import annotations

import enum
from dataclasses import dataclass

from ..errors import InvalidArgument

MB = 1024 * 1024

DEFAULT_BUFFER_LENGTH = 8 * MB
DEFAULT_WARMUP_COUNT = 3
DEFAULT_MEASURED_COUNT = 10


class AccessMode(enum.Enum):
    SEQUENTIAL = "sequential"
    RANDOM = "random"


class TrialErrorPolicy(enum.Enum):
    """What a failed trial does to the run.

    ``ZERO_AND_INCLUDE`` is the historical behaviour: the failure is logged and
    the trial counts as a 0 ms measurement, which drags the average down.
    """

    ZERO_AND_INCLUDE = "zero"
    EXCLUDE_FROM_AVERAGE = "exclude"
    ABORT = "abort"


@dataclass(frozen=True)
class BenchmarkConfig:
    """Immutable parameters of one benchmark run."""

    buffer_length: int = DEFAULT_BUFFER_LENGTH
    access_mode: AccessMode = AccessMode.SEQUENTIAL
    verbose: bool = False
    warmup_count: int = DEFAULT_WARMUP_COUNT
    measured_count: int = DEFAULT_MEASURED_COUNT
    on_trial_error: TrialErrorPolicy = TrialErrorPolicy.ZERO_AND_INCLUDE

    def __post_init__(self) -> None:
        if self.buffer_length <= 0:
            raise InvalidArgument(f"buffer_length must be > 0, got {self.buffer_length}")
        if self.warmup_count < 0:
            raise InvalidArgument(f"warmup_count must be >= 0, got {self.warmup_count}")
        if self.measured_count <= 0:
            raise InvalidArgument(f"measured_count must be > 0, got {self.measured_count}")
        if not isinstance(self.access_mode, AccessMode):
            raise InvalidArgument(f"unknown access mode {self.access_mode!r}")
        if not isinstance(self.on_trial_error, TrialErrorPolicy):
            raise InvalidArgument(f"unknown trial error policy {self.on_trial_error!r}")

    @property
    def trial_indices(self) -> range:
        """Warm-up trials are numbered ``-warmup_count .. -1``, measured ones from 0."""
        return range(-self.warmup_count, self.measured_count)
