from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable

import pandas as pd

from ..backend import LocalStorageClient, StorageClient
from .config import MB, AccessMode, BenchmarkConfig, TrialErrorPolicy
from .patterns import build_pattern

LOGGER = logging.getLogger("ufsbench.benchmark")

TRIAL_COLUMNS = [
    "index",
    "phase",
    "duration_ms",
    "reads",
    "bytes_requested",
    "failed",
    "error",
]


@dataclass(frozen=True)
class BenchmarkTrial:
    """One timed pass over a file. Negative indices are warm-ups."""

    index: int
    duration_ms: int
    reads: int = 0
    bytes_requested: int = 0
    error: str | None = None

    @property
    def is_warmup(self) -> bool:
        return self.index < 0

    @property
    def failed(self) -> bool:
        return self.error is not None

    def as_row(self) -> dict[str, object]:
        return {
            "index": self.index,
            "phase": "warmup" if self.is_warmup else "measured",
            "duration_ms": self.duration_ms,
            "reads": self.reads,
            "bytes_requested": self.bytes_requested,
            "failed": self.failed,
            "error": self.error,
        }


@dataclass(frozen=True)
class BenchmarkResult:
    path: str
    buffer_length: int
    average_duration_ms: int
    access_mode: AccessMode = AccessMode.SEQUENTIAL
    file_length: int = 0
    trials: tuple[BenchmarkTrial, ...] = field(default_factory=tuple)

    @property
    def measured_trials(self) -> list[BenchmarkTrial]:
        return [trial for trial in self.trials if not trial.is_warmup]

    @property
    def measured_durations(self) -> list[int]:
        return [trial.duration_ms for trial in self.measured_trials]

    @property
    def failed_count(self) -> int:
        return sum(1 for trial in self.measured_trials if trial.failed)

    @property
    def throughput_mib_per_s(self) -> float:
        completed = [trial for trial in self.measured_trials if not trial.failed]
        if not completed or self.average_duration_ms <= 0:
            return 0.0
        mean_bytes = sum(trial.bytes_requested for trial in completed) / len(completed)
        return (mean_bytes / MB) / (self.average_duration_ms / 1000.0)

    def summary_line(self) -> str:
        return f"{self.path} {self.buffer_length} {self.average_duration_ms}"

    def to_dataframe(self) -> pd.DataFrame:
        if not self.trials:
            return pd.DataFrame(columns=TRIAL_COLUMNS)
        df = pd.DataFrame([trial.as_row() for trial in self.trials], columns=TRIAL_COLUMNS)
        df.insert(0, "path", self.path)
        df["buffer_length"] = self.buffer_length
        df["access_mode"] = self.access_mode.value
        return df

    def describe(self) -> dict[str, float]:
        """Statistics over the measured trials that completed."""
        durations = pd.Series(
            [trial.duration_ms for trial in self.measured_trials if not trial.failed],
            dtype="float64",
        )
        if durations.empty:
            return {"count": 0}
        return {
            "count": int(durations.count()),
            "mean_ms": float(durations.mean()),
            "median_ms": float(durations.median()),
            "min_ms": float(durations.min()),
            "max_ms": float(durations.max()),
            "std_ms": float(durations.std(ddof=0)),
        }


class ReadBenchmarkHarness:
    """Runs warm-up then measured read trials against one path at a time.

    Every trial opens its own stream through ``client`` and closes it before
    the next trial starts, whatever the outcome. The timer covers the reads
    only: it starts after the open and stops before the close.
    """

    def __init__(
        self,
        client: StorageClient,
        config: BenchmarkConfig,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._client = client
        self._config = config
        self._rng = rng
        self._clock = clock

    @property
    def config(self) -> BenchmarkConfig:
        return self._config

    def run(self, path: str) -> BenchmarkResult:
        config = self._config
        LOGGER.info(
            "Benchmarking %s (mode=%s, buffer=%d, warmup=%d, measured=%d)",
            path,
            config.access_mode.value,
            config.buffer_length,
            config.warmup_count,
            config.measured_count,
        )
        file_length = self._client.get_length(path)

        trials = [self.run_trial(path, index, file_length) for index in config.trial_indices]
        result = BenchmarkResult(
            path=path,
            buffer_length=config.buffer_length,
            average_duration_ms=self._average(trials),
            access_mode=config.access_mode,
            file_length=file_length,
            trials=tuple(trials),
        )
        if result.failed_count:
            LOGGER.warning(
                "%d of %d measured trials on %s failed (policy=%s)",
                result.failed_count,
                config.measured_count,
                path,
                config.on_trial_error.value,
            )
        print(result.summary_line())
        return result

    def run_trial(self, path: str, index: int, file_length: int) -> BenchmarkTrial:
        config = self._config
        stream = None
        reads = 0
        requested = 0
        try:
            stream = self._client.open(path)
            started = self._clock()
            for request in build_pattern(
                config.access_mode, file_length, config.buffer_length, self._rng
            ):
                stream.read_at(request.position, request.length)
                reads += 1
                requested += request.length
            duration_ms = max(int((self._clock() - started) * 1000), 0)
            if config.verbose:
                print(f"{'[warmup]' if index < 0 else ''}time: {duration_ms}")
        except Exception as exc:
            if config.on_trial_error is TrialErrorPolicy.ABORT:
                raise
            LOGGER.exception("Trial %d on %s failed after %d reads", index, path, reads)
            return BenchmarkTrial(index, 0, reads, requested, error=repr(exc))
        finally:
            if stream is not None:
                stream.close()
        return BenchmarkTrial(index, duration_ms, reads, requested)

    def _average(self, trials: list[BenchmarkTrial]) -> int:
        counted = [trial for trial in trials if not trial.is_warmup]
        if self._config.on_trial_error is TrialErrorPolicy.EXCLUDE_FROM_AVERAGE:
            counted = [trial for trial in counted if not trial.failed]
        if not counted:
            return 0
        return sum(trial.duration_ms for trial in counted) // len(counted)


def run(
    path: str,
    config: BenchmarkConfig,
    client: StorageClient | None = None,
) -> BenchmarkResult:
    return ReadBenchmarkHarness(client or LocalStorageClient(), config).run(path)


__all__ = [
    "BenchmarkTrial",
    "BenchmarkResult",
    "ReadBenchmarkHarness",
    "run",
]
