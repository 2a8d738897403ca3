from __future__ import annotations

import argparse
import contextlib
import glob
import json
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from ..backend import LocalStorageClient, StorageClient
from ..errors import UfsBenchError
from ..pool import PooledStorageClient, StreamPool
from .config import (
    DEFAULT_BUFFER_LENGTH,
    DEFAULT_MEASURED_COUNT,
    DEFAULT_WARMUP_COUNT,
    AccessMode,
    BenchmarkConfig,
    TrialErrorPolicy,
)
from .harness import BenchmarkResult, ReadBenchmarkHarness

LOGGER = logging.getLogger("ufsbench.benchmark")

WILDCARD_CHARS = frozenset("*?[")


def _buffer_length(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid buffer length: {value!r}") from None
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"buffer length must be > 0, got {parsed}")
    return parsed


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ufsbench", description="Read benchmarks against an under storage"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("UFSBENCH_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    read_test = commands.add_parser(
        "read-test",
        aliases=["readTest"],
        help="Test reads of files, give a test report",
        description="Time sequential or random reads of files and report the average trial duration.",
    )
    read_test.add_argument("path", help="File to read; may contain wildcards")
    read_test.add_argument("--position", help="The read position (not wired yet)")
    read_test.add_argument("--len", dest="length", help="The length to read (not wired yet)")
    read_test.add_argument(
        "--bufLen",
        dest="buffer_length",
        type=_buffer_length,
        default=DEFAULT_BUFFER_LENGTH,
        help="The buffer length in bytes",
    )
    read_test.add_argument("-A", dest="read_all", action="store_true", help="Read all")
    read_test.add_argument("-V", dest="verbose", action="store_true", help="Verbose")
    read_test.add_argument("-R", dest="random", action="store_true", help="Random")
    read_test.add_argument(
        "--on-trial-error",
        choices=[policy.value for policy in TrialErrorPolicy],
        default=TrialErrorPolicy.ZERO_AND_INCLUDE.value,
        help="zero: count a failed trial as 0 ms; exclude: leave it out of the average; abort: stop the run",
    )
    read_test.add_argument(
        "--pooled",
        action="store_true",
        help="Serve trial streams from a stream pool instead of reopening them",
    )
    read_test.add_argument(
        "--output-dir",
        default=os.environ.get("UFSBENCH_OUTPUT_DIR"),
        help="Directory to store per-trial CSV files, a chart and a manifest",
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def resolve_paths(path: str) -> list[str]:
    if not WILDCARD_CHARS.intersection(path):
        return [path]
    return sorted(match for match in glob.glob(path) if os.path.isfile(match))


def build_config(args: argparse.Namespace) -> BenchmarkConfig:
    return BenchmarkConfig(
        buffer_length=args.buffer_length,
        access_mode=AccessMode.RANDOM if args.random else AccessMode.SEQUENTIAL,
        verbose=args.verbose,
        warmup_count=DEFAULT_WARMUP_COUNT,
        measured_count=DEFAULT_MEASURED_COUNT,
        on_trial_error=TrialErrorPolicy(args.on_trial_error),
    )


def run_read_test(
    args: argparse.Namespace,
    client: StorageClient | None = None,
) -> list[BenchmarkResult]:
    paths = resolve_paths(args.path)
    if not paths:
        raise UfsBenchError(f"no files match {args.path}")
    for name in ("position", "length"):
        if getattr(args, name) is not None:
            LOGGER.debug("Ignoring --%s=%s", "len" if name == "length" else name, getattr(args, name))
    if args.read_all:
        LOGGER.debug("Ignoring -A")

    config = build_config(args)
    client = client or LocalStorageClient()
    with contextlib.ExitStack() as stack:
        if args.pooled:
            pool = stack.enter_context(StreamPool(client))
            client = PooledStorageClient(pool, client)
        harness = ReadBenchmarkHarness(client, config)
        results = [harness.run(path) for path in paths]
        if args.pooled:
            LOGGER.info("Stream pool: %s", dict(pool.counters))
    return results


def write_artifacts(results: Sequence[BenchmarkResult], output_dir: Path) -> Path:
    from .charts import render_trial_chart

    output_dir.mkdir(parents=True, exist_ok=True)
    LOGGER.info("Benchmark output directory: %s", output_dir)

    manifest: dict[str, object] = {"results": []}
    for number, result in enumerate(results, start=1):
        df = result.to_dataframe()
        csv_path = output_dir / f"trials__{number:03d}__{Path(result.path).name}.csv"
        df.to_csv(csv_path, index=False)
        LOGGER.info("Saved %d trials for %s to %s", len(df), result.path, csv_path)
        manifest["results"].append(
            {
                "path": result.path,
                "buffer_length": result.buffer_length,
                "access_mode": result.access_mode.value,
                "file_length": result.file_length,
                "average_duration_ms": result.average_duration_ms,
                "throughput_mib_per_s": result.throughput_mib_per_s,
                "failed_trials": result.failed_count,
                "statistics": result.describe(),
                "csv": str(csv_path),
            }
        )

    chart_path = render_trial_chart(results, output_dir / "trial_durations.png")
    manifest["chart"] = str(chart_path) if chart_path else None

    manifest_path = output_dir / "benchmark_manifest.json"
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)
    LOGGER.info("Benchmark manifest written to %s", manifest_path)
    return manifest_path


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        results = run_read_test(args)
    except UfsBenchError as exc:
        LOGGER.error("read-test failed: %s", exc)
        return 1

    if args.output_dir:
        write_artifacts(results, Path(args.output_dir))
    return 0


if __name__ == "__main__":
    sys.exit(main())
