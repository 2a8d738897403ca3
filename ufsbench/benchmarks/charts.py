from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .harness import BenchmarkResult

LOGGER = logging.getLogger("ufsbench.benchmark.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 150
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13
plt.rcParams["legend.fontsize"] = 9

PHASE_COLORS = {
    "warmup": "#F18F01",
    "measured": "#2E86AB",
}


def render_trial_chart(results: Sequence[BenchmarkResult], chart_path: Path) -> Path | None:
    """Bar chart of per-trial durations, one facet row per path."""
    frames = [result.to_dataframe() for result in results if result.trials]
    if not frames:
        LOGGER.warning("No trial data available for %s", chart_path)
        return None
    df = pd.concat(frames, ignore_index=True)

    paths = list(dict.fromkeys(df["path"]))
    fig, axes = plt.subplots(
        len(paths), 1, figsize=(10, 3.5 * len(paths)), squeeze=False
    )
    for ax, path in zip(axes[:, 0], paths):
        _render_path_bars(df[df["path"] == path], path, ax)

    fig.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white", edgecolor="none")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path


def _render_path_bars(df: pd.DataFrame, path: str, ax: plt.Axes) -> None:
    sns.barplot(
        data=df,
        x="index",
        y="duration_ms",
        hue="phase",
        hue_order=[phase for phase in PHASE_COLORS if phase in set(df["phase"])],
        palette=PHASE_COLORS,
        dodge=False,
        ax=ax,
    )

    measured = df[(df["phase"] == "measured") & ~df["failed"].astype(bool)]["duration_ms"]
    if not measured.empty:
        mean = float(np.mean(measured))
        ax.axhline(mean, color="#C73E1D", linestyle="--", linewidth=1.2)
        ax.text(
            0.99,
            0.95,
            f"mean {mean:.1f} ms",
            transform=ax.transAxes,
            ha="right",
            va="top",
            color="#C73E1D",
            fontweight="semibold",
        )

    for position, failed in enumerate(df["failed"].astype(bool)):
        if failed:
            ax.text(position, 0, "x", ha="center", va="bottom", color="#C73E1D")

    buffer_length = int(df["buffer_length"].iloc[0])
    mode = df["access_mode"].iloc[0]
    ax.set_title(f"{path} ({mode}, buffer {buffer_length} B)", fontweight="bold")
    ax.set_xlabel("Trial", fontweight="semibold")
    ax.set_ylabel("Duration (ms)", fontweight="semibold")
    ax.set_ylim(bottom=0)
