"""
Read benchmarking harness for ufsbench.

This package drives sequential or randomized positional reads through a storage
client, times warm-up and measured trials, and reports the average trial
duration along with optional CSV, chart and manifest artefacts.
"""

from .main import main

__all__ = ["main"]
