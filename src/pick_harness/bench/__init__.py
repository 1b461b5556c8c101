"""Bench: score an algorithm against a catalog of prompts."""

from pick_harness.bench.catalog import (
    DEFAULT_CASES,
    DEFAULT_ROOM,
    BenchCase,
    get_score,
)
from pick_harness.bench.runner import BenchReport, CaseResult, run_bench

__all__ = [
    "DEFAULT_CASES",
    "DEFAULT_ROOM",
    "BenchCase",
    "BenchReport",
    "CaseResult",
    "get_score",
    "run_bench",
]
