"""Run an algorithm over the bench catalog and score the results."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from pick_harness.algorithms.base import Algorithm
from pick_harness.types import DatasetObject

from .catalog import BenchCase

_logger = logging.getLogger(__name__)


@dataclass
class CaseResult:
    prompt: str
    run: int
    score: float
    picked: list[DatasetObject] | None
    error: str = ""
    latency_ms: float = 0


@dataclass
class BenchReport:
    results: list[CaseResult] = field(default_factory=list)

    @property
    def mean_score(self) -> float:
        if not self.results:
            return 0.0
        return sum(r.score for r in self.results) / len(self.results)

    def by_prompt(self) -> dict[str, float]:
        """Mean score per prompt, in catalog order."""
        grouped: dict[str, list[float]] = {}
        for r in self.results:
            grouped.setdefault(r.prompt, []).append(r.score)
        return {p: sum(s) / len(s) for p, s in grouped.items()}


async def run_bench(
    algorithm: Algorithm,
    dataset: Sequence[DatasetObject],
    cases: Sequence[BenchCase],
    runs: int = 1,
    on_result: Callable[[CaseResult], None] | None = None,
) -> BenchReport:
    """Run every case *runs* times, one after another."""
    if runs < 1:
        raise ValueError(f"runs must be >= 1, got {runs}")

    report = BenchReport()
    for run in range(runs):
        for case in cases:
            start = time.monotonic()
            result = await algorithm.run(dataset, case.prompt)
            latency = (time.monotonic() - start) * 1000

            if result.ok:
                picked, error = list(result.value), ""
            else:
                picked, error = None, result.error
            case_result = CaseResult(
                prompt=case.prompt,
                run=run,
                score=case.score(picked),
                picked=picked,
                error=error,
                latency_ms=latency,
            )
            _logger.info("%r run %d: score=%.2f", case.prompt, run, case_result.score)
            report.results.append(case_result)
            if on_result is not None:
                on_result(case_result)
    return report
