"""Object-picking algorithms."""

from __future__ import annotations

from pick_harness.algorithms.base import Algorithm
from pick_harness.algorithms.fewshot import FewShotAlgorithm
from pick_harness.llm.engine import ChatEngine

ALGORITHMS: dict[str, type] = {
    FewShotAlgorithm.name: FewShotAlgorithm,
}


def create_algorithm(
    name: str, engine: ChatEngine, retries: int | None = None,
) -> Algorithm:
    """Instantiate a registered algorithm by name."""
    try:
        cls = ALGORITHMS[name]
    except KeyError:
        raise ValueError(
            f"Unknown algorithm {name!r}. Available: {', '.join(sorted(ALGORITHMS))}"
        ) from None
    return cls(engine, retries=retries)


__all__ = ["ALGORITHMS", "Algorithm", "FewShotAlgorithm", "create_algorithm"]
