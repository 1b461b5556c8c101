"""Bench cases: prompts plus a score function for what came back."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from pick_harness.types import DatasetObject

# None means the algorithm failed to produce a selection
Picked = Optional[Sequence[DatasetObject]]


def get_score(criteria: Sequence[tuple[bool, float]]) -> float:
    """Weighted fraction of criteria that hold, in ``[0, 1]``."""
    total = sum(weight for _, weight in criteria)
    if total == 0:
        return 0.0
    return sum(weight for passed, weight in criteria if passed) / total


@dataclass(frozen=True)
class BenchCase:
    prompt: str
    score: Callable[[Picked], float]


FRUITS = ("banana", "apple", "mango")


def _one_banana(objects: Picked) -> float:
    if objects is None:
        return 0.0
    return get_score([
        (len(objects) == 1, 1),
        (all("banana" in obj.label for obj in objects), 1),
    ])


def _fruits(count: int) -> Callable[[Picked], float]:
    def score(objects: Picked) -> float:
        if objects is None:
            return 0.0
        return get_score([
            (len(objects) == count, 1),
            (all(obj.label in FRUITS for obj in objects), 1),
        ])

    return score


def _nothing(objects: Picked) -> float:
    if objects is None:
        return 0.0
    return get_score([(len(objects) == 0, 1)])


def _expect_failure(objects: Picked) -> float:
    return 1.0 if objects is None else 0.0


DEFAULT_CASES: list[BenchCase] = [
    BenchCase("Pick up a banana", _one_banana),
    BenchCase("Pick up a fruit", _fruits(1)),
    BenchCase("Pick up two fruits", _fruits(2)),
    BenchCase("Do a barrel roll", _nothing),
    BenchCase("Pick up a cucumber", _expect_failure),
]

DEFAULT_ROOM: list[DatasetObject] = [
    DatasetObject(label)
    for label in (
        "banana",
        "coffee mug",
        "apple",
        "remote control",
        "mango",
        "sock",
        "book",
        "banana",
        "water bottle",
    )
]
