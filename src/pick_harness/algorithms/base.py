"""Algorithm interface: turn a dataset and a prompt into picked objects."""

from __future__ import annotations

from typing import Protocol, Sequence

from pick_harness.types import DatasetObject, Result


class Algorithm(Protocol):
    """Selects objects from *dataset* that satisfy *prompt*."""

    async def run(
        self, dataset: Sequence[DatasetObject], prompt: str,
    ) -> Result[list[DatasetObject]]:
        ...
