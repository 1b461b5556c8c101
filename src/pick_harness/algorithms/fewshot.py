"""Few-shot object picking.

The model sees a handful of worked examples over a fixed example room,
then the real objects and prompt, and must answer with a JSON list of
object IDs constrained by a grammar.
"""

from __future__ import annotations

import json
import logging
import textwrap
from typing import Any, Sequence

from pick_harness.llm.engine import ChatEngine
from pick_harness.types import DatasetObject, Err, Message, Ok, Result

_logger = logging.getLogger(__name__)

SYSTEM_PROMPT = textwrap.dedent("""\
    You will be given a list of objects in the room,
    and you need to select which objects to pick up based
    on what the user asks for.

    Reply with a list of object IDs to be picked up.
    If the user prompts you for something unrelated to picking up objects,
    you should respond with an empty list of IDs.""")

# A JSON list of non-negative integers, comma or whitespace separated
ID_LIST_GRAMMAR = r'root ::= "[" ([0-9]+ (("," | [ \t\n]+) [0-9]+)*)? "]"'

ANSWER_PREFIX = "Object IDs:"

MAX_ANSWER_LENGTH = 100

EXAMPLE_LABELS = ["apple", "banana", "tennis ball", "hat", "potato", "banana"]

EXAMPLES: list[tuple[str, str]] = [
    ("Pick up the apple.", "[0]"),
    ("Pick up the apple and a hat.", "[0,3]"),
    ("Give me a fruit.", "[1]"),
    ("Give me some bananas.", "[1, 5]"),
    ("What time is it?", "[]"),
    ("The weather is nice.", "[]"),
]


def _objects_json(labels: Sequence[str]) -> str:
    objects = [{"label": label, "id": i} for i, label in enumerate(labels)]
    return json.dumps(objects, separators=(",", ":"))


def _question(labels: Sequence[str], prompt: str) -> Message:
    return Message(
        role="user",
        content=f"Objects: {_objects_json(labels)}\nPrompt: {prompt}",
    )


def build_conversation(
    dataset: Sequence[DatasetObject], prompt: str,
) -> list[Message]:
    """System prompt, worked examples, then the real question."""
    messages = [Message(role="system", content=SYSTEM_PROMPT)]
    for question, answer in EXAMPLES:
        messages.append(_question(EXAMPLE_LABELS, question))
        messages.append(Message(role="assistant", content=f"{ANSWER_PREFIX} {answer}"))
    messages.append(_question([obj.label for obj in dataset], prompt))
    messages.append(Message(role="assistant", content=ANSWER_PREFIX))
    return messages


def make_id_transform(dataset: Sequence[DatasetObject]):
    """Validate parsed IDs against *dataset* and map them to objects."""

    def transform(value: Any) -> Result[list[DatasetObject]]:
        if not isinstance(value, list) or not all(
            isinstance(i, int) and not isinstance(i, bool) for i in value
        ):
            return Err("Try again. Reply with a list of object IDs.")
        if len(value) != len(set(value)):
            return Err("Try again. Duplicate object IDs are not allowed.")
        missing = [i for i in value if not 0 <= i < len(dataset)]
        if missing:
            return Err(
                "Try again. The following object IDs do not exist: "
                + ", ".join(str(i) for i in missing)
            )
        return Ok([dataset[i] for i in value])

    return transform


class FewShotAlgorithm:
    """Pick objects using a few-shot prompt and a grammar-constrained answer."""

    name = "fewshot"

    def __init__(self, engine: ChatEngine, retries: int | None = None) -> None:
        self._engine = engine
        self._retries = retries

    async def run(
        self, dataset: Sequence[DatasetObject], prompt: str,
    ) -> Result[list[DatasetObject]]:
        _logger.debug("fewshot: %d objects, prompt=%r", len(dataset), prompt)
        return await self._engine.chat(
            build_conversation(dataset, prompt),
            is_json="any",
            grammar=ID_LIST_GRAMMAR,
            max_length=MAX_ANSWER_LENGTH,
            retries=self._retries,
            transform=make_id_transform(dataset),
        )
