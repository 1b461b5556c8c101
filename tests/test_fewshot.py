"""Tests for the few-shot object-picking algorithm."""

from __future__ import annotations

import json

import pytest

from pick_harness.algorithms import ALGORITHMS, FewShotAlgorithm, create_algorithm
from pick_harness.algorithms.fewshot import (
    ANSWER_PREFIX,
    EXAMPLES,
    ID_LIST_GRAMMAR,
    MAX_ANSWER_LENGTH,
    build_conversation,
    make_id_transform,
)
from pick_harness.llm.engine import ChatEngine
from pick_harness.types import DatasetObject, Err, FailureKind, Message, Ok

DATASET = [DatasetObject(label) for label in ("sock", "banana", "apple", "hat")]


class TestConversation:
    def test_shape(self):
        messages = build_conversation(DATASET, "Pick up a fruit")

        assert messages[0].role == "system"
        # system + example pairs + question + answer prefix
        assert len(messages) == 1 + 2 * len(EXAMPLES) + 2
        assert messages[-1] == Message("assistant", ANSWER_PREFIX)

    def test_question_lists_objects_with_ids(self):
        question = build_conversation(DATASET, "Pick up a fruit")[-2]

        assert question.role == "user"
        objects_line, prompt_line = question.content.split("\n")
        assert prompt_line == "Prompt: Pick up a fruit"
        objects = json.loads(objects_line.removeprefix("Objects: "))
        assert objects[1] == {"label": "banana", "id": 1}
        assert len(objects) == len(DATASET)

    def test_examples_answer_with_prefix(self):
        messages = build_conversation(DATASET, "x")
        answers = [m.content for m in messages[2:-2:2]]
        assert answers[0] == "Object IDs: [0]"
        assert all(a.startswith(ANSWER_PREFIX) for a in answers)


class TestIdTransform:
    def test_maps_ids_to_objects(self):
        transform = make_id_transform(DATASET)
        assert transform([2, 0]) == Ok([DATASET[2], DATASET[0]])

    def test_empty_list(self):
        assert make_id_transform(DATASET)([]) == Ok([])

    def test_duplicates(self):
        result = make_id_transform(DATASET)([1, 1])
        assert result == Err("Try again. Duplicate object IDs are not allowed.")

    def test_nonexistent_ids(self):
        result = make_id_transform(DATASET)([1, 7, 9])
        assert result == Err("Try again. The following object IDs do not exist: 7, 9")

    @pytest.mark.parametrize("value", [{"ids": [1]}, "1", [1, "2"], [True], 3])
    def test_wrong_shape(self, value):
        result = make_id_transform(DATASET)(value)
        assert result == Err("Try again. Reply with a list of object IDs.")


class TestFewShotAlgorithm:
    async def test_request_settings(self, make_service):
        service = make_service(["[2]", " "])
        alg = FewShotAlgorithm(ChatEngine(service))

        result = await alg.run(DATASET, "Pick up the apple")

        assert result == Ok([DATASET[2]])
        request = service.requests[0]
        assert request.json_mode == "any"
        assert request.grammar == ID_LIST_GRAMMAR
        assert request.max_length == MAX_ANSWER_LENGTH

    async def test_duplicate_then_valid(self, make_service):
        service = make_service(["[1,1]"], ["[1,2]"])
        alg = FewShotAlgorithm(ChatEngine(service))

        result = await alg.run(DATASET, "Pick up two fruits")

        assert result == Ok([DATASET[1], DATASET[2]])
        assert len(service.requests) == 2
        repair = service.requests[1].messages[-2:]
        assert repair == (
            Message("assistant", "[1,1]"),
            Message("user", "Try again. Duplicate object IDs are not allowed."),
        )

    async def test_runaway_answer(self, make_service):
        service = make_service(["[" + "1," * 60])
        alg = FewShotAlgorithm(ChatEngine(service))

        result = await alg.run(DATASET, "Pick up everything")

        assert result.kind is FailureKind.LENGTH_EXCEEDED
        assert len(service.requests) == 1

    async def test_retry_budget_override(self, make_service):
        service = make_service(["[9]"])
        alg = FewShotAlgorithm(ChatEngine(service), retries=1)

        result = await alg.run(DATASET, "Pick up the lamp")

        assert result.kind is FailureKind.RETRIES_EXHAUSTED
        assert len(service.requests) == 2


class TestRegistry:
    def test_fewshot_registered(self):
        assert ALGORITHMS["fewshot"] is FewShotAlgorithm

    def test_create(self, make_service):
        alg = create_algorithm("fewshot", ChatEngine(make_service()))
        assert isinstance(alg, FewShotAlgorithm)

    def test_unknown(self, make_service):
        with pytest.raises(ValueError, match="fewshot"):
            create_algorithm("zeroshot", ChatEngine(make_service()))
