import asyncio

import pytest

from archhive.channel import Done, Prompt, Status, drive
from conftest import FakeOperator


def test_statuses_and_prompt_answers_flow_in_order():
    seen = []

    async def task():
        yield Status("first")
        answer = yield Prompt.confirm("Use it?", name="continue", default=False)
        seen.append(answer)
        yield Status("second")
        yield Done("result")

    operator = FakeOperator({"continue": True})
    assert asyncio.run(drive(task(), operator)) == "result"
    assert operator.updates == ["first", "second"]
    assert [p.message for p in operator.prompts] == ["Use it?"]
    assert seen == [{"continue": True}]


def test_done_closes_the_producer():
    cleaned = []

    async def task():
        try:
            yield Done(1)
            yield Status("never reached")
        finally:
            cleaned.append(True)

    operator = FakeOperator()
    assert asyncio.run(drive(task(), operator)) == 1
    assert cleaned == [True]
    assert operator.updates == []


def test_producer_failure_is_terminal():
    async def task():
        yield Status("working")
        raise RuntimeError("boom")

    operator = FakeOperator()
    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(drive(task(), operator))
    assert operator.updates == ["working"]


def test_producer_without_result():
    async def task():
        yield Status("only status")

    assert asyncio.run(drive(task(), FakeOperator())) is None
