"""
Progress/prompt channel between long-running tasks and the operator.

A task is an async generator. It yields ``Status`` items to report progress,
``Prompt`` items to ask the operator something (the answer is sent back into
the generator), and finally ``Done`` carrying its result.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Protocol


@dataclass(frozen=True)
class Status:
    text: str


@dataclass(frozen=True)
class Prompt:
    message: str
    name: str
    default: Any = None
    kind: str = "confirm"  # confirm | select | input
    choices: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def confirm(cls, message: str, name: str = "continue", default: bool = True) -> Prompt:
        return cls(message=message, name=name, default=default, kind="confirm")


@dataclass(frozen=True)
class Done:
    value: Any = None


class Operator(Protocol):
    def update(self, text: str) -> None: ...

    def warn(self, text: str) -> None: ...

    async def ask(self, prompt: Prompt) -> dict[str, Any]: ...


async def drive(producer: AsyncGenerator, operator: Operator) -> Any:
    """Run a task to completion, relaying statuses and answering prompts.

    Exceptions raised by the task propagate unchanged.
    """
    reply: Any = None
    try:
        while True:
            try:
                item = await producer.asend(reply)
            except StopAsyncIteration:
                return None
            reply = None
            if isinstance(item, Done):
                return item.value
            if isinstance(item, Prompt):
                reply = await operator.ask(item)
            elif isinstance(item, Status):
                operator.update(item.text)
            else:
                operator.update(str(item))
    finally:
        await producer.aclose()
