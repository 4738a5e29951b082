"""Terminal side of the progress/prompt channel."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm
from rich.prompt import Prompt as TextPrompt
from rich.status import Status as Spinner

from archhive.channel import Prompt

console = Console(stderr=True)


def setup_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


class ConsoleOperator:
    """Spinner for progress text, rich prompts for questions."""

    def __init__(self, con: Console | None = None):
        self.console = con or console
        self._spinner: Spinner | None = None
        # Both archive tasks may ask at the same time
        self._lock = asyncio.Lock()

    def start(self, text: str) -> None:
        self.stop()
        self._spinner = self.console.status(text)
        self._spinner.start()

    def stop(self) -> None:
        if self._spinner is not None:
            self._spinner.stop()
            self._spinner = None

    def update(self, text: str) -> None:
        if self._spinner is not None:
            self._spinner.update(text)
        else:
            self.console.print(text)

    def warn(self, text: str) -> None:
        self.console.print(f"[yellow]warn:[/yellow] {text}", highlight=False)

    def succeed(self, text: str) -> None:
        self.stop()
        self.console.print(f"[green]✔[/green] {text}")

    def fail(self, text: str) -> None:
        self.stop()
        self.console.print(f"[red]✖[/red] {text}", highlight=False)

    def _ask(self, prompt: Prompt) -> Any:
        if prompt.kind == "confirm":
            return Confirm.ask(prompt.message, default=bool(prompt.default), console=self.console)
        if prompt.kind == "select":
            return TextPrompt.ask(
                prompt.message, choices=list(prompt.choices), default=prompt.default, console=self.console
            )
        return TextPrompt.ask(prompt.message, default=prompt.default, console=self.console)

    async def _ask_in_thread(self, prompt: Prompt) -> Any:
        # A daemon thread: input() cannot be interrupted, and an abandoned
        # prompt must not keep the process alive after Ctrl-C
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def settle(result: Any = None, error: BaseException | None = None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def worker() -> None:
            try:
                result = self._ask(prompt)
            except BaseException as exc:
                outcome = {"error": exc}
            else:
                outcome = {"result": result}
            try:
                loop.call_soon_threadsafe(lambda: settle(**outcome))
            except RuntimeError:
                pass  # event loop already closed

        threading.Thread(target=worker, name="archhive-prompt", daemon=True).start()
        return await future

    async def ask(self, prompt: Prompt) -> dict[str, Any]:
        async with self._lock:
            spinner = self._spinner
            if spinner is not None:
                spinner.stop()
            try:
                answer = await self._ask_in_thread(prompt)
            finally:
                if spinner is not None:
                    spinner.start()
        return {prompt.name: answer}
