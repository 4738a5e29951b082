from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import pytest

from archhive.channel import Prompt
from archhive.config import Settings


class FakeResponse:
    def __init__(self, status: int = 200, status_text: str = "OK"):
        self.status = status
        self.status_text = status_text


class FakeLocator:
    def __init__(self, count: int = 0, text: str | None = None):
        self._count = count
        self._text = text

    @property
    def first(self) -> FakeLocator:
        return self

    async def count(self) -> int:
        return self._count

    async def text_content(self) -> str | None:
        return self._text


class FakePage:
    """Records what a task does to a page and replays scripted outcomes.

    ``navigations`` holds one entry per ``expect_navigation`` block: a URL the
    page lands on, an exception to raise, or a (url, exception) pair.
    """

    def __init__(
        self,
        url: str = "about:blank",
        title: str = "",
        content: str = "",
        goto_statuses: list[Any] | None = None,
        results: list[str] | None = None,
        navigations: list[Any] | None = None,
        locators: dict[str, FakeLocator] | None = None,
    ):
        self.url = url
        self._title = title
        self._content = content
        self.goto_statuses = list(goto_statuses or [200])
        self.results = list(results or [])
        self.navigations = list(navigations or [])
        self.locators = locators or {}
        self.routes: list[str] = []
        self.visited: list[str] = []
        self.clicks: list[str] = []
        self.filled: dict[str, str] = {}
        self.evaluated: list[tuple[str, Any]] = []
        self.reloads = 0
        self.closed = False

    async def route(self, pattern, handler) -> None:
        self.routes.append(pattern)

    async def goto(self, url: str, **kwargs) -> FakeResponse:
        self.visited.append(url)
        self.url = url
        status = self.goto_statuses.pop(0) if len(self.goto_statuses) > 1 else self.goto_statuses[0]
        if isinstance(status, BaseException):
            raise status
        return FakeResponse(status, "OK" if status == 200 else "Service Unavailable")

    async def fill(self, selector: str, value: str) -> None:
        self.filled[selector] = value

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluated.append((expression, arg))
        return None

    async def click(self, selector: str) -> None:
        self.clicks.append(selector)

    @asynccontextmanager
    async def expect_navigation(self, **kwargs):
        yield
        outcome = self.navigations.pop(0) if self.navigations else self.url
        if isinstance(outcome, tuple):
            self.url, outcome = outcome
        if isinstance(outcome, BaseException):
            raise outcome
        self.url = outcome

    async def wait_for_selector(self, selector: str, **kwargs) -> None:
        return None

    async def eval_on_selector(self, selector: str, expression: str) -> str:
        return self.results.pop(0) if len(self.results) > 1 else self.results[0]

    async def reload(self, **kwargs) -> None:
        self.reloads += 1

    def locator(self, selector: str) -> FakeLocator:
        return self.locators.get(selector, FakeLocator())

    async def title(self) -> str:
        return self._title

    async def content(self) -> str:
        return self._content

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, page: FakePage):
        self.page = page
        self.closed = False

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self) -> None:
        self.closed = True
        self.page.closed = True


class FakeBrowser:
    def __init__(self, page: FakePage | None = None):
        self.page = page or FakePage()
        self.contexts: list[FakeContext] = []
        self.context_options: list[dict] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        return self.page

    async def new_context(self, **kwargs) -> FakeContext:
        self.context_options.append(kwargs)
        context = FakeContext(self.page)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True


class FakeOperator:
    def __init__(self, answers: dict[str, Any] | None = None):
        self.answers = answers or {}
        self.updates: list[str] = []
        self.warnings: list[str] = []
        self.prompts: list[Prompt] = []

    def update(self, text: str) -> None:
        self.updates.append(text)

    def warn(self, text: str) -> None:
        self.warnings.append(text)

    async def ask(self, prompt: Prompt) -> dict[str, Any]:
        self.prompts.append(prompt)
        return {prompt.name: self.answers.get(prompt.name, prompt.default)}


def make_settings(**overrides) -> Settings:
    values = {
        "save_page_retry_interval": 0,
        "crawl_poll_interval": 0,
        "short_retry_interval": 0,
        "shorturl": "none",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    return make_settings
