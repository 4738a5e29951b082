from __future__ import annotations

import logging
from typing import Iterable

from playwright.async_api import Browser, Page, Playwright, Route

from archhive.config import Settings

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
]


async def launch_browser(p: Playwright, settings: Settings) -> Browser:
    browser = await p.chromium.launch(headless=not settings.debug, args=LAUNCH_ARGS)
    logger.debug("Chromium %s started", browser.version)
    return browser


async def block_resources(page: Page, blocked: Iterable[str]) -> None:
    """Abort every request whose resource type is in ``blocked``."""
    kinds = frozenset(blocked)

    async def handler(route: Route) -> None:
        if route.request.resource_type in kinds:
            await route.abort()
        else:
            await route.continue_()

    await page.route("**/*", handler)
