"""
archive.org task: submit the URL to Save Page Now and wait for the crawl.
"""
from __future__ import annotations

import asyncio
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from archhive.browser import block_resources
from archhive.channel import Done, Status
from archhive.config import Settings
from archhive.errors import CrawlPendingError
from archhive.models import ArchiveContext
from archhive.services.shortener import create_short_url
from archhive.utils import retry

logger = logging.getLogger(__name__)

SAVE_URL = "https://web.archive.org/save"
RESULT_LINK = "#spn-result a"

FILL_FORM_JS = """(url) => {
    document.querySelector('input[name="url"]').value = url;
    // Don't save error pages
    document.querySelector('#capture_all').checked = false;
}"""


async def open_save_page(page: Page, interval: float, timeout_ms: int) -> None:
    # web.archive.org is flaky; keep trying until the form loads
    while True:
        try:
            response = await page.goto(SAVE_URL, wait_until="load", timeout=timeout_ms)
        except PlaywrightError as exc:
            reason = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
        else:
            if response is not None and response.status == 200:
                return
            reason = response.status_text if response is not None else "no response"
        logger.error("Could not load %s: %s. Retrying in %ss...", SAVE_URL, reason, interval)
        await asyncio.sleep(interval)


async def wait_for_snapshot(page: Page, settings: Settings) -> str:
    async def read_result() -> str:
        await page.wait_for_selector(RESULT_LINK, timeout=settings.crawl_poll_timeout_ms)
        href = await page.eval_on_selector(RESULT_LINK, "a => a.href")
        # The link points back at the form until the crawl has finished
        if href == SAVE_URL:
            raise CrawlPendingError("archive.org has not published the snapshot yet")
        return href

    async def reload() -> None:
        await page.reload(wait_until="load")

    return await retry(
        read_result,
        retries=settings.crawl_poll_retries,
        interval=settings.crawl_poll_interval,
        on_retry=reload,
    )


async def archive_org(ctx: ArchiveContext):
    s = ctx.settings
    archive_org_url = None
    archive_org_short_url = None

    if s.ao_url == "auto":
        page = await ctx.browser.new_page()
        try:
            await block_resources(page, ["image"])
            yield Status("Submitting URL to archive.org")
            await open_save_page(page, s.save_page_retry_interval, s.navigation_timeout_ms)
            await page.evaluate(FILL_FORM_JS, ctx.url)
            async with page.expect_navigation(wait_until="load"):
                await page.click('form[action="/save"] input[type="submit"]')

            yield Status("Waiting for archive.org to crawl...")
            archive_org_url = await wait_for_snapshot(page, s)
        finally:
            await page.close()
    elif s.ao_url != "none":
        archive_org_url = s.ao_url

    if archive_org_url and s.shorturl != "none":
        yield Status(f"Creating v.gd shorturl: {archive_org_url}")
        archive_org_short_url = await create_short_url(archive_org_url, s.shorturl)

    logger.info("archive.org: %s", archive_org_url)
    yield Done({"archive_org_url": archive_org_url, "archive_org_short_url": archive_org_short_url})
