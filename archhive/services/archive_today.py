"""
archive.today task.

archive.today has no API, so the task drives the submission form with
scripting disabled and reads the outcome off whatever page it lands on:
an existing snapshot, a CAPTCHA, a redirect page or a work-in-progress page.
"""
from __future__ import annotations

import logging
import re
from datetime import UTC, datetime, timedelta
from urllib.parse import urlparse

from dateutil import parser as date_parser
from playwright.async_api import Error as PlaywrightError

from archhive.browser import block_resources
from archhive.channel import Done, Prompt, Status
from archhive.errors import CaptchaError, SnapshotInProgressError
from archhive.models import ArchiveContext
from archhive.utils import retry

logger = logging.getLogger(__name__)

ARCHIVE_TODAY = "https://archive.today"
SAVE_BUTTON = 'input[type="submit"][value="save"]'
ALREADY_MARKER = "#DIVALREADY"
ARCHIVED_DATE = 'span[itemprop="description"]'
CAPTCHA_TITLE = "Attention Required!"
REDIRECT_RE = re.compile(r'document\.location\.replace\("(.*?)"\)')

# Average Gregorian year
ONE_YEAR = timedelta(milliseconds=31556952000)


def parse_archived_date(text: str | None) -> datetime | None:
    text = re.sub(r"^\s*archived\s*", "", text or "", flags=re.IGNORECASE).strip()
    if not text:
        return None
    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def needs_renewal(archived: datetime, policy: str, now: datetime | None = None) -> bool:
    # "manual" has no interactive flow yet and behaves like "no"
    if policy != "auto":
        return False
    now = now or datetime.now(UTC)
    return now - archived >= ONE_YEAR


def is_submit_page(url: str) -> bool:
    return "/submit" in url


def is_snapshot_page(url: str) -> bool:
    parsed = urlparse(url)
    return bool(parsed.netloc) and not is_submit_page(url) and parsed.path.strip("/") != ""


def strip_wip(url: str) -> str:
    return url.replace("wip/", "")


async def archive_today(ctx: ArchiveContext):
    s = ctx.settings
    if s.at_url == "none":
        yield Done({})
        return
    if s.at_url != "auto":
        yield Done({"archive_today_url": s.at_url})
        return

    def short_retry(fn):
        return retry(fn, retries=s.short_retries, interval=s.short_retry_interval)

    context = await ctx.browser.new_context(java_script_enabled=False)
    try:
        page = await context.new_page()
        # Images can crash the browser when a heavy snapshot is displayed
        await block_resources(page, ["image"])
        yield Status("Submitting URL to archive.today")
        await page.goto(ARCHIVE_TODAY, wait_until="domcontentloaded", timeout=s.navigation_timeout_ms)
        await page.fill("#url", ctx.url)
        try:
            async with page.expect_navigation(wait_until="domcontentloaded"):
                await page.click(SAVE_BUTTON)
        except PlaywrightError:
            current_url = page.url
            logger.debug("archive.today submission failed on %s", current_url, exc_info=True)
            if not is_snapshot_page(current_url):
                raise
            answer = yield Prompt.confirm(
                "A crash occurred while loading archive.today, but an archived copy already "
                f"exists which can be used ({current_url}). Would you like to use it?"
            )
            if not answer.get("continue"):
                raise
            yield Done({"archive_today_url": strip_wip(current_url)})
            return

        original_url = page.url
        archive_today_url = None

        already = await short_retry(lambda: page.locator(ALREADY_MARKER).count())
        if already:
            archived_text = await page.locator(ARCHIVED_DATE).first.text_content()
            archived = parse_archived_date(archived_text)
            if archived is None:
                logger.warning("Could not parse date on archive.today page: %r", archived_text)
            elif needs_renewal(archived, s.renew):
                logger.info("Snapshot from %s is outdated, rearchiving on archive.today", archived.date())
                yield Status("Rearchiving on archive.today")
                try:
                    async with page.expect_navigation(
                        wait_until="domcontentloaded", timeout=s.rearchive_timeout_ms
                    ):
                        await page.click(SAVE_BUTTON)
                except PlaywrightError:
                    logger.debug("archive.today rearchive failed", exc_info=True)
                    answer = yield Prompt.confirm(
                        "Could not rearchive on archive.today, but an archived copy already "
                        f"exists ({original_url}). Would you like to use it?"
                    )
                    if not answer.get("continue"):
                        raise
                    archive_today_url = original_url

        if archive_today_url is None:
            archive_today_url = page.url
            if is_submit_page(archive_today_url):
                title = await short_retry(page.title)
                if title == CAPTCHA_TITLE:
                    if is_submit_page(original_url):
                        raise CaptchaError("archive.today is throwing a CAPTCHA when archiving links")
                    answer = yield Prompt.confirm(
                        "archive.today is throwing a CAPTCHA, but an archived copy already "
                        f"exists ({original_url}). Would you like to use it?"
                    )
                    if answer.get("continue"):
                        yield Done({"archive_today_url": strip_wip(original_url)})
                        return

                html = await short_retry(page.content) or ""
                match = REDIRECT_RE.search(html)
                if match:
                    archive_today_url = match.group(1)
                else:
                    archive_today_url = page.url
                    if is_submit_page(archive_today_url):
                        raise SnapshotInProgressError(f"archive.today is still archiving {ctx.url}")

        archive_today_url = strip_wip(archive_today_url)
    finally:
        await context.close()

    logger.info("archive.today: %s", archive_today_url)
    yield Done({"archive_today_url": archive_today_url})
