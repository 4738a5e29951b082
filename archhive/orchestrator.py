"""
Runs both archive tasks side by side, then the screenshot.
"""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncGenerator, Callable

from archhive.channel import Operator, drive
from archhive.models import ArchiveContext, ArchiveTarget, ArchiveUrls, ScreenshotResult
from archhive.services.archive_org import archive_org
from archhive.services.archive_today import archive_today
from archhive.services.screenshot import capture_screenshot
from archhive.supervisor import supervise

logger = logging.getLogger(__name__)

ARCHIVE_TARGETS: tuple[ArchiveTarget, ...] = (
    ArchiveTarget(site="archive.org", run=archive_org),
    ArchiveTarget(site="archive.today", run=archive_today),
)

Annotator = Callable[[ArchiveContext, ArchiveUrls, str], AsyncGenerator]


async def archive(
    ctx: ArchiveContext,
    operator: Operator,
    targets: tuple[ArchiveTarget, ...] = ARCHIVE_TARGETS,
) -> ArchiveUrls:
    tasks = [
        asyncio.create_task(
            supervise(target.site, lambda target=target: target.run(ctx), operator, ctx.url),
            name=target.site,
        )
        for target in targets
    ]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        # Let the cancelled tasks close their pages before the browser goes away
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    archive_urls = ArchiveUrls(url=ctx.url)
    for result in results:
        archive_urls.merge(result)
    return archive_urls


async def run(
    ctx: ArchiveContext,
    operator: Operator,
    stylesheet: str = "",
    annotate: Annotator = capture_screenshot,
    targets: tuple[ArchiveTarget, ...] = ARCHIVE_TARGETS,
) -> tuple[ArchiveUrls, ScreenshotResult]:
    archive_urls = await archive(ctx, operator, targets)
    logger.debug("Archive URLs: %s", archive_urls.as_dict())
    result = await drive(annotate(ctx, archive_urls, stylesheet), operator)
    return archive_urls, result
