from __future__ import annotations

import logging
from typing import Any, AsyncGenerator, Callable

from archhive.channel import Operator, Prompt, drive

logger = logging.getLogger(__name__)


async def supervise(
    site: str,
    factory: Callable[[], AsyncGenerator],
    operator: Operator,
    url: str,
) -> Any:
    """Run a fresh task from ``factory`` until it succeeds or the operator gives up."""
    while True:
        try:
            return await drive(factory(), operator)
        except Exception as exc:
            logger.error("%s failed: %s", site, exc, exc_info=logger.isEnabledFor(logging.DEBUG))
            operator.warn(f"{site}: {str(exc) or type(exc).__name__}")
            answer = await operator.ask(
                Prompt.confirm(f"{site} failed to archive {url}. Retry?", name="retry", default=True)
            )
            if not answer.get("retry"):
                raise
