from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Sequence
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# Hardcoded limit in Chromium for single-shot full page screenshots
MAX_FULLPAGE_HEIGHT = 16384


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


async def retry(
    fn: Callable[[], Awaitable[Any]],
    *,
    retries: int,
    interval: float,
    on_retry: Callable[[], Awaitable[Any]] | None = None,
) -> Any:
    """Call ``fn`` until it succeeds, at most ``retries`` extra times.

    The last error is re-raised once the attempts are used up.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as exc:
            if attempt >= retries:
                raise
            attempt += 1
            logger.debug("attempt %d failed (%s), retrying in %ss", attempt, exc, interval)
            await asyncio.sleep(interval)
            if on_retry is not None:
                await on_retry()


def get_viewport(width: str | int, presets: Mapping[str, int], height: int = 1080) -> tuple[int, int]:
    value = str(width).strip().lower()
    match = re.match(r"\d+", value)
    if match:
        return int(match.group(0)), height
    return presets.get(value, 0), height


def remove_protocol(url: str | None) -> str:
    return re.sub(r"^https?://", "", url or "")


# Most filesystems cap a single name at 255 bytes
MAX_FILENAME_BYTES = 255


def title_to_filename(title: str, replacements: Mapping[str, str], suffix: str = "") -> str:
    for char, replacement in replacements.items():
        title = title.replace(char, replacement)
    # Control characters and the reserved names Windows refuses
    title = re.sub(r"[\x00-\x1f\x80-\x9f]", "", title).strip().rstrip(".")
    if re.fullmatch(r"(?i)(con|prn|aux|nul|com\d|lpt\d)(\..*)?", title):
        title = ""
    limit = MAX_FILENAME_BYTES - len(suffix.encode("utf-8"))
    title = title.encode("utf-8")[:limit].decode("utf-8", "ignore").strip()
    return (title or "screenshot") + suffix


def append_history(history_file: str | Path, argv: Sequence[str], now: datetime | None = None) -> None:
    """Record the effective invocation so a run can be repeated later."""
    now = now or datetime.now().astimezone()
    path = Path(history_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(f"{' '.join(argv)} # {now.strftime('%a %b %d %Y %H:%M:%S %z')}\n")
