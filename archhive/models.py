from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncGenerator, Callable

if TYPE_CHECKING:
    from playwright.async_api import Browser

    from archhive.config import Settings

ARCHIVE_FIELDS = ("archive_org_url", "archive_org_short_url", "archive_today_url")


@dataclass
class ArchiveUrls:
    url: str
    archive_org_url: str | None = None
    archive_org_short_url: str | None = None
    archive_today_url: str | None = None

    def merge(self, partial: dict[str, Any] | None) -> ArchiveUrls:
        """Copy the archive links produced by one task into this record."""
        for key in ARCHIVE_FIELDS:
            value = (partial or {}).get(key)
            if value:
                setattr(self, key, value)
        return self

    def as_dict(self) -> dict[str, str | None]:
        return asdict(self)


@dataclass
class ArchiveContext:
    url: str
    browser: Browser
    settings: Settings


@dataclass
class ScreenshotResult:
    page_title: str
    filename: Path | None


@dataclass(frozen=True)
class ArchiveTarget:
    site: str
    run: Callable[[ArchiveContext], AsyncGenerator]
