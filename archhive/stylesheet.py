from __future__ import annotations

import logging
import re
from pathlib import Path
from urllib.parse import urlparse

from archhive.config import Settings

logger = logging.getLogger(__name__)

IMPORT_RE = re.compile(r"""@import\s+(?:url\()?\s*["']?([^"')\s;]+)["']?\s*\)?\s*;""")


def _read_css(path: Path, seen: set[Path]) -> str:
    path = path.resolve()
    if path in seen:
        return ""
    seen.add(path)
    css = path.read_text(encoding="utf-8")

    def inline(match: re.Match) -> str:
        target = match.group(1)
        if re.match(r"^[a-z]+://", target):
            return match.group(0)
        imported = path.parent / target
        if not imported.exists():
            logger.warning("Stylesheet import not found: %s", imported)
            return ""
        return _read_css(imported, seen)

    return IMPORT_RE.sub(inline, css)


def resolve_stylesheet(url: str, settings: Settings) -> tuple[Path, str]:
    """Find the stylesheet for ``url``: explicit file, else ``<host>.css``."""
    if settings.stylesheet:
        path = Path(settings.stylesheet)
    else:
        path = Path(settings.stylesheets_dir) / f"{urlparse(url).netloc}.css"
    if not path.is_file():
        return path, ""
    return path, _read_css(path, set())
