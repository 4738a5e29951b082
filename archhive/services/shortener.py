"""v.gd short URLs for archive.org snapshots."""
from __future__ import annotations

import logging

import httpx

from archhive.errors import ShortUrlError

logger = logging.getLogger(__name__)

VGD_CREATE = "https://v.gd/create.php"


async def create_short_url(
    url: str,
    alias: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    params = {"format": "simple", "url": url}
    if alias:
        params["shorturl"] = alias

    if client is None:
        async with httpx.AsyncClient(timeout=30) as c:
            res = await c.get(VGD_CREATE, params=params)
    else:
        res = await client.get(VGD_CREATE, params=params)

    if res.is_success:
        return res.text.strip()
    if alias:
        # The alias is taken, most likely by an earlier run for the same snapshot
        logger.warning("v.gd/%s already exists", alias)
        return f"https://v.gd/{alias}"
    raise ShortUrlError(res.text.strip() or f"v.gd returned HTTP {res.status_code}")
