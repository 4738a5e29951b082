"""
Full-page screenshot with a header carrying the archive links and a QR code.
"""
from __future__ import annotations

import asyncio
import base64
import html
import logging
from datetime import UTC, datetime
from io import BytesIO
from pathlib import Path

import qrcode
from PIL import Image

from archhive.channel import Done, Status
from archhive.models import ArchiveContext, ArchiveUrls, ScreenshotResult
from archhive.utils import MAX_FULLPAGE_HEIGHT, get_viewport, remove_protocol, title_to_filename

logger = logging.getLogger(__name__)

HEADER_BG = "#f7f7f7"

WAIT_FOR_IMAGES_JS = """async (timeout) => {
    // Scroll to the bottom to trigger lazy loading
    document.body.scrollIntoView(false);
    const images = Array.from(document.getElementsByTagName('img'));
    await Promise.race([
        Promise.all(images.map((image) => image.complete ? null : new Promise((resolve) => {
            image.addEventListener('load', resolve);
            image.addEventListener('error', resolve);
        }))),
        new Promise((resolve) => setTimeout(resolve, timeout)),
    ]);
}"""

FIX_LAYOUT_JS = """() => {
    // Sticky headers would be repeated all over a full page screenshot
    for (const elem of document.body.querySelectorAll('nav, header, div')) {
        if (window.getComputedStyle(elem, null).getPropertyValue('position') === 'fixed') {
            elem.style.setProperty('position', 'absolute', 'important');
            elem.style.setProperty('inset', 'initial', 'important');
        }
    }
    document.body.style.setProperty('padding-top', '0', 'important');
    document.body.style.setProperty('margin-top', '0', 'important');
    document.body.insertAdjacentHTML('beforeend', '<style>html::-webkit-scrollbar {width: 0;height: 0;}</style>');
    window.scrollTo(0, 0);
}"""

ADD_HEADER_JS = """([header, stylesheet]) => {
    document.head.insertAdjacentHTML('beforebegin', header);
    if (stylesheet) {
        const style = document.createElement('style');
        style.textContent = stylesheet;
        document.body.appendChild(style);
    }
}"""

PAGE_SIZE_JS = "() => [document.documentElement.scrollWidth, document.documentElement.scrollHeight]"

SCROLL_TO_JS = "(y) => window.scrollTo(0, y)"

LABEL_STYLE = "display:block;color: grey;font-variant: common-ligatures;font-weight: 700;letter-spacing: 0.04em;"


def qr_data_url(text: str) -> str:
    qr = qrcode.QRCode(border=0)
    qr.add_data(text)
    qr.make(fit=True)
    buf = BytesIO()
    qr.make_image(fill_color="black", back_color=HEADER_BG).save(buf)
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode()


def grid_template(width: int) -> str:
    if width >= 1050:
        return '"qr url ao at"'
    if width >= 650:
        return '"qr url url" "qr ao at"'
    if width >= 560:
        return '"url qr" "ao qr" "at qr"'
    return '"qr" "url" "ao" "at"'


def grid_gap(width: int) -> str:
    return "24px" if width >= 650 else "8px"


def _header_item(area: str, label: str, value: str | None) -> str:
    return (
        f'<archhive-header-item style="display:flex;flex-direction: column;grid-area:{area};">'
        f'<span style="{LABEL_STYLE}">{label}</span>'
        f'<span style="display:block;font-family:courier;overflow-wrap: anywhere;">'
        f"{html.escape(remove_protocol(value))}</span>"
        "</archhive-header-item>"
    )


def render_header(archive_urls: ArchiveUrls, qrcode_url: str, width: int, date: str) -> str:
    return (
        f'<archhive-header style="display:block;background-color: {HEADER_BG};'
        'border-bottom: 1.5px solid #b4c2d0;padding: 20px 2%;line-height: normal;">'
        f"<archhive-header-inner style='display: grid;grid-template:{grid_template(width)};"
        f"gap:{grid_gap(width)};font-family: arial;font-size: 20px;'>"
        f'<img src="{qrcode_url}" alt="" style="grid-area:qr;min-width:140px;max-width:100%">'
        '<archhive-header-item style="display:flex;flex-direction: column;grid-area:url;">'
        f'<span style="display:block;"><span style="{LABEL_STYLE}display:inline;">URL</span> {date}</span>'
        '<span style="display:block;font-family:courier;overflow-wrap: anywhere;">'
        f"{html.escape(remove_protocol(archive_urls.url))}</span>"
        "</archhive-header-item>"
        + _header_item("ao", "ARCHIVE.ORG", archive_urls.archive_org_short_url or archive_urls.archive_org_url)
        + _header_item("at", "ARCHIVE.TODAY", archive_urls.archive_today_url)
        + "</archhive-header-inner></archhive-header>"
    )


async def stitched_screenshot(page, path: Path, viewport_height: int, page_height: int, quality: int) -> None:
    """Scroll through the page one viewport at a time and paste the shots together."""
    shots = []
    for top in range(0, max(page_height, 1), viewport_height):
        # The last scroll stops short when the page is not a multiple of the viewport
        offset = max(min(top, page_height - viewport_height), 0)
        await page.evaluate(SCROLL_TO_JS, offset)
        shots.append((offset, await page.screenshot(type="png")))
    await page.evaluate(SCROLL_TO_JS, 0)

    images = [(offset, Image.open(BytesIO(data))) for offset, data in shots]
    canvas = Image.new("RGB", (images[0][1].width, max(page_height, images[0][1].height)), "white")
    for offset, image in images:
        canvas.paste(image.convert("RGB"), (0, offset))
    canvas.save(path, format="JPEG", quality=quality)


async def capture_screenshot(ctx: ArchiveContext, archive_urls: ArchiveUrls, stylesheet: str = ""):
    s = ctx.settings
    width, height = get_viewport(s.width, s.viewport_presets, s.viewport_height)
    context = await ctx.browser.new_context(
        viewport={"width": width, "height": height},
        # Inline QR code image and custom stylesheet
        bypass_csp=True,
        java_script_enabled=not s.noscript,
    )
    try:
        page = await context.new_page()
        yield Status(f"Going to {ctx.url} (Viewport: {width}x{height})")
        referer = s.referrer_presets.get(s.referrer, s.referrer) if s.referrer else None
        await page.goto(ctx.url, wait_until="networkidle", timeout=s.navigation_timeout_ms, referer=referer)
        if s.print_media:
            logger.info("Using print media for screenshot")
            await page.emulate_media(media="print")

        actual_url = page.url
        if actual_url != ctx.url:
            logger.warning("Redirect followed: %s", actual_url)

        yield Status(f"Generating QR Code for {actual_url}")
        qrcode_url = qr_data_url(actual_url)

        yield Status("Ensuring all images are loaded")
        if s.noscript:
            await asyncio.sleep(s.image_load_timeout_ms / 1000)
        else:
            await page.evaluate(WAIT_FOR_IMAGES_JS, s.image_load_timeout_ms)

        yield Status("Fixing page layout")
        await page.evaluate(FIX_LAYOUT_JS)

        yield Status("Adding header")
        if not archive_urls.archive_org_short_url and not archive_urls.archive_org_url:
            logger.warning("Missing archive.org link")
        if not archive_urls.archive_today_url:
            logger.warning("Missing archive.today link")
        date = datetime.now(UTC).strftime("%Y-%m-%d")
        header = render_header(archive_urls, qrcode_url, width, date)
        await page.evaluate(ADD_HEADER_JS, [header, stylesheet])

        yield Status("Taking full-page screenshot")
        page_title = await page.title()
        filename = None
        if s.screenshot != "none" and s.debug != "screenshot":
            filename = Path(s.output_dir) / title_to_filename(page_title, s.title_replacements, ".jpg")
            page_width, page_height = await page.evaluate(PAGE_SIZE_JS)
            mode = s.screenshot
            if mode == "fullpage":
                if page_height > MAX_FULLPAGE_HEIGHT:
                    mode = "stitched"
                    logger.warning(
                        "The page's height is %spx which is greater than the fullpage limit of %spx. "
                        "Stitched mode will be used instead. Remember to optimize the resulting .jpg.",
                        page_height, MAX_FULLPAGE_HEIGHT,
                    )
                elif page_width > width:
                    logger.warning(
                        "The screenshot will be stretched to a width of %spx (was: %spx) as the page is "
                        "not responsive. Use --screenshot stitched if this is undesirable.",
                        page_width, width,
                    )
            filename.parent.mkdir(parents=True, exist_ok=True)
            if mode == "stitched":
                await stitched_screenshot(page, filename, height, page_height, s.screenshot_quality)
            else:
                await page.screenshot(path=str(filename), full_page=True, type="jpeg", quality=s.screenshot_quality)
            logger.info("Screenshot saved: %s", filename)
    finally:
        await context.close()

    yield Done(ScreenshotResult(page_title=page_title, filename=filename))
