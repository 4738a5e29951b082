from __future__ import annotations

import asyncio
import logging
import shlex
import signal
import sys
from enum import Enum
from typing import Optional

import typer
from playwright.async_api import async_playwright
from rich.prompt import Prompt as TextPrompt

from archhive import orchestrator
from archhive.browser import launch_browser
from archhive.config import Settings, settings
from archhive.console import ConsoleOperator, console, setup_logging
from archhive.models import ArchiveContext
from archhive.stylesheet import resolve_stylesheet
from archhive.utils import append_history, is_valid_url

logger = logging.getLogger(__name__)
app = typer.Typer(add_completion=False)


class ScreenshotMode(str, Enum):
    fullpage = "fullpage"
    stitched = "stitched"
    none = "none"


class DebugMode(str, Enum):
    all = "all"
    screenshot = "screenshot"


class RenewPolicy(str, Enum):
    auto = "auto"
    manual = "manual"
    no = "no"
    never = "never"


async def archive_and_capture(url: str, s: Settings, stylesheet: str) -> int:
    operator = ConsoleOperator()
    loop = asyncio.get_running_loop()
    main_task = asyncio.current_task()

    async with async_playwright() as p:
        operator.start("Starting browser")
        browser = await launch_browser(p, s)
        try:
            loop.add_signal_handler(signal.SIGINT, main_task.cancel)
            handles_sigint = True
        except NotImplementedError:
            handles_sigint = False

        try:
            operator.update("Archiving URL")
            ctx = ArchiveContext(url=url, browser=browser, settings=s)
            archive_urls, result = await orchestrator.run(ctx, operator, stylesheet)
        except asyncio.CancelledError:
            operator.fail("Interrupted")
            return 130
        except Exception as exc:
            logger.debug("Run failed", exc_info=True)
            operator.fail(str(exc) or type(exc).__name__)
            return 1
        finally:
            if handles_sigint:
                loop.remove_signal_handler(signal.SIGINT)
            await browser.close()

    operator.succeed("Archived and captured")
    short = f" ({archive_urls.archive_org_short_url})" if archive_urls.archive_org_short_url else ""
    if result.filename is not None:
        typer.echo(f"File: {result.filename}")
    typer.echo(f"archive.org: {archive_urls.archive_org_url}{short}")
    typer.echo(f"archive.today: {archive_urls.archive_today_url}")
    if result.filename is not None and not s.debug:
        typer.launch(str(result.filename))
    return 0


@app.command()
def main(
    url: Optional[str] = typer.Argument(None, help="URL to archive. Prompted for when omitted."),
    width: Optional[str] = typer.Option(
        None,
        help="Viewport width (e.g. 1920) or one of: mini (492), mobile (576), tablet (768), "
        "notebook (1200), laptop (1400, default), desktop (1920)",
    ),
    screenshot: ScreenshotMode = typer.Option(
        ScreenshotMode.fullpage,
        help="fullpage: one shot of the whole page. stitched: viewport shots pasted together, "
        "for pages taller than Chromium allows. none: no screenshot.",
    ),
    screenshot_quality: int = typer.Option(settings.screenshot_quality, min=0, max=100),
    ao_url: str = typer.Option(
        settings.ao_url,
        help='Pre-defined archive.org URL. "auto" archives the URL, "none" skips archive.org.',
    ),
    at_url: str = typer.Option(
        settings.at_url,
        help='Pre-defined archive.today URL. "auto" archives the URL, "none" skips archive.today.',
    ),
    stylesheet: Optional[str] = typer.Option(None, help="Stylesheet file for the screenshot. Overrides --stylesheets-dir."),
    stylesheets_dir: str = typer.Option(settings.stylesheets_dir, help="Directory of <host>.css stylesheets."),
    shorturl: Optional[str] = typer.Option(
        settings.shorturl, help='5-30 characters used as v.gd alias of the archive.org link, or "none".'
    ),
    renew: RenewPolicy = typer.Option(
        RenewPolicy.auto, help='"auto" renews archive.today snapshots older than a year. "manual" is treated as "no".'
    ),
    referrer: Optional[str] = typer.Option(None, help="Referrer for the screenshot visit. Presets: g, ddg."),
    output_dir: str = typer.Option(settings.output_dir),
    noscript: bool = typer.Option(False, help="Disable JavaScript when taking the screenshot."),
    print_media: bool = typer.Option(False, "--print", help="Use the page's print stylesheet."),
    image_load_timeout: int = typer.Option(settings.image_load_timeout_ms, help="Milliseconds to wait for images."),
    debug: Optional[DebugMode] = typer.Option(
        None,
        help="all: verbose logging and a visible browser. screenshot: also debug the screenshot "
        "without archiving the URL or saving files.",
    ),
):
    """Archive a URL on archive.org and archive.today and save an annotated screenshot."""
    setup_logging(debug is not None)
    launch_argv = sys.argv[1:]
    width_given = bool(width)

    if not url:
        url = TextPrompt.ask("URL", console=console)
        launch_argv.append(shlex.quote(url))
        if not width:
            width = TextPrompt.ask(
                "Viewport", choices=list(settings.viewport_presets), default="laptop", console=console
            )
    width = width or settings.width
    if not width_given:
        launch_argv += ["--width", width]

    if debug is DebugMode.screenshot:
        if ao_url == "auto":
            ao_url = "archive.org/debug"
            shorturl = "none"
        if at_url == "auto":
            at_url = "archive.today/debug"

    if not is_valid_url(url):
        console.print(f"[red]Invalid URL specified:[/red] {url}", highlight=False)
        raise typer.Exit(1)

    run_settings = settings.model_copy(update={
        "width": width,
        "screenshot": screenshot.value,
        "screenshot_quality": screenshot_quality,
        "ao_url": ao_url,
        "at_url": at_url,
        "stylesheet": stylesheet,
        "stylesheets_dir": stylesheets_dir,
        "shorturl": shorturl,
        "renew": renew.value,
        "referrer": referrer,
        "output_dir": output_dir,
        "noscript": noscript,
        "print_media": print_media,
        "image_load_timeout_ms": image_load_timeout,
        "debug": debug.value if debug else None,
    })

    css_path, css = resolve_stylesheet(url, run_settings)
    if css:
        logger.debug("Using stylesheet: %s", css_path)
    else:
        logger.debug("Could not find stylesheet: %s", css_path)

    code = asyncio.run(archive_and_capture(url, run_settings, css))
    if code == 0 and run_settings.debug != "screenshot":
        append_history(run_settings.history_file, launch_argv)
    raise typer.Exit(code)


if __name__ == "__main__":
    app()
