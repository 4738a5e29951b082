import asyncio
import sys

import pytest
from typer.testing import CliRunner

from archhive import cli, orchestrator
from archhive.models import ArchiveUrls, ScreenshotResult
from conftest import FakeBrowser

URL = "http://example.com"
AO = "https://web.archive.org/web/2024/http://example.com"
AT = "https://archive.today/abc123"

runner = CliRunner()


class FakePlaywright:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def harness(monkeypatch, tmp_path):
    browser = FakeBrowser()
    state = {"browser": browser, "runs": [], "opened": [], "launched": 0}

    async def fake_launch(p, settings):
        state["launched"] += 1
        return browser

    monkeypatch.setattr(cli, "async_playwright", FakePlaywright)
    monkeypatch.setattr(cli, "launch_browser", fake_launch)
    monkeypatch.setattr(cli.typer, "launch", lambda target: state["opened"].append(target))
    state["output_dir"] = tmp_path
    state["history"] = tmp_path / ".archhive_history"
    return state


def invoke(monkeypatch, tmp_path, *args):
    argv = [URL, "--width", "laptop", "--output-dir", str(tmp_path), *args]
    monkeypatch.setattr(sys, "argv", ["archhive", *argv])
    return runner.invoke(cli.app, argv)


def test_success_prints_links_and_appends_history(monkeypatch, tmp_path, harness):
    shot = tmp_path / "Example Domain.jpg"

    async def fake_run(ctx, operator, stylesheet=""):
        harness["runs"].append(ctx.settings)
        return ArchiveUrls(url=ctx.url, archive_org_url=AO, archive_today_url=AT), ScreenshotResult(
            "Example Domain", shot
        )

    monkeypatch.setattr(orchestrator, "run", fake_run)
    result = invoke(monkeypatch, tmp_path)

    assert result.exit_code == 0
    assert f"archive.org: {AO}" in result.stdout
    assert f"archive.today: {AT}" in result.stdout
    assert harness["browser"].closed
    assert harness["opened"] == [str(shot)]
    history = harness["history"].read_text(encoding="utf-8")
    assert history.startswith(f"{URL} --width laptop --output-dir {tmp_path} # ")


def test_fatal_failure_closes_browser_and_exits_1(monkeypatch, tmp_path, harness):
    async def fake_run(ctx, operator, stylesheet=""):
        raise RuntimeError("archive.today is throwing a CAPTCHA when archiving links")

    monkeypatch.setattr(orchestrator, "run", fake_run)
    result = invoke(monkeypatch, tmp_path)

    assert result.exit_code == 1
    assert harness["browser"].closed
    assert not harness["history"].exists()
    assert harness["opened"] == []


def test_interrupt_closes_browser_and_exits_130(monkeypatch, tmp_path, harness):
    async def fake_run(ctx, operator, stylesheet=""):
        asyncio.current_task().cancel()
        await asyncio.sleep(10)

    monkeypatch.setattr(orchestrator, "run", fake_run)
    result = invoke(monkeypatch, tmp_path)

    assert result.exit_code == 130
    assert harness["browser"].closed
    assert not harness["history"].exists()


def test_invalid_url_exits_before_browser_starts(monkeypatch, tmp_path, harness):
    monkeypatch.setattr(sys, "argv", ["archhive", "not a url"])
    result = runner.invoke(cli.app, ["not a url", "--width", "laptop"])

    assert result.exit_code == 1
    assert harness["launched"] == 0


def test_screenshot_debug_skips_archiving_and_history(monkeypatch, tmp_path, harness):
    async def fake_run(ctx, operator, stylesheet=""):
        harness["runs"].append(ctx.settings)
        return ArchiveUrls(url=ctx.url), ScreenshotResult("Example Domain", None)

    monkeypatch.setattr(orchestrator, "run", fake_run)
    result = invoke(monkeypatch, tmp_path, "--debug", "screenshot")

    assert result.exit_code == 0
    settings = harness["runs"][0]
    assert settings.ao_url == "archive.org/debug"
    assert settings.at_url == "archive.today/debug"
    assert settings.shorturl == "none"
    assert settings.debug == "screenshot"
    assert not harness["history"].exists()
    assert harness["opened"] == []
