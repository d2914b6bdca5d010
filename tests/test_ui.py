"""
Tests for the HTML5 UI facade.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from firefox_ui.config import FirefoxConfig
from firefox_ui.config.defaults import DEFAULT_PAGE
from firefox_ui.ui import UI, resolve_url


class TestResolveUrl:
    """Tests for resolve_url."""

    def test_empty_uses_greeting(self):
        assert resolve_url("") == DEFAULT_PAGE

    def test_remote_url_unchanged(self):
        assert resolve_url("https://example.com/index.html") == "https://example.com/index.html"

    def test_data_url_unchanged(self):
        url = "data:text/html,<h1>index.html</h1>"
        assert resolve_url(url) == url

    def test_local_page(self, tmp_path):
        page = tmp_path / "index.html"
        page.write_text("<h1>hi</h1>")
        assert resolve_url(str(page)) == page.resolve().as_uri()

    def test_local_page_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            resolve_url(str(tmp_path / "missing.htm"))

    def test_other_value_unchanged(self):
        assert resolve_url("about:blank") == "about:blank"


class TestUICreate:
    def test_args(self):
        """Test that the page and kiosk flags follow caller arguments."""
        config = FirefoxConfig(profile_location_url="")
        ui = UI.create("https://example.com", ["--private-window"], None, config)
        assert ui.firefox._args == [
            "--private-window",
            "--new-window=https://example.com",
            "--kiosk",
        ]
        assert ui.firefox.config is config

    def test_default_page(self):
        ui = UI.create(config=FirefoxConfig())
        assert f"--new-window={DEFAULT_PAGE}" in ui.firefox._args

    def test_config_from_environment(self, monkeypatch):
        monkeypatch.setenv("FIREFOX_UI_PROFILE_DIR", "/var/lib/kiosk")
        ui = UI.create()
        assert ui.firefox.config.profile_dir == "/var/lib/kiosk"


class TestUIRun:
    """Tests for the UI lifecycle against a mocked engine."""

    @pytest.fixture
    def firefox(self):
        firefox = MagicMock()
        firefox.start = AsyncMock()
        firefox.stop = AsyncMock()
        firefox.load = AsyncMock()
        firefox.evaluate = AsyncMock(return_value=3)
        firefox.bind = AsyncMock()
        return firefox

    @pytest.mark.asyncio
    async def test_run_returns_exit_status(self, firefox):
        firefox.wait = AsyncMock(return_value=0)
        ui = UI(firefox)

        assert await ui.run() == 0

        firefox.start.assert_awaited_once()
        firefox.stop.assert_awaited()
        assert ui.done().is_set()

    @pytest.mark.asyncio
    async def test_stop_waits_for_run(self, firefox):
        stopped = asyncio.Event()

        async def wait():
            await stopped.wait()
            return -9

        async def stop():
            stopped.set()

        firefox.wait = wait
        firefox.stop = AsyncMock(side_effect=stop)
        ui = UI(firefox)
        runner = asyncio.create_task(ui.run())
        await asyncio.sleep(0)

        await asyncio.wait_for(ui.stop(), 1)

        assert ui.done().is_set()
        assert await runner == -9

    @pytest.mark.asyncio
    async def test_stop_without_run(self, firefox):
        ui = UI(firefox)
        await ui.stop()
        assert ui.done().is_set()

    @pytest.mark.asyncio
    async def test_failed_start_sets_done(self, firefox):
        firefox.start = AsyncMock(side_effect=RuntimeError("boom"))
        ui = UI(firefox)
        with pytest.raises(RuntimeError):
            await ui.run()
        assert ui.done().is_set()

    @pytest.mark.asyncio
    async def test_delegates(self, firefox):
        ui = UI(firefox)
        handler = MagicMock()

        await ui.load("https://example.com")
        assert await ui.eval("1 + 2") == 3
        await ui.bind("greet", handler)

        firefox.load.assert_awaited_once_with("https://example.com")
        firefox.evaluate.assert_awaited_once_with("1 + 2")
        firefox.bind.assert_awaited_once_with("greet", handler)
