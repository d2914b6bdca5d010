"""
Tests for profile provisioning.
"""

import asyncio
import os

import httpx
import pytest

from firefox_ui.browser.profiles import (
    ProfileDirectory,
    bootstrap_profile,
    configure_devtools,
    download_file,
    fetch_with_retry,
    preference_overrides,
)
from firefox_ui.config import FirefoxConfig
from firefox_ui.config.defaults import DEVTOOLS_PREFERENCES
from firefox_ui.errors import ProvisioningCancelled, ProvisioningError

URL = "https://example.com/user.js"
SEED = 'user_pref("browser.startup.homepage", "about:blank");\n'


class FlakyHandler:
    """MockTransport handler failing the first ``failures`` requests."""

    def __init__(self, failures, status=200, content=SEED):
        self.failures = failures
        self.status = status
        self.content = content
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if len(self.requests) <= self.failures:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(self.status, text=self.content)


class RecordingSleep:
    def __init__(self, on_sleep=None):
        self.delays = []
        self.on_sleep = on_sleep

    async def __call__(self, delay):
        self.delays.append(delay)
        if self.on_sleep is not None:
            self.on_sleep()


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFetchWithRetry:
    """Tests for the download retry policy."""

    @pytest.mark.asyncio
    async def test_first_attempt(self):
        handler = FlakyHandler(0)
        sleep = RecordingSleep()
        async with client_for(handler) as client:
            response = await fetch_with_retry(client, URL, sleep=sleep)
        assert response.status_code == 200
        assert sleep.delays == []
        assert "Firefox" in handler.requests[0].headers["User-Agent"]

    @pytest.mark.asyncio
    async def test_quadratic_backoff(self):
        """Test that retries wait 1, 4 and 9 seconds."""
        handler = FlakyHandler(3)
        sleep = RecordingSleep()
        async with client_for(handler) as client:
            response = await fetch_with_retry(client, URL, sleep=sleep)
        assert response.status_code == 200
        assert sleep.delays == [1, 4, 9]
        assert len(handler.requests) == 4

    @pytest.mark.asyncio
    async def test_gives_up_after_five_attempts(self):
        handler = FlakyHandler(10)
        sleep = RecordingSleep()
        async with client_for(handler) as client:
            with pytest.raises(ProvisioningError, match="5 attempts"):
                await fetch_with_retry(client, URL, sleep=sleep)
        assert len(handler.requests) == 5
        assert sleep.delays == [1, 4, 9, 16]

    @pytest.mark.asyncio
    async def test_cancel_between_attempts(self):
        """Test that cancellation is honoured before the next attempt."""
        cancel = asyncio.Event()
        handler = FlakyHandler(10)
        sleep = RecordingSleep(on_sleep=cancel.set)
        async with client_for(handler) as client:
            with pytest.raises(ProvisioningCancelled):
                await fetch_with_retry(client, URL, cancel_event=cancel, sleep=sleep)
        assert len(handler.requests) == 1
        assert sleep.delays == [1]

    @pytest.mark.asyncio
    async def test_cancel_during_backoff(self):
        """Test that setting the event interrupts a running backoff pause."""
        cancel = asyncio.Event()
        handler = FlakyHandler(10)
        loop = asyncio.get_running_loop()
        loop.call_later(0.2, cancel.set)
        started = loop.time()

        async with client_for(handler) as client:
            with pytest.raises(ProvisioningCancelled):
                await asyncio.wait_for(
                    fetch_with_retry(client, URL, cancel_event=cancel), 5
                )

        assert loop.time() - started < 0.9
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_cancel_before_first_attempt(self):
        cancel = asyncio.Event()
        cancel.set()
        handler = FlakyHandler(0)
        async with client_for(handler) as client:
            with pytest.raises(ProvisioningCancelled):
                await fetch_with_retry(client, URL, cancel_event=cancel)
        assert handler.requests == []


class TestDownloadFile:
    @pytest.mark.asyncio
    async def test_writes_file(self, tmp_path):
        target = tmp_path / "user.js"
        async with client_for(FlakyHandler(0)) as client:
            path = await download_file(client, URL, target)
        assert path == target
        assert target.read_text() == SEED

    @pytest.mark.asyncio
    async def test_redirect_status_accepted(self, tmp_path):
        target = tmp_path / "user.js"
        async with client_for(FlakyHandler(0, status=304, content="")) as client:
            await download_file(client, URL, target)
        assert target.read_text() == ""

    @pytest.mark.asyncio
    async def test_bad_status_not_retried(self, tmp_path):
        handler = FlakyHandler(0, status=404, content="missing")
        async with client_for(handler) as client:
            with pytest.raises(ProvisioningError, match="status_code=404"):
                await download_file(client, URL, tmp_path / "user.js")
        assert len(handler.requests) == 1
        assert not (tmp_path / "user.js").exists()

    @pytest.mark.asyncio
    async def test_write_error(self, tmp_path):
        async with client_for(FlakyHandler(0)) as client:
            with pytest.raises(ProvisioningError, match="Failed to write"):
                await download_file(client, URL, tmp_path / "missing-dir" / "user.js")


class TestPreferences:
    """Tests for user.js editing."""

    def test_preference_overrides(self):
        mods = preference_overrides(
            [
                'user_pref("browser.startup.homepage", "about:blank");',
                'user_pref("devtools.chrome.enabled", false);',
            ]
        )
        assert set(mods) == {'"browser.startup.homepage"', '"devtools.chrome.enabled"'}

    def test_devtools_preferences_forced(self, tmp_path):
        """Test that existing lines are replaced and missing ones appended."""
        pref_file = tmp_path / "user.js"
        pref_file.write_text(
            'user_pref("devtools.chrome.enabled", false);\n'
            'user_pref("browser.startup.homepage", "about:home");\n'
        )

        configure_devtools(pref_file)

        lines = pref_file.read_text().splitlines()
        assert lines[0] == DEVTOOLS_PREFERENCES["devtools.chrome.enabled"]
        assert lines[1] == 'user_pref("browser.startup.homepage", "about:home");'
        for line in DEVTOOLS_PREFERENCES.values():
            assert lines.count(line) == 1

    def test_user_prefs_win(self, tmp_path):
        pref_file = tmp_path / "user.js"
        pref_file.write_text("")
        override = 'user_pref("devtools.debugger.prompt-connection", true);'

        configure_devtools(pref_file, [override, 'user_pref("ui.custom", 1);'])

        text = pref_file.read_text()
        assert override in text
        assert DEVTOOLS_PREFERENCES["devtools.debugger.prompt-connection"] not in text
        assert 'user_pref("ui.custom", 1);' in text

    def test_missing_file_created(self, tmp_path):
        pref_file = tmp_path / "user.js"
        configure_devtools(pref_file)
        assert pref_file.read_text().splitlines() == list(DEVTOOLS_PREFERENCES.values())

    def test_unwritable_location(self, tmp_path):
        with pytest.raises(ProvisioningError):
            configure_devtools(tmp_path / "missing-dir" / "user.js")


class TestProfileDirectory:
    def test_temporary(self):
        profile = ProfileDirectory()
        assert profile.temporary
        assert os.path.isdir(profile.path)
        profile.cleanup()
        assert not os.path.exists(profile.path)
        profile.cleanup()

    def test_configured_kept(self, tmp_path):
        path = tmp_path / "profile"
        profile = ProfileDirectory(str(path))
        assert not profile.temporary
        assert path.is_dir()
        profile.cleanup()
        assert path.is_dir()
        assert profile.user_js == path / "user.js"


class TestBootstrapProfile:
    @pytest.mark.asyncio
    async def test_downloads_seed(self, tmp_path):
        profile = ProfileDirectory(str(tmp_path))
        config = FirefoxConfig(profile_location_url=URL)
        handler = FlakyHandler(0)

        await bootstrap_profile(
            profile,
            config,
            ['user_pref("ui.custom", 1);'],
            transport=httpx.MockTransport(handler),
        )

        text = profile.user_js.read_text()
        assert 'user_pref("browser.startup.homepage", "about:blank");' in text
        assert DEVTOOLS_PREFERENCES["devtools.debugger.remote-enabled"] in text
        assert 'user_pref("ui.custom", 1);' in text
        assert str(handler.requests[0].url) == URL

    @pytest.mark.asyncio
    async def test_skip_download(self, tmp_path):
        """Test that an empty location keeps the existing user.js."""
        profile = ProfileDirectory(str(tmp_path))
        profile.user_js.write_text(SEED)

        def fail(request):
            raise AssertionError("no request expected")

        await bootstrap_profile(
            profile, FirefoxConfig(profile_location_url=""), transport=httpx.MockTransport(fail)
        )

        text = profile.user_js.read_text()
        assert text.startswith(SEED.strip())
        assert DEVTOOLS_PREFERENCES["devtools.chrome.enabled"] in text
