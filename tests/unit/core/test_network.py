"""Unit tests for orbit.core.network."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from orbit.core.network import NetworkMonitor
from orbit.translation import TranslationClient, offline_marker


class FlakyService:
    """Health endpoint whose reachability the test switches on and off."""

    def __init__(self, up=True):
        self.up = up
        self.checks = 0

    async def get(self, url):
        self.checks += 1
        if not self.up:
            raise httpx.ConnectError("refused")
        return MagicMock(status_code=200)

    def client(self, *args, **kwargs):
        http = MagicMock()
        http.get = self.get
        http.__aenter__ = AsyncMock(return_value=http)
        http.__aexit__ = AsyncMock(return_value=False)
        return http


async def wait_for_checks(service, count, timeout=2.0):
    async def _wait():
        while service.checks < count:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_wait(), timeout)


class TestNetworkMonitor:
    """Tests for the online/offline flag."""

    def test_default_online(self):
        """Monitor starts online."""
        assert NetworkMonitor().is_online is True

    def test_listener_fires_on_transition_only(self):
        """Listeners fire once per actual change."""
        monitor = NetworkMonitor()
        changes = []
        monitor.add_listener(changes.append)

        monitor.set_online(True)
        monitor.set_online(False)
        monitor.set_online(False)
        monitor.set_online(True)

        assert changes == [False, True]

    def test_remove_listener(self):
        """Removed listeners are not called."""
        monitor = NetworkMonitor()
        changes = []
        monitor.add_listener(changes.append)
        monitor.remove_listener(changes.append)
        monitor.set_online(False)
        assert changes == []

    @pytest.mark.asyncio
    async def test_probe_without_url(self):
        """Probe is a no-op without a URL."""
        monitor = NetworkMonitor(online=False)
        assert await monitor.probe() is False

    @pytest.mark.asyncio
    async def test_probe_failure_goes_offline(self):
        """Connection errors mark the network offline."""
        monitor = NetworkMonitor(probe_url="http://localhost:1/health")
        mock_http = MagicMock()
        mock_http.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        mock_http.__aenter__ = AsyncMock(return_value=mock_http)
        mock_http.__aexit__ = AsyncMock(return_value=False)

        with patch("orbit.core.network.httpx.AsyncClient", return_value=mock_http):
            assert await monitor.probe() is False
        assert monitor.is_online is False

    @pytest.mark.asyncio
    async def test_probe_success_goes_online(self):
        """A healthy response marks the network online."""
        monitor = NetworkMonitor(online=False, probe_url="http://localhost/health")
        mock_http = MagicMock()
        mock_http.get = AsyncMock(return_value=MagicMock(status_code=200))
        mock_http.__aenter__ = AsyncMock(return_value=mock_http)
        mock_http.__aexit__ = AsyncMock(return_value=False)

        with patch("orbit.core.network.httpx.AsyncClient", return_value=mock_http):
            assert await monitor.probe() is True
        assert monitor.is_online is True


class TestNetworkWatch:
    """Tests for periodic health checks between start() and stop()."""

    @pytest.mark.asyncio
    async def test_start_without_url_is_noop(self):
        """Without a health URL there is nothing to watch."""
        monitor = NetworkMonitor()
        monitor.start()
        assert monitor.running is False
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_outage_and_recovery_tracked(self):
        """The flag follows the service down and back up without a restart."""
        service = FlakyService(up=False)
        monitor = NetworkMonitor(probe_url="http://localhost/health", interval=0.01)
        changes = []
        monitor.add_listener(changes.append)

        with patch("orbit.core.network.httpx.AsyncClient", side_effect=service.client):
            monitor.start()
            await wait_for_checks(service, 1)
            assert monitor.is_online is False

            service.up = True
            await wait_for_checks(service, service.checks + 2)
            assert monitor.is_online is True
            await monitor.stop()

        assert changes == [False, True]
        assert monitor.running is False

    @pytest.mark.asyncio
    async def test_stop_ends_checks(self):
        """No health checks run after stop()."""
        service = FlakyService()
        monitor = NetworkMonitor(probe_url="http://localhost/health", interval=0.01)

        with patch("orbit.core.network.httpx.AsyncClient", side_effect=service.client):
            monitor.start()
            await wait_for_checks(service, 2)
            await monitor.stop()
            seen = service.checks
            await asyncio.sleep(0.05)

        assert service.checks == seen

    @pytest.mark.asyncio
    async def test_translation_resumes_after_recovery(self):
        """Text translated during an outage is marked offline, later text is not."""
        service = FlakyService(up=False)
        monitor = NetworkMonitor(probe_url="http://localhost:8010/health", interval=0.01)
        client = TranslationClient(url="http://localhost:8010", network=monitor)
        mock_http = AsyncMock()
        mock_http.post = AsyncMock(return_value=MagicMock(status_code=200, json=lambda: {"text": "Hola"}))

        with patch("orbit.core.network.httpx.AsyncClient", side_effect=service.client), \
                patch.object(client, "_get_http", return_value=mock_http):
            monitor.start()
            await wait_for_checks(service, 1)
            during = await client.translate("Hello", "es", "en-US")

            service.up = True
            await wait_for_checks(service, service.checks + 2)
            after = await client.translate("Hello", "es", "en-US")
            await monitor.stop()

        assert during.text == offline_marker("Hello")
        assert during.is_offline is True
        assert after.text == "Hola"
        assert after.is_offline is False
        mock_http.post.assert_called_once()
