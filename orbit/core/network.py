"""Network online/offline signal consulted before translation calls."""

import asyncio
import contextlib
import logging
from collections.abc import Callable

import httpx

from ..config.settings import NETWORK_PROBE_INTERVAL

logger = logging.getLogger(__name__)


class NetworkMonitor:
    """
    Tracks whether the network is believed to be reachable.

    The flag is set by the host environment (set_online) or refreshed with an
    HTTP health probe, once via probe() or every `interval` seconds between
    start() and stop(). Listeners fire only on actual transitions.
    """

    def __init__(
        self,
        online: bool = True,
        probe_url: str | None = None,
        timeout: float = 2.0,
        interval: float = NETWORK_PROBE_INTERVAL,
    ):
        self._online = online
        self.probe_url = probe_url
        self.timeout = timeout
        self.interval = interval
        self._listeners: list[Callable[[bool], None]] = []
        self._watch_task: asyncio.Task | None = None

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info("Network %s", "online" if online else "offline")
        for listener in list(self._listeners):
            try:
                listener(online)
            except Exception as e:
                logger.warning(f"Network listener error: {e}")

    def add_listener(self, callback: Callable[[bool], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[bool], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def probe(self) -> bool:
        """Refresh the flag from a health endpoint. No-op without probe_url."""
        if not self.probe_url:
            return self._online

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as http:
                response = await http.get(self.probe_url)
            online = response.status_code < 500
        except httpx.HTTPError as e:
            logger.debug(f"Network probe failed: {e}")
            online = False

        self.set_online(online)
        return online

    @property
    def running(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    def start(self) -> None:
        """Begin periodic health checks. No-op without probe_url or when running."""
        if not self.probe_url or self.running:
            return
        self._watch_task = asyncio.get_running_loop().create_task(self._watch())

    async def stop(self) -> None:
        task, self._watch_task = self._watch_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _watch(self) -> None:
        logger.debug(f"Watching {self.probe_url} every {self.interval:.1f}s")
        while True:
            await self.probe()
            await asyncio.sleep(self.interval)
