"""
Local liveness probe.

HeartbeatMonitor issues a lightweight call on a fixed interval. The first
failure stops the loop; reconnection is left to the stream's disconnect
signal.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from deribit_ws.api.errors import DeribitAPIError

logger = logging.getLogger(__name__)


class HeartbeatMonitor:
    """Periodic liveness probe.

    Example:
        monitor = HeartbeatMonitor(client.test, interval=3.0)
        monitor.start()
        ...
        await monitor.stop()
    """

    def __init__(self, probe: Callable[[], Awaitable[Any]], interval: float):
        """
        Args:
            probe: Coroutine function issuing the liveness call
            interval: Seconds between probes
        """
        self._probe = probe
        self._interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._probe()
            except DeribitAPIError as e:
                logger.warning(f"Heartbeat failed, stopping: {e}")
                return
