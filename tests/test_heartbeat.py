"""
Tests for the local liveness probe.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from deribit_ws.api.errors import DeribitConnectionError, DeribitTimeoutError
from deribit_ws.api.heartbeat import HeartbeatMonitor


class TestHeartbeatMonitor:
    """Tests for HeartbeatMonitor."""

    @pytest.mark.asyncio
    async def test_probes_on_interval(self, wait_until):
        """Test probe is called repeatedly while it succeeds."""
        probe = AsyncMock(return_value={"version": "1"})
        monitor = HeartbeatMonitor(probe, interval=0.01)

        monitor.start()
        assert await wait_until(lambda: probe.await_count >= 3)
        assert monitor.running

        await monitor.stop()
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_first_failure_stops_loop(self, wait_until):
        """Test a failing probe ends the loop after one attempt."""
        probe = AsyncMock(side_effect=DeribitTimeoutError("public/test timed out"))
        monitor = HeartbeatMonitor(probe, interval=0.01)

        monitor.start()
        assert await wait_until(lambda: not monitor.running)
        await asyncio.sleep(0.05)

        assert probe.await_count == 1

    @pytest.mark.asyncio
    async def test_repeated_failures_do_not_reprobe(self, wait_until):
        """Test three scripted failures are never all consumed."""
        probe = AsyncMock(side_effect=[
            DeribitConnectionError("lost"),
            DeribitConnectionError("lost"),
            DeribitConnectionError("lost"),
        ])
        monitor = HeartbeatMonitor(probe, interval=0.01)

        monitor.start()
        assert await wait_until(lambda: not monitor.running)

        assert probe.await_count == 1

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self):
        """Test start is a no-op while running."""
        probe = AsyncMock()
        monitor = HeartbeatMonitor(probe, interval=10)

        monitor.start()
        task = monitor._task
        monitor.start()

        assert monitor._task is task
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_stop_before_start(self):
        """Test stop on an idle monitor does nothing."""
        monitor = HeartbeatMonitor(AsyncMock(), interval=1)

        await monitor.stop()

        assert not monitor.running
