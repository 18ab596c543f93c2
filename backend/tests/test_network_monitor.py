"""Tests for connectivity tracking."""

import asyncio

import pytest

from offline_pos.services.network_monitor import NetworkMonitor


class TestTransitions:
    """Test online/offline transitions and notification."""

    def test_initial_status(self):
        monitor = NetworkMonitor(initial_online=False, connection_type="ethernet")
        assert monitor.is_online is False
        assert monitor.status.connection_type == "ethernet"
        assert monitor.status.is_slow_connection is False

    def test_subscribe_receives_current_status(self, monitor):
        seen = []
        monitor.on_status_change(seen.append)
        assert len(seen) == 1
        assert seen[0].is_online is True

    def test_offline_then_online(self, monitor):
        seen = []
        monitor.on_status_change(seen.append)

        monitor.set_offline()
        monitor.set_online()

        assert [s.is_online for s in seen] == [True, False, True]
        assert seen[1].last_offline_time is not None
        assert seen[2].last_online_time is not None

    def test_repeated_state_does_not_notify(self, monitor):
        seen = []
        monitor.on_status_change(seen.append)

        monitor.set_online()
        monitor.set_offline()
        monitor.set_offline()

        assert [s.is_online for s in seen] == [True, False]

    def test_unsubscribe(self, monitor):
        seen = []
        unsubscribe = monitor.on_status_change(seen.append)
        unsubscribe()
        monitor.set_offline()
        assert len(seen) == 1
        # Safe to call twice
        unsubscribe()

    def test_failing_listener_does_not_block_others(self, monitor):
        def broken(status):
            raise RuntimeError("listener bug")

        seen = []
        monitor.on_status_change(broken)
        monitor.on_status_change(seen.append)
        monitor.set_offline()

        assert [s.is_online for s in seen] == [True, False]

    def test_going_offline_resets_slow_flag(self):
        async def slow_probe():
            return 5.0

        monitor = NetworkMonitor(probe=slow_probe, slow_threshold_seconds=3.0)
        asyncio.run(monitor.check_connection_quality())
        assert monitor.status.is_slow_connection is True

        monitor.set_offline()
        assert monitor.status.is_slow_connection is False

    def test_connection_type_does_not_notify(self, monitor):
        seen = []
        monitor.on_status_change(seen.append)
        monitor.set_connection_type("cellular")

        assert monitor.status.connection_type == "cellular"
        assert len(seen) == 1


class TestConnectionQuality:
    """Test latency probing."""

    @pytest.mark.asyncio
    async def test_fast_probe_is_normal(self):
        async def probe():
            return 0.2

        monitor = NetworkMonitor(probe=probe, slow_threshold_seconds=3.0)
        assert await monitor.check_connection_quality() is False

    @pytest.mark.asyncio
    async def test_slow_probe_flags_and_notifies(self):
        async def probe():
            return 3.5

        monitor = NetworkMonitor(probe=probe, slow_threshold_seconds=3.0)
        seen = []
        monitor.on_status_change(seen.append)

        assert await monitor.check_connection_quality() is True
        assert [s.is_slow_connection for s in seen] == [False, True]
        # Still online: a slow link is not an outage
        assert monitor.is_online is True

    @pytest.mark.asyncio
    async def test_probe_error_counts_as_slow(self):
        async def probe():
            raise ConnectionError("unreachable")

        monitor = NetworkMonitor(probe=probe)
        assert await monitor.check_connection_quality() is True
        assert monitor.is_online is True

    @pytest.mark.asyncio
    async def test_offline_skips_probe(self):
        calls = []

        async def probe():
            calls.append(1)
            return 0.1

        monitor = NetworkMonitor(probe=probe, initial_online=False)
        assert await monitor.check_connection_quality() is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_run_probes_until_cancelled(self):
        calls = []

        async def probe():
            calls.append(1)
            return 0.1

        monitor = NetworkMonitor(probe=probe)
        task = asyncio.ensure_future(monitor.run(0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(calls) >= 2
