"""
Network Monitor

Single source of truth for connectivity. Consumers subscribe with
on_status_change() and receive a NetworkStatus on every online/offline or
normal/slow transition. The monitor never starts a sync itself.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from offline_pos.db.base import utcnow

logger = logging.getLogger(__name__)

StatusListener = Callable[["NetworkStatus"], None]
LatencyProbe = Callable[[], Awaitable[float]]


@dataclass(frozen=True)
class NetworkStatus:
    is_online: bool
    is_slow_connection: bool = False
    connection_type: Optional[str] = None
    last_online_time: Optional[datetime] = None
    last_offline_time: Optional[datetime] = None


class NetworkMonitor:
    """Tracks connectivity and link quality."""

    def __init__(
        self,
        probe: Optional[LatencyProbe] = None,
        slow_threshold_seconds: float = 3.0,
        initial_online: bool = True,
        connection_type: Optional[str] = None,
    ):
        self._probe = probe
        self.slow_threshold_seconds = slow_threshold_seconds
        self._status = NetworkStatus(is_online=initial_online, connection_type=connection_type)
        self._listeners: List[StatusListener] = []

    @property
    def status(self) -> NetworkStatus:
        return self._status

    @property
    def is_online(self) -> bool:
        return self._status.is_online

    def on_status_change(self, listener: StatusListener) -> Callable[[], None]:
        """Subscribe; the listener is called immediately with the current status.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)
        self._call(listener, self._status)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ==================== TRANSITIONS ====================

    def set_online(self) -> None:
        if self._status.is_online:
            return
        logger.info("Network connection restored")
        self._update(is_online=True, last_online_time=utcnow())

    def set_offline(self) -> None:
        if not self._status.is_online:
            return
        logger.warning("Network connection lost, switching to offline mode")
        # Link quality is unknown until the next probe
        self._update(is_online=False, is_slow_connection=False, last_offline_time=utcnow())

    def set_connection_type(self, connection_type: Optional[str]) -> None:
        # Descriptive only; not a transition, listeners are not notified
        self._status = replace(self._status, connection_type=connection_type)

    def _set_slow(self, is_slow: bool) -> None:
        if self._status.is_slow_connection == is_slow:
            return
        logger.info(f"Connection quality changed: {'slow' if is_slow else 'normal'}")
        self._update(is_slow_connection=is_slow)

    def _update(self, **changes) -> None:
        self._status = replace(self._status, **changes)
        for listener in list(self._listeners):
            self._call(listener, self._status)

    @staticmethod
    def _call(listener: StatusListener, status: NetworkStatus) -> None:
        try:
            listener(status)
        except Exception as e:
            logger.error(f"Offline status listener error: {e}")

    # ==================== LINK QUALITY ====================

    async def check_connection_quality(self) -> bool:
        """Probe the link and update the slow flag. Returns the slow flag."""
        if not self._status.is_online or self._probe is None:
            return self._status.is_slow_connection

        start = time.monotonic()
        try:
            latency = await self._probe()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug(f"Connection probe failed: {e}")
            is_slow = True
        else:
            if latency is None:
                latency = time.monotonic() - start
            is_slow = latency > self.slow_threshold_seconds

        self._set_slow(is_slow)
        return is_slow

    async def run(self, interval_seconds: float) -> None:
        """Probe periodically until cancelled."""
        while True:
            await self.check_connection_quality()
            await asyncio.sleep(interval_seconds)
