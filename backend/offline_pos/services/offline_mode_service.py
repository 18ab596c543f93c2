"""
Offline Mode Service

Wires the transaction store, product cache, network monitor, remote client
and sync engine into one explicitly constructed service. The application
creates it on start-up (start()) and tears it down on exit (stop()); nothing
here lives at module scope, so tests can run isolated instances.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from offline_pos.core.config import Settings
from offline_pos.db.base import utcnow
from offline_pos.models.offline import TransactionStatus
from offline_pos.services.network_monitor import NetworkMonitor, NetworkStatus
from offline_pos.services.offline_stats_service import OfflineStats, OfflineStatsService, QueueStats
from offline_pos.services.product_cache import CachedProductData, ProductCache
from offline_pos.services.remote_client import RemoteTransactionClient
from offline_pos.services.sync_engine import SyncEngine, SyncResult
from offline_pos.services.transaction_store import (
    LAST_PRODUCT_SYNC_KEY,
    LocalTransactionStore,
    Transaction,
    TransactionSnapshot,
)

logger = logging.getLogger(__name__)


class OfflineModeManager:
    """Service container for offline operation."""

    def __init__(
        self,
        store: LocalTransactionStore,
        product_cache: ProductCache,
        monitor: NetworkMonitor,
        client,
        engine: SyncEngine,
        sync_on_reconnect: bool = True,
        reconnect_sync_delay: float = 1.0,
        sync_on_enqueue: bool = True,
        enqueue_sync_delay: float = 0.1,
        check_interval: float = 0.0,
    ):
        self.store = store
        self.product_cache = product_cache
        self.monitor = monitor
        self.client = client
        self.engine = engine
        self.stats = OfflineStatsService(store, product_cache)
        self.sync_on_reconnect = sync_on_reconnect
        self.reconnect_sync_delay = reconnect_sync_delay
        self.sync_on_enqueue = sync_on_enqueue
        self.enqueue_sync_delay = enqueue_sync_delay
        self.check_interval = check_interval

        self._unsubscribe = None
        self._was_online = monitor.is_online
        self._tasks: set = set()
        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings, session_factory: sessionmaker) -> "OfflineModeManager":
        store = LocalTransactionStore(session_factory)
        client = RemoteTransactionClient.from_settings(settings)
        monitor = NetworkMonitor(
            probe=client.ping,
            slow_threshold_seconds=settings.slow_connection_threshold_seconds,
        )
        engine = SyncEngine(
            store,
            client,
            monitor,
            submit_timeout=settings.sync_submit_timeout_seconds,
            prune_synced=settings.prune_synced_after_sync,
        )
        return cls(
            store=store,
            product_cache=ProductCache(session_factory),
            monitor=monitor,
            client=client,
            engine=engine,
            sync_on_reconnect=settings.sync_on_reconnect,
            reconnect_sync_delay=settings.reconnect_sync_delay_seconds,
            sync_on_enqueue=settings.sync_on_enqueue,
            enqueue_sync_delay=settings.enqueue_sync_delay_seconds,
            check_interval=settings.connectivity_check_interval_seconds,
        )

    # ==================== LIFECYCLE ====================

    async def start(self) -> None:
        if self._started:
            return
        self.store.recover_interrupted()
        self._unsubscribe = self.monitor.on_status_change(self._handle_status_change)
        if self.check_interval > 0:
            self._spawn(self.monitor.run(self.check_interval))
        self._started = True
        logger.info("Offline mode service started")

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        if hasattr(self.client, "aclose"):
            await self.client.aclose()
        self._started = False
        logger.info("Offline mode service stopped")

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _handle_status_change(self, status: NetworkStatus) -> None:
        came_back = status.is_online and not self._was_online
        self._was_online = status.is_online
        if came_back and self.sync_on_reconnect:
            self._schedule_sync(self.reconnect_sync_delay, "Reconnect")

    def _schedule_sync(self, delay: float, reason: str) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, {reason.lower()} sync not scheduled")
            return
        self._spawn(self._delayed_sync(delay, reason))

    async def _delayed_sync(self, delay: float, reason: str) -> None:
        await asyncio.sleep(delay)
        try:
            result = await self.engine.sync_now()
        except Exception as e:
            logger.error(f"{reason} sync failed: {e}")
            return
        logger.info(f"{reason} sync: {result.success} synced, {result.failed} failed")

    # ==================== QUEUE ====================

    @property
    def network_status(self) -> NetworkStatus:
        return self.monitor.status

    def queue_transaction(self, payload: Mapping) -> Transaction:
        """Persist a sale; while online a sync follows shortly after."""
        transaction = self.store.enqueue(payload)
        if self.sync_on_enqueue and self.monitor.is_online:
            self._schedule_sync(self.enqueue_sync_delay, "Post-enqueue")
        return transaction

    def get_transaction(self, transaction_id: str) -> Transaction:
        return self.store.get(transaction_id)

    def list_transactions(self, status: Optional[TransactionStatus] = None) -> TransactionSnapshot:
        return self.store.list_transactions(status)

    async def sync_now(self) -> SyncResult:
        return await self.engine.sync_now()

    def clear_failed_transactions(self) -> int:
        return self.store.clear_failed()

    def clear_all_data(self) -> Dict[str, int]:
        """Reset the till: queued transactions, sync bookkeeping and product cache."""
        return {
            "transactions": self.store.clear_all(),
            "products": self.product_cache.clear(),
        }

    # ==================== PRODUCT CACHE ====================

    async def cache_products(self) -> int:
        """Refresh the product cache from the remote catalog. 0 when offline."""
        if not self.monitor.is_online:
            logger.info("Offline, product cache not refreshed")
            return 0
        products = await self.client.fetch_products()
        cached = self.product_cache.replace_all(products)
        self.store.set_status_timestamp(LAST_PRODUCT_SYNC_KEY, utcnow())
        return cached

    def search_products(self, term: str = "") -> List[CachedProductData]:
        return self.product_cache.search(term)

    def get_product_by_barcode(self, barcode: str) -> Optional[CachedProductData]:
        return self.product_cache.get_by_barcode(barcode)

    # ==================== STATS ====================

    def get_stats(self) -> OfflineStats:
        return self.stats.get_stats()

    def get_queue_stats(self) -> QueueStats:
        return self.stats.get_queue_stats()
