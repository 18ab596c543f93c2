"""Read-only statistics over the offline queue and product cache."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from offline_pos.models.offline import TransactionStatus
from offline_pos.services.product_cache import ProductCache
from offline_pos.services.transaction_store import (
    LAST_PRODUCT_SYNC_KEY,
    LAST_SYNC_ATTEMPT_KEY,
    LocalTransactionStore,
)


@dataclass(frozen=True)
class QueueStats:
    pending_transactions: int
    failed_transactions: int
    syncing_transactions: int
    synced_transactions: int
    last_sync_attempt: Optional[datetime] = None

    @property
    def total_transactions(self) -> int:
        return (
            self.pending_transactions
            + self.syncing_transactions
            + self.failed_transactions
            + self.synced_transactions
        )


@dataclass(frozen=True)
class OfflineStats:
    cached_products: int
    total_transactions: int
    pending_transactions: int
    failed_transactions: int
    syncing_transactions: int
    synced_transactions: int
    last_sync: Optional[datetime] = None
    last_product_sync: Optional[datetime] = None


class OfflineStatsService:
    """Recomputes everything from the stores on each call; holds no state."""

    def __init__(self, store: LocalTransactionStore, product_cache: ProductCache):
        self.store = store
        self.product_cache = product_cache

    def get_queue_stats(self) -> QueueStats:
        counts = self.store.count_by_status()
        return QueueStats(
            pending_transactions=counts[TransactionStatus.PENDING],
            failed_transactions=counts[TransactionStatus.FAILED],
            syncing_transactions=counts[TransactionStatus.SYNCING],
            synced_transactions=counts[TransactionStatus.SYNCED],
            last_sync_attempt=self.store.get_status_timestamp(LAST_SYNC_ATTEMPT_KEY),
        )

    def get_stats(self) -> OfflineStats:
        queue = self.get_queue_stats()
        return OfflineStats(
            cached_products=self.product_cache.count(),
            total_transactions=queue.total_transactions,
            pending_transactions=queue.pending_transactions,
            failed_transactions=queue.failed_transactions,
            syncing_transactions=queue.syncing_transactions,
            synced_transactions=queue.synced_transactions,
            last_sync=queue.last_sync_attempt,
            last_product_sync=self.store.get_status_timestamp(LAST_PRODUCT_SYNC_KEY),
        )
