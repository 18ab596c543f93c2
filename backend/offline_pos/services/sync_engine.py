"""
Sync Engine

Drains the offline queue against the remote POS API, one transaction at a
time, oldest first.

- offline: returns SyncResult(0, 0) without touching the queue
- each run works on a snapshot of pending + failed taken when it starts
- a failed submission is recorded on that transaction and the run continues
- only one run is in flight; concurrent callers share its result
"""

import asyncio
import heapq
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from offline_pos.core.exceptions import OfflineStorageError, TransactionNotFoundError
from offline_pos.db.base import utcnow
from offline_pos.services.network_monitor import NetworkMonitor
from offline_pos.services.transaction_store import (
    LAST_SYNC_ATTEMPT_KEY,
    LocalTransactionStore,
    Transaction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of one sync run."""
    success: int = 0
    failed: int = 0

    def as_dict(self) -> dict:
        return {"success": self.success, "failed": self.failed}


class SyncEngine:
    """Submits queued transactions when the monitor reports connectivity.

    ``client`` is anything with ``async submit_transaction(transaction)``
    that raises on rejection, e.g. RemoteTransactionClient.
    """

    def __init__(
        self,
        store: LocalTransactionStore,
        client,
        monitor: NetworkMonitor,
        submit_timeout: float = 10.0,
        prune_synced: bool = False,
    ):
        self.store = store
        self.client = client
        self.monitor = monitor
        self.submit_timeout = submit_timeout
        self.prune_synced = prune_synced
        self._in_flight: Optional[asyncio.Future] = None

    @property
    def is_syncing(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    @property
    def last_sync_attempt(self) -> Optional[datetime]:
        return self.store.get_status_timestamp(LAST_SYNC_ATTEMPT_KEY)

    async def sync_now(self) -> SyncResult:
        """Run a sync, or join the one already running."""
        if self.is_syncing:
            logger.info("Sync already in progress, waiting for the running pass")
            return await asyncio.shield(self._in_flight)

        if not self.monitor.is_online:
            logger.info("Offline, skipping sync")
            return SyncResult()

        run = asyncio.ensure_future(self._run())
        self._in_flight = run
        try:
            # Shielded: a cancelled caller stops waiting, the batch still completes
            return await asyncio.shield(run)
        finally:
            if run.done() and self._in_flight is run:
                self._in_flight = None

    def _snapshot(self) -> List[Transaction]:
        # No run is in flight here, so any syncing row was stranded by an earlier fault
        self.store.recover_interrupted()
        pending = self.store.list_pending()
        failed = self.store.list_failed()
        # Both listings are already ordered; merge keeps created_at order overall
        return list(heapq.merge(pending, failed, key=lambda t: t.order_key))

    async def _run(self) -> SyncResult:
        batch = self._snapshot()
        logger.info(f"Starting sync of {len(batch)} queued transaction(s)")

        success = 0
        failed = 0
        for transaction in batch:
            try:
                if not self.store.mark_syncing(transaction.id):
                    continue
            except TransactionNotFoundError:
                # Cleared while an earlier item was being submitted
                logger.info(f"Transaction {transaction.id} removed before sync, skipping")
                continue

            try:
                await asyncio.wait_for(
                    self.client.submit_transaction(transaction),
                    timeout=self.submit_timeout,
                )
            except asyncio.TimeoutError:
                error = f"Submission timed out after {self.submit_timeout:g}s"
            except Exception as e:
                error = str(e) or type(e).__name__
            else:
                error = None

            if error is not None:
                logger.error(f"Failed to sync transaction {transaction.id}: {error}")
            try:
                if error is None:
                    self.store.mark_synced(transaction.id)
                else:
                    self.store.mark_failed(transaction.id, error)
            except TransactionNotFoundError:
                logger.info(f"Transaction {transaction.id} removed during sync, outcome not recorded")
                continue
            except OfflineStorageError:
                self._release(transaction.id)
                raise

            if error is None:
                success += 1
            else:
                failed += 1

        self.store.set_status_timestamp(LAST_SYNC_ATTEMPT_KEY, utcnow())

        if self.prune_synced:
            self.store.prune_synced()

        logger.info(f"Sync finished: {success} synced, {failed} failed")
        return SyncResult(success=success, failed=failed)

    def _release(self, transaction_id: str) -> None:
        """Put a transaction whose outcome could not be stored back in the queue."""
        try:
            self.store.release(transaction_id)
        except (OfflineStorageError, TransactionNotFoundError) as e:
            # Left in syncing; the next run's snapshot recovers it
            logger.error(f"Could not release transaction {transaction_id}: {e}")
