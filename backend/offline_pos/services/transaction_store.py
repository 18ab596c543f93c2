"""
Local Transaction Store

Durable append/update log of sales awaiting remote confirmation.

- enqueue() commits before returning, so a queued sale survives a restart
- status transitions are single committed units and no-ops when the row is
  not in the expected prior state
- listings are snapshots taken at call time, ordered oldest first
"""

import json
import logging
import threading
import uuid
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from offline_pos.core.exceptions import OfflineStorageError, TransactionNotFoundError
from offline_pos.db.base import utcnow
from offline_pos.models.offline import OfflineTransaction, SyncStatusEntry, TransactionStatus

logger = logging.getLogger(__name__)

OFFLINE_ID_PREFIX = "offline_"

LAST_SYNC_ATTEMPT_KEY = "lastSyncAttempt"
LAST_PRODUCT_SYNC_KEY = "lastProductSync"


def generate_transaction_id() -> str:
    """offline_<epoch ms>_<random>; the random part keeps ids unique within a millisecond."""
    millis = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"{OFFLINE_ID_PREFIX}{millis}_{uuid.uuid4().hex[:12]}"


def is_offline_transaction(transaction_id: str) -> bool:
    return transaction_id.startswith(OFFLINE_ID_PREFIX)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class Transaction:
    """Detached, read-only view of a queue entry."""

    id: str
    sequence: int
    payload: Dict[str, Any]
    status: TransactionStatus
    attempts: int
    last_error: Optional[str]
    created_at: datetime
    last_attempt_at: Optional[datetime]
    synced_at: Optional[datetime]

    @classmethod
    def from_row(cls, row: OfflineTransaction) -> "Transaction":
        return cls(
            id=row.id,
            sequence=row.sequence,
            payload=dict(row.payload),
            status=TransactionStatus(row.status),
            attempts=row.attempts,
            last_error=row.last_error,
            created_at=_as_utc(row.created_at),
            last_attempt_at=_as_utc(row.last_attempt_at),
            synced_at=_as_utc(row.synced_at),
        )

    @property
    def order_key(self):
        return (self.created_at, self.sequence)


class TransactionSnapshot(Sequence):
    """Point-in-time listing; iterates lazily and can be iterated again."""

    def __init__(self, transactions: Iterable[Transaction]):
        self._items = tuple(transactions)

    def __iter__(self) -> Iterator[Transaction]:
        for transaction in self._items:
            yield transaction

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):
        return self._items[index]

    def ids(self) -> List[str]:
        return [t.id for t in self._items]

    def __repr__(self) -> str:
        return f"TransactionSnapshot({len(self._items)} transactions)"


class LocalTransactionStore:
    """SQLAlchemy-backed offline queue."""

    # status -> prior statuses from which the transition is allowed
    _ALLOWED_PRIOR = {
        TransactionStatus.SYNCING: (TransactionStatus.PENDING, TransactionStatus.FAILED),
        TransactionStatus.SYNCED: (TransactionStatus.SYNCING,),
        TransactionStatus.FAILED: (TransactionStatus.SYNCING,),
        TransactionStatus.PENDING: (TransactionStatus.SYNCING,),
    }

    # Writers are serialised process-wide: enqueue reads max(sequence) before
    # inserting, and SQLite fails a deferred read-then-write transaction when
    # another connection committed in between.
    _write_lock = threading.RLock()

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _write_session(self) -> Iterator[Session]:
        with self._write_lock:
            with self._session() as db:
                yield db

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Offline store operation failed: {e}")
            raise OfflineStorageError(f"Local storage unavailable: {e}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ==================== QUEUE ====================

    def enqueue(self, payload: Mapping) -> Transaction:
        """Record a sale as pending. Persisted before returning."""
        if not isinstance(payload, Mapping):
            raise TypeError(f"Transaction payload must be a mapping, got {type(payload).__name__}")
        try:
            json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise TypeError(f"Transaction payload is not JSON serialisable: {e}") from e

        with self._write_session() as db:
            sequence = (db.execute(select(func.max(OfflineTransaction.sequence))).scalar() or 0) + 1
            row = OfflineTransaction(
                id=generate_transaction_id(),
                sequence=sequence,
                payload=dict(payload),
                status=TransactionStatus.PENDING,
                attempts=0,
            )
            db.add(row)
            db.flush()
            transaction = Transaction.from_row(row)

        logger.info(f"Queued offline transaction {transaction.id} (sequence {transaction.sequence})")
        return transaction

    def get(self, transaction_id: str) -> Transaction:
        with self._session() as db:
            row = db.get(OfflineTransaction, transaction_id)
            if row is None:
                raise TransactionNotFoundError(transaction_id)
            return Transaction.from_row(row)

    # ==================== STATUS TRANSITIONS ====================

    def mark_syncing(self, transaction_id: str) -> bool:
        return self._transition(transaction_id, TransactionStatus.SYNCING)

    def mark_synced(self, transaction_id: str) -> bool:
        return self._transition(transaction_id, TransactionStatus.SYNCED)

    def mark_failed(self, transaction_id: str, error: str) -> bool:
        return self._transition(transaction_id, TransactionStatus.FAILED, error=error)

    def release(self, transaction_id: str) -> bool:
        """Hand an in-flight transaction back to the queue without counting an attempt."""
        return self._transition(transaction_id, TransactionStatus.PENDING)

    def _transition(
        self,
        transaction_id: str,
        target: TransactionStatus,
        error: Optional[str] = None,
    ) -> bool:
        with self._write_session() as db:
            row = db.get(OfflineTransaction, transaction_id)
            if row is None:
                raise TransactionNotFoundError(transaction_id)

            current = TransactionStatus(row.status)
            if current not in self._ALLOWED_PRIOR[target]:
                logger.warning(
                    f"Ignoring transition of {transaction_id} to {target.value}: "
                    f"status is {current.value}"
                )
                return False

            now = utcnow()
            row.status = target
            if target == TransactionStatus.SYNCING:
                row.last_attempt_at = now
            elif target == TransactionStatus.SYNCED:
                row.last_error = None
                row.synced_at = now
            elif target == TransactionStatus.FAILED:
                row.attempts += 1
                row.last_error = error or "Unknown error"
            return True

    def recover_interrupted(self) -> int:
        """Return rows stranded in 'syncing' by a crash to 'pending'."""
        with self._write_session() as db:
            rows = db.execute(
                select(OfflineTransaction).where(OfflineTransaction.status == TransactionStatus.SYNCING)
            ).scalars().all()
            for row in rows:
                row.status = TransactionStatus.PENDING
        if rows:
            logger.warning(f"Recovered {len(rows)} interrupted transaction(s) back to pending")
        return len(rows)

    # ==================== LISTINGS ====================

    def list_pending(self) -> TransactionSnapshot:
        return self.list_transactions(TransactionStatus.PENDING)

    def list_failed(self) -> TransactionSnapshot:
        return self.list_transactions(TransactionStatus.FAILED)

    def list_transactions(self, status: Optional[TransactionStatus] = None) -> TransactionSnapshot:
        """Snapshot ordered by created_at, then sequence (oldest first)."""
        query = select(OfflineTransaction).order_by(
            OfflineTransaction.created_at.asc(), OfflineTransaction.sequence.asc()
        )
        if status is not None:
            query = query.where(OfflineTransaction.status == TransactionStatus(status))
        with self._session() as db:
            rows = db.execute(query).scalars().all()
            return TransactionSnapshot(Transaction.from_row(row) for row in rows)

    def count_by_status(self) -> Dict[TransactionStatus, int]:
        counts = {status: 0 for status in TransactionStatus}
        with self._session() as db:
            rows = db.execute(
                select(OfflineTransaction.status, func.count()).group_by(OfflineTransaction.status)
            ).all()
        for status, count in rows:
            counts[TransactionStatus(status)] = count
        return counts

    # ==================== REMOVAL ====================

    def clear_failed(self) -> int:
        """Delete every failed transaction. Irreversible."""
        removed = self._delete_status(TransactionStatus.FAILED)
        logger.info(f"Cleared {removed} failed transaction(s)")
        return removed

    def prune_synced(self) -> int:
        """Delete confirmed transactions to bound local storage."""
        removed = self._delete_status(TransactionStatus.SYNCED)
        if removed:
            logger.info(f"Pruned {removed} synced transaction(s)")
        return removed

    def clear_all(self) -> int:
        """Drop every queued transaction and the sync bookkeeping. Irreversible."""
        with self._write_session() as db:
            removed = db.execute(delete(OfflineTransaction)).rowcount or 0
            db.execute(delete(SyncStatusEntry))
        logger.warning(f"Cleared all offline data: {removed} transaction(s)")
        return removed

    def _delete_status(self, status: TransactionStatus) -> int:
        with self._write_session() as db:
            result = db.execute(delete(OfflineTransaction).where(OfflineTransaction.status == status))
            return result.rowcount or 0

    # ==================== SYNC STATUS REGISTRY ====================

    def set_status_value(self, key: str, value: Any) -> None:
        with self._write_session() as db:
            entry = db.get(SyncStatusEntry, key)
            if entry is None:
                db.add(SyncStatusEntry(key=key, value=value))
            else:
                entry.value = value

    def get_status_value(self, key: str, default: Any = None) -> Any:
        with self._session() as db:
            entry = db.get(SyncStatusEntry, key)
            return entry.value if entry is not None else default

    def set_status_timestamp(self, key: str, when: datetime) -> None:
        self.set_status_value(key, when.isoformat())

    def get_status_timestamp(self, key: str) -> Optional[datetime]:
        raw = self.get_status_value(key)
        if not raw:
            return None
        return _as_utc(datetime.fromisoformat(raw))
