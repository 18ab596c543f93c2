"""SQLAlchemy models."""

from offline_pos.models.offline import (
    CachedProduct,
    OfflineTransaction,
    SyncStatusEntry,
    TransactionStatus,
)

__all__ = [
    "CachedProduct",
    "OfflineTransaction",
    "SyncStatusEntry",
    "TransactionStatus",
]
