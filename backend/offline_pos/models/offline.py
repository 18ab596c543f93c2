"""
Offline Models - Local Transaction Queue and Product Cache

Lets a till keep selling while the remote POS API is unreachable and sync
when connectivity is restored.

Key Features:
- Durable queue of sales awaiting remote confirmation
- Product catalog cache for offline sale creation
- Key/value sync status (last sync attempt, last product refresh)
"""

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from offline_pos.db.base import Base, TimestampMixin, utcnow


class TransactionStatus(str, enum.Enum):
    """Queue entry status."""
    PENDING = "pending"
    SYNCING = "syncing"
    SYNCED = "synced"
    FAILED = "failed"


class OfflineTransaction(Base, TimestampMixin):
    """A sale recorded locally and not yet confirmed by the remote system."""

    __tablename__ = "offline_transactions"
    __table_args__ = (
        Index("ix_offline_transactions_status_order", "status", "created_at", "sequence"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Monotonic per store, breaks created_at ties
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)

    status: Mapped[TransactionStatus] = mapped_column(
        SQLEnum(TransactionStatus, values_callable=lambda e: [m.value for m in e]),
        default=TransactionStatus.PENDING,
        nullable=False,
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_attempt_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class CachedProduct(Base):
    """Local copy of a catalog product, replaced wholesale on every refresh."""

    __tablename__ = "cached_products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    barcode: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    brand: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE", nullable=False, index=True)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class SyncStatusEntry(Base):
    """Persisted sync bookkeeping (lastSyncAttempt, lastProductSync)."""

    __tablename__ = "sync_status"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
