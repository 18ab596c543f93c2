"""Schemas for the offline transaction queue, product cache and network status."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from offline_pos.models.offline import TransactionStatus


class PaymentMethod(str, Enum):
    CASH = "cash"
    POS = "pos"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"


# ============== Queue ==============

class SaleItem(BaseModel):
    """Line of a sale made at the till."""
    product_id: int
    name: str
    sku: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)
    total: Decimal = Field(ge=0)


class TransactionPayload(BaseModel):
    """Sale to be persisted remotely once connectivity allows."""
    items: List[SaleItem] = Field(min_length=1)
    subtotal: Decimal = Field(ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    total: Decimal = Field(ge=0)
    payment_method: PaymentMethod
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    staff_name: str
    staff_id: int


class TransactionResponse(BaseModel):
    """Queue entry."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: TransactionStatus
    attempts: int
    last_error: Optional[str] = None
    created_at: datetime
    last_attempt_at: Optional[datetime] = None
    synced_at: Optional[datetime] = None
    payload: Dict[str, Any]


class TransactionListResponse(BaseModel):
    items: List[TransactionResponse]
    total: int


class SyncResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: int
    failed: int


class ClearFailedResponse(BaseModel):
    cleared: int


class ClearAllResponse(BaseModel):
    transactions: int
    products: int


# ============== Stats ==============

class QueueStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pending_transactions: int
    failed_transactions: int
    syncing_transactions: int
    synced_transactions: int
    last_sync_attempt: Optional[datetime] = None


class OfflineStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cached_products: int
    total_transactions: int
    pending_transactions: int
    failed_transactions: int
    syncing_transactions: int
    synced_transactions: int
    last_sync: Optional[datetime] = None
    last_product_sync: Optional[datetime] = None


# ============== Network ==============

class NetworkStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_online: bool
    is_slow_connection: bool
    connection_type: Optional[str] = None
    last_online_time: Optional[datetime] = None
    last_offline_time: Optional[datetime] = None


class NetworkStatusUpdate(BaseModel):
    """Connectivity reported by the till runtime."""
    is_online: bool
    connection_type: Optional[str] = None


# ============== Product cache ==============

class CachedProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    sku: str
    barcode: Optional[str] = None
    price: Decimal
    stock: int
    category: str
    brand: str
    description: Optional[str] = None
    status: str
    last_updated: datetime


class CacheProductsResponse(BaseModel):
    cached: int
