"""Offline queue, sync, product cache and network status routes."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from offline_pos.api.deps import OfflineManager
from offline_pos.core.rate_limit import limiter
from offline_pos.models.offline import TransactionStatus
from offline_pos.schemas.offline import (
    CachedProductResponse,
    CacheProductsResponse,
    ClearAllResponse,
    ClearFailedResponse,
    NetworkStatusResponse,
    NetworkStatusUpdate,
    OfflineStatsResponse,
    QueueStatsResponse,
    SyncResultResponse,
    TransactionListResponse,
    TransactionPayload,
    TransactionResponse,
)

router = APIRouter()


# ==================== Queue ====================

@router.post("/transactions", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("120/minute")
async def queue_transaction(request: Request, body: TransactionPayload, manager: OfflineManager):
    """Record a sale locally; while online it is sent to the POS API shortly after."""
    return manager.queue_transaction(body.model_dump(mode="json"))


@router.get("/transactions", response_model=TransactionListResponse)
@limiter.limit("60/minute")
def list_transactions(
    request: Request,
    manager: OfflineManager,
    status_filter: Optional[TransactionStatus] = Query(None, alias="status"),
):
    """List queued transactions, oldest first."""
    snapshot = manager.list_transactions(status_filter)
    return {"items": list(snapshot), "total": len(snapshot)}


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
@limiter.limit("60/minute")
def get_transaction(request: Request, transaction_id: str, manager: OfflineManager):
    return manager.get_transaction(transaction_id)


@router.delete("/transactions/failed", response_model=ClearFailedResponse)
@limiter.limit("10/minute")
def clear_failed_transactions(request: Request, manager: OfflineManager):
    """Permanently drop transactions that failed to sync."""
    return {"cleared": manager.clear_failed_transactions()}


@router.delete("/data", response_model=ClearAllResponse)
@limiter.limit("2/minute")
def clear_all_data(request: Request, manager: OfflineManager):
    """Wipe every queued transaction and the product cache. Unsynced sales are lost."""
    return manager.clear_all_data()


@router.post("/sync", response_model=SyncResultResponse)
@limiter.limit("10/minute")
async def sync_now(request: Request, manager: OfflineManager):
    """Submit pending and failed transactions now. Offline returns zero counts."""
    return await manager.sync_now()


# ==================== Stats ====================

@router.get("/stats", response_model=OfflineStatsResponse)
@limiter.limit("60/minute")
def get_stats(request: Request, manager: OfflineManager):
    return manager.get_stats()


@router.get("/queue-stats", response_model=QueueStatsResponse)
@limiter.limit("60/minute")
def get_queue_stats(request: Request, manager: OfflineManager):
    return manager.get_queue_stats()


# ==================== Network ====================

@router.get("/network", response_model=NetworkStatusResponse)
@limiter.limit("120/minute")
async def get_network_status(request: Request, manager: OfflineManager):
    return manager.network_status


@router.post("/network", response_model=NetworkStatusResponse)
@limiter.limit("120/minute")
async def report_network_status(request: Request, body: NetworkStatusUpdate, manager: OfflineManager):
    """Connectivity change reported by the till (online/offline events)."""
    if body.connection_type is not None:
        manager.monitor.set_connection_type(body.connection_type)
    if body.is_online:
        manager.monitor.set_online()
    else:
        manager.monitor.set_offline()
    return manager.network_status


# ==================== Product cache ====================

@router.post("/products/cache", response_model=CacheProductsResponse)
@limiter.limit("6/minute")
async def cache_products(request: Request, manager: OfflineManager):
    """Refresh the local catalog copy from the POS API."""
    return {"cached": await manager.cache_products()}


@router.get("/products", response_model=List[CachedProductResponse])
@limiter.limit("120/minute")
def search_products(request: Request, manager: OfflineManager, search: str = ""):
    return manager.search_products(search)


@router.get("/products/barcode/{barcode}", response_model=CachedProductResponse)
@limiter.limit("120/minute")
def get_product_by_barcode(request: Request, barcode: str, manager: OfflineManager):
    product = manager.get_product_by_barcode(barcode)
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found in offline cache",
        )
    return product
