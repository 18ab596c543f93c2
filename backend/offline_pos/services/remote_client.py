"""Client for the remote POS API (sale submission, catalog read, health probe)."""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from offline_pos.core.config import Settings
from offline_pos.core.exceptions import RemoteServiceError, RemoteSubmissionError
from offline_pos.services.transaction_store import Transaction

logger = logging.getLogger(__name__)


def build_sale_payload(transaction: Transaction) -> Dict[str, Any]:
    """Convert a queued sale into the remote create-sale request body."""
    data = transaction.payload
    total = data.get("total")
    return {
        "items": [
            {
                "productId": item.get("product_id"),
                "quantity": item.get("quantity"),
                "price": item.get("price"),
                "total": item.get("total"),
            }
            for item in data.get("items", [])
        ],
        "subtotal": data.get("subtotal"),
        "discount": data.get("discount"),
        "total": total,
        "paymentMethod": data.get("payment_method"),
        "customerName": data.get("customer_name"),
        "customerPhone": data.get("customer_phone"),
        "customerEmail": data.get("customer_email"),
        # Offline sales are always fully paid at the till
        "amountPaid": total,
        "notes": f"Offline transaction synced. Original ID: {transaction.id}",
    }


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or default)
    return default


class RemoteTransactionClient:
    """Async wrapper around the remote POS endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        sale_path: str = "/api/pos/create-sale",
        products_path: str = "/api/pos/products",
        health_path: str = "/api/health",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sale_path = sale_path
        self.products_path = products_path
        self.health_path = health_path
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RemoteTransactionClient":
        return cls(
            base_url=settings.remote_api_base_url,
            timeout=settings.sync_submit_timeout_seconds,
            sale_path=settings.remote_sale_path,
            products_path=settings.remote_products_path,
            health_path=settings.remote_health_path,
        )

    async def submit_transaction(self, transaction: Transaction) -> Dict[str, Any]:
        """POST a queued sale. Raises RemoteSubmissionError when rejected."""
        try:
            response = await self._client.post(
                self.sale_path,
                json=build_sale_payload(transaction),
                # Lets an idempotent server drop a retried duplicate
                headers={"Idempotency-Key": transaction.id},
            )
        except httpx.HTTPError as e:
            raise RemoteServiceError(f"Could not reach POS API: {e}") from e

        if response.is_error:
            raise RemoteSubmissionError(
                _error_message(response, "Sync failed"),
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError:
            return {}

    async def fetch_products(self) -> List[Dict[str, Any]]:
        """Read the full catalog for the offline cache."""
        try:
            response = await self._client.get(self.products_path, params={"limit": 0})
        except httpx.HTTPError as e:
            raise RemoteServiceError(f"Could not reach POS API: {e}") from e

        if response.is_error:
            raise RemoteServiceError(
                _error_message(response, "Failed to fetch products"),
                status_code=response.status_code,
            )
        body = response.json()
        products = body.get("products", []) if isinstance(body, dict) else body
        return list(products)

    async def ping(self) -> float:
        """HEAD the health endpoint and return the round trip in seconds."""
        start = time.monotonic()
        response = await self._client.head(self.health_path, headers={"Cache-Control": "no-cache"})
        elapsed = time.monotonic() - start
        if response.is_error:
            raise RemoteServiceError("Health check failed", status_code=response.status_code)
        return elapsed

    async def aclose(self) -> None:
        await self._client.aclose()
