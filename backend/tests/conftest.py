"""Pytest configuration and fixtures."""

import asyncio
from typing import Generator, Iterable, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from offline_pos.api.deps import get_offline_manager
from offline_pos.core.exceptions import RemoteSubmissionError
from offline_pos.core.rate_limit import limiter
from offline_pos.db.base import Base
from offline_pos.main import app
# Import all models to ensure they're registered with Base.metadata
import offline_pos.models  # noqa: F401
from offline_pos.services.network_monitor import NetworkMonitor
from offline_pos.services.offline_mode_service import OfflineModeManager
from offline_pos.services.product_cache import ProductCache
from offline_pos.services.sync_engine import SyncEngine
from offline_pos.services.transaction_store import LocalTransactionStore, Transaction

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


class FakeRemoteClient:
    """Stands in for RemoteTransactionClient.

    Rejects ids in ``failing_ids``; ``delay`` makes every submission slow.
    """

    def __init__(self, failing_ids: Iterable[str] = (), delay: float = 0.0):
        self.failing_ids = set(failing_ids)
        self.delay = delay
        self.submitted: List[str] = []
        self.products: List[dict] = []
        self.closed = False

    async def submit_transaction(self, transaction: Transaction) -> dict:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.submitted.append(transaction.id)
        if transaction.id in self.failing_ids:
            raise RemoteSubmissionError("Insufficient stock", status_code=400)
        return {"success": True}

    async def fetch_products(self) -> List[dict]:
        return list(self.products)

    async def ping(self) -> float:
        return 0.05

    async def aclose(self) -> None:
        self.closed = True


def sale_payload(total: str = "2500", product_id: int = 1, quantity: int = 1, **overrides) -> dict:
    """A till sale as the queue stores it."""
    payload = {
        "items": [
            {
                "product_id": product_id,
                "name": "Rice 5kg",
                "sku": "RICE-5KG",
                "price": total,
                "quantity": quantity,
                "total": total,
            }
        ],
        "subtotal": total,
        "discount": "0",
        "total": total,
        "payment_method": "cash",
        "customer_name": None,
        "customer_phone": None,
        "customer_email": None,
        "staff_name": "Ada",
        "staff_id": 7,
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine)


@pytest.fixture
def store(session_factory) -> LocalTransactionStore:
    return LocalTransactionStore(session_factory)


@pytest.fixture
def product_cache(session_factory) -> ProductCache:
    return ProductCache(session_factory)


@pytest.fixture
def monitor() -> NetworkMonitor:
    return NetworkMonitor(initial_online=True, connection_type="wifi")


@pytest.fixture
def remote() -> FakeRemoteClient:
    return FakeRemoteClient()


@pytest.fixture
def sync_engine(store, remote, monitor) -> SyncEngine:
    return SyncEngine(store, remote, monitor, submit_timeout=1.0)


@pytest.fixture
def manager(store, product_cache, monitor, remote, sync_engine) -> OfflineModeManager:
    return OfflineModeManager(
        store=store,
        product_cache=product_cache,
        monitor=monitor,
        client=remote,
        engine=sync_engine,
        sync_on_reconnect=False,
        sync_on_enqueue=False,
    )


@pytest.fixture(scope="function")
def client(manager: OfflineModeManager) -> Generator[TestClient, None, None]:
    """Test client wired to the in-memory manager.

    Not used as a context manager, so the application lifespan (which opens
    the on-disk database) does not run.
    """
    app.dependency_overrides[get_offline_manager] = lambda: manager
    # Disable rate limiting during tests to avoid flaky failures
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    test_client = TestClient(app, raise_server_exceptions=False)
    yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


def queue_sales(store: LocalTransactionStore, count: int, totals: Optional[List[str]] = None) -> List[Transaction]:
    totals = totals or [str(1000 * (i + 1)) for i in range(count)]
    return [store.enqueue(sale_payload(total=totals[i])) for i in range(count)]
