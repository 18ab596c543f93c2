"""Tests for the offline HTTP routes."""

from conftest import queue_sales, sale_payload

PREFIX = "/api/v1/offline"


class TestHealth:
    """Test liveness endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_head(self, client):
        assert client.head("/health").status_code == 200


class TestQueueRoutes:
    """Test queueing and listing transactions."""

    def test_queue_transaction(self, client):
        response = client.post(f"{PREFIX}/transactions", json=sale_payload(total="2500"))
        assert response.status_code == 201
        data = response.json()
        assert data["id"].startswith("offline_")
        assert data["status"] == "pending"
        assert data["attempts"] == 0
        assert data["payload"]["total"] == "2500"

    def test_queue_rejects_empty_items(self, client):
        response = client.post(f"{PREFIX}/transactions", json=sale_payload(items=[]))
        assert response.status_code == 422

    def test_queue_rejects_unknown_payment_method(self, client):
        response = client.post(f"{PREFIX}/transactions", json=sale_payload(payment_method="barter"))
        assert response.status_code == 422

    def test_list_transactions(self, client, store):
        created = queue_sales(store, 2)
        response = client.get(f"{PREFIX}/transactions")
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [item["id"] for item in data["items"]] == [t.id for t in created]

    def test_list_filtered_by_status(self, client, store):
        first, _ = queue_sales(store, 2)
        store.mark_syncing(first.id)
        store.mark_failed(first.id, "Rejected")

        response = client.get(f"{PREFIX}/transactions", params={"status": "failed"})
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["last_error"] == "Rejected"

    def test_get_transaction(self, client, store):
        (transaction,) = queue_sales(store, 1)
        response = client.get(f"{PREFIX}/transactions/{transaction.id}")
        assert response.status_code == 200
        assert response.json()["id"] == transaction.id

    def test_get_missing_transaction(self, client):
        response = client.get(f"{PREFIX}/transactions/offline_0_missing")
        assert response.status_code == 404

    def test_clear_failed(self, client, store):
        first, second = queue_sales(store, 2)
        store.mark_syncing(first.id)
        store.mark_failed(first.id, "Rejected")

        response = client.delete(f"{PREFIX}/transactions/failed")
        assert response.status_code == 200
        assert response.json() == {"cleared": 1}
        assert store.list_transactions().ids() == [second.id]


    def test_clear_all_data(self, client, store, product_cache):
        queue_sales(store, 2)
        product_cache.replace_all([{"id": 1, "name": "Salt"}])

        response = client.delete(f"{PREFIX}/data")
        assert response.status_code == 200
        assert response.json() == {"transactions": 2, "products": 1}
        assert client.get(f"{PREFIX}/stats").json()["total_transactions"] == 0

class TestSyncRoute:
    """Test manual sync."""

    def test_sync(self, client, store, remote):
        first, second, third = queue_sales(store, 3)
        remote.failing_ids = {second.id}

        response = client.post(f"{PREFIX}/sync")
        assert response.status_code == 200
        assert response.json() == {"success": 2, "failed": 1}

    def test_sync_offline(self, client, store, monitor):
        queue_sales(store, 1)
        monitor.set_offline()

        response = client.post(f"{PREFIX}/sync")
        assert response.json() == {"success": 0, "failed": 0}
        assert len(store.list_pending()) == 1


class TestStatsRoutes:
    """Test stats endpoints."""

    def test_queue_stats(self, client, store):
        queue_sales(store, 2)
        response = client.get(f"{PREFIX}/queue-stats")
        assert response.status_code == 200
        data = response.json()
        assert data["pending_transactions"] == 2
        assert data["failed_transactions"] == 0
        assert data["last_sync_attempt"] is None

    def test_stats_after_sync(self, client, store):
        queue_sales(store, 1)
        client.post(f"{PREFIX}/sync")

        data = client.get(f"{PREFIX}/stats").json()
        assert data["total_transactions"] == 1
        assert data["synced_transactions"] == 1
        assert data["cached_products"] == 0
        assert data["last_sync"] is not None


class TestNetworkRoutes:
    """Test connectivity reporting."""

    def test_get_network(self, client):
        data = client.get(f"{PREFIX}/network").json()
        assert data["is_online"] is True
        assert data["connection_type"] == "wifi"

    def test_report_offline_then_online(self, client):
        data = client.post(f"{PREFIX}/network", json={"is_online": False}).json()
        assert data["is_online"] is False
        assert data["last_offline_time"] is not None

        data = client.post(
            f"{PREFIX}/network", json={"is_online": True, "connection_type": "cellular"}
        ).json()
        assert data["is_online"] is True
        assert data["connection_type"] == "cellular"


class TestProductRoutes:
    """Test the product cache endpoints."""

    CATALOG = [
        {"id": 1, "name": "Rice 5kg", "sku": "RICE-5KG", "barcode": "600100", "price": 2500, "stock": 10},
        {"id": 2, "name": "Palm Oil 1L", "sku": "OIL-1L", "barcode": "600200", "price": 1800, "stock": 4},
    ]

    def test_cache_and_search(self, client, remote):
        remote.products = self.CATALOG

        response = client.post(f"{PREFIX}/products/cache")
        assert response.json() == {"cached": 2}

        results = client.get(f"{PREFIX}/products", params={"search": "oil"}).json()
        assert [p["id"] for p in results] == [2]

        product = client.get(f"{PREFIX}/products/barcode/600100").json()
        assert product["name"] == "Rice 5kg"

    def test_barcode_not_cached(self, client):
        response = client.get(f"{PREFIX}/products/barcode/000")
        assert response.status_code == 404

    def test_cache_remote_failure_is_bad_gateway(self, client, remote):
        from offline_pos.core.exceptions import RemoteServiceError

        async def broken():
            raise RemoteServiceError("Could not reach POS API", status_code=None)

        remote.fetch_products = broken
        response = client.post(f"{PREFIX}/products/cache")
        assert response.status_code == 502

    def test_malformed_catalog_is_bad_gateway(self, client, remote, product_cache):
        product_cache.replace_all(self.CATALOG)
        remote.products = [{"id": 3, "sku": "NO-NAME", "price": 100}]

        response = client.post(f"{PREFIX}/products/cache")
        assert response.status_code == 502
        assert "Malformed product" in response.json()["detail"]
        assert product_cache.count() == 2
