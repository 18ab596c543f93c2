"""Tests for queue and cache statistics."""

import pytest

from conftest import queue_sales
from offline_pos.services.offline_stats_service import OfflineStatsService


@pytest.fixture
def stats(store, product_cache):
    return OfflineStatsService(store, product_cache)


class TestQueueStats:
    """Test per-status counts."""

    def test_empty(self, stats):
        queue = stats.get_queue_stats()
        assert queue.pending_transactions == 0
        assert queue.failed_transactions == 0
        assert queue.total_transactions == 0
        assert queue.last_sync_attempt is None

    def test_counts_by_status(self, store, stats):
        first, second, third, fourth = queue_sales(store, 4)
        store.mark_syncing(first.id)
        store.mark_synced(first.id)
        store.mark_syncing(second.id)
        store.mark_failed(second.id, "Rejected")
        store.mark_syncing(third.id)

        queue = stats.get_queue_stats()
        assert queue.pending_transactions == 1
        assert queue.syncing_transactions == 1
        assert queue.synced_transactions == 1
        assert queue.failed_transactions == 1
        assert queue.total_transactions == 4

    def test_counts_match_listings(self, store, stats):
        first, _ = queue_sales(store, 2)
        store.mark_syncing(first.id)
        store.mark_failed(first.id, "Rejected")

        queue = stats.get_queue_stats()
        assert queue.pending_transactions == len(store.list_pending())
        assert queue.failed_transactions == len(store.list_failed())


class TestOfflineStats:
    """Test the combined report."""

    @pytest.mark.asyncio
    async def test_reports_last_sync_and_cache(self, store, product_cache, sync_engine, stats):
        queue_sales(store, 2)
        product_cache.replace_all([
            {"id": 1, "name": "Rice 5kg", "sku": "RICE-5KG", "price": 2500, "stock": 10},
        ])
        await sync_engine.sync_now()

        report = stats.get_stats()
        assert report.cached_products == 1
        assert report.total_transactions == 2
        assert report.synced_transactions == 2
        assert report.pending_transactions == 0
        assert report.last_sync == sync_engine.last_sync_attempt
        # Product refresh is tracked separately from queue sync
        assert report.last_product_sync is None
