# Services module

from offline_pos.services.discrepancy_service import (
    DiscrepancySummary,
    ReconciliationLine,
    aggregate,
    compute_discrepancy,
    compute_impact,
)
from offline_pos.services.network_monitor import NetworkMonitor, NetworkStatus
from offline_pos.services.offline_mode_service import OfflineModeManager
from offline_pos.services.offline_stats_service import OfflineStats, OfflineStatsService, QueueStats
from offline_pos.services.product_cache import ProductCache
from offline_pos.services.remote_client import RemoteTransactionClient
from offline_pos.services.sync_engine import SyncEngine, SyncResult
from offline_pos.services.transaction_store import LocalTransactionStore, Transaction
