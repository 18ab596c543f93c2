"""Error taxonomy for the offline queue and reconciliation engine.

Connectivity loss is deliberately absent: being offline is an expected state
and is reported through NetworkStatus, not raised.
"""

from typing import Optional


class OfflinePOSError(Exception):
    """Base class for all offline POS errors."""


class OfflineStorageError(OfflinePOSError):
    """Local persistence is unavailable or a write could not be committed."""


class TransactionNotFoundError(OfflinePOSError, LookupError):
    """No queued transaction with the given id."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class RemoteServiceError(OfflinePOSError):
    """A call to the remote POS API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RemoteSubmissionError(RemoteServiceError):
    """The remote API rejected a transaction submission."""


class DiscrepancyValidationError(OfflinePOSError, ValueError):
    """Reconciliation input violates the counting contract."""


class ReconciliationNotVerifiedError(OfflinePOSError):
    """Some reconciliation lines still need explicit acknowledgment."""

    def __init__(self, product_ids):
        self.product_ids = list(product_ids)
        super().__init__(
            f"Reconciliation has {len(self.product_ids)} unverified line(s): {self.product_ids}"
        )
