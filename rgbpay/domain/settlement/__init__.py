"""Settlement reconciliation exports"""

from .cache import InvoiceCache, compute_cache_expiry
from .matcher import Settlement, SettlementMatcher, collapse_batches, match, settled_incoming
from .payments import PaymentRecorder, build_payment_id
from .worker import ReconciliationWorker

__all__ = [
    "InvoiceCache",
    "PaymentRecorder",
    "ReconciliationWorker",
    "Settlement",
    "SettlementMatcher",
    "build_payment_id",
    "collapse_batches",
    "compute_cache_expiry",
    "match",
    "settled_incoming",
]
