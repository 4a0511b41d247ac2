"""Invoice domain exports"""

from .models import (
    OPEN_STATUSES,
    TERMINAL_STATUSES,
    InvalidInvoiceTransitionError,
    Invoice,
    InvoiceError,
    InvoiceStatus,
    can_transition,
    ensure_transition,
)

__all__ = [
    "OPEN_STATUSES",
    "TERMINAL_STATUSES",
    "InvalidInvoiceTransitionError",
    "Invoice",
    "InvoiceError",
    "InvoiceStatus",
    "can_transition",
    "ensure_transition",
]
