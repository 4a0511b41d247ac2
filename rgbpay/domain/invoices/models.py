"""Domain models for locally recorded RGB invoices."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    WAITING_CONFIRMATIONS = "waiting_confirmations"
    SETTLED = "settled"
    FAILED = "failed"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({InvoiceStatus.SETTLED, InvoiceStatus.FAILED, InvoiceStatus.EXPIRED})
OPEN_STATUSES = frozenset(set(InvoiceStatus) - TERMINAL_STATUSES)

_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.PENDING: frozenset(
        {
            InvoiceStatus.WAITING_CONFIRMATIONS,
            InvoiceStatus.SETTLED,
            InvoiceStatus.FAILED,
            InvoiceStatus.EXPIRED,
        }
    ),
    InvoiceStatus.WAITING_CONFIRMATIONS: frozenset({InvoiceStatus.SETTLED}),
}


class InvoiceError(Exception):
    """Base class for invoice domain errors."""


class InvalidInvoiceTransitionError(InvoiceError):
    """Raised when an invoice is asked to move along an edge that does not exist."""

    def __init__(self, invoice_id: str, current: InvoiceStatus, target: InvoiceStatus) -> None:
        super().__init__(f"invoice {invoice_id}: cannot move from {current.value} to {target.value}")
        self.invoice_id = invoice_id
        self.current = current
        self.target = target


def can_transition(current: InvoiceStatus, target: InvoiceStatus) -> bool:
    return target in _TRANSITIONS.get(current, frozenset())


def ensure_transition(invoice_id: str, current: str | InvoiceStatus, target: InvoiceStatus) -> None:
    current_status = InvoiceStatus(current)
    if not can_transition(current_status, target):
        raise InvalidInvoiceTransitionError(invoice_id, current_status, target)


@dataclass(slots=True)
class Invoice:
    id: str
    wallet_id: str
    external_invoice_id: Optional[str]
    invoice: str
    recipient_id: str
    asset_id: Optional[str]
    amount: Optional[int]
    received_amount: Optional[int]
    expiration_timestamp: Optional[int]
    batch_transfer_idx: Optional[int]
    status: InvoiceStatus
    is_blind: bool
    txid: Optional[str]
    created_at: Optional[datetime]
    settled_at: Optional[datetime]
