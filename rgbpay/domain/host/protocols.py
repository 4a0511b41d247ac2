"""Capability interfaces the settlement engine needs from its host."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence, TypeVar

from .models import HostInvoice, PaymentRecord

E = TypeVar("E")


class HostInvoiceStore(Protocol):
    async def get_monitored_invoices(self, payment_method_id: str) -> Sequence[HostInvoice]:
        """Invoices with a prompt for ``payment_method_id`` that are not yet terminal."""
        ...

    async def get_invoice(self, invoice_id: str) -> HostInvoice | None:
        ...


class HostPaymentService(Protocol):
    async def add_payment(self, payment: PaymentRecord) -> PaymentRecord | None:
        ...


class Unsubscribe(Protocol):
    def __call__(self) -> None:
        ...


class EventBus(Protocol):
    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> Unsubscribe:
        ...

    def publish(self, event: Any) -> None:
        ...


@dataclass(slots=True)
class HostServices:
    """The host capabilities the settlement engine is wired against."""

    invoices: HostInvoiceStore
    payments: HostPaymentService
    events: EventBus
