"""Record settled RGB invoices as payments on the host invoice."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from rgbpay.domain.host.models import (
    RECEIVED_PAYMENT,
    InvoiceEvent,
    InvoiceNeedUpdateEvent,
    PaymentData,
    PaymentRecord,
)
from rgbpay.domain.host.protocols import EventBus, HostInvoiceStore, HostPaymentService
from rgbpay.infrastructure.database.models import RGBInvoice
from rgbpay.infrastructure.node.models import Transfer

logger = logging.getLogger(__name__)

SATOSHI = Decimal("0.00000001")
SETTLED = "Settled"


def build_payment_id(prefix: str, recipient_id: str, transfer_idx: int) -> str:
    return f"{prefix}:{recipient_id}:{transfer_idx}"


def to_btc_amount(due: Decimal) -> Decimal:
    """Round a due amount down to satoshi precision."""
    return Decimal(due).quantize(SATOSHI, rounding=ROUND_DOWN)


@dataclass(slots=True)
class PaymentRecorder:
    invoices: HostInvoiceStore
    payments: HostPaymentService
    events: EventBus
    method_id: str = "RGB"
    id_prefix: str = "rgb"
    currency: str = "BTC"

    async def record(self, invoice: RGBInvoice, transfer: Transfer) -> Optional[PaymentRecord]:
        """Add a payment for ``invoice`` unless the host already has one for this transfer.

        Returns the payment the host accepted, or ``None`` when nothing was added.
        """
        if not invoice.external_invoice_id:
            return None
        host_invoice = await self.invoices.get_invoice(invoice.external_invoice_id)
        if host_invoice is None:
            logger.debug("host invoice %s for rgb invoice %s not found", invoice.external_invoice_id, invoice.id)
            return None
        prompt = host_invoice.get_prompt(self.method_id)
        if prompt is None:
            logger.debug("host invoice %s has no %s prompt", host_invoice.id, self.method_id)
            return None

        payment_id = build_payment_id(self.id_prefix, invoice.recipient_id, transfer.idx)
        if host_invoice.has_payment(payment_id, self.method_id):
            logger.debug("payment %s already recorded on invoice %s", payment_id, host_invoice.id)
            return None

        payment = PaymentRecord(
            id=payment_id,
            invoice_id=host_invoice.id,
            payment_method_id=self.method_id,
            amount=to_btc_amount(prompt.due),
            currency=self.currency,
            status=SETTLED,
            created_at=datetime.now(timezone.utc),
            details=PaymentData(
                recipient_id=invoice.recipient_id,
                txid=transfer.txid,
                asset_id=invoice.asset_id,
                amount=transfer.amount if transfer.amount > 0 else (invoice.amount or 0),
                transfer_idx=transfer.idx,
            ),
        )

        added = await self.payments.add_payment(payment)
        if added is not None:
            self.events.publish(InvoiceEvent(invoice_id=host_invoice.id, name=RECEIVED_PAYMENT, payment=added))
            logger.info("recorded payment %s on invoice %s", payment_id, host_invoice.id)
        self.events.publish(InvoiceNeedUpdateEvent(invoice_id=host_invoice.id))
        return added


__all__ = ["PaymentRecorder", "build_payment_id", "to_btc_amount"]
