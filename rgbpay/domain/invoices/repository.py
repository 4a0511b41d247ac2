"""Repository protocol for invoice persistence."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from rgbpay.infrastructure.database.models import RGBInvoice as InvoiceModel


class InvoiceRepository(Protocol):
    async def create_invoice(
        self,
        *,
        invoice_id: str,
        wallet_id: str,
        external_invoice_id: Optional[str],
        invoice: str,
        recipient_id: str,
        asset_id: Optional[str],
        amount: Optional[int],
        expiration_timestamp: Optional[int],
        batch_transfer_idx: Optional[int],
        is_blind: bool,
    ) -> InvoiceModel:
        ...

    async def get_invoice(self, invoice_id: str) -> InvoiceModel | None:
        ...

    async def get_by_recipient_id(self, recipient_id: str) -> InvoiceModel | None:
        ...

    async def list_open_for_wallet(self, wallet_id: str) -> Sequence[InvoiceModel]:
        ...

    async def list_overdue(self, wallet_id: str, cutoff_timestamp: int) -> Sequence[InvoiceModel]:
        ...

    async def flush(self) -> None:
        ...
