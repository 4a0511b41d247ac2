"""SQLAlchemy implementation for invoice domain"""

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import select

from rgbpay.domain.invoices.models import OPEN_STATUSES, InvoiceStatus
from rgbpay.infrastructure.database.models import RGBInvoice

from .base import AsyncRepository

_OPEN = [status.value for status in OPEN_STATUSES]


class SqlInvoiceRepository(AsyncRepository[RGBInvoice]):
    model = RGBInvoice

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
    ) -> RGBInvoice:
        model = RGBInvoice(
            id=invoice_id,
            wallet_id=wallet_id,
            external_invoice_id=external_invoice_id,
            invoice=invoice,
            recipient_id=recipient_id,
            asset_id=asset_id,
            amount=amount,
            expiration_timestamp=expiration_timestamp,
            batch_transfer_idx=batch_transfer_idx,
            status=InvoiceStatus.PENDING.value,
            is_blind=is_blind,
        )
        return await self.add(model)

    async def get_invoice(self, invoice_id: str) -> RGBInvoice | None:
        return await self.get(invoice_id)

    async def get_by_recipient_id(self, recipient_id: str) -> RGBInvoice | None:
        stmt = select(RGBInvoice).where(RGBInvoice.recipient_id == recipient_id).order_by(RGBInvoice.created_at)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_open_for_wallet(self, wallet_id: str) -> Sequence[RGBInvoice]:
        stmt = (
            select(RGBInvoice)
            .where(RGBInvoice.wallet_id == wallet_id, RGBInvoice.status.in_(_OPEN))
            .order_by(RGBInvoice.created_at, RGBInvoice.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_overdue(self, wallet_id: str, cutoff_timestamp: int) -> Sequence[RGBInvoice]:
        stmt = select(RGBInvoice).where(
            RGBInvoice.wallet_id == wallet_id,
            RGBInvoice.status == InvoiceStatus.PENDING.value,
            RGBInvoice.expiration_timestamp.is_not(None),
            RGBInvoice.expiration_timestamp < cutoff_timestamp,
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_for_wallet(self, wallet_id: str, limit: int = 50, offset: int = 0) -> Sequence[RGBInvoice]:
        stmt = (
            select(RGBInvoice)
            .where(RGBInvoice.wallet_id == wallet_id)
            .order_by(RGBInvoice.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
