"""Match settled incoming transfers to locally pending invoices."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from rgbpay.domain.host.models import PaymentRecord
from rgbpay.domain.invoices.models import InvoiceStatus, ensure_transition
from rgbpay.domain.invoices.repository import InvoiceRepository
from rgbpay.infrastructure.database.models import RGBInvoice
from rgbpay.infrastructure.node import RgbAsset, RgbNodeError, Transfer

from .payments import PaymentRecorder

logger = logging.getLogger(__name__)


class TransferSource(Protocol):
    async def list_assets(self, wallet_id: str) -> list[RgbAsset]:
        ...

    async def get_transfers(self, wallet_id: str, asset_id: Optional[str] = None) -> list[Transfer]:
        ...


@dataclass(slots=True)
class Settlement:
    invoice_id: str
    recipient_id: str
    transfer_idx: int
    txid: Optional[str]
    received_amount: int
    payment: Optional[PaymentRecord] = None


def settled_incoming(transfers: Iterable[Transfer]) -> List[Transfer]:
    return [transfer for transfer in transfers if transfer.is_settled_incoming]


def collapse_batches(transfers: Iterable[Transfer]) -> List[Transfer]:
    """Keep the first row seen for each batch index."""
    seen: dict[int, Transfer] = {}
    for transfer in transfers:
        seen.setdefault(transfer.idx, transfer)
    return list(seen.values())


def match(
    transfers: Iterable[Transfer], pending: Sequence[RGBInvoice]
) -> List[Tuple[RGBInvoice, Transfer]]:
    """Pair transfers with pending invoices by exact recipient id.

    An invoice is paired at most once; when two pending invoices share a
    recipient id the earliest wins and the other stays pending.
    """
    claimed: set[str] = set()
    pairs: List[Tuple[RGBInvoice, Transfer]] = []
    for transfer in transfers:
        if not transfer.recipient_id:
            continue
        invoice = next(
            (
                candidate
                for candidate in pending
                if candidate.recipient_id == transfer.recipient_id and candidate.id not in claimed
            ),
            None,
        )
        if invoice is None:
            logger.debug("no pending invoice for recipient %s (transfer %d)", transfer.recipient_id, transfer.idx)
            continue
        claimed.add(invoice.id)
        pairs.append((invoice, transfer))
    return pairs


def received_amount(invoice: RGBInvoice, transfer: Transfer) -> int:
    if transfer.amount > 0:
        return transfer.amount
    return invoice.amount or 0


@dataclass(slots=True)
class SettlementMatcher:
    invoices: InvoiceRepository
    transfers: TransferSource
    recorder: Optional[PaymentRecorder] = None
    expiry_grace: timedelta = field(default_factory=lambda: timedelta(seconds=60))

    async def _asset_ids(self, wallet_id: str, pending: Sequence[RGBInvoice]) -> List[str]:
        asset_ids = list(dict.fromkeys(invoice.asset_id for invoice in pending if invoice.asset_id))
        if any(not invoice.asset_id for invoice in pending):
            try:
                assets = await self.transfers.list_assets(wallet_id)
            except RgbNodeError as exc:
                logger.debug("failed to list assets for wallet %s: %s", wallet_id, exc)
            else:
                for asset in assets:
                    if asset.asset_id and asset.asset_id not in asset_ids:
                        asset_ids.append(asset.asset_id)
        return asset_ids

    async def _settled_transfers(self, wallet_id: str, asset_ids: Sequence[str]) -> List[Transfer]:
        settled: List[Transfer] = []
        for asset_id in asset_ids:
            try:
                transfers = await self.transfers.get_transfers(wallet_id, asset_id)
            except RgbNodeError as exc:
                logger.debug("failed to get transfers for asset %s: %s", asset_id, exc)
                continue
            settled.extend(settled_incoming(transfers))
        return collapse_batches(settled)

    async def process_wallet(self, wallet_id: str) -> List[Settlement]:
        """Settle every pending invoice of ``wallet_id`` the node reports as received.

        Changes are flushed but not committed; the caller owns the transaction.
        """
        pending = list(await self.invoices.list_open_for_wallet(wallet_id))
        if not pending:
            return []

        asset_ids = await self._asset_ids(wallet_id, pending)
        if not asset_ids:
            return []

        transfers = await self._settled_transfers(wallet_id, asset_ids)
        settlements: List[Settlement] = []
        for invoice, transfer in match(transfers, pending):
            ensure_transition(invoice.id, invoice.status, InvoiceStatus.SETTLED)
            invoice.status = InvoiceStatus.SETTLED.value
            invoice.settled_at = datetime.now(timezone.utc)
            invoice.txid = transfer.txid
            invoice.received_amount = received_amount(invoice, transfer)

            settlement = Settlement(
                invoice_id=invoice.id,
                recipient_id=invoice.recipient_id,
                transfer_idx=transfer.idx,
                txid=transfer.txid,
                received_amount=invoice.received_amount,
            )
            if invoice.external_invoice_id and self.recorder is not None:
                settlement.payment = await self.recorder.record(invoice, transfer)
            settlements.append(settlement)
            logger.info("settled rgb invoice %s (transfer %d, txid %s)", invoice.id, transfer.idx, transfer.txid)

        if settlements:
            await self.invoices.flush()
        return settlements

    async def expire_overdue(self, wallet_id: str, now: Optional[datetime] = None) -> List[str]:
        """Move pending invoices whose expiry plus grace has passed to expired."""
        now = now or datetime.now(timezone.utc)
        cutoff = int((now - self.expiry_grace).timestamp())
        expired: List[str] = []
        for invoice in await self.invoices.list_overdue(wallet_id, cutoff):
            ensure_transition(invoice.id, invoice.status, InvoiceStatus.EXPIRED)
            invoice.status = InvoiceStatus.EXPIRED.value
            expired.append(invoice.id)
        if expired:
            await self.invoices.flush()
            logger.info("expired %d rgb invoices for wallet %s", len(expired), wallet_id)
        return expired


__all__ = [
    "Settlement",
    "SettlementMatcher",
    "TransferSource",
    "collapse_batches",
    "match",
    "received_amount",
    "settled_incoming",
]
