"""Background reconciliation of RGB invoices against the remote node.

Two producers feed one consumer loop. Host invoice events enqueue an invoice
id (fast path) and a periodic full sync walks every active wallet (slow path).
Both end in :class:`SettlementMatcher`, which is idempotent, so an invoice can
be re-checked any number of times without double-crediting the host.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import queue
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rgbpay.core.config import PaymentSettings, ReconciliationSettings
from rgbpay.domain.host.models import HostInvoice, InvoiceEvent, PromptDetails
from rgbpay.domain.host.protocols import EventBus, HostInvoiceStore, HostPaymentService, Unsubscribe
from rgbpay.domain.wallets.service import WalletService
from rgbpay.infrastructure.node import RgbNodeError

from .cache import InvoiceCache
from .matcher import Settlement, SettlementMatcher
from .payments import PaymentRecorder

logger = logging.getLogger(__name__)

WalletServiceFactory = Callable[[AsyncSession], WalletService]


class ReconciliationWorker:
    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        wallet_service_factory: WalletServiceFactory,
        invoices: HostInvoiceStore,
        payments: HostPaymentService,
        events: EventBus,
        settings: Optional[ReconciliationSettings] = None,
        payment_settings: Optional[PaymentSettings] = None,
    ) -> None:
        self._settings = settings or ReconciliationSettings()
        payment_settings = payment_settings or PaymentSettings()
        self._session_factory = session_factory
        self._wallet_service_factory = wallet_service_factory
        self._host_invoices = invoices
        self._events = events
        self._method_id = payment_settings.method_id
        self._recorder = PaymentRecorder(
            invoices=invoices,
            payments=payments,
            events=events,
            method_id=payment_settings.method_id,
            id_prefix=payment_settings.id_prefix,
            currency=payment_settings.currency,
        )
        self._queue: "queue.SimpleQueue[str]" = queue.SimpleQueue()
        self._cache = InvoiceCache(timedelta(seconds=self._settings.cache_floor_seconds))
        self._stop_event = asyncio.Event()
        self._subscription: Optional[Unsubscribe] = None
        self._task: Optional[asyncio.Task[None]] = None
        self.last_full_sync_at: Optional[datetime] = None

    @property
    def cache(self) -> InvoiceCache:
        return self._cache

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def queued(self) -> int:
        return self._queue.qsize()

    def enqueue(self, invoice_id: str) -> None:
        self._queue.put(invoice_id)

    # -- lifecycle --------------------------------------------------------

    async def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("reconciliation worker already started")
        self._stop_event.clear()
        await self._enqueue_monitored()
        self._subscription = self._events.subscribe(InvoiceEvent, self._on_invoice_event)
        self._task = asyncio.create_task(self._run(), name="rgb-reconciliation")
        logger.info("reconciliation worker started")

    async def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the loop to exit and wait for the in-flight unit of work.

        With ``timeout`` the task is cancelled once it elapses.
        """
        if self._subscription is not None:
            self._subscription()
            self._subscription = None
        task, self._task = self._task, None
        if task is None:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            logger.warning("reconciliation worker did not stop within %.1fs; cancelling", timeout)
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        logger.info("reconciliation worker stopped")

    def _on_invoice_event(self, event: InvoiceEvent) -> None:
        self._cache.evict(event.invoice_id)
        self._queue.put(event.invoice_id)

    async def _enqueue_monitored(self) -> None:
        monitored = await self._host_invoices.get_monitored_invoices(self._method_id)
        queued = 0
        for invoice in monitored:
            prompt = invoice.get_prompt(self._method_id)
            if prompt is None or not prompt.details:
                continue
            self._queue.put(invoice.id)
            self._cache.put(invoice)
            queued += 1
        logger.debug("queued %d pending rgb invoices", queued)

    # -- loop -------------------------------------------------------------

    async def _sleep(self, seconds: float) -> None:
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), seconds)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        last_sync: Optional[float] = None
        while not self._stop_event.is_set():
            try:
                if last_sync is None or loop.time() - last_sync > self._settings.full_sync_interval_seconds:
                    await self.full_sync()
                    last_sync = loop.time()
                await self.drain_queue()
                await self._sleep(self._settings.poll_interval_seconds)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("reconciliation loop hiccup: %s", exc, exc_info=True)
                await self._sleep(self._settings.error_backoff_seconds)

    async def full_sync(self) -> None:
        """Refresh, match and sweep every active wallet, one transaction each."""
        async with self._session_factory() as session:
            wallet_ids = await self._wallet_service_factory(session).list_active_wallet_ids()
        for wallet_id in wallet_ids:
            if self._stop_event.is_set():
                break
            try:
                await self._sync_wallet(wallet_id)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("failed to refresh wallet %s: %s", wallet_id, exc)
        self._cache.purge_expired()
        self.last_full_sync_at = datetime.now(timezone.utc)

    async def _sync_wallet(self, wallet_id: str) -> List[Settlement]:
        async with self._session_factory() as session:
            try:
                service = self._wallet_service_factory(session)
                await service.refresh_wallet(wallet_id)
                matcher = self._matcher(service)
                settlements = await matcher.process_wallet(wallet_id)
                expired = await matcher.expire_overdue(wallet_id)
                if expired:
                    try:
                        await service.fail_expired_transfers(wallet_id)
                    except RgbNodeError as exc:
                        logger.warning("failed to fail stale transfers for wallet %s: %s", wallet_id, exc)
                await service.mark_synced(wallet_id)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        return settlements

    async def drain_queue(self) -> int:
        processed = 0
        while not self._stop_event.is_set():
            try:
                invoice_id = self._queue.get_nowait()
            except queue.Empty:
                break
            await self.check_invoice(invoice_id)
            processed += 1
        return processed

    async def check_invoice(self, invoice_id: str) -> List[Settlement]:
        """Re-run matching for the wallet behind one host invoice."""
        try:
            invoice = await self._resolve(invoice_id)
            if invoice is None:
                return []
            prompt = invoice.get_prompt(self._method_id)
            if prompt is None or not prompt.details:
                return []
            details = PromptDetails.model_validate(prompt.details)
            return await self.process_wallet(details.wallet_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.debug("failed to check invoice %s: %s", invoice_id, exc)
            return []

    async def _resolve(self, invoice_id: str) -> Optional[HostInvoice]:
        invoice = self._cache.get(invoice_id)
        if invoice is not None:
            return invoice
        invoice = await self._host_invoices.get_invoice(invoice_id)
        if invoice is not None:
            self._cache.put(invoice)
        return invoice

    async def process_wallet(self, wallet_id: str) -> List[Settlement]:
        async with self._session_factory() as session:
            try:
                settlements = await self._matcher(self._wallet_service_factory(session)).process_wallet(wallet_id)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        return settlements

    def _matcher(self, service: WalletService) -> SettlementMatcher:
        return SettlementMatcher(
            invoices=service.invoices,
            transfers=service,
            recorder=self._recorder,
            expiry_grace=timedelta(seconds=self._settings.expiry_grace_seconds),
        )


__all__ = ["ReconciliationWorker", "WalletServiceFactory"]
