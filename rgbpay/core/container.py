"""Simple dependency container for wiring core services."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from rgbpay.core.config import Settings, get_settings
from rgbpay.core.crypto import MnemonicProtector
from rgbpay.domain.host.protocols import HostServices
from rgbpay.domain.settlement.worker import ReconciliationWorker
from rgbpay.domain.signing import SignerRegistry
from rgbpay.domain.wallets.service import WalletService
from rgbpay.infrastructure.database.repositories import SqlWalletRepository
from rgbpay.infrastructure.database.session import get_engine, get_session_factory, session_factory_for
from rgbpay.infrastructure.node import RgbNodeClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    node: RgbNodeClient
    signers: SignerRegistry
    protector: MnemonicProtector
    worker: Optional[ReconciliationWorker] = field(default=None)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        engine: Optional[AsyncEngine] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        node: Optional[RgbNodeClient] = None,
    ) -> "ApplicationContainer":
        if engine is None:
            engine = get_engine()
            session_factory = session_factory or get_session_factory()
        elif session_factory is None:
            session_factory = session_factory_for(engine)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            node=node or RgbNodeClient(settings.node_url, timeout=settings.node.timeout_seconds),
            signers=SignerRegistry(scan_depth=settings.signer.scan_depth),
            protector=MnemonicProtector(settings.security.mnemonic_key),
        )

    def wallet_service(self, session: AsyncSession) -> WalletService:
        return WalletService.with_session(session, self)

    def build_worker(self, host: HostServices) -> ReconciliationWorker:
        self.worker = ReconciliationWorker(
            session_factory=self.session_factory,
            wallet_service_factory=self.wallet_service,
            invoices=host.invoices,
            payments=host.payments,
            events=host.events,
            settings=self.settings.reconciliation,
            payment_settings=self.settings.payment,
        )
        return self.worker

    async def load_signers(self) -> int:
        """Register a local signer for every stored wallet."""
        async with self.session_factory() as session:
            wallets = await SqlWalletRepository(session).list_wallets()
            entries = [(wallet.id, wallet.encrypted_mnemonic, wallet.network) for wallet in wallets]
        loaded = self.signers.load(entries, self.protector.unprotect)
        logger.info("loaded %d of %d wallet signers", loaded, len(entries))
        return loaded

    async def shutdown(self) -> None:
        if self.worker is not None:
            await self.worker.stop(timeout=self.settings.reconciliation.error_backoff_seconds)
        self.signers.close()
        await self.node.aclose()
        await self.engine.dispose()


@lru_cache()
def get_container() -> ApplicationContainer:
    return ApplicationContainer.from_settings(get_settings())


__all__ = ["ApplicationContainer", "get_container"]
