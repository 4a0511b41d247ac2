"""SQLAlchemy implementation for wallet domain"""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy import select, update

from rgbpay.infrastructure.database.models import RGBWallet

from .base import AsyncRepository


class SqlWalletRepository(AsyncRepository[RGBWallet]):
    model = RGBWallet

    async def get_wallet(self, wallet_id: str) -> RGBWallet | None:
        return await self.get(wallet_id)

    async def get_wallet_for_store(self, store_id: str) -> RGBWallet | None:
        stmt = select(RGBWallet).where(RGBWallet.store_id == store_id).order_by(RGBWallet.created_at)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_active(self) -> Sequence[RGBWallet]:
        stmt = select(RGBWallet).where(RGBWallet.is_active.is_(True))
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_wallets(self) -> Sequence[RGBWallet]:
        result = await self.session.execute(select(RGBWallet))
        return result.scalars().all()

    async def create_wallet(
        self,
        *,
        wallet_id: str,
        store_id: str,
        name: str,
        xpub_vanilla: str,
        xpub_colored: str,
        master_fingerprint: str,
        encrypted_mnemonic: str,
        network: str,
        created_at: datetime,
    ) -> RGBWallet:
        wallet = RGBWallet(
            id=wallet_id,
            store_id=store_id,
            name=name,
            xpub_vanilla=xpub_vanilla,
            xpub_colored=xpub_colored,
            master_fingerprint=master_fingerprint,
            encrypted_mnemonic=encrypted_mnemonic,
            network=network,
            is_active=True,
            created_at=created_at,
        )
        return await self.add(wallet)

    async def mark_synced(self, wallet_id: str, synced_at: datetime) -> None:
        stmt = (
            update(RGBWallet)
            .where(RGBWallet.id == wallet_id)
            .values(last_sync_at=synced_at)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)

    async def set_active(self, wallet_id: str, is_active: bool) -> None:
        stmt = (
            update(RGBWallet)
            .where(RGBWallet.id == wallet_id)
            .values(is_active=is_active)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)
