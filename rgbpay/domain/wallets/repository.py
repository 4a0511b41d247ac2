"""Repository protocols for wallet operations."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol, Sequence

from rgbpay.infrastructure.database.models import RGBAsset as AssetModel, RGBWallet as WalletModel
from rgbpay.infrastructure.node.models import RgbAsset


class WalletRepository(Protocol):
    async def get_wallet(self, wallet_id: str) -> WalletModel | None:
        ...

    async def get_wallet_for_store(self, store_id: str) -> WalletModel | None:
        ...

    async def list_active(self) -> Sequence[WalletModel]:
        ...

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
    ) -> WalletModel:
        ...

    async def mark_synced(self, wallet_id: str, synced_at: datetime) -> None:
        ...


class AssetRepository(Protocol):
    async def list_for_wallet(self, wallet_id: str) -> Sequence[AssetModel]:
        ...

    async def upsert_many(self, wallet_id: str, assets: Iterable[RgbAsset]) -> list[AssetModel]:
        ...
