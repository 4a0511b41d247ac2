"""SQLAlchemy implementation for the local asset catalogue"""

from __future__ import annotations

from typing import Iterable, Sequence

from sqlalchemy import select

from rgbpay.infrastructure.database.models import RGBAsset
from rgbpay.infrastructure.node.models import RgbAsset

from .base import AsyncRepository


class SqlAssetRepository(AsyncRepository[RGBAsset]):
    model = RGBAsset

    async def list_for_wallet(self, wallet_id: str) -> Sequence[RGBAsset]:
        stmt = select(RGBAsset).where(RGBAsset.wallet_id == wallet_id).order_by(RGBAsset.ticker)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def upsert_many(self, wallet_id: str, assets: Iterable[RgbAsset]) -> list[RGBAsset]:
        stored: list[RGBAsset] = []
        for asset in assets:
            model = await self.get(asset.asset_id)
            if model is None:
                model = RGBAsset(asset_id=asset.asset_id, wallet_id=wallet_id, accept_for_payment=True)
                self.session.add(model)
            model.ticker = asset.ticker
            model.name = asset.name
            model.precision = asset.precision
            model.issued_supply = asset.issued_supply
            stored.append(model)
        await self.session.flush()
        return stored
