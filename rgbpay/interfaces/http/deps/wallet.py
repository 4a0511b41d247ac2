"""Wallet related dependency providers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rgbpay.core.container import ApplicationContainer
from rgbpay.domain.wallets import WalletService

from .database import get_container, get_db_session


def get_wallet_service(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_container),
) -> WalletService:
    return container.wallet_service(db)


__all__ = ["get_wallet_service"]
