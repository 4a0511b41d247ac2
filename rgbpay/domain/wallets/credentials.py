"""Resolve a wallet id to the public descriptor the node expects."""

from __future__ import annotations

from rgbpay.infrastructure.database.models import RGBWallet as WalletModel
from rgbpay.infrastructure.node.models import WalletCredentials

from .exceptions import WalletNotFoundError
from .repository import WalletRepository


def credentials_for(wallet: WalletModel) -> WalletCredentials:
    return WalletCredentials(
        xpub_vanilla=wallet.xpub_vanilla,
        xpub_colored=wallet.xpub_colored,
        master_fingerprint=wallet.master_fingerprint,
        network=wallet.network,
    )


class CredentialResolver:
    def __init__(self, repository: WalletRepository) -> None:
        self._repository = repository

    async def get_wallet_or_raise(self, wallet_id: str) -> WalletModel:
        wallet = await self._repository.get_wallet(wallet_id)
        if wallet is None:
            raise WalletNotFoundError(wallet_id)
        return wallet

    async def resolve(self, wallet_id: str) -> WalletCredentials:
        return credentials_for(await self.get_wallet_or_raise(wallet_id))
