"""Wallet domain service"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rgbpay.core.crypto import MnemonicProtector
from rgbpay.domain.invoices.models import Invoice, InvoiceStatus
from rgbpay.domain.invoices.repository import InvoiceRepository
from rgbpay.domain.signing import SignerNotRegisteredError, SignerRegistry
from rgbpay.infrastructure.database.models import RGBInvoice as InvoiceModel, RGBWallet as WalletModel
from rgbpay.infrastructure.database.repositories import (
    SqlAssetRepository,
    SqlInvoiceRepository,
    SqlWalletRepository,
)
from rgbpay.infrastructure.node import RgbNodeClient, RgbNodeError
from rgbpay.infrastructure.node.models import (
    AssetBalance,
    BtcBalance,
    DecodedInvoice,
    RgbAsset,
    SendEndResponse,
    Transfer,
    UnspentOutput,
    WalletCredentials,
)

from .credentials import CredentialResolver, credentials_for
from .exceptions import NoColorableUtxosError, NoLocalSignerError, WalletKeyMismatchError
from .models import Wallet
from .repository import AssetRepository, WalletRepository

if TYPE_CHECKING:
    from rgbpay.core.container import ApplicationContainer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WalletService:
    wallets: WalletRepository
    invoices: InvoiceRepository
    assets: AssetRepository
    node: RgbNodeClient
    signers: SignerRegistry
    protector: MnemonicProtector
    network: str

    @classmethod
    def with_session(cls, session: AsyncSession, container: "ApplicationContainer") -> "WalletService":
        return cls(
            wallets=SqlWalletRepository(session),
            invoices=SqlInvoiceRepository(session),
            assets=SqlAssetRepository(session),
            node=container.node,
            signers=container.signers,
            protector=container.protector,
            network=container.settings.network,
        )

    @property
    def resolver(self) -> CredentialResolver:
        return CredentialResolver(self.wallets)

    async def _credentials(self, wallet_id: str) -> WalletCredentials:
        return await self.resolver.resolve(wallet_id)

    # -- provisioning -----------------------------------------------------

    async def create_wallet(self, store_id: str, name: Optional[str] = None) -> Wallet:
        keys = await self.node.generate_keys()
        wallet_id = str(uuid.uuid4())

        # the signer only stays registered once the node knows the wallet
        signer = self.signers.register(wallet_id, keys.mnemonic, self.network)
        try:
            if (signer.xpub_vanilla, signer.xpub_colored) != (keys.account_xpub_vanilla, keys.account_xpub_colored):
                raise WalletKeyMismatchError(wallet_id)
            model = await self.wallets.create_wallet(
                wallet_id=wallet_id,
                store_id=store_id,
                name=name or "RGB Wallet",
                xpub_vanilla=keys.account_xpub_vanilla,
                xpub_colored=keys.account_xpub_colored,
                master_fingerprint=keys.master_fingerprint,
                encrypted_mnemonic=self.protector.protect(keys.mnemonic),
                network=self.network,
                created_at=datetime.now(timezone.utc),
            )
            await self.node.register(credentials_for(model))
        except Exception:
            self.signers.remove(wallet_id)
            raise

        logger.info("created wallet %s for store %s", wallet_id, store_id)
        return self._to_domain(model)

    async def get_wallet(self, wallet_id: str) -> Wallet | None:
        model = await self.wallets.get_wallet(wallet_id)
        return self._to_domain(model) if model else None

    async def get_wallet_for_store(self, store_id: str) -> Wallet | None:
        model = await self.wallets.get_wallet_for_store(store_id)
        return self._to_domain(model) if model else None

    async def list_active_wallet_ids(self) -> list[str]:
        return [wallet.id for wallet in await self.wallets.list_active()]

    async def mark_synced(self, wallet_id: str, synced_at: datetime | None = None) -> None:
        await self.wallets.mark_synced(wallet_id, synced_at or datetime.now(timezone.utc))

    # -- balances and utxos -----------------------------------------------

    async def get_btc_balance(self, wallet_id: str) -> BtcBalance:
        return await self.node.get_btc_balance(await self._credentials(wallet_id))

    async def get_address(self, wallet_id: str) -> str:
        return await self.node.get_address(await self._credentials(wallet_id))

    async def list_unspents(self, wallet_id: str) -> list[UnspentOutput]:
        return await self.node.list_unspents(await self._credentials(wallet_id))

    async def get_colorable_utxo_count(self, wallet_id: str) -> int:
        unspents = await self.list_unspents(wallet_id)
        return sum(1 for unspent in unspents if unspent.utxo.colorable and not unspent.rgb_allocations)

    async def create_colorable_utxos(self, wallet_id: str, count: int = 5, size: int = 10000) -> int:
        creds = await self._credentials(wallet_id)
        try:
            psbt = await self.node.create_utxos_begin(creds, count, size)
            if not psbt:
                return 0
            signed = await self._sign_locally(wallet_id, psbt)
            await self.node.create_utxos_end(creds, signed)
        except RgbNodeError as exc:
            if "alreadyavailable" in str(exc).lower():
                return 0
            raise
        return count

    async def ensure_colorable_utxos(self, wallet_id: str, minimum: int = 2) -> None:
        have = await self.get_colorable_utxo_count(wallet_id)
        if have >= minimum:
            return
        try:
            await self.create_colorable_utxos(wallet_id, minimum - have + 2)
        except (RgbNodeError, NoLocalSignerError) as exc:
            logger.warning("couldn't auto-create utxos for wallet %s (have %d): %s", wallet_id, have, exc)
            if have == 0:
                raise NoColorableUtxosError("no colorable utxos - fund wallet first") from exc

    # -- assets -----------------------------------------------------------

    async def list_assets(self, wallet_id: str) -> list[RgbAsset]:
        return await self.node.list_assets(await self._credentials(wallet_id))

    async def import_assets(self, wallet_id: str) -> list[RgbAsset]:
        assets = await self.list_assets(wallet_id)
        await self.assets.upsert_many(wallet_id, assets)
        return assets

    async def get_asset_balance(self, wallet_id: str, asset_id: str) -> AssetBalance:
        return await self.node.get_asset_balance(await self._credentials(wallet_id), asset_id)

    # -- invoices and transfers -------------------------------------------

    async def create_invoice(
        self,
        wallet_id: str,
        *,
        asset_id: Optional[str] = None,
        amount: Optional[int] = None,
        expiration: Optional[timedelta] = None,
        external_invoice_id: Optional[str] = None,
        witness: bool = False,
    ) -> Invoice:
        creds = await self._credentials(wallet_id)
        expiration_ts = None
        if expiration is not None:
            expiration_ts = int((datetime.now(timezone.utc) + expiration).timestamp())

        receive = self.node.witness_receive if witness else self.node.blind_receive
        response = await receive(creds, asset_id, amount, expiration_ts)

        model = await self.invoices.create_invoice(
            invoice_id=str(uuid.uuid4()),
            wallet_id=wallet_id,
            external_invoice_id=external_invoice_id,
            invoice=response.invoice,
            recipient_id=response.recipient_id,
            asset_id=asset_id,
            amount=amount,
            expiration_timestamp=response.expiration_timestamp,
            batch_transfer_idx=response.batch_transfer_idx,
            is_blind=not witness,
        )
        logger.info("created invoice %s (recipient %s) for wallet %s", model.id, model.recipient_id, wallet_id)
        return self.to_invoice(model)

    async def get_invoice_by_recipient_id(self, recipient_id: str) -> Invoice | None:
        model = await self.invoices.get_by_recipient_id(recipient_id)
        return self.to_invoice(model) if model else None

    async def decode_invoice(self, invoice: str) -> DecodedInvoice:
        return await self.node.decode_invoice(invoice)

    async def refresh_wallet(self, wallet_id: str) -> bool:
        """Ask the node to resync the wallet. Failures are logged, not raised."""
        try:
            await self.node.refresh(await self._credentials(wallet_id))
        except RgbNodeError as exc:
            logger.warning("failed to refresh wallet %s: %s", wallet_id, exc)
            return False
        return True

    async def get_transfers(self, wallet_id: str, asset_id: Optional[str] = None) -> list[Transfer]:
        return await self.node.list_transfers(await self._credentials(wallet_id), asset_id)

    async def fail_expired_transfers(self, wallet_id: str) -> None:
        await self.node.fail_transfers(await self._credentials(wallet_id))

    # -- sending ----------------------------------------------------------

    async def send_asset(
        self, wallet_id: str, invoice: str, asset_id: str, amount: int, fee_rate: int = 5
    ) -> SendEndResponse:
        creds = await self._credentials(wallet_id)
        psbt = await self.node.send_begin(creds, invoice, asset_id, amount, fee_rate)
        signed = await self._sign_locally(wallet_id, psbt)
        return await self.node.send_end(creds, signed)

    async def send_btc(self, wallet_id: str, address: str, amount: int, fee_rate: int = 2) -> str:
        creds = await self._credentials(wallet_id)
        psbt = await self.node.send_btc_begin(creds, address, amount, fee_rate)
        signed = await self._sign_locally(wallet_id, psbt)
        return await self.node.send_btc_end(creds, signed)

    async def _sign_locally(self, wallet_id: str, psbt: str) -> str:
        logger.debug("signing psbt locally for wallet %s", wallet_id)
        try:
            result = await self.signers.sign(wallet_id, psbt)
        except SignerNotRegisteredError as exc:
            raise NoLocalSignerError(wallet_id) from exc
        if not result.finalized:
            logger.info(
                "psbt for wallet %s not finalized locally (%d signatures added)", wallet_id, result.signatures
            )
        return result.psbt

    # -- mapping ----------------------------------------------------------

    @staticmethod
    def _to_domain(model: WalletModel) -> Wallet:
        return Wallet(
            id=model.id,
            store_id=model.store_id,
            name=model.name,
            xpub_vanilla=model.xpub_vanilla,
            xpub_colored=model.xpub_colored,
            master_fingerprint=model.master_fingerprint,
            network=model.network,
            is_active=model.is_active,
            created_at=model.created_at,
            last_sync_at=model.last_sync_at,
        )

    @staticmethod
    def to_invoice(model: InvoiceModel) -> Invoice:
        return Invoice(
            id=model.id,
            wallet_id=model.wallet_id,
            external_invoice_id=model.external_invoice_id,
            invoice=model.invoice,
            recipient_id=model.recipient_id,
            asset_id=model.asset_id,
            amount=model.amount,
            received_amount=model.received_amount,
            expiration_timestamp=model.expiration_timestamp,
            batch_transfer_idx=model.batch_transfer_idx,
            status=InvoiceStatus(model.status),
            is_blind=model.is_blind,
            txid=model.txid,
            created_at=model.created_at,
            settled_at=model.settled_at,
        )
