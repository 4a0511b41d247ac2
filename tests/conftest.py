from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Any, Optional

import pytest
from bip_utils import Bip39SeedGenerator
from embit import bip32, script
from embit.networks import NETWORKS
from embit.psbt import PSBT, DerivationPath
from embit.transaction import Transaction, TransactionInput, TransactionOutput
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rgbpay.core.config import DatabaseSettings, NodeSettings, Settings
from rgbpay.core.container import ApplicationContainer
from rgbpay.core.crypto import MnemonicProtector
from rgbpay.domain.host import HostInvoice, HostServices, PaymentPrompt, PaymentRecord
from rgbpay.domain.signing import MemoryWalletSigner, SignerRegistry
from rgbpay.infrastructure.database.repositories import SqlInvoiceRepository, SqlWalletRepository
from rgbpay.infrastructure.database.session import build_engine, init_db, session_factory_for
from rgbpay.infrastructure.events import EventAggregator
from rgbpay.infrastructure.node import RgbNodeError
from rgbpay.infrastructure.node.models import (
    AssetBalance,
    BtcBalance,
    DecodedInvoice,
    GenerateKeysResponse,
    InvoiceResponse,
    RegisterResponse,
    RgbAsset,
    SendEndResponse,
    Transfer,
    UnspentOutput,
    WalletCredentials,
)

TEST_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
WALLET_ID = "wallet-1"
HARDENED = 0x80000000


@lru_cache(maxsize=None)
def derived_node_keys() -> GenerateKeysResponse:
    """What the node hands back from key generation for the test mnemonic."""
    with MemoryWalletSigner(TEST_MNEMONIC, "regtest") as signer:
        return GenerateKeysResponse(
            mnemonic=TEST_MNEMONIC,
            account_xpub_vanilla=signer.xpub_vanilla,
            account_xpub_colored=signer.xpub_colored,
            master_fingerprint=signer.master_fingerprint,
        )


class FakeNode:
    """In-memory stand-in for the RGB node client."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.transfers: dict[Optional[str], list[Transfer]] = {}
        self.assets: list[RgbAsset] = []
        self.unspents: list[UnspentOutput] = []
        self.fail: set[str] = set()
        self.keys = derived_node_keys()
        self.psbt = "cHNidP8B"
        self.signed: list[str] = []
        self._receive_counter = 0

    def _record(self, name: str, payload: Any = None) -> None:
        self.calls.append((name, payload))
        if name in self.fail:
            raise RgbNodeError(f"/wallet/{name}", "boom", 500)

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def generate_keys(self) -> GenerateKeysResponse:
        self._record("generate_keys")
        return self.keys

    async def register(self, creds: WalletCredentials) -> RegisterResponse:
        self._record("register", creds)
        return RegisterResponse(address="bcrt1qexample")

    async def get_address(self, creds: WalletCredentials) -> str:
        self._record("address", creds)
        return "bcrt1qexample"

    async def get_btc_balance(self, creds: WalletCredentials) -> BtcBalance:
        self._record("btcbalance", creds)
        return BtcBalance.model_validate({"vanilla": {"settled": 1000, "future": 1000, "spendable": 1000}})

    async def refresh(self, creds: WalletCredentials) -> None:
        self._record("refresh", creds)

    async def list_unspents(self, creds: WalletCredentials) -> list[UnspentOutput]:
        self._record("listunspents", creds)
        return list(self.unspents)

    async def create_utxos_begin(self, creds: WalletCredentials, num: int = 5, size: int = 10000, fee_rate: int = 2) -> str:
        self._record("createutxosbegin", {"num": num, "size": size})
        return self.psbt

    async def create_utxos_end(self, creds: WalletCredentials, signed_psbt: str) -> str:
        self._record("createutxosend", signed_psbt)
        self.signed.append(signed_psbt)
        return "5"

    async def list_assets(self, creds: WalletCredentials) -> list[RgbAsset]:
        self._record("listassets", creds)
        return list(self.assets)

    async def get_asset_balance(self, creds: WalletCredentials, asset_id: str) -> AssetBalance:
        self._record("assetbalance", asset_id)
        return AssetBalance(settled=500, future=500, spendable=500)

    async def _receive(self, name: str, asset_id, amount, expiration_timestamp) -> InvoiceResponse:
        self._record(name, {"asset_id": asset_id, "amount": amount, "expiration_timestamp": expiration_timestamp})
        self._receive_counter += 1
        return InvoiceResponse(
            invoice=f"rgb:invoice-{self._receive_counter}",
            recipient_id=f"recipient-{self._receive_counter}",
            expiration_timestamp=expiration_timestamp,
            batch_transfer_idx=self._receive_counter,
        )

    async def blind_receive(self, creds, asset_id=None, amount=None, expiration_timestamp=None) -> InvoiceResponse:
        return await self._receive("blindreceive", asset_id, amount, expiration_timestamp)

    async def witness_receive(self, creds, asset_id=None, amount=None, expiration_timestamp=None) -> InvoiceResponse:
        return await self._receive("witnessreceive", asset_id, amount, expiration_timestamp)

    async def decode_invoice(self, invoice: str) -> DecodedInvoice:
        self._record("decodergbinvoice", invoice)
        return DecodedInvoice(recipient_id="recipient-x")

    async def list_transfers(self, creds: WalletCredentials, asset_id: Optional[str] = None) -> list[Transfer]:
        self._record("listtransfers", asset_id)
        return list(self.transfers.get(asset_id, []))

    async def fail_transfers(self, creds: WalletCredentials, no_asset_only: bool = True) -> None:
        self._record("failtransfers", no_asset_only)

    async def send_begin(self, creds, invoice, asset_id, amount, fee_rate=5) -> str:
        self._record("sendbegin", {"invoice": invoice, "asset_id": asset_id, "amount": amount})
        return self.psbt

    async def send_end(self, creds, signed_psbt: str) -> SendEndResponse:
        self._record("sendend", signed_psbt)
        self.signed.append(signed_psbt)
        return SendEndResponse(txid="sendtx", batch_transfer_idx=9)

    async def send_btc_begin(self, creds, address, amount, fee_rate=2) -> str:
        self._record("sendbtcbegin", {"address": address, "amount": amount})
        return self.psbt

    async def send_btc_end(self, creds, signed_psbt: str) -> str:
        self._record("sendbtcend", signed_psbt)
        self.signed.append(signed_psbt)
        return "btctx"

    async def aclose(self) -> None:
        self._record("aclose")


class FakeHostInvoiceStore:
    def __init__(self) -> None:
        self.invoices: dict[str, HostInvoice] = {}
        self.lookups = 0

    def add(self, invoice: HostInvoice) -> HostInvoice:
        self.invoices[invoice.id] = invoice
        return invoice

    async def get_monitored_invoices(self, payment_method_id: str) -> list[HostInvoice]:
        return [
            invoice
            for invoice in self.invoices.values()
            if invoice.get_prompt(payment_method_id) is not None and invoice.status in {"new", "processing"}
        ]

    async def get_invoice(self, invoice_id: str) -> Optional[HostInvoice]:
        self.lookups += 1
        return self.invoices.get(invoice_id)


class FakePaymentService:
    def __init__(self, store: FakeHostInvoiceStore) -> None:
        self.store = store
        self.added: list[PaymentRecord] = []

    async def add_payment(self, payment: PaymentRecord) -> Optional[PaymentRecord]:
        invoice = self.store.invoices.get(payment.invoice_id)
        if invoice is None:
            return None
        invoice.payments.append(payment)
        self.added.append(payment)
        return payment


def make_transfer(**overrides: Any) -> Transfer:
    data = {"idx": 3, "status": 2, "kind": 1, "recipient_id": "r1", "txid": "abc", "amount": 500}
    data.update(overrides)
    return Transfer.model_validate(data)


def _test_key(path: str) -> bip32.HDKey:
    seed = Bip39SeedGenerator(TEST_MNEMONIC).Generate()
    return bip32.HDKey.from_seed(seed, version=NETWORKS["regtest"]["xprv"]).derive(path)


def _derivation(path: str) -> list[int]:
    return [int(part[:-1]) + HARDENED if part.endswith("h") else int(part) for part in path.split("/")[1:]]


def _single_input_psbt(spk) -> PSBT:
    tx = Transaction(
        vin=[TransactionInput(bytes.fromhex("11" * 32), 0)],
        vout=[TransactionOutput(9_000, spk)],
    )
    psbt = PSBT(tx)
    psbt.inputs[0].witness_utxo = TransactionOutput(10_000, spk)
    return psbt


def build_p2wpkh_psbt(path: str, with_hint: bool = False, hint_fingerprint: Optional[bytes] = None) -> str:
    """Single-input P2WPKH PSBT spending to the key at `path` of the test mnemonic."""
    pubkey = _test_key(path).get_public_key()
    psbt = _single_input_psbt(script.p2wpkh(pubkey))
    if with_hint:
        fingerprint = hint_fingerprint or bytes.fromhex("73c5da0a")
        psbt.inputs[0].bip32_derivations[pubkey] = DerivationPath(fingerprint, _derivation(path))
    return psbt.to_string()


def build_p2tr_psbt(path: str, with_hint: bool = False) -> str:
    """Single-input BIP86 key-path PSBT for the key at `path` of the test mnemonic."""
    pubkey = _test_key(path).get_public_key()
    psbt = _single_input_psbt(script.p2tr(pubkey))
    if with_hint:
        derivation = DerivationPath(bytes.fromhex("73c5da0a"), _derivation(path))
        psbt.inputs[0].taproot_bip32_derivations[pubkey] = ([], derivation)
    return psbt.to_string()


def make_host_invoice(
    invoice_id: str = "host-1",
    wallet_id: str = WALLET_ID,
    expires_in: timedelta = timedelta(hours=1),
    due: str = "0.000123456789",
) -> HostInvoice:
    return HostInvoice(
        id=invoice_id,
        expiration_time=datetime.now(timezone.utc) + expires_in,
        prompts={
            "RGB": PaymentPrompt(
                payment_method_id="RGB",
                due=Decimal(due),
                details={"walletId": wallet_id, "recipientId": "r1", "amountInAssetUnits": 500},
            )
        },
    )


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'rgbpay.db'}"))
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return session_factory_for(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def settings() -> Settings:
    return Settings(network="regtest", node=NodeSettings(url="http://node.test"))


@pytest.fixture
def fake_node() -> FakeNode:
    return FakeNode()


@pytest.fixture
def container(settings, engine, session_factory, fake_node) -> ApplicationContainer:
    return ApplicationContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        node=fake_node,
        signers=SignerRegistry(scan_depth=5),
        protector=MnemonicProtector("test-secret-key"),
    )


@pytest.fixture
def host_store() -> FakeHostInvoiceStore:
    return FakeHostInvoiceStore()


@pytest.fixture
def payment_service(host_store) -> FakePaymentService:
    return FakePaymentService(host_store)


@pytest.fixture
def events() -> EventAggregator:
    return EventAggregator()


@pytest.fixture
def host(host_store, payment_service, events) -> HostServices:
    return HostServices(invoices=host_store, payments=payment_service, events=events)


@pytest.fixture
async def wallet(session_factory, container):
    async with session_factory() as session:
        model = await SqlWalletRepository(session).create_wallet(
            wallet_id=WALLET_ID,
            store_id="store-1",
            name="Test wallet",
            xpub_vanilla="xpub-vanilla",
            xpub_colored="xpub-colored",
            master_fingerprint="73c5da0a",
            encrypted_mnemonic=container.protector.protect(TEST_MNEMONIC),
            network="regtest",
            created_at=datetime.now(timezone.utc),
        )
        await session.commit()
    return model


@pytest.fixture
def add_invoice(session_factory):
    async def _add(
        recipient_id: str = "r1",
        *,
        invoice_id: Optional[str] = None,
        asset_id: Optional[str] = "asset-1",
        amount: Optional[int] = 500,
        external_invoice_id: Optional[str] = None,
        expiration_timestamp: Optional[int] = None,
        wallet_id: str = WALLET_ID,
    ):
        async with session_factory() as session:
            model = await SqlInvoiceRepository(session).create_invoice(
                invoice_id=invoice_id or f"inv-{recipient_id}",
                wallet_id=wallet_id,
                external_invoice_id=external_invoice_id,
                invoice=f"rgb:{recipient_id}",
                recipient_id=recipient_id,
                asset_id=asset_id,
                amount=amount,
                expiration_timestamp=expiration_timestamp,
                batch_transfer_idx=None,
                is_blind=True,
            )
            await session.commit()
        return model

    return _add


@pytest.fixture
def load_invoice(session_factory):
    async def _load(invoice_id: str):
        async with session_factory() as session:
            return await SqlInvoiceRepository(session).get_invoice(invoice_id)

    return _load
