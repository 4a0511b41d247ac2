from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from embit.psbt import PSBT

from conftest import TEST_MNEMONIC, WALLET_ID, build_p2tr_psbt, build_p2wpkh_psbt
from rgbpay.domain.invoices import InvoiceStatus
from rgbpay.domain.wallets import (
    NoColorableUtxosError,
    NoLocalSignerError,
    WalletKeyMismatchError,
    WalletNotFoundError,
)
from rgbpay.infrastructure.database.repositories import SqlAssetRepository, SqlWalletRepository
from rgbpay.infrastructure.node import RgbNodeError
from rgbpay.infrastructure.node.models import RgbAsset, UnspentOutput


def _unspent(txid: str, colorable: bool = True, allocated: bool = False) -> UnspentOutput:
    return UnspentOutput.model_validate(
        {
            "utxo": {"outpoint": {"txid": txid, "vout": 0}, "btc_amount": 10_000, "colorable": colorable},
            "rgb_allocations": [{"asset_id": "asset-1", "amount": 5, "settled": True}] if allocated else [],
        }
    )


@pytest.fixture
def service(session, container):
    return container.wallet_service(session)


async def test_create_wallet_persists_registers_and_loads_signer(service, session, container, fake_node):
    wallet = await service.create_wallet("store-9", name="Shop")
    await session.commit()

    assert wallet.store_id == "store-9"
    assert wallet.name == "Shop"
    assert wallet.network == "regtest"
    assert container.signers.can_handle(wallet.id)
    assert [name for name, _ in fake_node.calls] == ["generate_keys", "register"]

    stored = await SqlWalletRepository(session).get_wallet(wallet.id)
    assert TEST_MNEMONIC not in stored.encrypted_mnemonic
    assert container.protector.unprotect(stored.encrypted_mnemonic) == TEST_MNEMONIC

    found = await service.get_wallet_for_store("store-9")
    assert found is not None and found.id == wallet.id


async def test_unknown_wallet_raises(service):
    assert await service.get_wallet("nope") is None
    with pytest.raises(WalletNotFoundError):
        await service.get_address("nope")


async def test_create_blind_invoice_with_expiration(wallet, service, session, fake_node):
    before = int(datetime.now(timezone.utc).timestamp())

    invoice = await service.create_invoice(
        WALLET_ID,
        asset_id="asset-1",
        amount=500,
        expiration=timedelta(minutes=30),
        external_invoice_id="host-1",
    )
    await session.commit()

    assert invoice.status == InvoiceStatus.PENDING
    assert invoice.is_blind
    assert invoice.external_invoice_id == "host-1"
    assert invoice.expiration_timestamp >= before + 30 * 60
    name, payload = fake_node.calls[-1]
    assert name == "blindreceive"
    assert payload["amount"] == 500

    found = await service.get_invoice_by_recipient_id(invoice.recipient_id)
    assert found is not None and found.id == invoice.id


async def test_create_witness_invoice_without_asset(wallet, service, fake_node):
    invoice = await service.create_invoice(WALLET_ID, witness=True)

    assert not invoice.is_blind
    assert invoice.asset_id is None
    assert invoice.expiration_timestamp is None
    assert fake_node.calls[-1][0] == "witnessreceive"


async def test_colorable_count_ignores_allocated_and_uncolorable(wallet, service, fake_node):
    fake_node.unspents = [
        _unspent("a"),
        _unspent("b", allocated=True),
        _unspent("c", colorable=False),
        _unspent("d"),
    ]

    assert await service.get_colorable_utxo_count(WALLET_ID) == 2


async def test_ensure_colorable_utxos_noop_when_enough(wallet, service, fake_node):
    fake_node.unspents = [_unspent("a"), _unspent("b")]

    await service.ensure_colorable_utxos(WALLET_ID)

    assert fake_node.count("createutxosbegin") == 0


async def test_ensure_colorable_utxos_creates_with_local_signer(wallet, service, container, fake_node):
    container.signers.register(WALLET_ID, TEST_MNEMONIC, "regtest")
    fake_node.psbt = build_p2wpkh_psbt("m/84h/1h/0h/0/1")
    fake_node.unspents = [_unspent("a")]

    await service.ensure_colorable_utxos(WALLET_ID)

    assert [payload for name, payload in fake_node.calls if name == "createutxosbegin"] == [
        {"num": 3, "size": 10000}
    ]
    assert fake_node.count("createutxosend") == 1


async def test_ensure_colorable_utxos_without_signer(wallet, service, fake_node):
    fake_node.unspents = [_unspent("a")]
    await service.ensure_colorable_utxos(WALLET_ID)

    fake_node.unspents = []
    with pytest.raises(NoColorableUtxosError):
        await service.ensure_colorable_utxos(WALLET_ID)


async def test_already_available_allocations_create_nothing(wallet, service, fake_node):
    async def already_available(creds, num=5, size=10000, fee_rate=2):
        raise RgbNodeError("/wallet/createutxosbegin", "AllocationsAlreadyAvailable", 400)

    fake_node.create_utxos_begin = already_available

    assert await service.create_colorable_utxos(WALLET_ID) == 0


async def test_empty_psbt_creates_nothing(wallet, service, fake_node):
    fake_node.psbt = ""

    assert await service.create_colorable_utxos(WALLET_ID) == 0
    assert fake_node.count("createutxosend") == 0


async def test_send_without_local_signer_is_rejected(wallet, service, fake_node):
    with pytest.raises(NoLocalSignerError):
        await service.send_asset(WALLET_ID, "rgb:invoice", "asset-1", 10)

    assert fake_node.count("sendend") == 0


async def test_send_asset_signs_locally_before_broadcast(wallet, service, container, fake_node):
    container.signers.register(WALLET_ID, TEST_MNEMONIC, "regtest")
    fake_node.psbt = build_p2wpkh_psbt("m/84h/1h/0h/0/2")

    result = await service.send_asset(WALLET_ID, "rgb:invoice", "asset-1", 10)

    assert result.txid == "sendtx"
    signed = PSBT.from_string(fake_node.signed[0])
    assert signed.inputs[0].final_scriptwitness is not None


async def test_send_btc_returns_txid(wallet, service, container, fake_node):
    container.signers.register(WALLET_ID, TEST_MNEMONIC, "regtest")
    fake_node.psbt = build_p2wpkh_psbt("m/84h/1h/0h/1/0")

    assert await service.send_btc(WALLET_ID, "bcrt1qdest", 5_000) == "btctx"


async def test_import_assets_upserts(wallet, service, session, fake_node):
    fake_node.assets = [RgbAsset(asset_id="asset-1", ticker="USDT", precision=2)]
    await service.import_assets(WALLET_ID)
    fake_node.assets = [RgbAsset(asset_id="asset-1", ticker="USDT", name="Tether", precision=2)]
    await service.import_assets(WALLET_ID)

    stored = await SqlAssetRepository(session).list_for_wallet(WALLET_ID)
    assert [(asset.asset_id, asset.name) for asset in stored] == [("asset-1", "Tether")]


async def test_refresh_failure_is_reported_not_raised(wallet, service, fake_node):
    assert await service.refresh_wallet(WALLET_ID)

    fake_node.fail.add("refresh")

    assert not await service.refresh_wallet(WALLET_ID)


async def test_create_wallet_rejects_keys_that_differ_from_node(service, session, container, fake_node):
    fake_node.keys = fake_node.keys.model_copy(update={"account_xpub_colored": "tpub-from-elsewhere"})

    with pytest.raises(WalletKeyMismatchError):
        await service.create_wallet("store-9")

    assert len(container.signers) == 0
    assert fake_node.count("register") == 0
    assert await service.get_wallet_for_store("store-9") is None


async def test_create_wallet_drops_signer_when_node_registration_fails(service, container, fake_node):
    fake_node.fail.add("register")

    with pytest.raises(RgbNodeError):
        await service.create_wallet("store-9")

    assert len(container.signers) == 0


async def test_send_asset_signs_colored_taproot_input(wallet, service, container, fake_node):
    container.signers.register(WALLET_ID, TEST_MNEMONIC, "regtest")
    fake_node.psbt = build_p2tr_psbt("m/86h/1h/0h/1/3")

    await service.send_asset(WALLET_ID, "rgb:invoice", "asset-1", 10)

    assert PSBT.from_string(fake_node.signed[0]).inputs[0].final_scriptwitness is not None
