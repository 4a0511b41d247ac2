from __future__ import annotations

import pytest
from embit.psbt import PSBT

from conftest import TEST_MNEMONIC, build_p2tr_psbt, build_p2wpkh_psbt as _p2wpkh_psbt
from rgbpay.domain.signing import (
    InvalidMnemonicError,
    InvalidPsbtError,
    MemoryWalletSigner,
    SignerDisposedError,
    account_paths,
)


def test_known_mnemonic_fingerprint():
    with MemoryWalletSigner(TEST_MNEMONIC, "regtest") as signer:
        assert signer.master_fingerprint == "73c5da0a"


def test_construction_is_deterministic():
    first = MemoryWalletSigner(TEST_MNEMONIC, "regtest")
    second = MemoryWalletSigner("  ".join(TEST_MNEMONIC.split()), "regtest")

    assert first.master_fingerprint == second.master_fingerprint
    assert first.xpub_vanilla == second.xpub_vanilla
    assert first.xpub_colored == second.xpub_colored
    assert first.xpub_vanilla != first.xpub_colored


def test_network_selects_account_paths():
    assert account_paths("mainnet") == ("m/84h/0h/0h", "m/86h/0h/0h")
    assert account_paths("main") == ("m/84h/0h/0h", "m/86h/0h/0h")
    for network in ("testnet", "signet", "regtest"):
        assert account_paths(network) == ("m/84h/1h/0h", "m/86h/1h/0h")

    mainnet = MemoryWalletSigner(TEST_MNEMONIC, "mainnet")
    regtest = MemoryWalletSigner(TEST_MNEMONIC, "regtest")
    assert mainnet.master_fingerprint == regtest.master_fingerprint
    assert mainnet.xpub_vanilla != regtest.xpub_vanilla


@pytest.mark.parametrize(
    "mnemonic",
    ["", "not a real mnemonic", " ".join(["abandon"] * 12)],
)
def test_invalid_mnemonic_rejected(mnemonic):
    with pytest.raises(InvalidMnemonicError):
        MemoryWalletSigner(mnemonic, "regtest")


def test_brute_force_signs_and_finalizes_unhinted_input():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest", scan_depth=10)

    result = signer.sign(_p2wpkh_psbt("m/84h/1h/0h/0/3"))

    assert result.signatures >= 1
    assert result.finalized
    signed = PSBT.from_string(result.psbt)
    assert signed.inputs[0].final_scriptwitness is not None


def test_brute_force_finds_change_branch_key():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest", scan_depth=5)

    result = signer.sign(_p2wpkh_psbt("m/84h/1h/0h/1/2"))

    assert result.finalized


def test_key_beyond_scan_depth_leaves_psbt_unsigned():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest", scan_depth=2)
    original = _p2wpkh_psbt("m/84h/1h/0h/0/7")

    result = signer.sign(original)

    assert result.signatures == 0
    assert not result.finalized


def test_hinted_path_is_signed_directly():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest", scan_depth=1)

    result = signer.sign(_p2wpkh_psbt("m/84h/1h/0h/0/42", with_hint=True))

    assert result.signatures == 1
    assert result.finalized


def test_foreign_hint_is_not_signed():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest", scan_depth=50)

    result = signer.sign(_p2wpkh_psbt("m/84h/1h/0h/0/1", with_hint=True, hint_fingerprint=b"\x00\x00\x00\x00"))

    assert result.signatures == 0
    assert not result.finalized


@pytest.mark.parametrize("path", ["m/86h/1h/0h/0/4", "m/86h/1h/0h/1/2"])
def test_brute_force_signs_colored_taproot_input(path):
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest", scan_depth=5)

    result = signer.sign(build_p2tr_psbt(path))

    assert result.signatures >= 1
    assert result.finalized
    witness = PSBT.from_string(result.psbt).inputs[0].final_scriptwitness
    assert len(witness.items) == 1
    assert len(witness.items[0]) == 64


def test_taproot_derivation_hint_is_signed_directly():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest", scan_depth=1)

    result = signer.sign(build_p2tr_psbt("m/86h/1h/0h/0/30", with_hint=True))

    assert result.signatures == 1
    assert result.finalized


def test_colored_key_beyond_scan_depth_is_left_unsigned():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest", scan_depth=3)

    result = signer.sign(build_p2tr_psbt("m/86h/1h/0h/0/9"))

    assert result.signatures == 0
    assert not result.finalized


def test_quoted_psbt_is_accepted():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest", scan_depth=5)

    result = signer.sign('"' + _p2wpkh_psbt("m/84h/1h/0h/0/0") + '"')

    assert result.finalized


def test_garbage_psbt_rejected():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest")
    with pytest.raises(InvalidPsbtError):
        signer.sign("definitely not base64 psbt")


def test_sign_after_close_fails_and_seed_is_zeroed():
    signer = MemoryWalletSigner(TEST_MNEMONIC, "regtest")
    seed = signer._seed

    signer.close()

    assert signer.is_disposed
    assert all(byte == 0 for byte in seed)
    with pytest.raises(SignerDisposedError):
        signer.sign(_p2wpkh_psbt("m/84h/1h/0h/0/0"))
    signer.close()
