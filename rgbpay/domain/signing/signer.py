"""In-memory PSBT signer for one wallet.

The signer keeps only the BIP39 seed, in a mutable buffer that is zeroed on
``close()``. The master key and the two account keys are re-derived for each
signing call and dropped when the call returns, whichever way it returns.

Account paths (fee-paying "vanilla" and asset-carrying "colored"):

    mainnet              m/84'/0'/0'   m/86'/0'/0'
    testnet/signet/reg   m/84'/1'/0'   m/86'/1'/0'
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

from bip_utils import Bip39MnemonicValidator, Bip39SeedGenerator
from embit import bip32
from embit.base import EmbitError
from embit.ec import PrivateKey
from embit.finalizer import finalize_psbt
from embit.networks import NETWORKS
from embit.psbt import PSBT, InputScope

from .exceptions import InvalidMnemonicError, InvalidPsbtError, SignerDisposedError

logger = logging.getLogger(__name__)

DEFAULT_SCAN_DEPTH = 100

_EMBIT_NETWORKS = {
    "mainnet": "main",
    "main": "main",
    "testnet": "test",
    "test": "test",
    "signet": "signet",
    "regtest": "regtest",
}

_ACCOUNT_PATHS = {
    "main": ("m/84h/0h/0h", "m/86h/0h/0h"),
    "test": ("m/84h/1h/0h", "m/86h/1h/0h"),
}

RECEIVE_BRANCH = 0
CHANGE_BRANCH = 1


def embit_network(network: str) -> str:
    return _EMBIT_NETWORKS.get(network.strip().lower(), "regtest")


def account_paths(network: str) -> Tuple[str, str]:
    """Return the (vanilla, colored) account derivation paths for ``network``."""
    return _ACCOUNT_PATHS["main" if embit_network(network) == "main" else "test"]


@dataclass(frozen=True, slots=True)
class SignResult:
    psbt: str
    finalized: bool
    signatures: int


def _has_signature(inp: InputScope) -> bool:
    return bool(
        inp.partial_sigs
        or inp.taproot_sigs
        or inp.final_scriptsig is not None
        or inp.final_scriptwitness is not None
    )


class MemoryWalletSigner:
    def __init__(self, mnemonic: str, network: str, *, scan_depth: int = DEFAULT_SCAN_DEPTH) -> None:
        phrase = " ".join(mnemonic.split())
        if not phrase or not Bip39MnemonicValidator().IsValid(phrase):
            raise InvalidMnemonicError("mnemonic failed BIP39 validation")

        self._seed = bytearray(Bip39SeedGenerator(phrase).Generate())
        self._network = embit_network(network)
        self._paths = account_paths(network)
        self._scan_depth = scan_depth
        self._disposed = False

        root = self._root()
        try:
            self.master_fingerprint: str = root.my_fingerprint.hex()
            self.xpub_vanilla: str = root.derive(self._paths[0]).to_public().to_base58()
            self.xpub_colored: str = root.derive(self._paths[1]).to_public().to_base58()
        finally:
            del root

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def network(self) -> str:
        return self._network

    def _root(self) -> bip32.HDKey:
        return bip32.HDKey.from_seed(bytes(self._seed), version=NETWORKS[self._network]["xprv"])

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise SignerDisposedError("signer has been disposed")

    def sign(self, psbt_b64: str) -> SignResult:
        """Sign every input this wallet can sign and try to finalise the PSBT.

        An input no key matches is left untouched; the PSBT then comes back
        partially signed with ``finalized=False``.
        """
        self._ensure_alive()
        try:
            psbt = PSBT.from_string(psbt_b64.strip().strip('"'))
        except (EmbitError, ValueError) as exc:
            raise InvalidPsbtError(str(exc)) from exc

        root = self._root()
        accounts = [root.derive(path) for path in self._paths]
        scan_keys: Dict[int, List[PrivateKey]] = {}
        fingerprint = root.my_fingerprint
        signatures = 0
        try:
            for index, inp in enumerate(psbt.inputs):
                # a key that matched an earlier input may already have signed this one
                if _has_signature(inp):
                    continue
                hinted = self._hinted_paths(inp, fingerprint)
                if hinted is not None:
                    for path in hinted:
                        signatures += self._sign_with(psbt, root.derive(path).key)
                else:
                    signatures += self._scan_input(psbt, index, accounts, scan_keys)

            finalized = self._try_finalize(psbt)
            return SignResult(psbt=psbt.to_string(), finalized=finalized, signatures=signatures)
        finally:
            scan_keys.clear()
            del root, accounts

    @staticmethod
    def _hinted_paths(inp: InputScope, fingerprint: bytes) -> List[List[int]] | None:
        """Derivation paths embedded in the input for this wallet, or None if the input has no hints."""
        derivations = list(inp.bip32_derivations.values())
        derivations.extend(der for _, der in inp.taproot_bip32_derivations.values())
        if not derivations:
            return None
        return [der.derivation for der in derivations if der.fingerprint == fingerprint]

    def _scan_input(
        self,
        psbt: PSBT,
        index: int,
        accounts: List[bip32.HDKey],
        cache: Dict[int, List[PrivateKey]],
    ) -> int:
        signatures = 0
        for child in range(self._scan_depth):
            keys = cache.get(child)
            if keys is None:
                keys = [
                    account.derive([branch, child]).key
                    for account in accounts
                    for branch in (RECEIVE_BRANCH, CHANGE_BRANCH)
                ]
                cache[child] = keys
            for key in keys:
                signatures += self._sign_with(psbt, key)
                if _has_signature(psbt.inputs[index]):
                    return signatures
        return signatures

    @staticmethod
    def _sign_with(psbt: PSBT, key: PrivateKey) -> int:
        """Sign every input ``key`` controls, as P2WPKH or BIP86 key-path."""
        try:
            return psbt.sign_with(key)
        except EmbitError as exc:
            logger.debug("psbt not signable with candidate key: %s", exc)
            return 0

    @staticmethod
    def _try_finalize(psbt: PSBT) -> bool:
        try:
            tx = finalize_psbt(psbt)
        except (EmbitError, ValueError) as exc:
            logger.debug("psbt not finalizable yet: %s", exc)
            return False
        if tx is None:
            return False
        for inp, vin in zip(psbt.inputs, tx.vin):
            if vin.witness is not None and vin.witness.items:
                inp.final_scriptwitness = vin.witness
            if vin.script_sig is not None and vin.script_sig.data:
                inp.final_scriptsig = vin.script_sig
        return True

    def close(self) -> None:
        if self._disposed:
            return
        for i in range(len(self._seed)):
            self._seed[i] = 0
        self._seed = bytearray()
        self._disposed = True
        logger.debug("signer %s disposed", self.master_fingerprint)

    def __enter__(self) -> "MemoryWalletSigner":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
