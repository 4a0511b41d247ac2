"""Process-wide map of wallet id to local signer."""

from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Iterable, Optional

from .signer import DEFAULT_SCAN_DEPTH, MemoryWalletSigner, SignResult

logger = logging.getLogger(__name__)


class SignerNotRegisteredError(LookupError):
    def __init__(self, wallet_id: str) -> None:
        super().__init__(f"no local signer registered for wallet {wallet_id}")
        self.wallet_id = wallet_id


class SignerRegistry:
    """Concurrent wallet id -> signer map owning every signer it holds.

    Registration and lookup may overlap (wallet creation racing signing
    requests); a per-wallet async lock serialises signing for one wallet.
    """

    def __init__(self, *, scan_depth: int = DEFAULT_SCAN_DEPTH) -> None:
        self._signers: Dict[str, MemoryWalletSigner] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._mutex = threading.Lock()
        self._scan_depth = scan_depth

    def register(self, wallet_id: str, mnemonic: str, network: str) -> MemoryWalletSigner:
        signer = MemoryWalletSigner(mnemonic, network, scan_depth=self._scan_depth)
        with self._mutex:
            previous = self._signers.get(wallet_id)
            self._signers[wallet_id] = signer
        if previous is not None:
            previous.close()
        logger.debug("registered signer for wallet %s", wallet_id)
        return signer

    def get(self, wallet_id: str) -> Optional[MemoryWalletSigner]:
        with self._mutex:
            signer = self._signers.get(wallet_id)
        if signer is None or signer.is_disposed:
            return None
        return signer

    def can_handle(self, wallet_id: str) -> bool:
        return self.get(wallet_id) is not None

    def remove(self, wallet_id: str) -> None:
        with self._mutex:
            signer = self._signers.pop(wallet_id, None)
            self._locks.pop(wallet_id, None)
        if signer is not None:
            signer.close()

    def _lock_for(self, wallet_id: str) -> asyncio.Lock:
        with self._mutex:
            lock = self._locks.get(wallet_id)
            if lock is None:
                lock = self._locks[wallet_id] = asyncio.Lock()
            return lock

    @asynccontextmanager
    async def signing(self, wallet_id: str) -> AsyncIterator[MemoryWalletSigner]:
        """Hold the wallet's signing lock and yield its signer."""
        async with self._lock_for(wallet_id):
            signer = self.get(wallet_id)
            if signer is None:
                raise SignerNotRegisteredError(wallet_id)
            yield signer

    async def sign(self, wallet_id: str, psbt: str) -> SignResult:
        async with self.signing(wallet_id) as signer:
            return await asyncio.to_thread(signer.sign, psbt)

    def load(
        self,
        wallets: Iterable[tuple[str, str, str]],
        unprotect: Callable[[str], str],
    ) -> int:
        """Register signers for stored wallets given (wallet_id, encrypted_mnemonic, network).

        Returns the number of signers loaded; a wallet that fails to load is
        logged and skipped.
        """
        loaded = 0
        for wallet_id, encrypted_mnemonic, network in wallets:
            if not encrypted_mnemonic:
                logger.warning("wallet %s has no stored mnemonic; signing disabled", wallet_id)
                continue
            try:
                self.register(wallet_id, unprotect(encrypted_mnemonic), network)
                loaded += 1
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("failed to load signer for wallet %s: %s", wallet_id, exc)
        return loaded

    def close(self) -> None:
        with self._mutex:
            signers = list(self._signers.values())
            self._signers.clear()
            self._locks.clear()
        for signer in signers:
            signer.close()
        logger.debug("signer registry closed (%d signers disposed)", len(signers))

    def __len__(self) -> int:
        with self._mutex:
            return len(self._signers)
