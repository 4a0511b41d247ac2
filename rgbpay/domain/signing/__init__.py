"""Local signing exports"""

from .exceptions import InvalidMnemonicError, InvalidPsbtError, SignerDisposedError, SignerError
from .registry import SignerNotRegisteredError, SignerRegistry
from .signer import MemoryWalletSigner, SignResult, account_paths

__all__ = [
    "InvalidMnemonicError",
    "InvalidPsbtError",
    "MemoryWalletSigner",
    "SignResult",
    "SignerDisposedError",
    "SignerError",
    "SignerNotRegisteredError",
    "SignerRegistry",
    "account_paths",
]
