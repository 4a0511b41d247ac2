"""Wallet domain exports"""

from .credentials import CredentialResolver, credentials_for
from .exceptions import (
    NoColorableUtxosError,
    NoLocalSignerError,
    WalletError,
    WalletKeyMismatchError,
    WalletNotFoundError,
)
from .models import Wallet
from .service import WalletService

__all__ = [
    "CredentialResolver",
    "NoColorableUtxosError",
    "NoLocalSignerError",
    "Wallet",
    "WalletError",
    "WalletKeyMismatchError",
    "WalletNotFoundError",
    "WalletService",
    "credentials_for",
]
