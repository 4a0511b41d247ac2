"""Utilities for protecting wallet mnemonics at rest."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken


class MnemonicProtectionError(Exception):
    """Raised when a stored mnemonic cannot be decrypted."""


class MnemonicProtector:
    """Symmetric encryption of seed phrases keyed by a configured secret."""

    def __init__(self, secret: str) -> None:
        key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
        self._fernet = Fernet(key)

    def protect(self, mnemonic: str) -> str:
        return self._fernet.encrypt(mnemonic.encode("utf-8")).decode("ascii")

    def unprotect(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError) as exc:
            raise MnemonicProtectionError("stored mnemonic could not be decrypted") from exc


__all__ = ["MnemonicProtectionError", "MnemonicProtector"]
