"""Signing domain specific exceptions."""


class SignerError(Exception):
    """Base class for local signer errors."""


class InvalidMnemonicError(SignerError):
    """Raised when a seed phrase fails BIP39 validation."""


class InvalidPsbtError(SignerError):
    """Raised when the payload handed to the signer is not a PSBT."""


class SignerDisposedError(SignerError):
    """Raised when a signer is used after its key material was released."""
