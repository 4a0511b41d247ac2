"""Wallet domain specific exceptions."""


class WalletError(Exception):
    """Base class for wallet domain errors."""


class WalletNotFoundError(WalletError):
    """Raised when the requested wallet cannot be found."""

    def __init__(self, wallet_id: str) -> None:
        super().__init__(f"wallet {wallet_id} not found")
        self.wallet_id = wallet_id


class NoLocalSignerError(WalletError):
    """Raised when an operation needs a signature and no signer is loaded for the wallet."""

    def __init__(self, wallet_id: str) -> None:
        super().__init__(f"No local signer available for wallet {wallet_id}. Keys may not be loaded.")
        self.wallet_id = wallet_id


class NoColorableUtxosError(WalletError):
    """Raised when a wallet has no colorable UTXOs and none could be created."""


class WalletKeyMismatchError(WalletError):
    """Raised when locally derived account keys differ from the node's descriptor."""

    def __init__(self, wallet_id: str) -> None:
        super().__init__(f"local signer keys for wallet {wallet_id} do not match the node's descriptor")
        self.wallet_id = wallet_id
