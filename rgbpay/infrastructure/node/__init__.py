"""Remote RGB node client."""

from .client import RgbNodeClient
from .exceptions import RgbNodeError
from .models import (
    INCOMING_KINDS,
    RgbAsset,
    Transfer,
    TransferKind,
    TransferStatus,
    WalletCredentials,
)

__all__ = [
    "INCOMING_KINDS",
    "RgbAsset",
    "RgbNodeClient",
    "RgbNodeError",
    "Transfer",
    "TransferKind",
    "TransferStatus",
    "WalletCredentials",
]
