from .asset_repository import SqlAssetRepository
from .invoice_repository import SqlInvoiceRepository
from .wallet_repository import SqlWalletRepository

__all__ = [
    "SqlAssetRepository",
    "SqlInvoiceRepository",
    "SqlWalletRepository",
]
