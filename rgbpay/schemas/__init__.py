"""Pydantic schemas used by the HTTP interface."""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from rgbpay.domain.invoices.models import InvoiceStatus
from rgbpay.infrastructure.node.models import AssetBalance, BtcBalance, RgbAsset, Transfer


class WalletCreate(BaseModel):
    store_id: str = Field(..., min_length=1, max_length=50)
    name: Optional[str] = Field(None, max_length=100)


class WalletResponse(BaseModel):
    id: str
    store_id: str
    name: str
    xpub_vanilla: str
    xpub_colored: str
    master_fingerprint: str
    network: str
    is_active: bool
    created_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None
    has_signer: bool = False

    model_config = ConfigDict(from_attributes=True)


class WalletBalanceResponse(BaseModel):
    wallet_id: str
    btc: BtcBalance
    colorable_utxos: int
    asset: Optional[AssetBalance] = None


class AssetListResponse(BaseModel):
    wallet_id: str
    assets: list[RgbAsset] = Field(default_factory=list)


class UtxoCreateRequest(BaseModel):
    count: int = Field(5, ge=1, le=50)
    size: int = Field(10000, ge=1000)


class UtxoCreateResponse(BaseModel):
    wallet_id: str
    created: int


class InvoiceCreate(BaseModel):
    asset_id: Optional[str] = None
    amount: Optional[int] = Field(None, ge=0)
    expiration_seconds: Optional[int] = Field(None, gt=0)
    external_invoice_id: Optional[str] = None
    witness: bool = False


class InvoiceResponse(BaseModel):
    id: str
    wallet_id: str
    external_invoice_id: Optional[str] = None
    invoice: str
    recipient_id: str
    asset_id: Optional[str] = None
    amount: Optional[int] = None
    received_amount: Optional[int] = None
    expiration_timestamp: Optional[int] = None
    batch_transfer_idx: Optional[int] = None
    status: InvoiceStatus
    is_blind: bool
    txid: Optional[str] = None
    created_at: Optional[datetime] = None
    settled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TransferListResponse(BaseModel):
    wallet_id: str
    asset_id: Optional[str] = None
    transfers: list[Transfer] = Field(default_factory=list)


class SendRequest(BaseModel):
    kind: Literal["asset", "btc"] = "asset"
    invoice: Optional[str] = None
    asset_id: Optional[str] = None
    address: Optional[str] = None
    amount: int = Field(..., gt=0)
    fee_rate: Optional[int] = Field(None, ge=1)


class SendResponse(BaseModel):
    wallet_id: str
    txid: str
    batch_transfer_idx: Optional[int] = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: str = "ok"
