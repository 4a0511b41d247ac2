"""Wire models for the RGB node HTTP API (snake_case JSON)."""

from __future__ import annotations

from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TransferStatus(IntEnum):
    WAITING_COUNTERPARTY = 0
    WAITING_CONFIRMATIONS = 1
    SETTLED = 2
    FAILED = 3


class TransferKind(IntEnum):
    ISSUANCE = 0
    RECEIVE_BLIND = 1
    RECEIVE_WITNESS = 2
    SEND = 3


INCOMING_KINDS = frozenset({TransferKind.RECEIVE_BLIND, TransferKind.RECEIVE_WITNESS})


class NodeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class WalletCredentials(NodeModel):
    """Public descriptor identifying a wallet to the node."""

    xpub_vanilla: str
    xpub_colored: str
    master_fingerprint: str
    network: str = ""

    def headers(self) -> dict[str, str]:
        return {
            "xpub-van": self.xpub_vanilla,
            "xpub-col": self.xpub_colored,
            "master-fingerprint": self.master_fingerprint,
        }


class BalanceInfo(NodeModel):
    settled: int = 0
    future: int = 0
    spendable: int = 0


class BtcBalance(NodeModel):
    vanilla: BalanceInfo = Field(default_factory=BalanceInfo)
    colored: BalanceInfo = Field(default_factory=BalanceInfo)


class RegisterResponse(NodeModel):
    address: str = ""
    btc_balance: Optional[BtcBalance] = None


class Outpoint(NodeModel):
    txid: str
    vout: int


class UtxoInfo(NodeModel):
    outpoint: Outpoint
    btc_amount: int = 0
    colorable: bool = False


class RgbAllocation(NodeModel):
    asset_id: str = ""
    amount: int = 0
    settled: bool = False


class UnspentOutput(NodeModel):
    utxo: UtxoInfo
    rgb_allocations: list[RgbAllocation] = Field(default_factory=list)


class RgbAsset(NodeModel):
    asset_id: str = ""
    ticker: str = ""
    name: str = ""
    precision: int = 0
    issued_supply: int = 0


class ListAssetsResponse(NodeModel):
    nia: list[RgbAsset] = Field(default_factory=list)
    cfa: list[RgbAsset] = Field(default_factory=list)


class AssetBalance(NodeModel):
    settled: int = 0
    future: int = 0
    spendable: int = 0


class InvoiceResponse(NodeModel):
    invoice: str = ""
    recipient_id: str = ""
    expiration_timestamp: Optional[int] = None
    batch_transfer_idx: Optional[int] = None


class InvoiceAssignment(NodeModel):
    amount: Optional[int] = None


class DecodedInvoice(NodeModel):
    recipient_id: str
    asset_id: Optional[str] = None
    assignment: Optional[InvoiceAssignment] = None
    expiration_timestamp: Optional[int] = None
    network: int = 0


class Transfer(NodeModel):
    idx: int
    created_at: int = 0
    updated_at: int = 0
    status: int
    amount: int = 0
    kind: int
    txid: Optional[str] = None
    recipient_id: Optional[str] = None
    receive_utxo: Optional[Outpoint] = None

    @property
    def is_settled_incoming(self) -> bool:
        return self.status == TransferStatus.SETTLED and self.kind in INCOMING_KINDS


class SendEndResponse(NodeModel):
    txid: str
    batch_transfer_idx: int


class SendBtcEndResponse(NodeModel):
    txid: Optional[str] = None


class GenerateKeysResponse(NodeModel):
    mnemonic: str = ""
    xpub: str = ""
    account_xpub_vanilla: str = ""
    account_xpub_colored: str = ""
    master_fingerprint: str = ""
