"""Value types exchanged with the host's invoice and payment bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

RECEIVED_PAYMENT = "invoice_receivedPayment"


class PromptDetails(BaseModel):
    """RGB-specific details stored on a host invoice's payment prompt."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    wallet_id: str = Field(alias="walletId")
    rgb_invoice_id: str = Field(default="", alias="rgbInvoiceId")
    recipient_id: str = Field(default="", alias="recipientId")
    asset_id: Optional[str] = Field(default=None, alias="assetId")
    asset_ticker: Optional[str] = Field(default=None, alias="assetTicker")
    asset_name: Optional[str] = Field(default=None, alias="assetName")
    asset_precision: int = Field(default=0, alias="assetPrecision")
    amount_in_asset_units: int = Field(default=0, alias="amountInAssetUnits")


class PaymentData(BaseModel):
    """RGB-specific facts attached to a recorded payment."""

    model_config = ConfigDict(populate_by_name=True)

    recipient_id: str = Field(alias="recipientId")
    txid: Optional[str] = None
    asset_id: Optional[str] = Field(default=None, alias="assetId")
    amount: int = 0
    transfer_idx: int = Field(alias="transferIdx")


@dataclass(slots=True)
class PaymentRecord:
    id: str
    invoice_id: str
    payment_method_id: str
    amount: Decimal
    currency: str
    status: str
    created_at: datetime
    details: Optional[PaymentData] = None


@dataclass(slots=True)
class PaymentPrompt:
    payment_method_id: str
    due: Decimal
    details: Optional[dict[str, Any]] = None


@dataclass(slots=True)
class HostInvoice:
    id: str
    expiration_time: datetime
    status: str = "new"
    prompts: dict[str, PaymentPrompt] = field(default_factory=dict)
    payments: list[PaymentRecord] = field(default_factory=list)

    def get_prompt(self, payment_method_id: str) -> PaymentPrompt | None:
        return self.prompts.get(payment_method_id)

    def has_payment(self, payment_id: str, payment_method_id: str) -> bool:
        return any(
            payment.id == payment_id and payment.payment_method_id == payment_method_id
            for payment in self.payments
        )


@dataclass(slots=True, frozen=True)
class InvoiceEvent:
    """Something about a host invoice may have changed."""

    invoice_id: str
    name: str = "invoice_updated"
    payment: Optional[PaymentRecord] = None


@dataclass(slots=True, frozen=True)
class InvoiceNeedUpdateEvent:
    invoice_id: str
