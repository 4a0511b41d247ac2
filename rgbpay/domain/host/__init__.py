"""Host integration exports"""

from .models import (
    RECEIVED_PAYMENT,
    HostInvoice,
    InvoiceEvent,
    InvoiceNeedUpdateEvent,
    PaymentData,
    PaymentPrompt,
    PaymentRecord,
    PromptDetails,
)
from .protocols import EventBus, HostInvoiceStore, HostPaymentService, HostServices

__all__ = [
    "RECEIVED_PAYMENT",
    "EventBus",
    "HostInvoice",
    "HostInvoiceStore",
    "HostPaymentService",
    "HostServices",
    "InvoiceEvent",
    "InvoiceNeedUpdateEvent",
    "PaymentData",
    "PaymentPrompt",
    "PaymentRecord",
    "PromptDetails",
]
