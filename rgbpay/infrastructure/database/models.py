"""SQLAlchemy ORM models."""
import uuid
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from rgbpay.infrastructure.database.base import Base


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_uuid() -> str:
    return str(uuid.uuid4())


class RGBWallet(Base):
    __tablename__ = "rgb_wallets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    store_id = Column(String(50), nullable=False, index=True)
    name = Column(String(100), nullable=False, default="RGB Wallet")
    xpub_vanilla = Column(String(255), nullable=False)
    xpub_colored = Column(String(255), nullable=False)
    master_fingerprint = Column(String(16), nullable=False)
    encrypted_mnemonic = Column(Text, nullable=False, default="")
    network = Column(String(20), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    last_sync_at = Column(DateTime(timezone=True))

    invoices = relationship("RGBInvoice", back_populates="wallet", cascade="all, delete-orphan", passive_deletes=True)
    assets = relationship("RGBAsset", back_populates="wallet", cascade="all, delete-orphan", passive_deletes=True)


class RGBInvoice(Base):
    __tablename__ = "rgb_invoices"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    wallet_id = Column(String(36), ForeignKey("rgb_wallets.id", ondelete="CASCADE"), nullable=False, index=True)
    external_invoice_id = Column(String(50), index=True)
    invoice = Column(Text, nullable=False)
    recipient_id = Column(String(255), nullable=False, index=True)
    asset_id = Column(String(255))
    amount = Column(BigInteger)
    received_amount = Column(BigInteger)
    expiration_timestamp = Column(BigInteger)
    batch_transfer_idx = Column(Integer)
    status = Column(String(30), nullable=False, default="pending", index=True)
    is_blind = Column(Boolean, nullable=False, default=True)
    txid = Column(String(64))
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    settled_at = Column(DateTime(timezone=True))

    wallet = relationship("RGBWallet", back_populates="invoices")


class RGBAsset(Base):
    __tablename__ = "rgb_assets"

    asset_id = Column(String(255), primary_key=True)
    wallet_id = Column(String(36), ForeignKey("rgb_wallets.id", ondelete="CASCADE"), nullable=False, index=True)
    ticker = Column(String(20), nullable=False, default="")
    name = Column(String(255), nullable=False, default="")
    precision = Column(Integer, nullable=False, default=0)
    issued_supply = Column(BigInteger, nullable=False, default=0)
    accept_for_payment = Column(Boolean, nullable=False, default=True)
    display_name = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())

    wallet = relationship("RGBWallet", back_populates="assets")
