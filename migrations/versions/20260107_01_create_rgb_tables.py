"""create rgb wallet, invoice and asset tables

Revision ID: 5c1e0b7a9d21
Revises: 
Create Date: 2026-01-07 19:23:53.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5c1e0b7a9d21"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "rgb_wallets",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("store_id", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("xpub_vanilla", sa.String(length=255), nullable=False),
        sa.Column("xpub_colored", sa.String(length=255), nullable=False),
        sa.Column("master_fingerprint", sa.String(length=16), nullable=False),
        sa.Column("encrypted_mnemonic", sa.Text(), nullable=False, server_default=""),
        sa.Column("network", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("last_sync_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_rgb_wallets_store_id", "rgb_wallets", ["store_id"])

    op.create_table(
        "rgb_invoices",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "wallet_id",
            sa.String(length=36),
            sa.ForeignKey("rgb_wallets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("external_invoice_id", sa.String(length=50)),
        sa.Column("invoice", sa.Text(), nullable=False),
        sa.Column("recipient_id", sa.String(length=255), nullable=False),
        sa.Column("asset_id", sa.String(length=255)),
        sa.Column("amount", sa.BigInteger()),
        sa.Column("received_amount", sa.BigInteger()),
        sa.Column("expiration_timestamp", sa.BigInteger()),
        sa.Column("batch_transfer_idx", sa.Integer()),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("is_blind", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("txid", sa.String(length=64)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("settled_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_rgb_invoices_wallet_id", "rgb_invoices", ["wallet_id"])
    op.create_index("ix_rgb_invoices_external_invoice_id", "rgb_invoices", ["external_invoice_id"])
    op.create_index("ix_rgb_invoices_recipient_id", "rgb_invoices", ["recipient_id"])
    op.create_index("ix_rgb_invoices_status", "rgb_invoices", ["status"])

    op.create_table(
        "rgb_assets",
        sa.Column("asset_id", sa.String(length=255), primary_key=True),
        sa.Column(
            "wallet_id",
            sa.String(length=36),
            sa.ForeignKey("rgb_wallets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("ticker", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("precision", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("issued_supply", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("accept_for_payment", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_name", sa.String(length=255)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_rgb_assets_wallet_id", "rgb_assets", ["wallet_id"])


def downgrade() -> None:
    op.drop_index("ix_rgb_assets_wallet_id", table_name="rgb_assets")
    op.drop_table("rgb_assets")

    op.drop_index("ix_rgb_invoices_status", table_name="rgb_invoices")
    op.drop_index("ix_rgb_invoices_recipient_id", table_name="rgb_invoices")
    op.drop_index("ix_rgb_invoices_external_invoice_id", table_name="rgb_invoices")
    op.drop_index("ix_rgb_invoices_wallet_id", table_name="rgb_invoices")
    op.drop_table("rgb_invoices")

    op.drop_index("ix_rgb_wallets_store_id", table_name="rgb_wallets")
    op.drop_table("rgb_wallets")
