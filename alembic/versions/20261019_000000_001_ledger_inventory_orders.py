"""Ledger, inventory and order tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    """Create wallets, assets, portfolio items, orders, transactions and network wallets."""

    op.create_table(
        "wallets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("available_balance", sa.Numeric(18, 4), nullable=False, server_default=sa.text("0.0000")),
        sa.Column("invested_balance", sa.Numeric(18, 4), nullable=False, server_default=sa.text("0.0000")),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'USD'")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_wallets"),
        sa.UniqueConstraint("user_id", name="uq_wallets_user_id"),
        sa.CheckConstraint("available_balance >= 0", name="ck_wallets_available_balance_non_negative"),
        sa.CheckConstraint("invested_balance >= 0", name="ck_wallets_invested_balance_non_negative"),
    )

    op.create_table(
        "assets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("asset_type", sa.String(20), nullable=False, server_default=sa.text("'single'")),
        sa.Column("artist", sa.String(255), nullable=True),
        sa.Column("price", sa.Numeric(18, 8), nullable=False),
        sa.Column("total_shares", sa.Integer(), nullable=False),
        sa.Column("available_shares", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_assets"),
        sa.CheckConstraint("total_shares > 0", name="ck_assets_total_shares_positive"),
        sa.CheckConstraint(
            "available_shares >= 0 AND available_shares <= total_shares",
            name="ck_assets_available_shares_in_range",
        ),
        sa.CheckConstraint("price > 0", name="ck_assets_price_positive"),
    )

    op.create_table(
        "portfolio_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("asset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("purchase_price", sa.Numeric(18, 8), nullable=False),
        sa.Column("cost_basis", sa.Numeric(18, 4), nullable=False, server_default=sa.text("0.0000")),
        sa.Column("current_price", sa.Numeric(18, 8), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_portfolio_items"),
        sa.ForeignKeyConstraint(["asset_id"], ["assets.id"], name="fk_portfolio_items_asset_id"),
        sa.UniqueConstraint("user_id", "asset_id", name="uq_portfolio_items_user_asset"),
        sa.CheckConstraint("quantity >= 0", name="ck_portfolio_items_quantity_non_negative"),
    )
    op.create_index("ix_portfolio_items_user_id", "portfolio_items", ["user_id"])

    op.create_table(
        "orders",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("asset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("portfolio_item_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("order_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(18, 8), nullable=False),
        sa.Column("total", sa.Numeric(18, 4), nullable=False),
        sa.Column("cost_basis", sa.Numeric(18, 4), nullable=True),
        sa.Column("realized_gain", sa.Numeric(18, 4), nullable=True),
        sa.Column("reference", sa.String(32), nullable=False),
        sa.Column("processed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_orders"),
        sa.ForeignKeyConstraint(["asset_id"], ["assets.id"], name="fk_orders_asset_id"),
        sa.ForeignKeyConstraint(
            ["portfolio_item_id"], ["portfolio_items.id"], name="fk_orders_portfolio_item_id"
        ),
        sa.UniqueConstraint("reference", name="uq_orders_reference"),
        sa.CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
    )
    op.create_index("ix_orders_user_id", "orders", ["user_id"])
    op.create_index("ix_orders_portfolio_item_status", "orders", ["portfolio_item_id", "status"])
    op.create_index("ix_orders_status_type", "orders", ["status", "order_type"])

    op.create_table(
        "transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("wallet_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("amount", sa.Numeric(18, 4), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("method", sa.String(20), nullable=False),
        sa.Column("network", sa.String(50), nullable=True),
        sa.Column("proof_url", sa.String(1024), nullable=True),
        sa.Column("withdrawal_details", sa.JSON(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("reference", sa.String(32), nullable=False),
        sa.Column("processed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_transactions"),
        sa.ForeignKeyConstraint(["wallet_id"], ["wallets.id"], name="fk_transactions_wallet_id"),
        sa.UniqueConstraint("reference", name="uq_transactions_reference"),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("ix_transactions_wallet_id", "transactions", ["wallet_id"])
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_status_kind", "transactions", ["status", "kind"])

    op.create_table(
        "network_wallets",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("network", sa.String(50), nullable=False),
        sa.Column("wallet_address", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_network_wallets"),
        sa.UniqueConstraint("network", name="uq_network_wallets_network"),
    )


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table("network_wallets")
    op.drop_index("ix_transactions_status_kind", table_name="transactions")
    op.drop_index("ix_transactions_user_id", table_name="transactions")
    op.drop_index("ix_transactions_wallet_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_orders_status_type", table_name="orders")
    op.drop_index("ix_orders_portfolio_item_status", table_name="orders")
    op.drop_index("ix_orders_user_id", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_portfolio_items_user_id", table_name="portfolio_items")
    op.drop_table("portfolio_items")
    op.drop_table("assets")
    op.drop_table("wallets")
