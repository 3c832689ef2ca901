"""Royalty earnings table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 00:00:01.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create royalty_earnings with its lookup indexes."""

    op.create_table(
        "royalty_earnings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("wallet_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("asset_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("portfolio_item_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("shares", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 4), nullable=False),
        sa.Column("royalty_rate", sa.Numeric(7, 6), nullable=False, server_default=sa.text("1")),
        sa.Column("period", sa.String(20), nullable=False),
        sa.Column("royalty_type", sa.String(20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("reference", sa.String(32), nullable=False),
        sa.Column("processed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
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
        sa.PrimaryKeyConstraint("id", name="pk_royalty_earnings"),
        sa.ForeignKeyConstraint(["wallet_id"], ["wallets.id"], name="fk_royalty_earnings_wallet_id"),
        sa.ForeignKeyConstraint(["asset_id"], ["assets.id"], name="fk_royalty_earnings_asset_id"),
        sa.ForeignKeyConstraint(
            ["portfolio_item_id"], ["portfolio_items.id"], name="fk_royalty_earnings_portfolio_item_id"
        ),
        sa.UniqueConstraint("reference", name="uq_royalty_earnings_reference"),
        sa.CheckConstraint("amount > 0", name="ck_royalty_earnings_amount_positive"),
        sa.CheckConstraint("shares > 0", name="ck_royalty_earnings_shares_positive"),
        sa.CheckConstraint(
            "royalty_rate > 0 AND royalty_rate <= 1",
            name="ck_royalty_earnings_royalty_rate_in_range",
        ),
    )
    op.create_index("ix_royalty_earnings_user_id", "royalty_earnings", ["user_id"])
    op.create_index("ix_royalty_earnings_asset_period", "royalty_earnings", ["asset_id", "period"])
    op.create_index("ix_royalty_earnings_status", "royalty_earnings", ["status"])


def downgrade() -> None:
    op.drop_index("ix_royalty_earnings_status", table_name="royalty_earnings")
    op.drop_index("ix_royalty_earnings_asset_period", table_name="royalty_earnings")
    op.drop_index("ix_royalty_earnings_user_id", table_name="royalty_earnings")
    op.drop_table("royalty_earnings")
