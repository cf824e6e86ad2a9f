"""Ledger schema baseline

Revision ID: 20261018_01
Revises: None
Create Date: 2026-10-18
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_QUANTITY = sa.Numeric(20, 6)


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "ledger_contract",
        sa.Column("contract_id", sa.String(36), primary_key=True),
        sa.Column("contract_no", sa.String(64), nullable=False),
        sa.Column("direction", sa.String(16), nullable=False),
        sa.Column("contract_date", sa.Date(), nullable=False),
        sa.Column("party_id", sa.Text(), nullable=False),
        sa.Column("item_id", sa.Text(), nullable=False),
        sa.Column("ex_plant_id", sa.Text(), nullable=True),
        sa.Column("broker_id", sa.Text(), nullable=True),
        sa.Column("quantity_packs", _QUANTITY, nullable=False),
        sa.Column("rate_per_10kg", _QUANTITY, nullable=False),
        sa.Column("loading_due_date", sa.Date(), nullable=True),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("contract_no", name="uq_ledger_contract_contract_no"),
        sa.CheckConstraint("direction in ('purchase', 'sell')", name="ck_ledger_contract_direction"),
        sa.CheckConstraint("quantity_packs > 0", name="ck_ledger_contract_quantity_positive"),
        sa.CheckConstraint("rate_per_10kg > 0", name="ck_ledger_contract_rate_positive"),
    )
    op.create_index("ix_ledger_contract_item_date", "ledger_contract", ["item_id", "contract_date"])
    op.create_index("ix_ledger_contract_party", "ledger_contract", ["party_id"])

    op.create_table(
        "ledger_delivery_event",
        sa.Column("delivery_event_id", sa.String(36), primary_key=True),
        sa.Column(
            "contract_id",
            sa.String(36),
            sa.ForeignKey("ledger_contract.contract_id", name="fk_ledger_delivery_event_contract"),
            nullable=False,
        ),
        sa.Column("delivery_date", sa.Date(), nullable=False),
        sa.Column("weight_kg", _QUANTITY, nullable=False),
        sa.Column("transport_note", sa.Text(), nullable=True),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("weight_kg > 0", name="ck_ledger_delivery_event_weight_positive"),
    )
    op.create_index("ix_ledger_delivery_event_contract", "ledger_delivery_event", ["contract_id"])

    op.create_table(
        "item_market_rate",
        sa.Column("item_id", sa.Text(), nullable=False),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column("rate_per_10kg", _QUANTITY, nullable=False),
        sa.UniqueConstraint("item_id", "effective_date", name="uq_item_market_rate_item_date"),
    )

    op.create_table(
        "stock_snapshot",
        sa.Column("stock_snapshot_id", sa.String(36), primary_key=True),
        sa.Column("scope", sa.String(16), nullable=False),
        sa.Column("item_id", sa.Text(), nullable=False),
        sa.Column("party_id", sa.Text(), nullable=True),
        sa.Column("total_purchase_packs", _QUANTITY, nullable=False),
        sa.Column("total_sell_packs", _QUANTITY, nullable=False),
        sa.Column("loaded_purchase_packs", _QUANTITY, nullable=False),
        sa.Column("loaded_sell_packs", _QUANTITY, nullable=False),
        sa.Column("pending_purchase_packs", _QUANTITY, nullable=False),
        sa.Column("pending_sell_packs", _QUANTITY, nullable=False),
        sa.Column("net_stock_packs", _QUANTITY, nullable=False),
        sa.Column("purchase_value", _QUANTITY, nullable=False),
        sa.Column("sell_value", _QUANTITY, nullable=False),
        sa.Column("loaded_purchase_value", _QUANTITY, nullable=False),
        sa.Column("loaded_sell_value", _QUANTITY, nullable=False),
        sa.Column("avg_purchase_rate", _QUANTITY, nullable=False),
        sa.Column("avg_sell_rate", _QUANTITY, nullable=False),
        sa.Column("contract_count", sa.Integer(), nullable=False),
        sa.CheckConstraint("scope in ('item', 'party')", name="ck_stock_snapshot_scope"),
    )
    op.create_index("ix_stock_snapshot_scope_item", "stock_snapshot", ["scope", "item_id"])

    op.create_table(
        "pnl_record",
        sa.Column("pnl_record_id", sa.String(36), primary_key=True),
        sa.Column("mode", sa.String(16), nullable=False),
        sa.Column("report_date", sa.Date(), nullable=True),
        sa.Column("item_id", sa.Text(), nullable=False),
        sa.Column("buy_total_value", _QUANTITY, nullable=False),
        sa.Column("sell_total_value", _QUANTITY, nullable=False),
        sa.Column("buy_quantity", _QUANTITY, nullable=False),
        sa.Column("sell_quantity", _QUANTITY, nullable=False),
        sa.Column("avg_buy_rate", _QUANTITY, nullable=False),
        sa.Column("avg_sell_rate", _QUANTITY, nullable=False),
        sa.Column("profit", _QUANTITY, nullable=False),
        sa.Column("contract_count", sa.Integer(), nullable=False),
        sa.Column("market_rate_per_10kg", _QUANTITY, nullable=True),
        sa.CheckConstraint("mode in ('settled', 'future')", name="ck_pnl_record_mode"),
        sa.CheckConstraint(
            "(mode = 'settled' AND report_date IS NOT NULL) OR (mode = 'future' AND report_date IS NULL)",
            name="ck_pnl_record_mode_report_date",
        ),
    )
    op.create_index("ix_pnl_record_mode_report_date", "pnl_record", ["mode", "report_date"])

    op.create_table(
        "recalculation_run",
        sa.Column("recalculation_run_id", sa.String(36), primary_key=True),
        sa.Column("job_name", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("started_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at_utc", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_ms", sa.BigInteger(), nullable=True),
        sa.Column("violation_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("error_code", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("diagnostics", sa.JSON(), nullable=True),
        sa.CheckConstraint("status in ('started', 'success', 'failed')", name="ck_recalculation_run_status"),
    )
    op.create_index("ix_recalculation_run_started_at_utc", "recalculation_run", ["started_at_utc"])
    op.create_index("ix_recalculation_run_status", "recalculation_run", ["status"])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_recalculation_run_status", table_name="recalculation_run")
    op.drop_index("ix_recalculation_run_started_at_utc", table_name="recalculation_run")
    op.drop_table("recalculation_run")

    op.drop_index("ix_pnl_record_mode_report_date", table_name="pnl_record")
    op.drop_table("pnl_record")

    op.drop_index("ix_stock_snapshot_scope_item", table_name="stock_snapshot")
    op.drop_table("stock_snapshot")

    op.drop_table("item_market_rate")

    op.drop_index("ix_ledger_delivery_event_contract", table_name="ledger_delivery_event")
    op.drop_table("ledger_delivery_event")

    op.drop_index("ix_ledger_contract_party", table_name="ledger_contract")
    op.drop_index("ix_ledger_contract_item_date", table_name="ledger_contract")
    op.drop_table("ledger_contract")
