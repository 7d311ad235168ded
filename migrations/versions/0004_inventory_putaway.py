"""inventory ledger, balances and putaway tasks

Revision ID: 0004_inventory_putaway
Revises: 0003_receipt_line_location
Create Date: 2026-03-02 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0004_inventory_putaway"
down_revision = "0003_receipt_line_location"
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def upgrade() -> None:
    op.create_table(
        "inventory_ledger",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False, index=True),
        sa.Column("warehouse_id", GUID(), nullable=False),
        sa.Column("product_id", GUID(), nullable=False),
        sa.Column("location_id", GUID(), nullable=True),
        sa.Column("transaction_type", sa.String(length=30), nullable=False),
        sa.Column("qty_change", sa.Integer(), nullable=False),
        sa.Column("reference_type", sa.String(length=30), nullable=False),
        sa.Column("reference_id", GUID(), nullable=False, index=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", GUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_inventory_ledger_reference", "inventory_ledger", ["reference_type", "reference_id"])
    op.create_table(
        "inventory_balances",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False, index=True),
        sa.Column("warehouse_id", GUID(), nullable=False),
        sa.Column("location_id", GUID(), nullable=False),
        sa.Column("product_id", GUID(), nullable=False),
        sa.Column("qty_on_hand", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("qty_allocated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("warehouse_id", "location_id", "product_id", name="uq_inventory_balances_slot"),
    )
    op.create_table(
        "putaway_tasks",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False, index=True),
        sa.Column("warehouse_id", GUID(), nullable=False, index=True),
        sa.Column("receipt_id", GUID(), nullable=False, index=True),
        sa.Column("receipt_line_id", GUID(), nullable=False),
        sa.Column("product_id", GUID(), nullable=False),
        sa.Column("qty_expected", sa.Integer(), nullable=False),
        sa.Column("qty_processed", sa.Integer(), nullable=True),
        sa.Column("to_location_id", GUID(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("processed_by", GUID(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("putaway_tasks")
    op.drop_table("inventory_balances")
    op.drop_index("ix_inventory_ledger_reference", table_name="inventory_ledger")
    op.drop_table("inventory_ledger")
