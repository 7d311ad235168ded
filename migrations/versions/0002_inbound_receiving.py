"""inbound plans, receipts, photo evidence and event log

Revision ID: 0002_inbound_receiving
Revises: 0001_reference_and_audit
Create Date: 2026-02-09 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0002_inbound_receiving"
down_revision = "0001_reference_and_audit"
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
        "inbound_plans",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False, index=True),
        sa.Column("warehouse_id", GUID(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("client_id", GUID(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("plan_no", sa.String(length=32), nullable=False),
        sa.Column("planned_date", sa.Date(), nullable=False),
        sa.Column("inbound_manager", sa.String(length=150), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="ARRIVED"),
        sa.Column("created_by", GUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("org_id", "plan_no", name="uq_inbound_plans_org_plan_no"),
    )
    op.create_table(
        "inbound_plan_lines",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False),
        sa.Column(
            "plan_id",
            GUID(),
            sa.ForeignKey("inbound_plans.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("expected_qty", sa.Integer(), nullable=False),
        sa.Column("box_count", sa.Integer(), nullable=True),
        sa.Column("pallet_text", sa.String(length=100), nullable=True),
        sa.Column("mfg_date", sa.Date(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("line_notes", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("expected_qty >= 0", name="ck_inbound_plan_lines_expected_qty"),
    )
    op.create_table(
        "inbound_receipts",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False, index=True),
        sa.Column("warehouse_id", GUID(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("client_id", GUID(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column(
            "plan_id",
            GUID(),
            sa.ForeignKey("inbound_plans.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("receipt_no", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="ARRIVED", index=True),
        sa.Column("created_by", GUID(), nullable=True),
        sa.Column("confirmed_by", GUID(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("org_id", "receipt_no", name="uq_inbound_receipts_org_receipt_no"),
    )
    op.create_table(
        "inbound_photo_slots",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False),
        sa.Column(
            "receipt_id",
            GUID(),
            sa.ForeignKey("inbound_receipts.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("slot_key", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=150), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("min_photos", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("receipt_id", "slot_key", name="uq_inbound_photo_slots_receipt_key"),
    )
    op.create_table(
        "inbound_photos",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False),
        sa.Column(
            "receipt_id",
            GUID(),
            sa.ForeignKey("inbound_receipts.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "slot_id",
            GUID(),
            sa.ForeignKey("inbound_photo_slots.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("storage_bucket", sa.String(length=100), nullable=False),
        sa.Column("storage_path", sa.String(length=500), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("uploaded_by", GUID(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_table(
        "inbound_receipt_lines",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False),
        sa.Column(
            "receipt_id",
            GUID(),
            sa.ForeignKey("inbound_receipts.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("plan_line_id", GUID(), nullable=True, index=True),
        sa.Column("product_id", GUID(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("expected_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("accepted_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("damaged_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("missing_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("other_qty", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("inspected_by", GUID(), nullable=True),
        sa.Column("inspected_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "accepted_qty >= 0 AND damaged_qty >= 0 AND missing_qty >= 0 AND other_qty >= 0",
            name="ck_inbound_receipt_lines_buckets",
        ),
    )
    op.create_index(
        "ix_inbound_receipt_lines_receipt_plan_line",
        "inbound_receipt_lines",
        ["receipt_id", "plan_line_id"],
    )
    op.create_table(
        "inbound_events",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=False),
        sa.Column("receipt_id", GUID(), nullable=False, index=True),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("actor_id", GUID(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("inbound_events")
    op.drop_index("ix_inbound_receipt_lines_receipt_plan_line", table_name="inbound_receipt_lines")
    op.drop_table("inbound_receipt_lines")
    op.drop_table("inbound_photos")
    op.drop_table("inbound_photo_slots")
    op.drop_table("inbound_receipts")
    op.drop_table("inbound_plan_lines")
    op.drop_table("inbound_plans")
