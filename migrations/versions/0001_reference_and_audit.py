"""reference data and audit trail

Revision ID: 0001_reference_and_audit
Revises:
Create Date: 2026-02-02 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_reference_and_audit"
down_revision = None
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
        "organizations",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "warehouses",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "clients",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "products",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("barcode", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_products_org_sku", "products", ["org_id", "sku"], unique=True)
    op.create_table(
        "locations",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("warehouse_id", GUID(), sa.ForeignKey("warehouses.id"), nullable=False, index=True),
        sa.Column("code", sa.String(length=100), nullable=False),
        sa.Column("zone", sa.String(length=50), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_locations_warehouse_code", "locations", ["warehouse_id", "code"], unique=True)
    op.create_table(
        "audit_events",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("org_id", GUID(), nullable=True, index=True),
        sa.Column("user_id", GUID(), nullable=True, index=True),
        sa.Column("trace_id", sa.String(length=100), nullable=True),
        sa.Column("actor", sa.String(length=150), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("resource_type", sa.String(length=50), nullable=False),
        sa.Column("resource_id", sa.String(length=100), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("result", sa.String(length=20), nullable=False, server_default="success"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_index("ix_locations_warehouse_code", table_name="locations")
    op.drop_table("locations")
    op.drop_index("ix_products_org_sku", table_name="products")
    op.drop_table("products")
    op.drop_table("clients")
    op.drop_table("warehouses")
    op.drop_table("organizations")
