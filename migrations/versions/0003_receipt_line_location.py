"""receipt line storage location

Revision ID: 0003_receipt_line_location
Revises: 0002_inbound_receiving
Create Date: 2026-02-23 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0003_receipt_line_location"
down_revision = "0002_inbound_receiving"
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
    with op.batch_alter_table("inbound_receipt_lines") as batch_op:
        batch_op.add_column(sa.Column("location_id", GUID(), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("inbound_receipt_lines") as batch_op:
        batch_op.drop_column("location_id")
