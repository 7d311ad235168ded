"""one receipt line per plan line

Revision ID: 0005_receipt_line_plan_line_unique
Revises: 0004_inventory_putaway
Create Date: 2026-03-09 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0005_receipt_line_plan_line_unique"
down_revision = "0004_inventory_putaway"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Keep the most recently written duplicate.
    op.execute(
        sa.text(
            """
            DELETE FROM inbound_receipt_lines
            WHERE plan_line_id IS NOT NULL
              AND EXISTS (
                SELECT 1 FROM inbound_receipt_lines newer
                WHERE newer.receipt_id = inbound_receipt_lines.receipt_id
                  AND newer.plan_line_id = inbound_receipt_lines.plan_line_id
                  AND (
                    newer.updated_at > inbound_receipt_lines.updated_at
                    OR (newer.updated_at = inbound_receipt_lines.updated_at AND newer.id > inbound_receipt_lines.id)
                  )
              )
            """
        )
    )
    op.drop_index("ix_inbound_receipt_lines_receipt_plan_line", table_name="inbound_receipt_lines")
    op.create_index(
        "uq_inbound_receipt_lines_receipt_plan_line",
        "inbound_receipt_lines",
        ["receipt_id", "plan_line_id"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("uq_inbound_receipt_lines_receipt_plan_line", table_name="inbound_receipt_lines")
    op.create_index(
        "ix_inbound_receipt_lines_receipt_plan_line",
        "inbound_receipt_lines",
        ["receipt_id", "plan_line_id"],
    )
