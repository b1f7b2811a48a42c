"""create metrics table

Revision ID: 20260207_0001
Revises:
Create Date: 2026-02-07 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20260207_0001"
down_revision = None
branch_labels = ("resource-metrics",)
depends_on = None


def upgrade() -> None:
    op.create_table(
        "metrics",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("resource", sa.Text(), nullable=False),
        sa.Column("resource_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("resource", "resource_id", "key", name="unique_resource_metric"),
    )
    op.create_index(
        "idx_metrics_resource",
        "metrics",
        ["resource", "resource_id", "key"],
        unique=False,
    )
    op.create_index("idx_metrics_key", "metrics", ["key", "created_at"], unique=False)
    op.create_index("idx_metrics_resource_id", "metrics", ["resource_id"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_metrics_resource_id", table_name="metrics")
    op.drop_index("idx_metrics_key", table_name="metrics")
    op.drop_index("idx_metrics_resource", table_name="metrics")
    op.drop_table("metrics")
