"""add plan snapshots

Revision ID: 0002_add_plan_snapshots
Revises: 0001_initial_schema
Create Date: 2026-10-08 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0002_add_plan_snapshots"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "plan_snapshots",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "project_id",
            sa.Integer,
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("label", sa.String(length=160), nullable=False),
        sa.Column("snapshot_json", postgresql.JSONB, nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("project_id", "version", name="uq_plan_snapshots_project_version"),
    )
    op.create_index("ix_plan_snapshots_project_id", "plan_snapshots", ["project_id"])


def downgrade() -> None:
    op.drop_table("plan_snapshots")
