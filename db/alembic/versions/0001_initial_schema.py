"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("root_item_name", sa.String(length=120), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("plan_version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_projects_owner_id", "projects", ["owner_id"])

    op.create_table(
        "crafting_nodes",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "project_id",
            sa.Integer,
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "parent_id",
            sa.Integer,
            sa.ForeignKey("crafting_nodes.id", ondelete="CASCADE"),
        ),
        sa.Column("item_name", sa.String(length=120), nullable=False),
        sa.Column("display_name", sa.String(length=160), nullable=False),
        sa.Column("required_qty", sa.Integer, nullable=False),
        sa.Column("collected_qty", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_resource", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("depth", sa.Integer, nullable=False, server_default="0"),
        sa.Column("enchantments_json", postgresql.JSONB),
        sa.Column("variant", sa.String(length=80)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("required_qty > 0", name="ck_crafting_nodes_required_positive"),
        sa.CheckConstraint(
            "collected_qty >= 0 AND collected_qty <= required_qty",
            name="ck_crafting_nodes_collected_range",
        ),
    )
    op.create_index("ix_crafting_nodes_project_id", "crafting_nodes", ["project_id"])
    op.create_index("ix_crafting_nodes_parent_id", "crafting_nodes", ["parent_id"])

    op.create_table(
        "contributions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "project_id",
            sa.Integer,
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("node_id", sa.Integer, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_contributions_project_id", "contributions", ["project_id"])
    op.create_index("ix_contributions_node_id", "contributions", ["node_id"])
    op.create_index("ix_contributions_user_id", "contributions", ["user_id"])


def downgrade() -> None:
    op.drop_table("contributions")
    op.drop_table("crafting_nodes")
    op.drop_table("projects")
