"""create_image_cache_tables

Revision ID: 3b1f0c9a7d21
Revises:
Create Date: 2026-10-19 09:12:40.318201

"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "3b1f0c9a7d21"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the image cache index, settings and scheduled task tables."""
    op.create_table(
        "image_cache",
        sa.Column("filename", sa.String(length=32), nullable=False),
        sa.Column("log_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("num_fail", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("filename"),
    )
    op.create_index("ix_image_cache_log_time", "image_cache", ["log_time"])

    op.create_table(
        "settings",
        sa.Column("variable", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("variable"),
    )

    op.create_table(
        "scheduled_tasks",
        sa.Column("id_task", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("task", sa.String(length=64), nullable=False),
        sa.Column("next_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_offset", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_regularity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("time_unit", sa.String(length=1), nullable=False, server_default="d"),
        sa.Column("disabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id_task"),
        sa.UniqueConstraint("task"),
    )


def downgrade() -> None:
    """Drop all imagecache tables."""
    op.drop_table("scheduled_tasks")
    op.drop_table("settings")
    op.drop_index("ix_image_cache_log_time", table_name="image_cache")
    op.drop_table("image_cache")
