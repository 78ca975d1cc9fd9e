"""Progression tables: users, tasks, assignments.

Creates the three collections of the progression engine. Completion state
lives on assignments, unique per (user_id, task_id).

Revision ID: 001_progression_tables
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_progression_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

BigIntPK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    # --- Users ---
    op.create_table(
        "users",
        sa.Column("id", BigIntPK, primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("wallet_address", sa.String(128), nullable=True),
        sa.Column("referral_code", sa.String(32), nullable=False),
        sa.Column("invited_by", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("external_id", name="uq_users_external_id"),
        sa.UniqueConstraint("referral_code", name="uq_users_referral_code"),
        sa.CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
    )
    op.create_index("ix_users_invited_by", "users", ["invited_by"])
    op.create_index("ix_users_points", "users", ["points"])

    # --- Tasks ---
    op.create_table(
        "tasks",
        sa.Column("id", BigIntPK, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("points >= 0", name="ck_tasks_points_non_negative"),
    )

    # --- Assignments ---
    op.create_table(
        "assignments",
        sa.Column("id", BigIntPK, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.BigInteger(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("task_id", sa.BigInteger(), sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("awarded_points", sa.Integer(), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "task_id", name="uq_assignments_user_task"),
    )
    op.create_index("ix_assignments_user_id", "assignments", ["user_id"])
    op.create_index("ix_assignments_task_id", "assignments", ["task_id"])


def downgrade() -> None:
    op.drop_index("ix_assignments_task_id", table_name="assignments")
    op.drop_index("ix_assignments_user_id", table_name="assignments")
    op.drop_table("assignments")
    op.drop_index("ix_users_points", table_name="users")
    op.drop_index("ix_users_invited_by", table_name="users")
    op.drop_table("users")
    op.drop_table("tasks")
