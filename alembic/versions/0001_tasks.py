"""tasks

Revision ID: 0001_tasks
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_tasks"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  op.create_table(
    "tasks",
    sa.Column("id", sa.String(length=36), primary_key=True),
    sa.Column("title", sa.String(length=200), nullable=False),
    sa.Column("status", sa.String(), nullable=False, server_default="todo"),
    sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("user_id", sa.String(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_tasks_user_id", "tasks", ["user_id"], unique=False)
  op.create_index("ix_tasks_user_status_position", "tasks", ["user_id", "status", "position"], unique=False)


def downgrade() -> None:
  op.drop_index("ix_tasks_user_status_position", table_name="tasks")
  op.drop_index("ix_tasks_user_id", table_name="tasks")
  op.drop_table("tasks")
