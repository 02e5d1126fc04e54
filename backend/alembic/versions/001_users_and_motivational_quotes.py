"""Add users (notification records) and motivational_quotes (static round-robin pool).

users: one row per app installation; written by the app's settings screen, read by the
daily motivation dispatcher (which only sets last_sent_at and clears push_token).
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("notifications_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("preferred_time", sa.String(5), nullable=True),
        sa.Column("last_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("push_token", sa.Text(), nullable=True),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_notifications_enabled", "users", ["notifications_enabled"], unique=False)

    op.create_table(
        "motivational_quotes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("author", sa.String(256), nullable=True),
        sa.Column("last_sent_date", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_motivational_quotes_last_sent_date", "motivational_quotes", ["last_sent_date"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_motivational_quotes_last_sent_date", table_name="motivational_quotes")
    op.drop_table("motivational_quotes")
    op.drop_index("ix_users_notifications_enabled", table_name="users")
    op.drop_table("users")
