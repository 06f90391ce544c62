"""Create users, voice_memos and helper_app tables

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

What:  Initial schema. voice_memos and helper_app reference users with
       ON DELETE CASCADE, so removing an account removes its memos and keys.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="bcrypt hash; the password itself is never stored",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "voice_memos",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("audio_blob", sa.LargeBinary(), nullable=True),
        sa.Column("transcript", sa.Text(), nullable=True),
        sa.Column("translate", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column(
            "tags",
            sa.Text(),
            nullable=True,
            comment="JSON array of strings",
        ),
        sa.Column("duration", sa.String(50), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    # Listing is always one owner, newest first
    op.create_index(
        "idx_voice_memos_user_created",
        "voice_memos",
        ["user_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "helper_app",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column(
            "gemini_key",
            sa.Text(),
            nullable=True,
            comment="AES-256-GCM ciphertext token",
        ),
        sa.Column(
            "elevenlabs_key",
            sa.Text(),
            nullable=True,
            comment="AES-256-GCM ciphertext token",
        ),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column(
            "timestamp",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "helper_status",
            sa.Boolean(),
            server_default=sa.false(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_helper_app_user_id", "helper_app", ["user_id"])


def downgrade() -> None:
    """Drops every table. All accounts, memos and stored keys are lost."""
    op.drop_index("ix_helper_app_user_id", table_name="helper_app")
    op.drop_table("helper_app")
    op.drop_index("idx_voice_memos_user_created", table_name="voice_memos")
    op.drop_table("voice_memos")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
