"""
Voice Memo Backend — Memo SQLAlchemy Model
============================================

What:  ORM model representing the `voice_memos` table.
Who:   Used exclusively by MemoService; every query it issues filters on
       user_id, so a row is only ever visible to its owner.

Column notes:
    - transcript / translate / summary: NULL when absent; empty-after-trim
      input is stored as NULL, never as ''
    - tags: JSON-encoded list of strings stored as TEXT. '[]' (empty list)
      and NULL (no tags) are distinct values.
    - audio_blob: raw audio bytes, optional
    - duration: free-form display string supplied by the client ("00:05")

Index on (user_id, created_at DESC):
    Serves the listing query, which is always scoped to one owner and
    returned newest first.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    LargeBinary,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from voicememo.database import Base


class Memo(Base):
    """
    A recorded voice memo and its derived text.

    Lifecycle:
        1. Created by save without id (or with an id that does not resolve)
        2. Overwritten by save with an owned id, or patched by update
        3. Deleted individually, by delete-all, or by cascade from users
    """

    __tablename__ = "voice_memos"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    audio_blob: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    translate: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    # JSON array serialized as text; see MemoService for (de)serialization
    tags: Mapped[str | None] = mapped_column(Text, nullable=True)

    duration: Mapped[str] = mapped_column(String(50), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<Memo(id={self.id}, user_id={self.user_id}, title='{self.title}')>"


# Listing query: one owner, newest first
Index("idx_voice_memos_user_created", Memo.user_id, Memo.created_at.desc())
