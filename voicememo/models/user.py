"""
Voice Memo Backend — User SQLAlchemy Model
============================================

What:  ORM model representing the `users` table.
Who:   Written by UserService at signup; read by the request pipeline to
       confirm a token's subject still exists.

Table Design:
    - UUID primary key generated in Python (portable across PostgreSQL/SQLite)
    - email is unique; uniqueness is also checked before insert
    - password_hash holds a bcrypt hash, never the password
    - Rows are immutable after signup. Deleting a user cascades to its memos
      and credential record through ON DELETE CASCADE foreign keys.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from voicememo.database import Base


class User(Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
