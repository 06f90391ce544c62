"""
Voice Memo Backend — Credential Record SQLAlchemy Model
=========================================================

What:  ORM model for the `helper_app` table: one row per user holding that
       user's third-party API keys (encrypted) and the helper toggle.
Who:   Used exclusively by CredentialService.

Invariants:
    - gemini_key / elevenlabs_key hold ciphertext tokens produced by
      CredentialCipher (base64 of nonce || ciphertext || tag), or NULL.
      Plaintext keys are never written to this table.
    - At most one row per user is read: queries take the first match.
      The row is created lazily on the first key save or helper toggle.
    - action records the tag of the last write; timestamp its time.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid, false, text
from sqlalchemy.orm import Mapped, mapped_column

from voicememo.database import Base


class CredentialRecord(Base):
    """Per-user encrypted provider keys and helper status."""

    __tablename__ = "helper_app"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    gemini_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    elevenlabs_key: Mapped[str | None] = mapped_column(Text, nullable=True)

    action: Mapped[str] = mapped_column(String(64), nullable=False)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    helper_status: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    def __repr__(self) -> str:
        return (
            f"<CredentialRecord(user_id={self.user_id}, action='{self.action}', "
            f"helper_status={self.helper_status})>"
        )
