"""
Voice Memo Backend — Credential Service (Encrypted API Key Store)
===================================================================

What:  Per-user storage of third-party API keys and the helper toggle.
How:   Plaintext keys are sealed with CredentialCipher before they touch the
       session; reads decrypt each key on its own. One helper_app row per user
       is read (first match), created lazily on the first write.
Who:   API key and helper routes; the request pipeline (get_gemini_key) before
       any generation call.

Failure policy:
    - Write: an EncryptionError aborts the save before any row is modified.
    - Read:  a key that fails to decrypt is returned as None; the response
             message names the key so callers can tell a partial read from a
             clean one.
    - Pipeline: get_gemini_key treats an undecryptable key as an error, since
             no generation call can be made without it.
"""

import logging
from datetime import datetime, timezone
from typing import Literal, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voicememo.exceptions import DatabaseError, DecryptionError, NotFoundError
from voicememo.models.credential import CredentialRecord
from voicememo.schemas.common import MessageResponse
from voicememo.schemas.credential import ApiKeyResponse, HelperStatusResponse
from voicememo.security.cipher import CredentialCipher

logger = logging.getLogger(__name__)

KeyName = Literal["gemini", "elevenlabs"]

ACTION_KEYS_SAVE = "api_keys_save"
ACTION_KEY_DELETE = "api_key_delete"
ACTION_HELPER_STATUS = "helper_status_update"

KEY_LABELS = {
    "gemini": "Gemini",
    "elevenlabs": "ElevenLabs",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialService:
    """
    Args:
        cipher: The process-wide CredentialCipher built from settings.
    """

    def __init__(self, cipher: CredentialCipher):
        self.cipher = cipher

    async def _load(self, db: AsyncSession, user_id: UUID) -> Optional[CredentialRecord]:
        try:
            result = await db.execute(
                select(CredentialRecord)
                .where(CredentialRecord.user_id == user_id)
                .limit(1)
            )
            return result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("Database error loading credentials: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not load API key settings. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def _flush(self, db: AsyncSession) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error saving credentials: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save API key settings. Please try again.",
                context={"error_type": type(e).__name__},
            )

    def _try_decrypt(self, token: Optional[str], name: str, user_id: UUID) -> Optional[str]:
        if token is None:
            return None
        try:
            return self.cipher.decrypt(token)
        except DecryptionError as e:
            logger.warning(
                "Stored %s key for user %s could not be decrypted (%s)",
                name,
                user_id,
                type(e).__name__,
            )
            return None

    async def save_keys(
        self,
        db: AsyncSession,
        user_id: UUID,
        gemini_api_key: Optional[str] = None,
        elevenlabs_api_key: Optional[str] = None,
    ) -> ApiKeyResponse:
        """
        Store either or both keys, encrypted.

        Keys passed as None keep their stored value. Both plaintexts are
        encrypted before the record is loaded, so a cipher failure leaves the
        store untouched.

        Raises:
            EncryptionError: A key could not be encrypted (→ 500)
        """
        sealed_gemini = self.cipher.encrypt(gemini_api_key) if gemini_api_key is not None else None
        sealed_elevenlabs = (
            self.cipher.encrypt(elevenlabs_api_key) if elevenlabs_api_key is not None else None
        )

        record = await self._load(db, user_id)
        if record is None:
            record = CredentialRecord(
                user_id=user_id,
                gemini_key=sealed_gemini,
                elevenlabs_key=sealed_elevenlabs,
                helper_status=False,
                action=ACTION_KEYS_SAVE,
                timestamp=_now(),
            )
            db.add(record)
        else:
            if sealed_gemini is not None:
                record.gemini_key = sealed_gemini
            if sealed_elevenlabs is not None:
                record.elevenlabs_key = sealed_elevenlabs
            record.action = ACTION_KEYS_SAVE
            record.timestamp = _now()
        await self._flush(db)

        logger.info(
            "API keys saved for user %s (gemini=%s, elevenlabs=%s)",
            user_id,
            gemini_api_key is not None,
            elevenlabs_api_key is not None,
        )
        return ApiKeyResponse(
            gemini_api_key=gemini_api_key,
            elevenlabs_api_key=elevenlabs_api_key,
            message="API keys saved successfully",
        )

    async def get_keys(self, db: AsyncSession, user_id: UUID) -> ApiKeyResponse:
        """
        Decrypt and return the caller's keys.

        Raises:
            NotFoundError: The user has no credential record (→ 404)
        """
        record = await self._load(db, user_id)
        if record is None:
            raise NotFoundError(resource="api_keys", message="No API keys found for this user.")

        gemini = self._try_decrypt(record.gemini_key, "gemini", user_id)
        elevenlabs = self._try_decrypt(record.elevenlabs_key, "elevenlabs", user_id)

        unreadable = []
        if record.gemini_key is not None and gemini is None:
            unreadable.append("gemini_api_key")
        if record.elevenlabs_key is not None and elevenlabs is None:
            unreadable.append("elevenlabs_api_key")

        message = "API keys retrieved successfully"
        if unreadable:
            message = f"API keys retrieved; could not decrypt: {', '.join(unreadable)}"

        return ApiKeyResponse(
            gemini_api_key=gemini,
            elevenlabs_api_key=elevenlabs,
            message=message,
        )

    async def delete_key(self, db: AsyncSession, user_id: UUID, which: KeyName) -> MessageResponse:
        """
        Clear one key and leave the other untouched.

        Raises:
            NotFoundError: The user has no credential record (→ 404)
        """
        record = await self._load(db, user_id)
        if record is None:
            raise NotFoundError(resource="api_keys", message="API key record not found for user.")

        if which == "gemini":
            record.gemini_key = None
        else:
            record.elevenlabs_key = None
        record.action = ACTION_KEY_DELETE
        record.timestamp = _now()
        await self._flush(db)

        logger.info("%s key deleted for user %s", KEY_LABELS[which], user_id)
        return MessageResponse(message=f"{KEY_LABELS[which]} API key deleted successfully")

    async def set_helper_status(
        self,
        db: AsyncSession,
        user_id: UUID,
        enabled: bool,
    ) -> HelperStatusResponse:
        """Upserts the helper flag; creates the record if the user has none."""
        record = await self._load(db, user_id)
        if record is None:
            record = CredentialRecord(
                user_id=user_id,
                helper_status=enabled,
                action=ACTION_HELPER_STATUS,
                timestamp=_now(),
            )
            db.add(record)
        else:
            record.helper_status = enabled
            record.action = ACTION_HELPER_STATUS
            record.timestamp = _now()
        await self._flush(db)

        return HelperStatusResponse(status=enabled, message="Helper status updated successfully")

    async def get_helper_status(self, db: AsyncSession, user_id: UUID) -> HelperStatusResponse:
        record = await self._load(db, user_id)
        if record is None:
            return HelperStatusResponse(
                status=False,
                message="No helper record found; returning default status.",
            )
        return HelperStatusResponse(
            status=record.helper_status,
            message="Helper status retrieved successfully",
        )

    async def get_gemini_key(self, db: AsyncSession, user_id: UUID) -> str:
        """
        Resolve the plaintext Gemini key for a generation call.

        Raises:
            NotFoundError: No record, or no Gemini key stored (→ 404)
            DecryptionError: The stored key cannot be decrypted (→ 500)
        """
        record = await self._load(db, user_id)
        if record is None or record.gemini_key is None:
            raise NotFoundError(
                resource="gemini_api_key",
                message="Gemini API key not found for this user",
            )
        try:
            return self.cipher.decrypt(record.gemini_key)
        except DecryptionError as e:
            logger.error(
                "Gemini key for user %s failed to decrypt: %s",
                user_id,
                type(e).__name__,
            )
            raise DecryptionError(
                message="Failed to decrypt Gemini API key",
                context={"cause": type(e).__name__},
            )
