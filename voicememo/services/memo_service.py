"""
Voice Memo Backend — Memo Service (Owner-Scoped Memo Store)
=============================================================

What:  Create, list, read, update and delete voice memos for one owner.
How:   Every statement filters on Memo.user_id == the caller's id. A memo
       owned by someone else is indistinguishable from one that does not
       exist, except on save with an explicit id, which is refused.
Who:   Called by the memo routes with the user resolved from the bearer token.

Normalization:
    - title and duration are required (non-blank) and stored as sent
    - transcript / translate / summary: blank → NULL, otherwise stored as sent
    - tags: stored as a JSON array; malformed stored data reads back as None

Transactions:
    Writes are flushed here; get_db_session commits once the route returns.
"""

import base64
import json
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voicememo.config import settings
from voicememo.exceptions import (
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from voicememo.models.memo import Memo
from voicememo.schemas.memo import (
    DeleteAllResponse,
    MemoInput,
    MemoOutput,
    MemoResponse,
    MemoUpdate,
)


logger = logging.getLogger(__name__)

MEMO_NOT_FOUND = "Memo not found or access denied"


def _clean(value: Optional[str]) -> Optional[str]:
    """Whitespace-only text becomes None; anything else is kept as sent."""
    if value is None or not value.strip():
        return None
    return value


def _parse_id(raw: Optional[str]) -> Optional[UUID]:
    if not raw:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        return None


def serialize_tags(tags: Optional[List[str]]) -> Optional[str]:
    return None if tags is None else json.dumps(tags)


def deserialize_tags(raw: Optional[str]) -> Optional[List[str]]:
    """Reads stored tags. Anything but a JSON list of strings yields None."""
    if raw is None:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        return None
    return value


def to_output(memo: Memo) -> MemoOutput:
    return MemoOutput(
        id=memo.id,
        title=memo.title,
        transcript=memo.transcript,
        translate=memo.translate,
        summary=memo.summary,
        tags=deserialize_tags(memo.tags),
        duration=memo.duration,
        created_at=memo.created_at,
        audio_blob=(
            base64.b64encode(memo.audio_blob).decode("ascii")
            if memo.audio_blob is not None
            else None
        ),
    )


class MemoService:
    """
    Business logic layer for memo operations.

    Responsibilities:
        - save_memo(): create, or overwrite an owned memo
        - list_memos() / get_memo(): owner-scoped reads
        - update_memo(): partial update, absent fields untouched
        - delete_memo() / delete_all_memos(): owner-scoped deletes

    Error Handling Strategy:
        Business rule violations raise ValidationError / NotFoundError /
        ForbiddenError. SQLAlchemy failures are wrapped in DatabaseError so
        driver details never reach the client.
    """

    def _check_audio(self, audio: Optional[bytes]) -> None:
        if audio is not None and len(audio) > settings.max_audio_size:
            max_mb = settings.max_audio_size / (1024 * 1024)
            raise ValidationError(
                message=f"Audio exceeds the maximum size of {max_mb:.0f}MB",
                field="audio_blob",
                context={"size": len(audio)},
            )

    async def _find_owned(self, db: AsyncSession, user_id: UUID, memo_id: UUID) -> Optional[Memo]:
        result = await db.execute(
            select(Memo).where(Memo.id == memo_id, Memo.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def save_memo(self, db: AsyncSession, user_id: UUID, payload: MemoInput) -> MemoResponse:
        """
        Create a memo, or overwrite one the caller owns.

        Flow:
            1. title and duration must be non-empty after trimming
            2. payload.id parses and names an existing memo:
               owned by caller → overwrite every mutable field
               owned by another user → ForbiddenError, nothing changes
            3. otherwise → insert with a fresh id and the current timestamp

        Audio is replaced on overwrite only when a new blob is supplied.

        Raises:
            ValidationError: Missing title/duration or oversized audio (→ 400)
            ForbiddenError: The id belongs to another user (→ 403)
            DatabaseError: Store failure (→ 500)
        """
        title = _clean(payload.title)
        duration = _clean(payload.duration)
        if title is None or duration is None:
            raise ValidationError(
                message="Title and duration are required",
                field="title" if title is None else "duration",
            )
        self._check_audio(payload.audio_blob)

        memo_id = _parse_id(payload.id)
        try:
            existing = await db.get(Memo, memo_id) if memo_id is not None else None

            if existing is not None:
                if existing.user_id != user_id:
                    logger.warning(
                        "User %s attempted to overwrite memo %s owned by another user",
                        user_id,
                        memo_id,
                    )
                    raise ForbiddenError(context={"memo_id": str(memo_id)})

                existing.title = title
                existing.duration = duration
                existing.transcript = _clean(payload.transcript)
                existing.translate = _clean(payload.translate)
                existing.summary = _clean(payload.summary)
                existing.tags = serialize_tags(payload.tags)
                if payload.audio_blob is not None:
                    existing.audio_blob = payload.audio_blob
                await db.flush()
                logger.info("Memo %s overwritten by user %s", existing.id, user_id)
                return MemoResponse(message="Memo updated", memo_id=str(existing.id))

            memo = Memo(
                user_id=user_id,
                title=title,
                duration=duration,
                transcript=_clean(payload.transcript),
                translate=_clean(payload.translate),
                summary=_clean(payload.summary),
                tags=serialize_tags(payload.tags),
                audio_blob=payload.audio_blob,
            )
            db.add(memo)
            await db.flush()
            logger.info("Memo %s created for user %s", memo.id, user_id)
            return MemoResponse(message="Memo saved", memo_id=str(memo.id))

        except SQLAlchemyError as e:
            logger.error("Database error saving memo: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the memo. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def list_memos(self, db: AsyncSession, user_id: UUID) -> List[MemoOutput]:
        """All memos owned by user_id, newest first (idx_voice_memos_user_created)."""
        try:
            result = await db.execute(
                select(Memo)
                .where(Memo.user_id == user_id)
                .order_by(desc(Memo.created_at))
            )
            memos = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing memos: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve memos. Please try again.",
                context={"error_type": type(e).__name__},
            )
        return [to_output(memo) for memo in memos]

    async def get_memo(self, db: AsyncSession, user_id: UUID, memo_id: str) -> MemoOutput:
        """
        Raises:
            NotFoundError: Unknown id, malformed id, or a memo owned by
                another user (→ 404)
        """
        parsed = _parse_id(memo_id)
        if parsed is None:
            raise NotFoundError(resource="memo", message=MEMO_NOT_FOUND)
        try:
            memo = await self._find_owned(db, user_id, parsed)
        except SQLAlchemyError as e:
            logger.error("Database error fetching memo %s: %s", memo_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the memo. Please try again.",
                context={"memo_id": memo_id},
            )
        if memo is None:
            raise NotFoundError(resource="memo", resource_id=memo_id, message=MEMO_NOT_FOUND)
        return to_output(memo)

    async def update_memo(
        self,
        db: AsyncSession,
        user_id: UUID,
        memo_id: str,
        payload: MemoUpdate,
    ) -> MemoResponse:
        """
        Partial update. Fields left out (or null) keep their stored value.

        - title: applied only when non-empty after trimming
        - transcript / translate / summary: an empty string clears the field
        - tags: replaces the stored list; [] stores an empty list
        """
        parsed = _parse_id(memo_id)
        if parsed is None:
            raise NotFoundError(resource="memo", message=MEMO_NOT_FOUND)
        try:
            memo = await self._find_owned(db, user_id, parsed)
            if memo is None:
                raise NotFoundError(resource="memo", resource_id=memo_id, message=MEMO_NOT_FOUND)

            title = _clean(payload.title)
            if title is not None:
                memo.title = title
            if payload.transcript is not None:
                memo.transcript = _clean(payload.transcript)
            if payload.translate is not None:
                memo.translate = _clean(payload.translate)
            if payload.summary is not None:
                memo.summary = _clean(payload.summary)
            if payload.tags is not None:
                memo.tags = serialize_tags(payload.tags)

            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating memo %s: %s", memo_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not update the memo. Please try again.",
                context={"memo_id": memo_id},
            )

        logger.info("Memo %s updated by user %s", memo_id, user_id)
        return MemoResponse(message="Memo updated successfully", memo_id=str(parsed))

    async def delete_memo(self, db: AsyncSession, user_id: UUID, memo_id: str) -> MemoResponse:
        """Deletes one owned memo. Zero affected rows is reported as not found."""
        parsed = _parse_id(memo_id)
        if parsed is None:
            raise NotFoundError(resource="memo", message=MEMO_NOT_FOUND)
        try:
            result = await db.execute(
                delete(Memo).where(Memo.id == parsed, Memo.user_id == user_id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting memo %s: %s", memo_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the memo. Please try again.",
                context={"memo_id": memo_id},
            )
        if result.rowcount == 0:
            raise NotFoundError(resource="memo", resource_id=memo_id, message=MEMO_NOT_FOUND)

        logger.info("Memo %s deleted by user %s", memo_id, user_id)
        return MemoResponse(message="Memo deleted", memo_id=str(parsed))

    async def delete_all_memos(self, db: AsyncSession, user_id: UUID) -> DeleteAllResponse:
        """Deletes every memo the caller owns. A count of zero is not an error."""
        try:
            result = await db.execute(delete(Memo).where(Memo.user_id == user_id))
        except SQLAlchemyError as e:
            logger.error("Database error deleting memos: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete memos. Please try again.",
                context={"error_type": type(e).__name__},
            )
        count = result.rowcount or 0
        logger.info("Deleted %d memo(s) for user %s", count, user_id)
        return DeleteAllResponse(message=f"Deleted {count} memo(s)", deleted_count=count)


# ── Singleton Instance ────────────────────────────────────────────────────
memo_service = MemoService()
