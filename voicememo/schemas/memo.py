"""
Voice Memo Backend — Memo Request/Response Schemas
====================================================

What:  Pydantic models for the memo endpoints.

Binary audio:
    Audio travels as a base64 string in JSON. For clients that send the
    raw byte values instead, a JSON array of integers (0-255) is accepted on
    input as well. Responses always use base64.

Presence semantics (MemoUpdate):
    A field that is missing or null is "not supplied" and leaves the stored
    value untouched. tags: [] is supplied, and replaces the stored list with
    an empty one.
"""

import base64
import binascii
import uuid
from datetime import datetime
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, Field


def _decode_audio(value: Any) -> Any:
    """Turns base64 text or a list of byte values into bytes."""
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("audio must be base64-encoded")
    if isinstance(value, list):
        try:
            return bytes(value)
        except (TypeError, ValueError):
            raise ValueError("audio byte array must contain integers in 0..255")
    return value


AudioBytes = Annotated[bytes, BeforeValidator(_decode_audio)]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class MemoInput(BaseModel):
    """
    What:  Body of POST /api/save_memo.
    How:   Without id (or with an id that does not resolve) a new memo is
           created. With the id of a memo the caller owns, every mutable field
           is overwritten; audio is replaced only when a new blob is sent.

    title and duration must be non-empty after trimming (checked by
    MemoService, reported as 400).
    """
    id: Optional[str] = Field(default=None, description="Existing memo id to overwrite")
    title: str
    duration: str = Field(description="Display duration, e.g. '00:05'")
    transcript: Optional[str] = None
    translate: Optional[str] = None
    summary: Optional[str] = None
    tags: Optional[List[str]] = None
    audio_blob: Optional[AudioBytes] = Field(
        default=None,
        description="Audio bytes, base64-encoded",
    )


class MemoUpdate(BaseModel):
    """Body of PATCH /api/update_memo/{memo_id}. Every field is optional."""
    title: Optional[str] = None
    transcript: Optional[str] = None
    translate: Optional[str] = None
    summary: Optional[str] = None
    tags: Optional[List[str]] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class MemoResponse(BaseModel):
    message: str
    memo_id: str


class DeleteAllResponse(BaseModel):
    message: str
    deleted_count: int = Field(ge=0)


class MemoOutput(BaseModel):
    """Full memo as returned by get_memos and get_memo."""
    id: uuid.UUID
    title: str
    transcript: Optional[str] = None
    translate: Optional[str] = None
    summary: Optional[str] = None
    tags: Optional[List[str]] = None
    duration: str
    created_at: datetime
    audio_blob: Optional[str] = Field(default=None, description="Audio bytes, base64-encoded")
