"""
Voice Memo Backend — Generation Route Handlers
================================================

What:  Transcription, translation, summary and title generation through the
       caller's own Gemini key.
How:   Each handler resolves the user's decrypted key, calls the generation
       service once, and returns the text as text/plain.

Errors:
    Authentication failures and malformed bodies use the JSON error envelope
    like every other route. Anything that goes wrong after that (no stored
    key, undecryptable key, provider failure, oversized audio) is returned as
    plain text with the mapped status code, so clients read the result the
    same way in both cases.
"""

import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from voicememo.config import settings
from voicememo.database import get_db_session
from voicememo.dependencies import (
    get_credential_service,
    get_current_user,
    get_generation_service,
)
from voicememo.exceptions import ValidationError, VoiceMemoError
from voicememo.middleware.request_id import request_id_var
from voicememo.models.user import User
from voicememo.schemas.generation import (
    GenerateTitleRequest,
    SummaryRequest,
    TranscribeRequest,
    TranslateRequest,
)
from voicememo.services.credential_service import CredentialService
from voicememo.services.llm_base import LLMService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Generation"])

_TEXT_RESPONSES = {
    200: {"description": "Generated text", "content": {"text/plain": {}}},
    400: {"description": "Invalid input", "content": {"text/plain": {}}},
    404: {"description": "No Gemini key stored", "content": {"text/plain": {}}},
    500: {"description": "Stored key cannot be decrypted", "content": {"text/plain": {}}},
    502: {"description": "Gemini request failed", "content": {"text/plain": {}}},
}


async def _generate(
    operation: str,
    user: User,
    credentials: CredentialService,
    db: AsyncSession,
    call: Callable[[str], Awaitable[str]],
) -> PlainTextResponse:
    try:
        api_key = await credentials.get_gemini_key(db, user.id)
        text = await call(api_key)
    except VoiceMemoError as exc:
        logger.warning(
            "[%s] %s failed for user %s: %s",
            request_id_var.get(""),
            operation,
            user.id,
            type(exc).__name__,
        )
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    return PlainTextResponse(text)


@router.post(
    "/transcribe",
    response_class=PlainTextResponse,
    responses=_TEXT_RESPONSES,
    summary="Transcribe WAV audio",
)
async def transcribe(
    payload: TranscribeRequest,
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    generation: LLMService = Depends(get_generation_service),
    db: AsyncSession = Depends(get_db_session),
) -> PlainTextResponse:
    audio = payload.audio_bytes
    if len(audio) > settings.max_audio_size:
        exc = ValidationError(
            message=f"Audio exceeds the maximum size of {settings.max_audio_size / (1024 * 1024):.0f}MB",
            field="audio_bytes",
        )
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    return await _generate(
        "transcribe",
        user,
        credentials,
        db,
        lambda key: generation.transcribe(audio, key),
    )


@router.post(
    "/translate",
    response_class=PlainTextResponse,
    responses=_TEXT_RESPONSES,
    summary="Translate text into another language",
)
async def translate(
    payload: TranslateRequest,
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    generation: LLMService = Depends(get_generation_service),
    db: AsyncSession = Depends(get_db_session),
) -> PlainTextResponse:
    return await _generate(
        "translate",
        user,
        credentials,
        db,
        lambda key: generation.translate(payload.text, payload.lang, key),
    )


@router.post(
    "/summary",
    response_class=PlainTextResponse,
    responses=_TEXT_RESPONSES,
    summary="Summarize text",
)
async def summary(
    payload: SummaryRequest,
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    generation: LLMService = Depends(get_generation_service),
    db: AsyncSession = Depends(get_db_session),
) -> PlainTextResponse:
    return await _generate(
        "summary",
        user,
        credentials,
        db,
        lambda key: generation.summarize(payload.text, key),
    )


@router.post(
    "/generate_memo_name",
    response_class=PlainTextResponse,
    responses=_TEXT_RESPONSES,
    summary="Suggest a 2-4 word title for a transcript",
)
async def generate_memo_name(
    payload: GenerateTitleRequest,
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    generation: LLMService = Depends(get_generation_service),
    db: AsyncSession = Depends(get_db_session),
) -> PlainTextResponse:
    return await _generate(
        "generate_memo_name",
        user,
        credentials,
        db,
        lambda key: generation.generate_title(payload.transcript, key),
    )
