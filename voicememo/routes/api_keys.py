"""
Voice Memo Backend — API Key & Helper Status Routes
=====================================================

What:  Per-user third-party key management and the helper toggle.
How:   Thin handlers over CredentialService. Keys are encrypted at rest and
       only appear in plaintext inside these request/response bodies.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from voicememo.database import get_db_session
from voicememo.dependencies import get_credential_service, get_current_user
from voicememo.models.user import User
from voicememo.schemas.common import ErrorResponse, MessageResponse
from voicememo.schemas.credential import (
    ApiKeyPayload,
    ApiKeyResponse,
    HelperStatusPayload,
    HelperStatusResponse,
)
from voicememo.services.credential_service import CredentialService

router = APIRouter(prefix="/api", tags=["API Keys"])

_NO_RECORD = {404: {"description": "No API key record for this user", "model": ErrorResponse}}


@router.post(
    "/api_keys/save",
    response_model=ApiKeyResponse,
    summary="Store Gemini and/or ElevenLabs keys",
    description="Omitted keys keep their stored value.",
)
async def save_api_keys(
    payload: ApiKeyPayload,
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    db: AsyncSession = Depends(get_db_session),
) -> ApiKeyResponse:
    return await credentials.save_keys(
        db,
        user.id,
        gemini_api_key=payload.gemini_api_key,
        elevenlabs_api_key=payload.elevenlabs_api_key,
    )


@router.get(
    "/api_keys/get",
    response_model=ApiKeyResponse,
    responses=_NO_RECORD,
    summary="Read your stored keys",
    description="A key that cannot be decrypted is returned as null and named in the message.",
)
async def get_api_keys(
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    db: AsyncSession = Depends(get_db_session),
) -> ApiKeyResponse:
    return await credentials.get_keys(db, user.id)


@router.delete(
    "/api_keys/gemini",
    response_model=MessageResponse,
    responses=_NO_RECORD,
    summary="Remove the stored Gemini key",
)
async def delete_gemini_key(
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await credentials.delete_key(db, user.id, "gemini")


@router.delete(
    "/api_keys/elevenlabs",
    response_model=MessageResponse,
    responses=_NO_RECORD,
    summary="Remove the stored ElevenLabs key",
)
async def delete_elevenlabs_key(
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await credentials.delete_key(db, user.id, "elevenlabs")


@router.post(
    "/helper/status",
    response_model=HelperStatusResponse,
    summary="Enable or disable the helper",
)
async def set_helper_status(
    payload: HelperStatusPayload,
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    db: AsyncSession = Depends(get_db_session),
) -> HelperStatusResponse:
    return await credentials.set_helper_status(db, user.id, payload.status)


@router.get(
    "/helper/status",
    response_model=HelperStatusResponse,
    summary="Read the helper flag (false when never set)",
)
async def get_helper_status(
    user: User = Depends(get_current_user),
    credentials: CredentialService = Depends(get_credential_service),
    db: AsyncSession = Depends(get_db_session),
) -> HelperStatusResponse:
    return await credentials.get_helper_status(db, user.id)
