"""
Voice Memo Backend — Account Routes
=====================================

What:  POST /api/signup and POST /api/login. The only unauthenticated routes
       under /api.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from voicememo.database import get_db_session
from voicememo.dependencies import get_token_codec
from voicememo.schemas.common import ErrorResponse
from voicememo.schemas.user import (
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
)
from voicememo.security.tokens import TokenCodec
from voicememo.services.user_service import user_service

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid username, email or password", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def signup(
    payload: SignupRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SignupResponse:
    return await user_service.signup(db, payload)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"description": "Invalid email or password", "model": ErrorResponse},
    },
    summary="Exchange email and password for a bearer token",
    description="The returned token is valid for 24 hours.",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    token_codec: TokenCodec = Depends(get_token_codec),
) -> LoginResponse:
    return await user_service.login(db, payload, token_codec)
