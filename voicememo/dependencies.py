"""
Voice Memo Backend — Request Pipeline Dependencies
====================================================

What:  FastAPI dependencies that take a request from bearer token to a
       resolved user (and, for generation endpoints, to a usable Gemini key).
How:   ExtractToken → VerifyToken → ResolveUser, each step raising a typed
       VoiceMemoError that the exception handlers map to a status code.
Who:   Injected into every authenticated route with Depends().

Outcomes:
    missing Authorization header      → UnauthorizedError   (401)
    bad signature / malformed / expired → InvalidTokenError (401)
    subject is not a UUID             → UnauthorizedError   (401)
    subject has no account            → NotFoundError       (404)

Shared objects (cipher, token codec, generation service) are built once by
create_app() and read from app.state; tests swap them by overriding these
dependencies.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from voicememo.database import get_db_session
from voicememo.exceptions import NotFoundError, UnauthorizedError
from voicememo.models.user import User
from voicememo.security.cipher import CredentialCipher
from voicememo.security.tokens import TokenCodec
from voicememo.services.credential_service import CredentialService
from voicememo.services.llm_base import LLMService
from voicememo.services.user_service import user_service

# auto_error=False: a missing header goes through our error envelope, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_cipher(request: Request) -> CredentialCipher:
    return request.app.state.cipher


def get_generation_service(request: Request) -> LLMService:
    return request.app.state.generation_service


def get_credential_service(
    cipher: CredentialCipher = Depends(get_cipher),
) -> CredentialService:
    return CredentialService(cipher)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    token_codec: TokenCodec = Depends(get_token_codec),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Resolve the bearer token to a User row.

    Raises:
        UnauthorizedError: No token, invalid token or unusable subject.
        NotFoundError: The token is valid but the account no longer exists.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError(message="Not authenticated")

    claims = token_codec.verify(credentials.credentials)

    try:
        user_id = UUID(claims.sub)
    except ValueError:
        raise UnauthorizedError(message="Invalid user ID format in token")

    user = await user_service.get_user(db, user_id)
    if user is None:
        raise NotFoundError(resource="user", message=f"User {user_id} not found")
    return user
