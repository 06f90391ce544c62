"""
Voice Memo Backend — User Service (Signup & Login)
====================================================

What:  Account creation and credential check.
How:   Signup checks email uniqueness, hashes the password with bcrypt and
       inserts the row. Login compares the bcrypt hash and issues a 24h bearer
       token through the TokenCodec.
Who:   Called by the auth routes.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voicememo.exceptions import ConflictError, DatabaseError, UnauthorizedError
from voicememo.models.user import User
from voicememo.schemas.user import (
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
)
from voicememo.security.passwords import hash_password, verify_password
from voicememo.security.tokens import TokenCodec

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "User with this email already exists"
BAD_CREDENTIALS = "Invalid email or password"


def normalize_email(email: str) -> str:
    """Lowercases the domain part, the same canonical form EmailStr produces."""
    email = str(email).strip()
    local, sep, domain = email.rpartition("@")
    if not sep:
        return email
    return f"{local}@{domain.lower()}"


class UserService:
    """
    Responsibilities:
        - signup(): create an account, refusing duplicate emails
        - login(): verify a password and issue a bearer token
        - get_user(): look up an account by id (request pipeline)
    """

    async def _find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def signup(self, db: AsyncSession, payload: SignupRequest) -> SignupResponse:
        """
        Raises:
            ConflictError: The email is already registered, including when a
                concurrent signup wins the unique constraint (→ 409)
            DatabaseError: Store failure (→ 500)
        """
        email = normalize_email(payload.email)
        try:
            if await self._find_by_email(db, email) is not None:
                raise ConflictError(message=DUPLICATE_EMAIL)

            user = User(
                username=payload.username,
                email=email,
                password_hash=hash_password(payload.password),
            )
            db.add(user)
            await db.flush()
        except IntegrityError:
            logger.info("Signup lost a race on the email unique constraint")
            raise ConflictError(message=DUPLICATE_EMAIL)
        except SQLAlchemyError as e:
            logger.error("Database error during signup: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the account. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("User %s created", user.id)
        return SignupResponse(user_id=str(user.id))

    async def login(
        self,
        db: AsyncSession,
        payload: LoginRequest,
        token_codec: TokenCodec,
    ) -> LoginResponse:
        """
        Unknown email and wrong password produce the same UnauthorizedError.
        """
        try:
            user = await self._find_by_email(db, payload.email)
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not log in. Please try again.",
                context={"error_type": type(e).__name__},
            )

        if user is None or not verify_password(payload.password, user.password_hash):
            raise UnauthorizedError(message=BAD_CREDENTIALS)

        token = token_codec.issue(user_id=str(user.id), username=user.username, email=user.email)
        logger.info("User %s logged in", user.id)
        return LoginResponse(token=token)

    async def get_user(self, db: AsyncSession, user_id: UUID) -> Optional[User]:
        try:
            return await db.get(User, user_id)
        except SQLAlchemyError as e:
            logger.error("Database error loading user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not load the account. Please try again.",
                context={"user_id": str(user_id)},
            )


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
