"""
Voice Memo Backend — Bearer Token Codec
=========================================

What:  Issues and verifies signed, time-limited identity tokens (JWT, HS256).
Who:   UserService.login issues; the request pipeline verifies.

Claims:
    sub       user id (UUID as string)
    username  display name at issue time
    email     login email at issue time
    exp       absolute expiry (issue time + ttl, 24h by default)

Verification failures are undifferentiated: signature mismatch, malformed
token, missing claims and expiry all raise InvalidTokenError with the same
message.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from voicememo.exceptions import InvalidTokenError

REQUIRED_CLAIMS = ("sub", "username", "email", "exp")


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    username: str
    email: str
    exp: datetime


class TokenCodec:
    """
    Args:
        secret: Symmetric signing secret from configuration.
        algorithm: JWS algorithm; HS256 unless configured otherwise.
        default_ttl: Lifetime applied when issue() is called without one.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        default_ttl: timedelta = timedelta(hours=24),
    ):
        self._secret = secret
        self._algorithm = algorithm
        self.default_ttl = default_ttl

    def issue(
        self,
        user_id: str,
        username: str,
        email: str,
        ttl: Optional[timedelta] = None,
    ) -> str:
        expire = datetime.now(timezone.utc) + (ttl if ttl is not None else self.default_ttl)
        claims = {
            "sub": str(user_id),
            "username": username,
            "email": email,
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Check signature and expiry and return the claims.

        Raises:
            InvalidTokenError: For every kind of failure.
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            raise InvalidTokenError(context={"reason": type(e).__name__})

        if any(payload.get(name) is None for name in REQUIRED_CLAIMS):
            raise InvalidTokenError(context={"reason": "missing_claims"})

        try:
            exp = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            raise InvalidTokenError(context={"reason": "bad_exp"})

        return TokenClaims(
            sub=str(payload["sub"]),
            username=str(payload["username"]),
            email=str(payload["email"]),
            exp=exp,
        )
