"""Signed session and reset tokens."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from config import LOGIN_SESSION_TTL, RESET_TOKEN_TTL
from errors import TokenBadSignature, TokenExpired, TokenMalformed

SESSION = "session"
RESET = "reset"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies HS256 tokens over a single process-wide secret.

    Every token carries a ``kind`` claim so a reset token can never pass as a
    session token and vice versa.
    """

    def __init__(self, secret: str, algorithm: str = "HS256",
                 clock: Callable[[], datetime] = _utcnow):
        if not secret:
            raise ValueError("JWT_SECRET is not configured")
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock

    def _sign(self, claims: dict, ttl: timedelta) -> str:
        issued_at = self._clock()
        payload = dict(claims, iat=issued_at, exp=issued_at + ttl)
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def issue_session(self, identity_id: str, email: Optional[str] = None,
                      ttl: timedelta = LOGIN_SESSION_TTL) -> str:
        claims = {"userId": identity_id, "kind": SESSION}
        if email:
            claims["email"] = email
        return self._sign(claims, ttl)

    def issue_reset_token(self, email: str, ttl: timedelta = RESET_TOKEN_TTL) -> str:
        return self._sign({"email": email, "kind": RESET}, ttl)

    def verify(self, token: str, kind: Optional[str] = None) -> dict:
        """Decode ``token``; when ``kind`` is given the token must be of that kind."""
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "kind"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpired("Token expired") from e
        except jwt.InvalidSignatureError as e:
            raise TokenBadSignature("Token signature mismatch") from e
        except jwt.InvalidTokenError as e:
            raise TokenMalformed("Not a valid token") from e

        if kind is not None and payload.get("kind") != kind:
            raise TokenMalformed(f"Expected a {kind} token")
        if payload["kind"] == SESSION and not payload.get("userId"):
            raise TokenMalformed("Session token without userId")
        if payload["kind"] == RESET and not payload.get("email"):
            raise TokenMalformed("Reset token without email")
        return payload
