"""JWT access/refresh token minting and verification."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

if TYPE_CHECKING:
    from pickpool.core.config import Settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class InvalidTokenError(Exception):
    """Signature, expiry, claim shape or token type check failed."""


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by every signed token."""

    user_id: int
    username: str
    role: str


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


class TokenIssuer:
    """
    Mints and verifies signed tokens.

    Built once from Settings; refuses to exist without an access secret.
    When REFRESH_SECRET is unset refresh tokens are signed with the access
    secret, which is weaker (a leaked secret forges both kinds).
    """

    def __init__(self, settings: Settings) -> None:
        access_secret = settings.JWT_SECRET.get_secret_value() if settings.JWT_SECRET else ""
        if not access_secret or not access_secret.strip():
            raise ValueError("JWT_SECRET must be set and non-empty")
        self._access_secret = access_secret
        if settings.REFRESH_SECRET is not None:
            self._refresh_secret = settings.REFRESH_SECRET.get_secret_value()
        else:
            logger.warning(
                "REFRESH_SECRET is not set; refresh tokens are signed with JWT_SECRET"
            )
            self._refresh_secret = access_secret
        self._algorithm = settings.JWT_ALGORITHM
        self._access_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        self._refresh_ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    def issue_access_token(self, claims: TokenClaims) -> str:
        return self._encode(
            claims, ACCESS_TOKEN_TYPE, self._access_ttl, self._access_secret
        ).token

    def issue_refresh_token(self, claims: TokenClaims) -> IssuedToken:
        """Return the signed refresh token and its absolute expiry."""
        return self._encode(
            claims, REFRESH_TOKEN_TYPE, self._refresh_ttl, self._refresh_secret
        )

    def verify_access(self, token: str) -> TokenClaims:
        return self._decode(token, ACCESS_TOKEN_TYPE, self._access_secret)

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._decode(token, REFRESH_TOKEN_TYPE, self._refresh_secret)

    def _encode(
        self,
        claims: TokenClaims,
        token_type: str,
        ttl: timedelta,
        secret: str,
    ) -> IssuedToken:
        now = datetime.now(UTC)
        expire = now + ttl
        payload: dict[str, Any] = {
            "sub": str(claims.user_id),
            "username": claims.username,
            "role": claims.role,
            "type": token_type,
            # jti keeps two tokens minted in the same second distinct.
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": expire,
        }
        token = jwt.encode(payload, secret, algorithm=self._algorithm)
        # JWT exp has second precision; report what the token itself encodes.
        return IssuedToken(token=token, expires_at=expire.replace(microsecond=0))

    def _decode(self, token: str, token_type: str, secret: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError(str(e)) from e
        if payload.get("type") != token_type:
            raise InvalidTokenError(f"Expected a {token_type} token")
        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError) as e:
            raise InvalidTokenError("Invalid token subject") from e
        username = payload.get("username")
        role = payload.get("role")
        if not isinstance(username, str) or not isinstance(role, str):
            raise InvalidTokenError("Invalid token payload")
        return TokenClaims(user_id=user_id, username=username, role=role)
