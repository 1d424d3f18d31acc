# =============================================================================
# JWT Token Service
# =============================================================================
#
# This module provides the token lifecycle:
#   - Token creation (access + refresh), pure and local
#   - Token validation, pure and local (safe in the request hot path)
#   - Refresh bookkeeping, delegated to the session store (I/O)
#
# Access tokens carry the identity claims. Refresh tokens are deliberately
# minimal: expiry, issue time, type and id only.
#
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable

import jwt
from pydantic import BaseModel

from bistro.config import Settings
from bistro.core.errors import (
    ConfigError,
    ExpiredTokenError,
    InvalidSignatureError,
    MalformedTokenError,
    SigningError,
)
from bistro.core.utils import generate_id, utc_now

if TYPE_CHECKING:
    from bistro.auth.sessions import SessionStore

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


# =============================================================================
# Models
# =============================================================================


class Identity(BaseModel):
    """Who a token is issued to."""
    user_id: str
    email: str
    first_name: str
    last_name: str


class TokenClaims(BaseModel):
    """Decoded JWT payload."""
    sub: str | None = None  # user_id; absent on refresh tokens
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    iat: datetime
    exp: datetime
    type: str  # "access" or "refresh"
    jti: str  # unique token ID


class TokenPair(BaseModel):
    """Access and refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expires


# =============================================================================
# Token Service
# =============================================================================


class TokenService:
    """
    Issues and verifies HS256-signed tokens with a single shared secret.

    ``clock`` returns the current UTC time. It is injectable so expiry can
    be tested without sleeping.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=30),
        refresh_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utc_now,
        sessions: SessionStore | None = None,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.clock = clock
        self.sessions = sessions

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        sessions: SessionStore | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> TokenService:
        """Build from settings. A missing secret is fatal."""
        if not settings.jwt_secret_key:
            raise ConfigError("JWT_SECRET_KEY is not set")
        return cls(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            access_ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            refresh_ttl=timedelta(hours=settings.jwt_refresh_token_expire_hours),
            clock=clock,
            sessions=sessions,
        )

    # -------------------------------------------------------------------------
    # Issuance
    # -------------------------------------------------------------------------

    def _sign(self, payload: dict) -> str:
        if not self.secret_key:
            raise SigningError("Signing secret is not configured")
        try:
            return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as e:
            logger.error("Token signing failed: %s", e)
            raise SigningError(f"Could not sign token: {e}") from e

    def issue(self, identity: Identity) -> TokenPair:
        """Create an access token carrying ``identity`` and a minimal refresh token."""
        now = self.clock()

        access_payload = {
            "sub": identity.user_id,
            "email": identity.email,
            "first_name": identity.first_name,
            "last_name": identity.last_name,
            "iat": now,
            "exp": now + self.access_ttl,
            "type": ACCESS,
            "jti": generate_id("tok"),
        }
        refresh_payload = {
            "iat": now,
            "exp": now + self.refresh_ttl,
            "type": REFRESH,
            "jti": generate_id("rtok"),
        }

        return TokenPair(
            access_token=self._sign(access_payload),
            refresh_token=self._sign(refresh_payload),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    # -------------------------------------------------------------------------
    # Verification
    # -------------------------------------------------------------------------

    def verify(self, token: str, expected_type: str = ACCESS) -> TokenClaims:
        """
        Decode and validate a token.

        Expiry is checked before the signature, so an expired token is
        reported as expired whether or not its signature is intact.

        Raises:
            MalformedTokenError: not a JWT, missing claims, or wrong type
            ExpiredTokenError: ``exp`` is in the past
            InvalidSignatureError: signature does not match the secret
        """
        try:
            unverified = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as e:
            raise MalformedTokenError(f"Malformed token: {e}") from e

        exp = unverified.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise MalformedTokenError("Token has no expiry")
        if exp < int(self.clock().timestamp()):
            raise ExpiredTokenError("the token has expired")

        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                # exp was checked above against our clock; iat/nbf are informational
                options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
            )
        except jwt.InvalidSignatureError as e:
            raise InvalidSignatureError("the token signature is invalid") from e
        except jwt.PyJWTError as e:
            raise MalformedTokenError(f"Invalid token: {e}") from e

        if payload.get("type") != expected_type:
            raise MalformedTokenError(f"Expected {expected_type} token, got {payload.get('type')}")

        try:
            return TokenClaims(
                sub=payload.get("sub"),
                email=payload.get("email"),
                first_name=payload.get("first_name"),
                last_name=payload.get("last_name"),
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                type=payload["type"],
                jti=payload["jti"],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedTokenError(f"Invalid token claims: {e}") from e

    # -------------------------------------------------------------------------
    # Refresh bookkeeping
    # -------------------------------------------------------------------------

    async def refresh(self, user_id: str, access_token: str, refresh_token: str) -> None:
        """Overwrite the persisted token pair for ``user_id`` (upsert)."""
        if self.sessions is None:
            raise ConfigError("TokenService has no session store")
        await self.sessions.save(user_id, access_token, refresh_token)
