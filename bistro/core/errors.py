"""
Error taxonomy for the bistro backend.

Services raise these; the HTTP layer maps them to status codes in one
place (see bistro.api.app).
"""

from __future__ import annotations


class BistroError(Exception):
    """Base exception for all domain errors."""
    pass


# =============================================================================
# Configuration / signing (fatal)
# =============================================================================


class ConfigError(BistroError):
    """Required configuration is missing (e.g. the signing secret)."""
    pass


class SigningError(BistroError):
    """A token could not be signed."""
    pass


# =============================================================================
# Token verification (request is rejected, process carries on)
# =============================================================================


class TokenError(BistroError):
    """Base exception for token verification errors."""
    pass


class MissingTokenError(TokenError):
    """Request carried no token header."""
    pass


class MalformedTokenError(TokenError):
    """Token could not be parsed, or is the wrong kind of token."""
    pass


class InvalidSignatureError(TokenError):
    """Token signature does not match the shared secret."""
    pass


class ExpiredTokenError(TokenError):
    """Token has expired."""
    pass


# =============================================================================
# Document store
# =============================================================================


class StoreError(BistroError):
    """Base exception for document store failures."""
    pass


class StoreTimeoutError(StoreError):
    """A store call did not complete within its timeout."""
    pass


class StoreUnavailableError(StoreError):
    """The store backend failed or could not be reached."""
    pass


# =============================================================================
# Lookups / accounts
# =============================================================================


class NotFoundError(BistroError):
    """The requested record (or aggregate) does not exist."""
    pass


class ReferenceNotFoundError(BistroError):
    """A record being created or updated refers to something that does not exist."""
    pass


class InvalidInputError(BistroError):
    """Input passed request parsing but cannot be stored (e.g. an unrepresentable price)."""
    pass


class InvalidCredentialsError(BistroError):
    """Login failed: unknown email or wrong password."""
    pass


class ConflictError(BistroError):
    """A unique field (email, phone) is already taken."""
    pass
