"""
Authentication - token lifecycle and the gate in front of protected routes.

Design:
1. TokenService issues and verifies tokens without touching the store
2. SessionStore persists the latest pair per user (upsert, last write wins)
3. ``authenticate`` is the single dependency that guards a route
"""

from bistro.auth.context import AuthContext
from bistro.auth.gate import authenticate
from bistro.auth.hashing import CredentialHasher, Pbkdf2Hasher
from bistro.auth.jwt import (
    Identity,
    TokenClaims,
    TokenPair,
    TokenService,
)
from bistro.auth.sessions import SessionStore

__all__ = [
    # Gate
    "authenticate",
    "AuthContext",
    # Tokens
    "Identity",
    "TokenClaims",
    "TokenPair",
    "TokenService",
    "SessionStore",
    # Hashing
    "CredentialHasher",
    "Pbkdf2Hasher",
]
