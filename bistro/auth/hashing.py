# =============================================================================
# Password Hashing
# =============================================================================
#
# Any object with ``hash`` and ``verify`` can be passed to the account
# service. The default is PBKDF2-SHA256 with a random per-password salt.
#
# =============================================================================

from __future__ import annotations

import hashlib
import secrets
from typing import Protocol


class CredentialHasher(Protocol):
    """One-way hash with verify."""

    def hash(self, secret: str) -> str: ...

    def verify(self, secret: str, hashed: str) -> bool: ...


class Pbkdf2Hasher:
    """PBKDF2-SHA256, stored as ``salt:hash``."""

    def __init__(self, iterations: int = 100_000):
        self.iterations = iterations

    def _derive(self, secret: str, salt: str) -> str:
        return hashlib.pbkdf2_hmac(
            "sha256",
            secret.encode("utf-8"),
            salt.encode("utf-8"),
            iterations=self.iterations,
        ).hex()

    def hash(self, secret: str) -> str:
        salt = secrets.token_hex(32)
        return f"{salt}:{self._derive(secret, salt)}"

    def verify(self, secret: str, hashed: str) -> bool:
        try:
            salt, stored_hash = hashed.split(":")
        except (ValueError, AttributeError):
            return False
        return secrets.compare_digest(self._derive(secret, salt), stored_hash)
