"""
Auth context - who is making the request.

This is the lightweight, read-only object the auth gate hands to route
handlers once a token has been verified.
"""

from __future__ import annotations

from dataclasses import dataclass

from bistro.auth.jwt import TokenClaims


@dataclass(frozen=True)
class AuthContext:
    """
    Verified identity for a request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(authenticate)):
            print(f"User {ctx.user_id} ({ctx.email})")
    """

    user_id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    claims: TokenClaims

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> AuthContext:
        return cls(
            user_id=claims.sub or "",
            email=claims.email,
            first_name=claims.first_name,
            last_name=claims.last_name,
            claims=claims,
        )
