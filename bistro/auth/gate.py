"""
Auth gate - the dependency in front of every protected route.

Usage:
    router = APIRouter(dependencies=[Depends(authenticate)])

    @router.get("/things")
    async def list_things(ctx: AuthContext = Depends(authenticate)):
        ...

FastAPI resolves a dependency once per request, so declaring it on both
the router and a handler verifies the token only once.

Flow:
    no ``token`` header        -> MissingTokenError   -> 400
    token fails verification   -> TokenError subclass -> 400
    token verifies             -> AuthContext on request.state, handler runs
"""

from __future__ import annotations

import logging

from fastapi import Header, Request

from bistro.auth.context import AuthContext
from bistro.auth.jwt import TokenService
from bistro.core.errors import MissingTokenError, TokenError
from bistro.integrations.sentry import set_user

logger = logging.getLogger(__name__)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


async def authenticate(
    request: Request,
    token: str | None = Header(default=None),
) -> AuthContext:
    """Verify the ``token`` header and expose the caller's identity."""
    if not token:
        raise MissingTokenError("no authorization provided")

    tokens = get_token_service(request)
    try:
        claims = tokens.verify(token)
    except TokenError as e:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, e)
        raise

    ctx = AuthContext.from_claims(claims)
    request.state.auth = ctx
    set_user(ctx.user_id, ctx.email)
    return ctx
