"""
FastAPI application for the Bistro POS backend.

``create_app`` wires everything explicitly: one document store is built (or
passed in) and handed to each service, and the services are hung on
``app.state`` for the route dependencies to pick up.

Run with:
    uvicorn bistro.api.app:create_app --factory
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bistro.auth.accounts import AccountService
from bistro.auth.jwt import TokenService
from bistro.auth.routes import router as users_router
from bistro.auth.sessions import SessionStore
from bistro.api.routes import router as protected_router
from bistro.config import Settings, configure_logging, get_settings
from bistro.core.errors import (
    BistroError,
    ConflictError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
    ReferenceNotFoundError,
    SigningError,
    StoreError,
    TokenError,
)
from bistro.core.utils import describe_errors
from bistro.integrations.sentry import capture_exception, init_sentry
from bistro.services.billing import BillingAggregator
from bistro.services.catalog import CatalogService
from bistro.services.invoices import InvoiceService
from bistro.services.orders import OrderService
from bistro.storage import DocumentStore, create_local_storage

logger = logging.getLogger(__name__)


# =============================================================================
# Error Mapping
# =============================================================================

# First match wins, so subclasses must come before their bases.
STATUS_CODES: list[tuple[type[BistroError], int]] = [
    (TokenError, 400),
    (ReferenceNotFoundError, 400),
    (InvalidInputError, 400),
    (InvalidCredentialsError, 401),
    (NotFoundError, 404),
    (ConflictError, 409),
    (SigningError, 500),
    (StoreError, 500),
]


def status_for(error: BistroError) -> int:
    for error_type, status in STATUS_CODES:
        if isinstance(error, error_type):
            return status
    return 500


async def handle_bistro_error(request: Request, exc: BistroError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        # Logs locally when Sentry is off
        capture_exception(exc, path=request.url.path)
    return JSONResponse(status_code=status, content={"error": str(exc)})


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Body, query and header parsing runs before route dependencies, so a
    # malformed request is answered here even when it also lacks a token.
    return JSONResponse(status_code=400, content={"error": describe_errors(exc.errors())})


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    settings: Settings | None = None,
    store: DocumentStore | None = None,
    token_service: TokenService | None = None,
) -> FastAPI:
    """
    Build the application.

    Raises ConfigError when no signing secret is configured; the process
    should not start without one.
    """
    settings = settings or get_settings()
    store = store or create_local_storage()

    configure_logging(settings.log_level)
    init_sentry(settings)

    sessions = SessionStore(store, timeout=settings.store_lookup_timeout)
    tokens = token_service or TokenService.from_settings(settings, sessions=sessions)
    if tokens.sessions is None:
        tokens.sessions = sessions

    billing = BillingAggregator(store, timeout=settings.store_aggregate_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Bistro API starting in %s mode", settings.environment)
        yield
        await store.close()
        logger.info("Bistro API shut down")

    app = FastAPI(
        title="Bistro API",
        description="Restaurant point-of-sale backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.tokens = tokens
    app.state.accounts = AccountService(store, tokens, timeout=settings.store_lookup_timeout)
    app.state.catalog = CatalogService(store, timeout=settings.store_lookup_timeout)
    app.state.orders = OrderService(store, timeout=settings.store_lookup_timeout)
    app.state.billing = billing
    app.state.invoices = InvoiceService(store, billing, timeout=settings.store_lookup_timeout)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BistroError, handle_bistro_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "bistro-api"}

    app.include_router(users_router)
    app.include_router(protected_router)

    return app
