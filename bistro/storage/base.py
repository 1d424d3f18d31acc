"""
Storage abstraction layer.

All persistence goes through this interface. The application depends on a
handful of document-store capabilities (find one, find many, insert,
update one with optional upsert) so the concrete store can be swapped
(MongoDB, DynamoDB, in-memory for tests) without changing service code.

Every call a service makes is wrapped in ``with_timeout`` so a slow store
cannot hang a request.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, TypeVar

from pydantic import BaseModel

from bistro.core.errors import StoreTimeoutError, StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Results
# =============================================================================


class UpdateResult(BaseModel):
    """Outcome of an ``update_one`` call."""

    matched_count: int = 0
    modified_count: int = 0
    upserted_id: str | None = None


# =============================================================================
# Storage Interface
# =============================================================================


class DocumentStore(ABC):
    """
    Storage for structured documents grouped in collections.

    Filters are equality matches on top-level fields. Implementations must
    make single-document writes atomic; nothing here spans documents.

    Connection failures (``OSError``, which covers ``ConnectionError``) are
    turned into StoreUnavailableError by ``with_timeout``.
    """

    @abstractmethod
    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        """Return the first document matching ``filters``, or None."""
        pass

    @abstractmethod
    async def find_many(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Return every document matching ``filters`` in insertion order."""
        pass

    @abstractmethod
    async def insert(self, collection: str, document: dict[str, Any]) -> str:
        """Insert a document, return its internal id."""
        pass

    @abstractmethod
    async def insert_many(self, collection: str, documents: list[dict[str, Any]]) -> list[str]:
        """Insert several documents, return their internal ids."""
        pass

    @abstractmethod
    async def update_one(
        self,
        collection: str,
        filters: dict[str, Any],
        patch: dict[str, Any],
        upsert: bool = False,
    ) -> UpdateResult:
        """
        Set the fields in ``patch`` on the first matching document.

        With ``upsert=True`` a missing document is created from
        ``filters`` + ``patch``.
        """
        pass

    async def close(self) -> None:
        """Release connections. Override when the backend holds any."""
        pass


# =============================================================================
# Timeouts
# =============================================================================


async def with_timeout(awaitable: Awaitable[T], seconds: float, operation: str) -> T:
    """
    Await a store call, failing with StoreTimeoutError after ``seconds``.

    A backend that cannot be reached raises StoreUnavailableError. No
    retry: the caller decides what to do with the failure.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning("Store operation %s timed out after %.1fs", operation, seconds)
        raise StoreTimeoutError(f"{operation} timed out after {seconds}s") from None
    except OSError as e:
        logger.error("Store operation %s failed: %s", operation, e)
        raise StoreUnavailableError(f"{operation} failed: {e}") from e


# =============================================================================
# Collection Names
# =============================================================================


class Collections:
    """Standard collection names."""

    USERS = "users"
    TABLES = "tables"
    MENUS = "menus"
    FOODS = "foods"
    ORDERS = "orders"
    ORDER_ITEMS = "order_items"
    INVOICES = "invoices"
