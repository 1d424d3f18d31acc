"""
Base class for store-backed services.

Every service owns a document store and a timeout, and reads and writes
whole pydantic documents. The helpers here keep that plumbing in one
place:

    _create  - insert a built document
    _get     - fetch one by its id field or raise NotFoundError
    _list    - fetch many, optionally filtered
    _update  - merge changes into a stored document, validate, write back

Updates never upsert. The merged document is validated (money rounded,
``updated_at`` stamped) before anything is written, so a rejected change
leaves the stored document untouched.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel

from bistro.core.errors import NotFoundError
from bistro.core.models import build
from bistro.core.utils import utc_now
from bistro.storage.base import DocumentStore, with_timeout

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class StoreService:
    """Shared CRUD plumbing over a ``DocumentStore``."""

    def __init__(self, store: DocumentStore, timeout: float = 10.0):
        self.store = store
        self.timeout = timeout

    async def _create(self, collection: str, record: M) -> M:
        await with_timeout(
            self.store.insert(collection, record.model_dump()),
            self.timeout,
            f"{collection}.insert",
        )
        return record

    async def _get(
        self,
        collection: str,
        model: type[M],
        id_field: str,
        value: str,
        missing: str | None = None,
    ) -> M:
        doc = await with_timeout(
            self.store.find_one(collection, {id_field: value}),
            self.timeout,
            f"{collection}.find_one",
        )
        if doc is None:
            raise NotFoundError(missing or f"{model.__name__} {value} not found")
        return model(**doc)

    async def _list(
        self,
        collection: str,
        model: type[M],
        filters: dict[str, Any] | None = None,
    ) -> list[M]:
        docs = await with_timeout(
            self.store.find_many(collection, filters),
            self.timeout,
            f"{collection}.find_many",
        )
        return [model(**doc) for doc in docs]

    async def _update(
        self,
        collection: str,
        model: type[M],
        id_field: str,
        value: str,
        changes: dict[str, Any],
    ) -> M:
        """
        Apply ``changes`` to the document whose ``id_field`` is ``value``.

        Only the changed fields and ``updated_at`` are written. Raises
        NotFoundError if the document is missing and InvalidInputError if
        the merged document does not validate.
        """
        current = await self._get(collection, model, id_field, value)
        record = build(model, **{**current.model_dump(), **changes, "updated_at": utc_now()})

        patch = record.model_dump(include={*changes, "updated_at"})
        result = await with_timeout(
            self.store.update_one(collection, {id_field: value}, patch),
            self.timeout,
            f"{collection}.update_one",
        )
        if result.matched_count == 0:
            # Deleted between the read and the write
            raise NotFoundError(f"{model.__name__} {value} not found")

        logger.info("Updated %s %s: %s", model.__name__, value, ", ".join(sorted(changes)) or "timestamp")
        return record
