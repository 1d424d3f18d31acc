"""
Local storage implementation for development and tests.

An in-memory document store that works without any external services.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any

from bistro.storage.base import DocumentStore, UpdateResult


# =============================================================================
# In-Memory Document Store
# =============================================================================


class InMemoryDocumentStore(DocumentStore):
    """
    In-memory document storage.

    Documents are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        if name not in self._data:
            self._data[name] = {}
        return self._data[name]

    @staticmethod
    def _matches(doc: dict[str, Any], filters: dict[str, Any] | None) -> bool:
        if not filters:
            return True
        for key, value in filters.items():
            if doc.get(key) != value:
                return False
        return True

    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        for doc in self._collection(collection).values():
            if self._matches(doc, filters):
                return copy.deepcopy(doc)
        return None

    async def find_many(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        return [
            copy.deepcopy(doc)
            for doc in self._collection(collection).values()
            if self._matches(doc, filters)
        ]

    async def insert(self, collection: str, document: dict[str, Any]) -> str:
        internal_id = document.get("_id") or uuid.uuid4().hex
        self._collection(collection)[internal_id] = {**copy.deepcopy(document), "_id": internal_id}
        return internal_id

    async def insert_many(self, collection: str, documents: list[dict[str, Any]]) -> list[str]:
        return [await self.insert(collection, doc) for doc in documents]

    async def update_one(
        self,
        collection: str,
        filters: dict[str, Any],
        patch: dict[str, Any],
        upsert: bool = False,
    ) -> UpdateResult:
        docs = self._collection(collection)
        for doc in docs.values():
            if self._matches(doc, filters):
                changed = any(doc.get(k) != v for k, v in patch.items())
                doc.update(copy.deepcopy(patch))
                return UpdateResult(matched_count=1, modified_count=int(changed))

        if not upsert:
            return UpdateResult()

        internal_id = await self.insert(collection, {**filters, **patch})
        return UpdateResult(upserted_id=internal_id)


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> DocumentStore:
    """Create the default in-memory document store."""
    return InMemoryDocumentStore()
