"""
Storage abstractions.

- DocumentStore → MongoDB / DynamoDB in production
- InMemoryDocumentStore → development and tests
"""

from bistro.storage.base import (
    Collections,
    DocumentStore,
    UpdateResult,
    with_timeout,
)
from bistro.storage.local import InMemoryDocumentStore, create_local_storage

__all__ = [
    "Collections",
    "DocumentStore",
    "UpdateResult",
    "with_timeout",
    "InMemoryDocumentStore",
    "create_local_storage",
]
