"""
Shared fixtures: a controllable clock, an in-memory store, and services
wired to them.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import BaseModel

from bistro.auth.hashing import Pbkdf2Hasher
from bistro.auth.jwt import TokenService
from bistro.auth.sessions import SessionStore
from bistro.config import Settings
from bistro.storage import InMemoryDocumentStore

SECRET = "test-secret-key-that-is-long-enough-for-hs256"


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class SlowStore(InMemoryDocumentStore):
    """In-memory store whose reads hang for ``delay`` seconds."""

    def __init__(self, delay: float = 1.0):
        super().__init__()
        self.delay = delay

    async def find_one(self, collection, filters):
        await asyncio.sleep(self.delay)
        return await super().find_one(collection, filters)

    async def find_many(self, collection, filters=None):
        await asyncio.sleep(self.delay)
        return await super().find_many(collection, filters)


class DownStore(InMemoryDocumentStore):
    """In-memory store whose reads fail as if the backend were unreachable."""

    async def find_one(self, collection, filters):
        raise ConnectionError("connection refused")

    async def find_many(self, collection, filters=None):
        raise ConnectionError("connection refused")


async def seed(store: InMemoryDocumentStore, collection: str, *records: BaseModel) -> None:
    """Write model instances straight into the store."""
    for record in records:
        await store.insert(collection, record.model_dump())


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def sessions(store):
    return SessionStore(store)


@pytest.fixture
def tokens(clock, sessions):
    """Token service on the fake clock, persisting into ``store``."""
    return TokenService(secret_key=SECRET, clock=clock, sessions=sessions)


@pytest.fixture
def hasher():
    """Cheap hasher so tests stay fast."""
    return Pbkdf2Hasher(iterations=1_000)


@pytest.fixture
def settings():
    return Settings(jwt_secret_key=SECRET, sentry_dsn="", log_level="WARNING")
