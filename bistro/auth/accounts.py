"""
Account service - signup and login.

Both issue a fresh token pair. Signup stores it on the new user record;
login persists it through the token service's session store, replacing
whatever pair was there before.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, EmailStr, Field

from bistro.auth.hashing import CredentialHasher, Pbkdf2Hasher
from bistro.auth.jwt import Identity, TokenPair, TokenService
from bistro.core.errors import ConflictError, InvalidCredentialsError, NotFoundError
from bistro.core.models import PageRequest, User, UserPublic
from bistro.storage.base import Collections, DocumentStore, with_timeout

logger = logging.getLogger(__name__)


# =============================================================================
# Request / Response Models
# =============================================================================


class SignupRequest(BaseModel):
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    phone: str = Field(min_length=3)
    password: str = Field(min_length=6)
    avatar: str | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    """User plus the tokens just issued to them."""
    user: UserPublic
    tokens: TokenPair


class UserPage(BaseModel):
    """One page of users plus the size of the whole listing."""
    total_count: int
    user_items: list[UserPublic]


# =============================================================================
# Service
# =============================================================================


class AccountService:
    """Signup, login and user lookups."""

    def __init__(
        self,
        store: DocumentStore,
        tokens: TokenService,
        hasher: CredentialHasher | None = None,
        timeout: float = 10.0,
    ):
        self.store = store
        self.tokens = tokens
        self.hasher = hasher or Pbkdf2Hasher()
        self.timeout = timeout

    async def _find_user(self, filters: dict) -> dict | None:
        return await with_timeout(
            self.store.find_one(Collections.USERS, filters),
            self.timeout,
            "users.find_one",
        )

    async def signup(self, data: SignupRequest) -> AuthResponse:
        """Create an account. Email and phone must both be unused."""
        email = data.email.lower()
        if await self._find_user({"email": email}):
            raise ConflictError("The email or phone number already exist")
        if await self._find_user({"phone": data.phone}):
            raise ConflictError("The email or phone number already exist")

        user = User(
            first_name=data.first_name,
            last_name=data.last_name,
            email=email,
            phone=data.phone,
            password=self.hasher.hash(data.password),
            avatar=data.avatar,
        )
        pair = self.tokens.issue(_identity(user))
        user.token = pair.access_token
        user.refresh_token = pair.refresh_token

        await with_timeout(
            self.store.insert(Collections.USERS, user.model_dump()),
            self.timeout,
            "users.insert",
        )
        logger.info("Registered user %s", user.user_id)
        return AuthResponse(user=UserPublic(**user.model_dump()), tokens=pair)

    async def login(self, data: LoginRequest) -> AuthResponse:
        """Check credentials, issue a new pair and persist it."""
        doc = await self._find_user({"email": data.email.lower()})
        if doc is None:
            raise InvalidCredentialsError("The user does not exist")

        user = User(**doc)
        if not self.hasher.verify(data.password, user.password):
            raise InvalidCredentialsError("Password mismatch")

        pair = self.tokens.issue(_identity(user))
        await self.tokens.refresh(user.user_id, pair.access_token, pair.refresh_token)
        logger.info("User %s logged in", user.user_id)
        return AuthResponse(user=UserPublic(**user.model_dump()), tokens=pair)

    async def get_user(self, user_id: str) -> UserPublic:
        doc = await self._find_user({"user_id": user_id})
        if doc is None:
            raise NotFoundError(f"User {user_id} not found")
        return UserPublic(**doc)

    async def list_users(self) -> list[UserPublic]:
        docs = await with_timeout(
            self.store.find_many(Collections.USERS),
            self.timeout,
            "users.find_many",
        )
        return [UserPublic(**doc) for doc in docs]

    async def page_users(self, paging: PageRequest) -> UserPage:
        users = await self.list_users()
        return UserPage(total_count=len(users), user_items=paging.slice(users))


def _identity(user: User) -> Identity:
    return Identity(
        user_id=user.user_id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
    )
