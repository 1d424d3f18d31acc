"""
Core data models for the bistro backend.

These are the documents kept in the store: users, tables, menus, foods,
orders, order items and invoices. Each carries its own string ID field
(``user_id``, ``order_id`` ...) which is what the other documents refer to.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, Field, PlainSerializer, ValidationError, field_validator

from bistro.core.errors import InvalidInputError
from bistro.core.utils import describe_errors, generate_id, to_fixed, utc_now

M = TypeVar("M", bound=BaseModel)

# Decimal in Python, plain number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def _money(value) -> Decimal:
    try:
        return to_fixed(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"not a monetary amount: {value!r}") from None


def build(model: type[M], **fields: Any) -> M:
    """
    Construct a document from already-parsed input.

    Services call this before writing anything, so a value that parses but
    cannot be stored (a price too large to round to cents) fails the
    request with InvalidInputError instead of leaving partial writes.
    """
    try:
        return model(**fields)
    except ValidationError as e:
        raise InvalidInputError(describe_errors(e.errors())) from e


# =============================================================================
# Enums
# =============================================================================


class PaymentMethod(str, Enum):
    """How an invoice is settled."""

    CARD = "CARD"
    CASH = "CASH"


class PaymentStatus(str, Enum):
    """Settlement state of an invoice."""

    PENDING = "PENDING"
    PAID = "PAID"


# =============================================================================
# Users
# =============================================================================


class User(BaseModel):
    """
    A staff account.

    ``token`` and ``refresh_token`` hold the latest issued pair; they are
    overwritten on every login.
    """

    user_id: str = Field(default_factory=lambda: generate_id("user"))
    first_name: str
    last_name: str
    email: str
    phone: str
    password: str  # one-way hash, never the plain secret
    avatar: str | None = None
    token: str | None = None
    refresh_token: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class UserPublic(BaseModel):
    """User data returned to clients (no secrets)."""

    user_id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    avatar: str | None = None
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Dining room / catalog
# =============================================================================


class Table(BaseModel):
    """A physical table in the restaurant."""

    table_id: str = Field(default_factory=lambda: generate_id("tbl"))
    number_of_guests: int = Field(ge=0)
    table_number: int
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Menu(BaseModel):
    """A named group of foods, optionally time-boxed."""

    menu_id: str = Field(default_factory=lambda: generate_id("menu"))
    name: str
    category: str
    start_date: datetime | None = None
    end_date: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Food(BaseModel):
    """A dish on a menu. ``price`` is rounded to cents when set."""

    food_id: str = Field(default_factory=lambda: generate_id("food"))
    name: str = Field(min_length=2, max_length=100)
    price: Money
    food_image: str
    menu_id: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("price", mode="before")
    @classmethod
    def _round_price(cls, value):
        return _money(value)


# =============================================================================
# Orders
# =============================================================================


class Order(BaseModel):
    """One checkout event at a table."""

    order_id: str = Field(default_factory=lambda: generate_id("order"))
    table_id: str
    order_date: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class OrderItem(BaseModel):
    """
    A line of an order.

    ``unit_price`` is rounded to 2 decimals here, at write time. Billing
    sums the stored values as-is.
    """

    order_item_id: str = Field(default_factory=lambda: generate_id("item"))
    order_id: str
    food_id: str
    quantity: int = Field(ge=1)
    unit_price: Money
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("unit_price", mode="before")
    @classmethod
    def _round_unit_price(cls, value):
        return _money(value)


class Invoice(BaseModel):
    """Payment record for an order."""

    invoice_id: str = Field(default_factory=lambda: generate_id("inv"))
    order_id: str
    payment_method: PaymentMethod | None = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_due_date: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# Pagination
# =============================================================================


class PageRequest(BaseModel):
    """
    Which slice of a listing to return.

    ``record_per_page`` below 1 falls back to 10 and ``page`` below 1 to 1.
    An explicit ``start_index`` wins over the offset derived from ``page``.
    """

    record_per_page: int = 10
    page: int = 1
    start_index: int | None = None

    @field_validator("record_per_page", mode="after")
    @classmethod
    def _default_page_size(cls, value: int) -> int:
        return value if value >= 1 else 10

    @field_validator("page", mode="after")
    @classmethod
    def _first_page(cls, value: int) -> int:
        return value if value >= 1 else 1

    @property
    def offset(self) -> int:
        if self.start_index is not None:
            return max(self.start_index, 0)
        return (self.page - 1) * self.record_per_page

    def slice(self, items: list[M]) -> list[M]:
        return items[self.offset:self.offset + self.record_per_page]
