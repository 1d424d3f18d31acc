"""
Core module - data models, errors and shared helpers.

This module contains:
- models: Store documents (User, Table, Menu, Food, Order, OrderItem, Invoice)
- errors: The exception taxonomy shared by every layer
- utils: IDs, UTC time and money rounding
"""

from bistro.core.models import (
    Food,
    Invoice,
    Menu,
    Money,
    Order,
    OrderItem,
    PageRequest,
    PaymentMethod,
    PaymentStatus,
    Table,
    User,
    UserPublic,
    build,
)

from bistro.core.errors import (
    BistroError,
    ConfigError,
    ConflictError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidSignatureError,
    MalformedTokenError,
    MissingTokenError,
    NotFoundError,
    ReferenceNotFoundError,
    SigningError,
    StoreError,
    StoreTimeoutError,
    StoreUnavailableError,
    TokenError,
)

from bistro.core.utils import (
    as_money,
    as_utc,
    describe_errors,
    generate_id,
    to_fixed,
    utc_now,
)

__all__ = [
    # Models
    "Food",
    "Invoice",
    "Menu",
    "Money",
    "Order",
    "OrderItem",
    "PageRequest",
    "PaymentMethod",
    "PaymentStatus",
    "Table",
    "User",
    "UserPublic",
    "build",
    # Errors
    "BistroError",
    "ConfigError",
    "ConflictError",
    "ExpiredTokenError",
    "InvalidCredentialsError",
    "InvalidInputError",
    "InvalidSignatureError",
    "MalformedTokenError",
    "MissingTokenError",
    "NotFoundError",
    "ReferenceNotFoundError",
    "SigningError",
    "StoreError",
    "StoreTimeoutError",
    "StoreUnavailableError",
    "TokenError",
    # Utils
    "as_money",
    "as_utc",
    "describe_errors",
    "generate_id",
    "to_fixed",
    "utc_now",
]
