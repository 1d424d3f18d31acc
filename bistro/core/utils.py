"""
Shared utility functions for the bistro backend.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "order", "food", "tbl")

    Returns:
        A unique ID like "order_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def to_fixed(value: Any) -> Decimal:
    """
    Round a monetary value to 2 decimal places, half away from zero.

    This is the single place money gets rounded. It is applied when
    prices are written, never when they are summed.
    """
    if isinstance(value, Decimal):
        amount = value
    else:
        # str() keeps 12.345 from becoming 12.3449999... first
        amount = Decimal(str(value))
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def as_money(value: Any) -> Decimal | None:
    """
    Interpret a stored value as money without rounding it.

    Returns None for missing or non-numeric values so callers can skip
    them the way a document store's $sum does.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    return None


def describe_errors(errors: list[dict[str, Any]]) -> str:
    """
    Flatten pydantic error dicts into one line.

    ``[{"loc": ("body", "price"), "msg": "..."}]`` -> ``"body.price: ..."``
    """
    parts = []
    for error in errors:
        loc = ".".join(str(part) for part in error.get("loc", ()))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "invalid input"
