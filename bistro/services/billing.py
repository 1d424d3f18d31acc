"""
Billing aggregation.

Rebuilds the bill for an order from three collections:

    order_items --(order_id)--> orders --(table_id)--> tables
    order_items --(food_id)---> foods

The pipeline is a sequence of left joins followed by a group and a final
projection, run in-process over ``find_many`` lookups:

    1. match order items on order_id
    2. left-join orders on order_id
    3. left-join foods on food_id
    4. left-join tables on order.table_id
    5. project one row per item (amount = food.price)
    6. group by (order_id, table_id, table_number)
    7. project the summary

Left joins never drop a row. A row whose food is gone still counts towards
``total_count``; its null price is skipped in the sum, so it adds nothing
to ``payment_due``. Amounts are summed exactly as stored: rounding happened
when the prices were written.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from bistro.core.errors import NotFoundError
from bistro.core.models import Money
from bistro.core.utils import as_money
from bistro.storage.base import Collections, DocumentStore, with_timeout

logger = logging.getLogger(__name__)

Row = dict[str, Any]


# =============================================================================
# Models
# =============================================================================


class BillingLine(BaseModel):
    """One order item as it appears on the bill."""
    food_name: str | None = None
    food_image: str | None = None
    price: Money | None = None
    quantity: int | None = None


class BillingSummary(BaseModel):
    """
    Derived view of what an order costs. Never stored.

    ``order_id`` and ``table_id`` are the grouping keys. They stay on the
    object for callers but are left out of serialized output.
    """
    order_id: str | None = Field(default=None, exclude=True)
    table_id: str | None = Field(default=None, exclude=True)
    table_number: int | None = None
    payment_due: Money = Decimal("0")
    total_count: int = 0
    order_items: list[BillingLine] = Field(default_factory=list)


# =============================================================================
# Join helpers
# =============================================================================


def left_join(rows: list[Row], key: str, index: dict[Any, list[Row]], as_: str) -> list[Row]:
    """
    Attach matching documents under ``as_``, one output row per match.

    ``key`` is a dotted path into the row (``"order.table_id"``). A row with
    no match is kept with ``as_`` set to None.
    """
    joined: list[Row] = []
    for row in rows:
        matches = index.get(_lookup(row, key)) or [None]
        for match in matches:
            joined.append({**row, as_: match})
    return joined


def _lookup(row: Row, path: str) -> Any:
    value: Any = row
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _field(doc: Row | None, name: str) -> Any:
    return doc.get(name) if doc else None


# =============================================================================
# Aggregator
# =============================================================================


class BillingAggregator:
    """Computes billing summaries on read."""

    def __init__(self, store: DocumentStore, timeout: float = 100.0):
        self.store = store
        self.timeout = timeout

    async def _index(self, collection: str, field: str, values: set[Any]) -> dict[Any, list[Row]]:
        """Fetch every document whose ``field`` is in ``values``, grouped by it."""
        keys = [v for v in values if v is not None]
        results = await asyncio.gather(
            *(self.store.find_many(collection, {field: value}) for value in keys)
        )
        return {value: docs for value, docs in zip(keys, results) if docs}

    async def _pipeline(self, order_id: str) -> list[BillingSummary]:
        # 1. match
        rows = await self.store.find_many(Collections.ORDER_ITEMS, {"order_id": order_id})
        if not rows:
            return []

        # 2-4. left joins
        orders = await self._index(Collections.ORDERS, "order_id", {r.get("order_id") for r in rows})
        rows = left_join(rows, "order_id", orders, "order")

        foods = await self._index(Collections.FOODS, "food_id", {r.get("food_id") for r in rows})
        rows = left_join(rows, "food_id", foods, "food")

        tables = await self._index(
            Collections.TABLES, "table_id", {_lookup(r, "order.table_id") for r in rows}
        )
        rows = left_join(rows, "order.table_id", tables, "table")

        # 5. per-item projection
        projected = [
            {
                "amount": _field(r["food"], "price"),
                "food_name": _field(r["food"], "name"),
                "food_image": _field(r["food"], "food_image"),
                "table_number": _field(r["table"], "table_number"),
                "table_id": _field(r["table"], "table_id"),
                "order_id": _field(r["order"], "order_id"),
                "price": _field(r["food"], "price"),
                "quantity": r.get("quantity"),
            }
            for r in rows
        ]

        # 6. group, keeping first-seen order
        groups: dict[tuple, BillingSummary] = {}
        for row in projected:
            key = (row["order_id"], row["table_id"], row["table_number"])
            summary = groups.get(key)
            if summary is None:
                summary = groups[key] = BillingSummary(
                    order_id=row["order_id"],
                    table_id=row["table_id"],
                    table_number=row["table_number"],
                )
            amount = as_money(row["amount"])
            if amount is not None:
                summary.payment_due += amount
            summary.total_count += 1
            summary.order_items.append(
                BillingLine(
                    food_name=row["food_name"],
                    food_image=row["food_image"],
                    price=as_money(row["price"]),
                    quantity=row["quantity"],
                )
            )

        # 7. summaries carry only the public fields when serialized
        return list(groups.values())

    async def aggregate(self, order_id: str) -> list[BillingSummary]:
        """
        Run the billing pipeline for ``order_id``.

        Returns an empty list when no order items reference the order.
        """
        return await with_timeout(self._pipeline(order_id), self.timeout, "billing.aggregate")

    async def summarize(self, order_id: str) -> BillingSummary:
        """Like ``aggregate`` but returns the single summary or raises NotFoundError."""
        summaries = await self.aggregate(order_id)
        if not summaries:
            raise NotFoundError(f"No order items found for order {order_id}")
        if len(summaries) > 1:
            # Only possible with duplicated order/table records
            logger.warning("Order %s produced %d billing groups", order_id, len(summaries))
        return summaries[0]
