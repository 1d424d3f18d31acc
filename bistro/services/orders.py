"""
Order service - orders and their items.

Order items are created in a batch: one call opens a new order for a table
and writes every item against it. Unit prices are rounded to 2 decimals
as each item is built, so the stored values are the ones billing sums.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bistro.core.errors import ReferenceNotFoundError
from bistro.core.models import Order, OrderItem, build
from bistro.services.base import StoreService
from bistro.storage.base import Collections, with_timeout

logger = logging.getLogger(__name__)


# =============================================================================
# Request Models
# =============================================================================


class CreateOrderRequest(BaseModel):
    table_id: str


class UpdateOrderRequest(BaseModel):
    table_id: str | None = None
    order_date: datetime | None = None


class OrderItemIn(BaseModel):
    food_id: str
    quantity: int = Field(ge=1)
    unit_price: Decimal


class UpdateOrderItemRequest(BaseModel):
    food_id: str | None = None
    quantity: int | None = Field(default=None, ge=1)
    unit_price: Decimal | None = None


class CreateOrderItemsRequest(BaseModel):
    """A checkout: the table plus everything ordered at it."""
    table_id: str
    order_items: list[OrderItemIn] = Field(min_length=1)


class OrderItemsCreated(BaseModel):
    order_id: str
    order_items: list[OrderItem]


# =============================================================================
# Service
# =============================================================================


class OrderService(StoreService):
    """Creates, fetches and updates orders and order items."""

    async def _require_table(self, table_id: str) -> None:
        table = await with_timeout(
            self.store.find_one(Collections.TABLES, {"table_id": table_id}),
            self.timeout,
            "tables.find_one",
        )
        if table is None:
            raise ReferenceNotFoundError(f"The table {table_id} is not available")

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def create_order(self, data: CreateOrderRequest) -> Order:
        """Open an order at an existing table."""
        await self._require_table(data.table_id)
        order = await self._create(Collections.ORDERS, build(Order, table_id=data.table_id))
        logger.info("Opened order %s at table %s", order.order_id, order.table_id)
        return order

    async def get_order(self, order_id: str) -> Order:
        return await self._get(Collections.ORDERS, Order, "order_id", order_id)

    async def list_orders(self) -> list[Order]:
        return await self._list(Collections.ORDERS, Order)

    async def update_order(self, order_id: str, data: UpdateOrderRequest) -> Order:
        """Change an order. A new table must exist."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "table_id" in changes:
            await self._require_table(changes["table_id"])
        return await self._update(Collections.ORDERS, Order, "order_id", order_id, changes)

    # -------------------------------------------------------------------------
    # Order items
    # -------------------------------------------------------------------------

    async def create_order_items(self, data: CreateOrderItemsRequest) -> OrderItemsCreated:
        """
        Open an order for ``data.table_id`` and write its items in one batch.

        The order and every item are built (and prices rounded) before
        anything is written, so a rejected item leaves no order behind.
        """
        await self._require_table(data.table_id)

        order = build(Order, table_id=data.table_id)
        items = [
            build(OrderItem, order_id=order.order_id, **item.model_dump())
            for item in data.order_items
        ]

        await self._create(Collections.ORDERS, order)
        await with_timeout(
            self.store.insert_many(Collections.ORDER_ITEMS, [i.model_dump() for i in items]),
            self.timeout,
            "order_items.insert_many",
        )
        logger.info("Opened order %s with %d items", order.order_id, len(items))
        return OrderItemsCreated(order_id=order.order_id, order_items=items)

    async def get_order_item(self, order_item_id: str) -> OrderItem:
        return await self._get(Collections.ORDER_ITEMS, OrderItem, "order_item_id", order_item_id)

    async def list_order_items(self) -> list[OrderItem]:
        return await self._list(Collections.ORDER_ITEMS, OrderItem)

    async def update_order_item(self, order_item_id: str, data: UpdateOrderItemRequest) -> OrderItem:
        """Change an order item. A new unit price is rounded before it is stored."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        return await self._update(
            Collections.ORDER_ITEMS, OrderItem, "order_item_id", order_item_id, changes
        )
