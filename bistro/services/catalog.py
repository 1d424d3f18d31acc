"""
Catalog service - tables, menus and foods.

Create / get / list / update over the document store. Food prices are
rounded to cents by the model before they are written, on create and on
every update that touches them.

A menu with both dates set must start in the future and end after it
starts; the check runs when the menu is created and when its dates change.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bistro.core.errors import InvalidInputError, NotFoundError, ReferenceNotFoundError
from bistro.core.models import Food, Menu, PageRequest, Table, build
from bistro.core.utils import as_utc, utc_now
from bistro.services.base import StoreService
from bistro.storage.base import Collections

logger = logging.getLogger(__name__)


# =============================================================================
# Request / Response Models
# =============================================================================


class CreateTableRequest(BaseModel):
    number_of_guests: int = Field(ge=0)
    table_number: int


class UpdateTableRequest(BaseModel):
    number_of_guests: int | None = Field(default=None, ge=0)
    table_number: int | None = None


class CreateMenuRequest(BaseModel):
    name: str
    category: str
    start_date: datetime | None = None
    end_date: datetime | None = None


class UpdateMenuRequest(BaseModel):
    name: str | None = None
    category: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class CreateFoodRequest(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    price: Decimal
    food_image: str
    menu_id: str


class UpdateFoodRequest(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    price: Decimal | None = None
    food_image: str | None = None
    menu_id: str | None = None


class FoodPage(BaseModel):
    """One page of foods plus the size of the whole listing."""
    total_count: int
    food_items: list[Food]


def check_menu_span(start: datetime | None, end: datetime | None, now: datetime) -> None:
    """Reject a date pair unless it starts after ``now`` and ends after it starts."""
    if start is None or end is None:
        return
    start, end = as_utc(start), as_utc(end)
    if start <= as_utc(now) or end <= start:
        raise InvalidInputError("menu must start in the future and end after its start date")


# =============================================================================
# Service
# =============================================================================


class CatalogService(StoreService):
    """CRUD for the dining room and the menu."""

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    async def create_table(self, data: CreateTableRequest) -> Table:
        return await self._create(Collections.TABLES, build(Table, **data.model_dump()))

    async def get_table(self, table_id: str) -> Table:
        return await self._get(Collections.TABLES, Table, "table_id", table_id)

    async def list_tables(self) -> list[Table]:
        return await self._list(Collections.TABLES, Table)

    async def update_table(self, table_id: str, data: UpdateTableRequest) -> Table:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        return await self._update(Collections.TABLES, Table, "table_id", table_id, changes)

    # -------------------------------------------------------------------------
    # Menus
    # -------------------------------------------------------------------------

    async def create_menu(self, data: CreateMenuRequest) -> Menu:
        check_menu_span(data.start_date, data.end_date, utc_now())
        return await self._create(Collections.MENUS, build(Menu, **data.model_dump()))

    async def get_menu(self, menu_id: str) -> Menu:
        return await self._get(Collections.MENUS, Menu, "menu_id", menu_id)

    async def list_menus(self) -> list[Menu]:
        return await self._list(Collections.MENUS, Menu)

    async def update_menu(self, menu_id: str, data: UpdateMenuRequest) -> Menu:
        """Change a menu. New dates are checked together with the stored ones."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "start_date" in changes or "end_date" in changes:
            current = await self.get_menu(menu_id)
            check_menu_span(
                changes.get("start_date", current.start_date),
                changes.get("end_date", current.end_date),
                utc_now(),
            )
        return await self._update(Collections.MENUS, Menu, "menu_id", menu_id, changes)

    # -------------------------------------------------------------------------
    # Foods
    # -------------------------------------------------------------------------

    async def _require_menu(self, menu_id: str) -> None:
        try:
            await self.get_menu(menu_id)
        except NotFoundError:
            raise ReferenceNotFoundError(f"menu {menu_id} was not found") from None

    async def create_food(self, data: CreateFoodRequest) -> Food:
        """Add a food to an existing menu."""
        food = build(Food, **data.model_dump())
        await self._require_menu(data.menu_id)
        await self._create(Collections.FOODS, food)
        logger.info("Created food %s at %s", food.food_id, food.price)
        return food

    async def get_food(self, food_id: str) -> Food:
        return await self._get(Collections.FOODS, Food, "food_id", food_id)

    async def list_foods(self, menu_id: str | None = None) -> list[Food]:
        filters = {"menu_id": menu_id} if menu_id else None
        return await self._list(Collections.FOODS, Food, filters)

    async def page_foods(self, paging: PageRequest, menu_id: str | None = None) -> FoodPage:
        foods = await self.list_foods(menu_id)
        return FoodPage(total_count=len(foods), food_items=paging.slice(foods))

    async def update_food(self, food_id: str, data: UpdateFoodRequest) -> Food:
        """Change a food. A new price is rounded; a new menu must exist."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "menu_id" in changes:
            await self._require_menu(changes["menu_id"])
        return await self._update(Collections.FOODS, Food, "food_id", food_id, changes)
