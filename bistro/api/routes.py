"""
Protected API routes.

Every route here sits behind the auth gate: the router declares
``authenticate`` as a dependency, so a request without a valid ``token``
header is rejected before any handler runs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from bistro.auth.gate import authenticate
from bistro.core.models import Food, Invoice, Menu, Order, OrderItem, PageRequest, Table
from bistro.services.billing import BillingAggregator, BillingSummary
from bistro.services.catalog import (
    CatalogService,
    CreateFoodRequest,
    CreateMenuRequest,
    CreateTableRequest,
    FoodPage,
    UpdateFoodRequest,
    UpdateMenuRequest,
    UpdateTableRequest,
)
from bistro.services.invoices import (
    CreateInvoiceRequest,
    InvoiceService,
    InvoiceView,
    UpdateInvoiceRequest,
)
from bistro.services.orders import (
    CreateOrderItemsRequest,
    CreateOrderRequest,
    OrderItemsCreated,
    OrderService,
    UpdateOrderItemRequest,
    UpdateOrderRequest,
)

router = APIRouter(dependencies=[Depends(authenticate)])


# =============================================================================
# Dependencies
# =============================================================================


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def get_orders(request: Request) -> OrderService:
    return request.app.state.orders


def get_billing(request: Request) -> BillingAggregator:
    return request.app.state.billing


def get_invoices(request: Request) -> InvoiceService:
    return request.app.state.invoices


def page_params(
    record_per_page: int = Query(10, alias="recordPerPage"),
    page: int = Query(1),
    start_index: int | None = Query(None, alias="startIndex"),
) -> PageRequest:
    """``?recordPerPage=&page=&startIndex=`` on list endpoints."""
    return PageRequest(record_per_page=record_per_page, page=page, start_index=start_index)


# =============================================================================
# Tables
# =============================================================================


@router.post("/tables", response_model=Table, status_code=201, tags=["tables"])
async def create_table(data: CreateTableRequest, catalog: CatalogService = Depends(get_catalog)):
    return await catalog.create_table(data)


@router.get("/tables", response_model=list[Table], tags=["tables"])
async def list_tables(catalog: CatalogService = Depends(get_catalog)):
    return await catalog.list_tables()


@router.get("/tables/{table_id}", response_model=Table, tags=["tables"])
async def get_table(table_id: str, catalog: CatalogService = Depends(get_catalog)):
    return await catalog.get_table(table_id)


@router.patch("/tables/{table_id}", response_model=Table, tags=["tables"])
async def update_table(
    table_id: str,
    data: UpdateTableRequest,
    catalog: CatalogService = Depends(get_catalog),
):
    return await catalog.update_table(table_id, data)


# =============================================================================
# Menus & Foods
# =============================================================================


@router.post("/menus", response_model=Menu, status_code=201, tags=["menus"])
async def create_menu(data: CreateMenuRequest, catalog: CatalogService = Depends(get_catalog)):
    return await catalog.create_menu(data)


@router.get("/menus", response_model=list[Menu], tags=["menus"])
async def list_menus(catalog: CatalogService = Depends(get_catalog)):
    return await catalog.list_menus()


@router.get("/menus/{menu_id}", response_model=Menu, tags=["menus"])
async def get_menu(menu_id: str, catalog: CatalogService = Depends(get_catalog)):
    return await catalog.get_menu(menu_id)


@router.patch("/menus/{menu_id}", response_model=Menu, tags=["menus"])
async def update_menu(
    menu_id: str,
    data: UpdateMenuRequest,
    catalog: CatalogService = Depends(get_catalog),
):
    """Change a menu. New dates must start in the future and end after the start."""
    return await catalog.update_menu(menu_id, data)


@router.post("/foods", response_model=Food, status_code=201, tags=["foods"])
async def create_food(data: CreateFoodRequest, catalog: CatalogService = Depends(get_catalog)):
    """Add a food to a menu. The price is rounded to cents."""
    return await catalog.create_food(data)


@router.get("/foods", response_model=FoodPage, tags=["foods"])
async def list_foods(
    menu_id: str | None = None,
    paging: PageRequest = Depends(page_params),
    catalog: CatalogService = Depends(get_catalog),
):
    return await catalog.page_foods(paging, menu_id)


@router.get("/foods/{food_id}", response_model=Food, tags=["foods"])
async def get_food(food_id: str, catalog: CatalogService = Depends(get_catalog)):
    return await catalog.get_food(food_id)


@router.patch("/foods/{food_id}", response_model=Food, tags=["foods"])
async def update_food(
    food_id: str,
    data: UpdateFoodRequest,
    catalog: CatalogService = Depends(get_catalog),
):
    """Change a food. A new price is rounded to cents."""
    return await catalog.update_food(food_id, data)


# =============================================================================
# Orders
# =============================================================================


@router.post("/orders", response_model=Order, status_code=201, tags=["orders"])
async def create_order(data: CreateOrderRequest, orders: OrderService = Depends(get_orders)):
    return await orders.create_order(data)


@router.get("/orders", response_model=list[Order], tags=["orders"])
async def list_orders(orders: OrderService = Depends(get_orders)):
    return await orders.list_orders()


@router.get("/orders/{order_id}", response_model=Order, tags=["orders"])
async def get_order(order_id: str, orders: OrderService = Depends(get_orders)):
    return await orders.get_order(order_id)


@router.patch("/orders/{order_id}", response_model=Order, tags=["orders"])
async def update_order(
    order_id: str,
    data: UpdateOrderRequest,
    orders: OrderService = Depends(get_orders),
):
    return await orders.update_order(order_id, data)


# =============================================================================
# Order Items
# =============================================================================


@router.post("/orderItems", response_model=OrderItemsCreated, status_code=201, tags=["order items"])
async def create_order_items(
    data: CreateOrderItemsRequest,
    orders: OrderService = Depends(get_orders),
):
    """Open an order for a table and add all of its items."""
    return await orders.create_order_items(data)


@router.get("/orderItems", response_model=list[OrderItem], tags=["order items"])
async def list_order_items(orders: OrderService = Depends(get_orders)):
    return await orders.list_order_items()


@router.get("/orderItems/{order_item_id}", response_model=OrderItem, tags=["order items"])
async def get_order_item(order_item_id: str, orders: OrderService = Depends(get_orders)):
    return await orders.get_order_item(order_item_id)


@router.patch("/orderItems/{order_item_id}", response_model=OrderItem, tags=["order items"])
async def update_order_item(
    order_item_id: str,
    data: UpdateOrderItemRequest,
    orders: OrderService = Depends(get_orders),
):
    return await orders.update_order_item(order_item_id, data)


@router.get("/orderItems-order/{order_id}", response_model=BillingSummary, tags=["order items"])
async def get_order_items_by_order(
    order_id: str,
    billing: BillingAggregator = Depends(get_billing),
):
    """The bill for an order: items, table number and payment due."""
    return await billing.summarize(order_id)


# =============================================================================
# Invoices
# =============================================================================


@router.post("/invoices", response_model=Invoice, status_code=201, tags=["invoices"])
async def create_invoice(
    data: CreateInvoiceRequest,
    invoices: InvoiceService = Depends(get_invoices),
):
    return await invoices.create_invoice(data)


@router.get("/invoices", response_model=list[Invoice], tags=["invoices"])
async def list_invoices(invoices: InvoiceService = Depends(get_invoices)):
    return await invoices.list_invoices()


@router.get("/invoices/{invoice_id}", response_model=InvoiceView, tags=["invoices"])
async def get_invoice(invoice_id: str, invoices: InvoiceService = Depends(get_invoices)):
    """Invoice with the order's current billing figures."""
    return await invoices.view_invoice(invoice_id)


@router.patch("/invoices/{invoice_id}", response_model=Invoice, tags=["invoices"])
async def update_invoice(
    invoice_id: str,
    data: UpdateInvoiceRequest,
    invoices: InvoiceService = Depends(get_invoices),
):
    return await invoices.update_invoice(invoice_id, data)
