"""
Tests for the account, catalog, order and invoice services against the
in-memory store.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from bistro.auth.accounts import AccountService, LoginRequest, SignupRequest
from bistro.core.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidInputError,
    NotFoundError,
    ReferenceNotFoundError,
    StoreTimeoutError,
)
from bistro.core.models import PageRequest, PaymentMethod, PaymentStatus
from bistro.core.utils import as_money, to_fixed, utc_now
from bistro.services.billing import BillingAggregator
from bistro.services.catalog import (
    CatalogService,
    CreateFoodRequest,
    CreateMenuRequest,
    CreateTableRequest,
    UpdateFoodRequest,
    UpdateMenuRequest,
    UpdateTableRequest,
)
from bistro.services.invoices import CreateInvoiceRequest, InvoiceService, UpdateInvoiceRequest
from bistro.services.orders import (
    CreateOrderItemsRequest,
    CreateOrderRequest,
    OrderService,
    UpdateOrderItemRequest,
    UpdateOrderRequest,
)
from bistro.storage import Collections

from conftest import SlowStore


@pytest.fixture
def accounts(store, tokens, hasher):
    return AccountService(store, tokens, hasher=hasher)


@pytest.fixture
def catalog(store):
    return CatalogService(store)


@pytest.fixture
def orders(store):
    return OrderService(store)


@pytest.fixture
def invoices(store):
    return InvoiceService(store, BillingAggregator(store))


def signup_request(**overrides) -> SignupRequest:
    fields = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "Ada@Bistro.io",
        "phone": "555-0100",
        "password": "secret123",
    }
    fields.update(overrides)
    return SignupRequest(**fields)


async def open_table_with_menu(catalog, prices):
    """A table and one food per price. Returns (table, foods)."""
    table = await catalog.create_table(CreateTableRequest(number_of_guests=2, table_number=7))
    menu = await catalog.create_menu(CreateMenuRequest(name="Dinner", category="Mains"))
    foods = [
        await catalog.create_food(
            CreateFoodRequest(name=f"Dish {i}", price=price, food_image="/x.png", menu_id=menu.menu_id)
        )
        for i, price in enumerate(prices)
    ]
    return table, foods


# =============================================================================
# Money
# =============================================================================


class TestMoney:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("12.499", Decimal("12.50")),
            ("0.125", Decimal("0.13")),
            (7.25, Decimal("7.25")),
            (3, Decimal("3.00")),
            ("2.344", Decimal("2.34")),
        ],
    )
    def test_to_fixed_rounds_half_up(self, value, expected):
        assert to_fixed(value) == expected

    @pytest.mark.parametrize("value", [None, True, "abc", object()])
    def test_as_money_rejects_non_numbers(self, value):
        assert as_money(value) is None


# =============================================================================
# Accounts
# =============================================================================


class TestAccounts:
    @pytest.mark.asyncio
    async def test_signup_stores_hashed_password_and_tokens(self, accounts, tokens, store):
        result = await accounts.signup(signup_request())

        doc = await store.find_one(Collections.USERS, {"user_id": result.user.user_id})
        assert doc["email"] == "ada@bistro.io"
        assert doc["password"] != "secret123"
        assert doc["token"] == result.tokens.access_token
        assert tokens.verify(result.tokens.access_token).sub == result.user.user_id

    @pytest.mark.asyncio
    async def test_signup_rejects_duplicate_email(self, accounts):
        await accounts.signup(signup_request())
        with pytest.raises(ConflictError):
            await accounts.signup(signup_request(phone="555-0199"))

    @pytest.mark.asyncio
    async def test_signup_rejects_duplicate_phone(self, accounts):
        await accounts.signup(signup_request())
        with pytest.raises(ConflictError):
            await accounts.signup(signup_request(email="other@bistro.io"))

    @pytest.mark.asyncio
    async def test_login_replaces_stored_pair(self, accounts, store):
        created = await accounts.signup(signup_request())

        first = await accounts.login(LoginRequest(email="ada@bistro.io", password="secret123"))
        second = await accounts.login(LoginRequest(email="ADA@bistro.io", password="secret123"))

        docs = await store.find_many(Collections.USERS, {"user_id": created.user.user_id})
        assert len(docs) == 1
        assert docs[0]["token"] == second.tokens.access_token
        assert docs[0]["refresh_token"] == second.tokens.refresh_token
        assert first.tokens.access_token != second.tokens.access_token

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, accounts):
        await accounts.signup(signup_request())
        with pytest.raises(InvalidCredentialsError, match="Password mismatch"):
            await accounts.login(LoginRequest(email="ada@bistro.io", password="wrong-one"))

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, accounts):
        with pytest.raises(InvalidCredentialsError, match="does not exist"):
            await accounts.login(LoginRequest(email="nobody@bistro.io", password="secret123"))

    @pytest.mark.asyncio
    async def test_get_user_hides_secrets(self, accounts):
        created = await accounts.signup(signup_request())
        user = await accounts.get_user(created.user.user_id)

        dumped = user.model_dump()
        assert "password" not in dumped
        assert "token" not in dumped

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, accounts):
        with pytest.raises(NotFoundError):
            await accounts.get_user("user_missing")


class TestHasher:
    def test_hash_and_verify(self, hasher):
        hashed = hasher.hash("secret123")
        assert hashed != "secret123"
        assert hasher.verify("secret123", hashed)
        assert not hasher.verify("secret124", hashed)

    def test_same_secret_gets_different_salts(self, hasher):
        assert hasher.hash("secret123") != hasher.hash("secret123")

    def test_garbage_hash_does_not_verify(self, hasher):
        assert not hasher.verify("secret123", "no-separator")


# =============================================================================
# Catalog
# =============================================================================


class TestCatalog:
    @pytest.mark.asyncio
    async def test_food_price_is_rounded(self, catalog):
        _, foods = await open_table_with_menu(catalog, [Decimal("12.499")])
        assert foods[0].price == Decimal("12.50")

        stored = await catalog.get_food(foods[0].food_id)
        assert stored.price == Decimal("12.50")

    @pytest.mark.asyncio
    async def test_food_needs_existing_menu(self, catalog):
        with pytest.raises(ReferenceNotFoundError):
            await catalog.create_food(
                CreateFoodRequest(name="Soup", price=Decimal("4"), food_image="/s.png", menu_id="menu_x")
            )

    @pytest.mark.asyncio
    async def test_list_foods_by_menu(self, catalog):
        await open_table_with_menu(catalog, [Decimal("1"), Decimal("2")])
        other = await catalog.create_menu(CreateMenuRequest(name="Lunch", category="Light"))
        await catalog.create_food(
            CreateFoodRequest(name="Salad", price=Decimal("3"), food_image="/s.png", menu_id=other.menu_id)
        )

        assert len(await catalog.list_foods()) == 3
        assert [f.name for f in await catalog.list_foods(other.menu_id)] == ["Salad"]

    @pytest.mark.asyncio
    async def test_get_missing_table(self, catalog):
        with pytest.raises(NotFoundError):
            await catalog.get_table("tbl_missing")

    @pytest.mark.asyncio
    async def test_lookup_timeout(self):
        catalog = CatalogService(SlowStore(delay=1.0), timeout=0.01)
        with pytest.raises(StoreTimeoutError):
            await catalog.list_tables()


# =============================================================================
# Orders
# =============================================================================


class TestOrders:
    @pytest.mark.asyncio
    async def test_order_needs_existing_table(self, orders):
        with pytest.raises(ReferenceNotFoundError, match="not available"):
            await orders.create_order(CreateOrderRequest(table_id="tbl_missing"))

    @pytest.mark.asyncio
    async def test_create_order_items_rounds_prices(self, catalog, orders):
        table, foods = await open_table_with_menu(catalog, [Decimal("12.50"), Decimal("7.25")])

        created = await orders.create_order_items(
            CreateOrderItemsRequest(
                table_id=table.table_id,
                order_items=[
                    {"food_id": foods[0].food_id, "quantity": 1, "unit_price": "12.499"},
                    {"food_id": foods[1].food_id, "quantity": 2, "unit_price": "0.125"},
                ],
            )
        )

        assert [i.unit_price for i in created.order_items] == [Decimal("12.50"), Decimal("0.13")]
        assert all(i.order_id == created.order_id for i in created.order_items)
        assert len(await orders.list_order_items()) == 2
        order = await orders.get_order(created.order_id)
        assert order.table_id == table.table_id

    @pytest.mark.asyncio
    async def test_create_order_items_for_missing_table_writes_nothing(self, orders):
        with pytest.raises(ReferenceNotFoundError):
            await orders.create_order_items(
                CreateOrderItemsRequest(
                    table_id="tbl_missing",
                    order_items=[{"food_id": "f", "quantity": 1, "unit_price": "1"}],
                )
            )
        assert await orders.list_orders() == []
        assert await orders.list_order_items() == []

    @pytest.mark.asyncio
    async def test_get_missing_order_item(self, orders):
        with pytest.raises(NotFoundError):
            await orders.get_order_item("item_missing")


# =============================================================================
# Invoices
# =============================================================================


class TestInvoices:
    @pytest.mark.asyncio
    async def test_invoice_needs_existing_order(self, invoices):
        with pytest.raises(ReferenceNotFoundError):
            await invoices.create_invoice(CreateInvoiceRequest(order_id="order_missing"))

    @pytest.mark.asyncio
    async def test_view_embeds_billing(self, catalog, orders, invoices):
        table, foods = await open_table_with_menu(catalog, [Decimal("12.50"), Decimal("7.25")])
        created = await orders.create_order_items(
            CreateOrderItemsRequest(
                table_id=table.table_id,
                order_items=[
                    {"food_id": f.food_id, "quantity": 1, "unit_price": f.price} for f in foods
                ],
            )
        )
        invoice = await invoices.create_invoice(
            CreateInvoiceRequest(order_id=created.order_id, payment_method=PaymentMethod.CARD)
        )

        view = await invoices.view_invoice(invoice.invoice_id)

        assert view.payment_due == Decimal("19.75")
        assert view.table_number == 7
        assert view.payment_method == "CARD"
        assert view.payment_status == PaymentStatus.PENDING
        assert [line.food_name for line in view.order_details] == ["Dish 0", "Dish 1"]

    @pytest.mark.asyncio
    async def test_view_without_items_or_method(self, catalog, orders, invoices):
        table, _ = await open_table_with_menu(catalog, [])
        order = await orders.create_order(CreateOrderRequest(table_id=table.table_id))
        invoice = await invoices.create_invoice(CreateInvoiceRequest(order_id=order.order_id))

        view = await invoices.view_invoice(invoice.invoice_id)

        assert view.payment_method == "Null"
        assert view.payment_due == Decimal("0")
        assert view.table_number is None
        assert view.order_details == []

    @pytest.mark.asyncio
    async def test_view_missing_invoice(self, invoices):
        with pytest.raises(NotFoundError):
            await invoices.view_invoice("inv_missing")


# =============================================================================
# Unstorable input
# =============================================================================


class TestUnstorableInput:
    @pytest.mark.asyncio
    async def test_oversized_unit_price_writes_no_order(self, catalog, orders):
        table, foods = await open_table_with_menu(catalog, [Decimal("4")])

        with pytest.raises(InvalidInputError, match="unit_price"):
            await orders.create_order_items(
                CreateOrderItemsRequest(
                    table_id=table.table_id,
                    order_items=[
                        {"food_id": foods[0].food_id, "quantity": 1, "unit_price": "4"},
                        {"food_id": foods[0].food_id, "quantity": 1, "unit_price": Decimal("1e30")},
                    ],
                )
            )

        assert await orders.list_orders() == []
        assert await orders.list_order_items() == []

    @pytest.mark.asyncio
    async def test_oversized_food_price_writes_nothing(self, catalog):
        menu = await catalog.create_menu(CreateMenuRequest(name="Dinner", category="Mains"))

        with pytest.raises(InvalidInputError, match="price"):
            await catalog.create_food(
                CreateFoodRequest(name="Soup", price=Decimal("1e30"), food_image="/s.png", menu_id=menu.menu_id)
            )

        assert await catalog.list_foods() == []


# =============================================================================
# Updates
# =============================================================================


class TestUpdates:
    @pytest.mark.asyncio
    async def test_update_table_keeps_other_fields(self, catalog):
        table = await catalog.create_table(CreateTableRequest(number_of_guests=2, table_number=7))

        updated = await catalog.update_table(table.table_id, UpdateTableRequest(number_of_guests=4))

        stored = await catalog.get_table(table.table_id)
        assert stored.number_of_guests == 4
        assert stored.table_number == 7
        assert stored.created_at == table.created_at
        assert updated.updated_at >= table.updated_at

    @pytest.mark.asyncio
    async def test_update_food_rounds_price(self, catalog):
        _, foods = await open_table_with_menu(catalog, [Decimal("4")])

        await catalog.update_food(foods[0].food_id, UpdateFoodRequest(price=Decimal("9.995")))

        stored = await catalog.get_food(foods[0].food_id)
        assert stored.price == Decimal("10.00")
        assert stored.name == "Dish 0"

    @pytest.mark.asyncio
    async def test_update_food_to_missing_menu(self, catalog):
        _, foods = await open_table_with_menu(catalog, [Decimal("4")])

        with pytest.raises(ReferenceNotFoundError):
            await catalog.update_food(foods[0].food_id, UpdateFoodRequest(menu_id="menu_x"))

        assert (await catalog.get_food(foods[0].food_id)).menu_id == foods[0].menu_id

    @pytest.mark.asyncio
    async def test_rejected_update_leaves_document(self, catalog):
        _, foods = await open_table_with_menu(catalog, [Decimal("4")])

        with pytest.raises(InvalidInputError):
            await catalog.update_food(foods[0].food_id, UpdateFoodRequest(price=Decimal("1e30")))

        assert (await catalog.get_food(foods[0].food_id)).price == Decimal("4.00")

    @pytest.mark.asyncio
    async def test_update_missing_record_does_not_create_it(self, catalog, store):
        with pytest.raises(NotFoundError):
            await catalog.update_table("tbl_missing", UpdateTableRequest(table_number=1))
        assert await store.find_many(Collections.TABLES) == []

    @pytest.mark.asyncio
    async def test_update_order_moves_table(self, catalog, orders):
        table, _ = await open_table_with_menu(catalog, [])
        other = await catalog.create_table(CreateTableRequest(number_of_guests=4, table_number=9))
        order = await orders.create_order(CreateOrderRequest(table_id=table.table_id))

        await orders.update_order(order.order_id, UpdateOrderRequest(table_id=other.table_id))

        assert (await orders.get_order(order.order_id)).table_id == other.table_id

    @pytest.mark.asyncio
    async def test_update_order_to_missing_table(self, catalog, orders):
        table, _ = await open_table_with_menu(catalog, [])
        order = await orders.create_order(CreateOrderRequest(table_id=table.table_id))

        with pytest.raises(ReferenceNotFoundError, match="not available"):
            await orders.update_order(order.order_id, UpdateOrderRequest(table_id="tbl_missing"))

    @pytest.mark.asyncio
    async def test_update_order_item_rounds_unit_price(self, catalog, orders):
        table, foods = await open_table_with_menu(catalog, [Decimal("4")])
        created = await orders.create_order_items(
            CreateOrderItemsRequest(
                table_id=table.table_id,
                order_items=[{"food_id": foods[0].food_id, "quantity": 1, "unit_price": "4"}],
            )
        )
        item_id = created.order_items[0].order_item_id

        updated = await orders.update_order_item(item_id, UpdateOrderItemRequest(unit_price=Decimal("0.125")))

        assert updated.unit_price == Decimal("0.13")
        assert updated.quantity == 1
        assert (await orders.get_order_item(item_id)).unit_price == Decimal("0.13")

    @pytest.mark.asyncio
    async def test_update_invoice_keeps_unsent_fields(self, catalog, orders, invoices):
        table, _ = await open_table_with_menu(catalog, [])
        order = await orders.create_order(CreateOrderRequest(table_id=table.table_id))
        invoice = await invoices.create_invoice(
            CreateInvoiceRequest(order_id=order.order_id, payment_method=PaymentMethod.CARD)
        )

        await invoices.update_invoice(invoice.invoice_id, UpdateInvoiceRequest(payment_status=PaymentStatus.PAID))

        stored = await invoices.get_invoice(invoice.invoice_id)
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.payment_method == PaymentMethod.CARD
        assert stored.payment_due_date == invoice.payment_due_date


# =============================================================================
# Menu dates
# =============================================================================


class TestMenuSpan:
    @pytest.mark.asyncio
    async def test_future_span_is_accepted(self, catalog):
        start = utc_now() + timedelta(days=1)
        menu = await catalog.create_menu(
            CreateMenuRequest(name="Brunch", category="Weekend", start_date=start, end_date=start + timedelta(hours=4))
        )
        assert menu.start_date == start

    @pytest.mark.asyncio
    async def test_past_start_is_rejected(self, catalog):
        with pytest.raises(InvalidInputError, match="future"):
            await catalog.create_menu(
                CreateMenuRequest(
                    name="Brunch",
                    category="Weekend",
                    start_date=utc_now() - timedelta(days=1),
                    end_date=utc_now() + timedelta(days=1),
                )
            )
        assert await catalog.list_menus() == []

    @pytest.mark.asyncio
    async def test_end_before_start_is_rejected(self, catalog):
        start = utc_now() + timedelta(days=2)
        with pytest.raises(InvalidInputError):
            await catalog.create_menu(
                CreateMenuRequest(name="Brunch", category="Weekend", start_date=start, end_date=start - timedelta(hours=1))
            )

    @pytest.mark.asyncio
    async def test_one_date_is_not_checked(self, catalog):
        menu = await catalog.create_menu(
            CreateMenuRequest(name="Late", category="Bar", end_date=utc_now() - timedelta(days=1))
        )
        assert menu.start_date is None

    @pytest.mark.asyncio
    async def test_update_checks_against_stored_dates(self, catalog):
        start = utc_now() + timedelta(days=1)
        menu = await catalog.create_menu(
            CreateMenuRequest(name="Brunch", category="Weekend", start_date=start, end_date=start + timedelta(hours=4))
        )

        with pytest.raises(InvalidInputError):
            await catalog.update_menu(menu.menu_id, UpdateMenuRequest(end_date=start - timedelta(hours=1)))

        later = start + timedelta(days=1)
        updated = await catalog.update_menu(menu.menu_id, UpdateMenuRequest(end_date=later))
        assert updated.end_date == later
        assert updated.start_date == start


# =============================================================================
# Pagination
# =============================================================================


class TestPaging:
    def test_defaults(self):
        paging = PageRequest()
        assert (paging.record_per_page, paging.page, paging.offset) == (10, 1, 0)

    @pytest.mark.parametrize(
        "fields,offset,size",
        [
            ({"record_per_page": 0}, 0, 10),
            ({"record_per_page": -5, "page": 2}, 10, 10),
            ({"record_per_page": 3, "page": 0}, 0, 3),
            ({"record_per_page": 3, "page": 3}, 6, 3),
            ({"record_per_page": 3, "page": 3, "start_index": 1}, 1, 3),
            ({"start_index": -4}, 0, 10),
        ],
    )
    def test_offset(self, fields, offset, size):
        paging = PageRequest(**fields)
        assert paging.offset == offset
        assert paging.record_per_page == size

    def test_slice_past_end_is_empty(self):
        assert PageRequest(record_per_page=2, page=5).slice([1, 2, 3]) == []

    @pytest.mark.asyncio
    async def test_page_foods(self, catalog):
        await open_table_with_menu(catalog, [Decimal(p) for p in "12345"])

        page = await catalog.page_foods(PageRequest(record_per_page=2, page=2))

        assert page.total_count == 5
        assert [f.name for f in page.food_items] == ["Dish 2", "Dish 3"]

    @pytest.mark.asyncio
    async def test_page_users(self, accounts):
        await accounts.signup(signup_request())
        await accounts.signup(signup_request(email="grace@bistro.io", phone="555-0101"))

        page = await accounts.page_users(PageRequest(record_per_page=1, start_index=1))

        assert page.total_count == 2
        assert [u.email for u in page.user_items] == ["grace@bistro.io"]
