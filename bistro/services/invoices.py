"""
Invoice service.

An invoice only records how and when an order is paid. What is owed comes
from the billing aggregator each time the invoice is viewed, so the view
always reflects the order's current items.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from bistro.core.errors import ReferenceNotFoundError
from bistro.core.models import Invoice, Money, PaymentMethod, PaymentStatus, build
from bistro.services.base import StoreService
from bistro.services.billing import BillingAggregator, BillingLine
from bistro.storage.base import Collections, DocumentStore, with_timeout

logger = logging.getLogger(__name__)


class CreateInvoiceRequest(BaseModel):
    order_id: str
    payment_method: PaymentMethod | None = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_due_date: datetime | None = None


class UpdateInvoiceRequest(BaseModel):
    payment_method: PaymentMethod | None = None
    payment_status: PaymentStatus | None = None
    payment_due_date: datetime | None = None


class InvoiceView(BaseModel):
    """An invoice joined with its order's billing summary."""
    invoice_id: str
    order_id: str
    payment_method: str
    payment_status: PaymentStatus
    payment_due: Money
    table_number: int | None
    payment_due_date: datetime
    order_details: list[BillingLine]


class InvoiceService(StoreService):
    """Creates invoices and renders them with live billing data."""

    def __init__(
        self,
        store: DocumentStore,
        billing: BillingAggregator,
        timeout: float = 10.0,
    ):
        super().__init__(store, timeout)
        self.billing = billing

    async def create_invoice(self, data: CreateInvoiceRequest) -> Invoice:
        """Record an invoice for an existing order."""
        order = await with_timeout(
            self.store.find_one(Collections.ORDERS, {"order_id": data.order_id}),
            self.timeout,
            "orders.find_one",
        )
        if order is None:
            raise ReferenceNotFoundError(f"order {data.order_id} is not found")

        invoice = await self._create(
            Collections.INVOICES, build(Invoice, **data.model_dump(exclude_none=True))
        )
        logger.info("Created invoice %s for order %s", invoice.invoice_id, invoice.order_id)
        return invoice

    async def get_invoice(self, invoice_id: str) -> Invoice:
        return await self._get(
            Collections.INVOICES,
            Invoice,
            "invoice_id",
            invoice_id,
            missing=f"The invoice {invoice_id} is not in the database",
        )

    async def list_invoices(self) -> list[Invoice]:
        return await self._list(Collections.INVOICES, Invoice)

    async def update_invoice(self, invoice_id: str, data: UpdateInvoiceRequest) -> Invoice:
        """Record how or when an invoice is paid. Fields left out keep their value."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        return await self._update(Collections.INVOICES, Invoice, "invoice_id", invoice_id, changes)

    async def view_invoice(self, invoice_id: str) -> InvoiceView:
        """
        Render an invoice with what is currently owed.

        An order without items renders with nothing due rather than
        failing: the invoice itself exists.
        """
        invoice = await self.get_invoice(invoice_id)
        summaries = await self.billing.aggregate(invoice.order_id)
        summary = summaries[0] if summaries else None

        return InvoiceView(
            invoice_id=invoice.invoice_id,
            order_id=invoice.order_id,
            payment_method=invoice.payment_method.value if invoice.payment_method else "Null",
            payment_status=invoice.payment_status,
            payment_due=summary.payment_due if summary else Decimal("0"),
            table_number=summary.table_number if summary else None,
            payment_due_date=invoice.payment_due_date,
            order_details=summary.order_items if summary else [],
        )
