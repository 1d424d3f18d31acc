"""
Services - the business operations behind the HTTP routes.

- billing: order billing aggregation (joins + group, computed on read)
- catalog: tables, menus, foods
- orders: orders and batched order items
- invoices: invoices rendered with live billing figures
- base: StoreService, the create/get/list/update plumbing they share
"""

from bistro.services.base import StoreService
from bistro.services.billing import BillingAggregator, BillingLine, BillingSummary
from bistro.services.catalog import CatalogService, FoodPage
from bistro.services.invoices import InvoiceService, InvoiceView
from bistro.services.orders import OrderService

__all__ = [
    "BillingAggregator",
    "BillingLine",
    "BillingSummary",
    "CatalogService",
    "FoodPage",
    "InvoiceService",
    "InvoiceView",
    "OrderService",
    "StoreService",
]
