"""Remote order API client implementations."""

from src.clients.base import OrderAPIClient
from src.clients.errors import (
    Fatal,
    OrderAPIError,
    RateLimited,
    Transient,
    Unauthorized,
    ValidationFailed,
)
from src.clients.models import FinancialStatus, Money, OrderRecord, OrdersPage
from src.clients.shopify import ShopifyOrderClient

__all__ = [
    "OrderAPIClient",
    "ShopifyOrderClient",
    "FinancialStatus",
    "Money",
    "OrderRecord",
    "OrdersPage",
    "OrderAPIError",
    "RateLimited",
    "Transient",
    "Unauthorized",
    "ValidationFailed",
    "Fatal",
]
