"""Abstract base class for remote order API clients.

The migration engine talks to a store only through this interface, so any
platform (or an in-memory fake in tests) can back it.
"""

from abc import ABC, abstractmethod

from src.clients.models import FinancialStatus, OrdersPage


class OrderAPIClient(ABC):
    """Abstract base class for remote order API clients.

    Concrete implementations must handle:
    - Paging through orders matching a search query
    - Setting an order's financial status
    - Translating transport/API failures into src.clients.errors types

    Implementations own their transport and any connection pooling. The
    engine shares one client across all concurrent calls of a batch.

    Example implementation:
        class ShopifyOrderClient(OrderAPIClient):
            @property
            def platform_name(self) -> str:
                return "shopify"

            async def fetch_orders_page(self, query, cursor, page_size):
                # POST GraphQL orders query
                ...
    """

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Return the platform identifier."""
        ...

    @abstractmethod
    async def fetch_orders_page(
        self,
        query: str,
        cursor: str | None,
        page_size: int,
    ) -> OrdersPage:
        """Fetch one page of orders matching a search query.

        Args:
            query: Platform search query (e.g. 'financial_status:pending')
            cursor: Opaque cursor from the previous page, None for the first
            page_size: Maximum number of orders to return

        Returns:
            OrdersPage with items in remote order

        Raises:
            RateLimited, Unauthorized, Transient, Fatal
        """
        ...

    @abstractmethod
    async def set_financial_status(
        self,
        order_id: str,
        new_status: FinancialStatus,
    ) -> None:
        """Set an order's financial status.

        Re-setting the status an order already has must succeed.

        Args:
            order_id: Remote order identifier
            new_status: Target financial status

        Raises:
            RateLimited, ValidationFailed, Transient, Fatal, Unauthorized
        """
        ...

    async def aclose(self) -> None:
        """Release transport resources. Default is a no-op."""
        return None

    async def __aenter__(self) -> "OrderAPIClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
