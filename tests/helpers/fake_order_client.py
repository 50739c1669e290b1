"""In-memory order API client for engine tests.

Simulates a store's order search and financial-status mutation without
any network, with configurable per-call failures and call tracking.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from src.clients.base import OrderAPIClient
from src.clients.models import FinancialStatus, Money, OrderRecord, OrdersPage


def make_order(
    number: int,
    status: FinancialStatus | str = FinancialStatus.PENDING,
    amount: str = "25.00",
) -> OrderRecord:
    """Build an OrderRecord with predictable id and name.

    Example:
        make_order(1) -> id 'gid://shopify/Order/1', name '#1001'
    """
    return OrderRecord(
        id=f"gid://shopify/Order/{number}",
        name=f"#{1000 + number}",
        created_at="2024-03-01T12:00:00Z",
        financial_status=status,
        fulfillment_status="UNFULFILLED",
        total=Money(amount=Decimal(amount), currency_code="USD"),
        customer_name=f"Customer {number}",
        customer_email=f"customer{number}@example.com",
    )


@dataclass
class ClientCall:
    """Record of a call made to the fake client."""

    method: str
    arguments: dict[str, Any]
    error: str | None = None


class FakeOrderClient(OrderAPIClient):
    """Fake OrderAPIClient backed by a list of orders.

    By default pages are cut from ``orders`` using the requested page
    size and an index cursor. ``configure_pages`` replaces that with a
    fixed script of pages, returned in sequence regardless of cursor.
    """

    def __init__(self, orders: list[OrderRecord] | None = None, mutation_delay: float = 0.0) -> None:
        """Initialize the fake client.

        Args:
            orders: Orders the store holds, in search order
            mutation_delay: Seconds each set_financial_status call takes
        """
        self._orders = list(orders or [])
        self._scripted_pages: list[OrdersPage] | None = None
        self._fetch_failures: dict[int, Exception] = {}
        self._mutation_failures: dict[str, list[Exception]] = {}
        self._persistent_failures: dict[str, Exception] = {}
        self._call_history: list[ClientCall] = []
        self.mutation_delay = mutation_delay
        self.statuses: dict[str, FinancialStatus] = {
            order.id: order.financial_status for order in self._orders
        }
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    @property
    def platform_name(self) -> str:
        return "fake"

    # --- Configuration ---

    def configure_pages(self, pages: list[OrdersPage]) -> None:
        """Serve exactly these pages, in order."""
        self._scripted_pages = list(pages)

    def configure_fetch_failure(self, call_number: int, error: Exception) -> None:
        """Fail the Nth fetch_orders_page call (1-indexed)."""
        self._fetch_failures[call_number] = error

    def configure_mutation_failure(
        self,
        order_id: str,
        *errors: Exception,
        persistent: bool = False,
    ) -> None:
        """Fail successive set_financial_status calls for one order.

        Args:
            order_id: Order to fail
            errors: Errors raised on the 1st, 2nd, ... call
            persistent: Keep raising the last error on every later call
        """
        self._mutation_failures[order_id] = list(errors)
        if persistent and errors:
            self._persistent_failures[order_id] = errors[-1]

    # --- Inspection ---

    def get_call_history(self) -> list[ClientCall]:
        return list(self._call_history)

    def fetch_calls(self) -> list[ClientCall]:
        return [c for c in self._call_history if c.method == "fetch_orders_page"]

    def mutation_calls(self, order_id: str | None = None) -> list[ClientCall]:
        """set_financial_status calls, optionally for one order."""
        return [
            c for c in self._call_history
            if c.method == "set_financial_status"
            and (order_id is None or c.arguments["order_id"] == order_id)
        ]

    # --- OrderAPIClient ---

    async def fetch_orders_page(
        self,
        query: str,
        cursor: str | None,
        page_size: int,
    ) -> OrdersPage:
        call = ClientCall(
            "fetch_orders_page",
            {"query": query, "cursor": cursor, "page_size": page_size},
        )
        self._call_history.append(call)
        call_number = len(self.fetch_calls())
        await asyncio.sleep(0)

        error = self._fetch_failures.pop(call_number, None)
        if error is not None:
            call.error = str(error)
            raise error

        if self._scripted_pages is not None:
            if not self._scripted_pages:
                return OrdersPage()
            return self._scripted_pages.pop(0)

        start = int(cursor) if cursor else 0
        end = start + page_size
        items = tuple(self._orders[start:end])
        has_more = end < len(self._orders)
        return OrdersPage(
            items=items,
            next_cursor=str(end) if has_more else None,
            has_more=has_more,
        )

    async def set_financial_status(
        self,
        order_id: str,
        new_status: FinancialStatus,
    ) -> None:
        call = ClientCall(
            "set_financial_status",
            {"order_id": order_id, "new_status": new_status},
        )
        self._call_history.append(call)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.mutation_delay)
            scripted = self._mutation_failures.get(order_id)
            if scripted:
                error = scripted.pop(0)
                call.error = str(error)
                raise error
            persistent = self._persistent_failures.get(order_id)
            if persistent is not None:
                call.error = str(persistent)
                raise persistent
            # Re-setting the current status is a successful no-op
            self.statuses[order_id] = new_status
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        self.closed = True
