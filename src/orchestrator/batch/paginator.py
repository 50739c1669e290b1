"""Cursor paginator that drains an order search into a SearchResult.

Pagination is inherently sequential: each request needs the cursor from
the previous response. The cursor never leaves this module.
"""

import asyncio
import logging
import time
from contextlib import aclosing
from typing import AsyncIterator

from src.clients.base import OrderAPIClient
from src.clients.errors import Fatal
from src.clients.models import FinancialStatus, OrdersPage
from src.errors.domain import JobCancelled, SearchFailed, ValidationError
from src.orchestrator.batch.models import SearchResult
from src.orchestrator.batch.retry import RetryExhausted, RetryPolicy, Sleep, call_with_retry

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 250
DEFAULT_ITEM_CAP = 1000


def build_status_query(status: FinancialStatus) -> str:
    """Build the remote search query for a financial status."""
    return f"financial_status:{status.value}"


class OrderPaginator:
    """Accumulates a bounded, deduplicated, ordered set of matching orders.

    Attributes:
        _client: Remote order API client
        _page_size: Orders requested per page
        _retry: Retry policy for page fetches
    """

    def __init__(
        self,
        client: OrderAPIClient,
        page_size: int = DEFAULT_PAGE_SIZE,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._client = client
        self._page_size = page_size
        self._retry = retry_policy or RetryPolicy()
        self._sleep = sleep

    async def _pages(
        self,
        query: str,
        item_cap: int,
        accumulated: list,
        cancel_event: asyncio.Event | None,
    ) -> AsyncIterator[OrdersPage]:
        """Yield pages until the remote runs out or the caller stops.

        ``accumulated`` is read to size each request so no page asks for
        more than the remaining cap.
        """
        cursor: str | None = None
        used_cursors: set[str] = set()
        page_number = 0

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise JobCancelled("searching")

            remaining = max(1, item_cap - len(accumulated))
            request_size = min(self._page_size, remaining)
            page_number += 1
            try:
                page, attempts = await call_with_retry(
                    lambda: self._client.fetch_orders_page(query, cursor, request_size),
                    self._retry,
                    description=f"fetch_orders_page#{page_number}",
                    sleep=self._sleep,
                )
            except RetryExhausted as e:
                raise SearchFailed(e.error, items_fetched=len(accumulated)) from e

            logger.debug(
                "Fetched page %d: %d items, has_more=%s, attempts=%d",
                page_number, len(page.items), page.has_more, attempts,
            )
            yield page

            if not page.has_more:
                return
            if not page.next_cursor:
                raise SearchFailed(
                    Fatal("Remote reported more pages but returned no cursor"),
                    items_fetched=len(accumulated),
                )
            if page.next_cursor in used_cursors:
                raise SearchFailed(
                    Fatal(f"Remote repeated cursor on page {page_number}"),
                    items_fetched=len(accumulated),
                )
            used_cursors.add(page.next_cursor)
            cursor = page.next_cursor

    async def search(
        self,
        from_status: FinancialStatus | str,
        item_cap: int = DEFAULT_ITEM_CAP,
        cancel_event: asyncio.Event | None = None,
    ) -> SearchResult:
        """Collect every order with the given financial status, up to a cap.

        Args:
            from_status: Financial status to match.
            item_cap: Maximum number of orders to accumulate.
            cancel_event: Checked between page fetches.

        Returns:
            SearchResult; ``has_more`` is True when matches were left
            behind because of the cap.

        Raises:
            ValidationError: Bad status or cap (before any remote call).
            SearchFailed: A page fetch failed; the partial set is discarded.
            JobCancelled: Cancellation was requested between pages.
        """
        status = FinancialStatus.parse(from_status)
        if item_cap < 1:
            raise ValidationError(f"item_cap must be >= 1, got {item_cap}")

        started = time.perf_counter()
        query = build_status_query(status)
        items: list = []
        seen: set[str] = set()
        has_more = False
        duplicates = 0
        pages = 0

        async with aclosing(self._pages(query, item_cap, items, cancel_event)) as page_iter:
            async for page in page_iter:
                pages += 1
                page_items = list(page.items)
                for order in page_items:
                    if order.id in seen:
                        duplicates += 1
                        continue
                    if len(items) >= item_cap:
                        break
                    seen.add(order.id)
                    items.append(order)

                if len(items) >= item_cap:
                    leftover = any(o.id not in seen for o in page_items)
                    has_more = leftover or page.has_more
                    break

        if duplicates:
            logger.warning(
                "Dropped %d duplicate order(s) while paginating '%s'", duplicates, query,
            )
        logger.info(
            "Search complete: query=%s items=%d has_more=%s pages=%d total=%.2fs",
            query, len(items), has_more, pages, time.perf_counter() - started,
        )
        return SearchResult(from_status=status, items=tuple(items), has_more=has_more)
