"""Shopify Admin GraphQL client implementation.

Implements the OrderAPIClient interface for the Shopify Admin GraphQL API.
Handles order search with cursor pagination and financial status updates,
and translates HTTP/GraphQL failures into the client error taxonomy.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

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
from src.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

# Shopify caps `first` at 250 per connection page
MAX_PAGE_SIZE = 250

ORDERS_QUERY = """
query GetOrdersByFinancialStatus($first: Int!, $after: String, $query: String!) {
  orders(first: $first, after: $after, query: $query) {
    edges {
      node {
        id
        name
        createdAt
        displayFinancialStatus
        displayFulfillmentStatus
        totalPriceSet {
          shopMoney {
            amount
            currencyCode
          }
        }
        customer {
          displayName
          email
        }
      }
      cursor
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
"""

MARK_AS_PAID_MUTATION = """
mutation OrderMarkAsPaid($input: OrderMarkAsPaidInput!) {
  orderMarkAsPaid(input: $input) {
    order {
      id
      displayFinancialStatus
    }
    userErrors {
      field
      message
    }
  }
}
"""

# GraphQL error extension codes
_THROTTLED_CODES = {"THROTTLED", "MAX_COST_EXCEEDED"}
_AUTH_CODES = {"ACCESS_DENIED", "UNAUTHORIZED", "FORBIDDEN"}


class ShopifyOrderClient(OrderAPIClient):
    """Shopify Admin GraphQL client for bulk financial-status changes.

    One httpx.AsyncClient is created per instance and shared by every
    call, so concurrent mutations reuse pooled connections.

    Example:
        async with ShopifyOrderClient("mystore.myshopify.com", "shpat_xxx") as client:
            page = await client.fetch_orders_page("financial_status:pending", None, 250)
    """

    API_VERSION = "2024-10"

    def __init__(
        self,
        store_url: str,
        access_token: str,
        api_version: str | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        """Initialize ShopifyOrderClient.

        Args:
            store_url: Store domain (e.g., 'mystore.myshopify.com'); scheme
                and trailing slashes are stripped
            access_token: Admin API access token
            api_version: Admin API version (default: API_VERSION)
            timeout_seconds: Per-request transport timeout
        """
        store_url = store_url.replace("https://", "").replace("http://", "")
        self._store_url = store_url.rstrip("/")
        self._access_token = access_token
        self._api_version = api_version or self.API_VERSION
        self._http = httpx.AsyncClient(
            headers=self._get_headers(),
            timeout=timeout_seconds,
        )

    @property
    def platform_name(self) -> str:
        """Return the platform identifier."""
        return "shopify"

    @property
    def graphql_url(self) -> str:
        """Full GraphQL endpoint URL."""
        return f"https://{self._store_url}/admin/api/{self._api_version}/graphql.json"

    def _get_headers(self) -> dict[str, str]:
        return {
            "X-Shopify-Access-Token": self._access_token,
            "Content-Type": "application/json",
        }

    async def aclose(self) -> None:
        """Close the pooled HTTP client."""
        await self._http.aclose()

    async def fetch_orders_page(
        self,
        query: str,
        cursor: str | None,
        page_size: int,
    ) -> OrdersPage:
        """Fetch one page of orders matching a Shopify search query.

        Args:
            query: Shopify search syntax (e.g. 'financial_status:pending')
            cursor: endCursor of the previous page, None for the first page
            page_size: Orders per page (clamped to 1..250)

        Returns:
            OrdersPage with normalized OrderRecords

        Raises:
            RateLimited, Unauthorized, Transient, Fatal
        """
        variables = {
            "first": max(1, min(page_size, MAX_PAGE_SIZE)),
            "after": cursor,
            "query": query,
        }
        data = await self._graphql(ORDERS_QUERY, variables)

        connection = (data or {}).get("orders")
        if not isinstance(connection, dict):
            raise Fatal("Malformed orders response: missing 'orders' connection")

        page_info = connection.get("pageInfo") or {}
        items = []
        for edge in connection.get("edges") or []:
            node = (edge or {}).get("node")
            if not node:
                continue
            items.append(self._normalize_order(node))

        has_more = bool(page_info.get("hasNextPage"))
        next_cursor = page_info.get("endCursor")
        if next_cursor is None and has_more and connection.get("edges"):
            # Older API versions omit endCursor; fall back to the last edge cursor
            next_cursor = connection["edges"][-1].get("cursor")

        return OrdersPage(items=tuple(items), next_cursor=next_cursor, has_more=has_more)

    async def set_financial_status(
        self,
        order_id: str,
        new_status: FinancialStatus,
    ) -> None:
        """Set an order's financial status.

        The Admin API only exposes a direct transition to 'paid'
        (orderMarkAsPaid). Marking an already-paid order as paid is
        accepted by Shopify, which keeps this call idempotent.

        Args:
            order_id: Order GID (gid://shopify/Order/...)
            new_status: Target financial status

        Raises:
            ValidationFailed: Unsupported target status or userErrors returned
            RateLimited, Unauthorized, Transient, Fatal
        """
        if new_status is not FinancialStatus.PAID:
            raise ValidationFailed(
                f"Shopify does not support setting financial status to "
                f"'{new_status.value}' directly",
                details={"order_id": order_id},
            )

        data = await self._graphql(
            MARK_AS_PAID_MUTATION, {"input": {"id": order_id}},
        )
        payload = (data or {}).get("orderMarkAsPaid")
        if not isinstance(payload, dict):
            raise Fatal("Malformed mutation response: missing 'orderMarkAsPaid'")

        user_errors = payload.get("userErrors") or []
        if user_errors:
            message = "; ".join(
                str(err.get("message", "unknown error")) for err in user_errors
            )
            raise ValidationFailed(message, details={"order_id": order_id})

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """POST a GraphQL document and return its ``data`` object.

        Args:
            query: GraphQL document
            variables: Query variables

        Returns:
            The response ``data`` dict

        Raises:
            OrderAPIError subclass matching the failure
        """
        try:
            response = await self._http.post(
                self.graphql_url,
                json={"query": query, "variables": variables},
            )
        except httpx.TimeoutException as e:
            raise Transient(f"Request timed out: {type(e).__name__}") from e
        except httpx.RequestError as e:
            raise Transient(
                sanitize_error_message(f"Transport error: {e}") or "Transport error"
            ) from e

        self._raise_for_status(response)

        try:
            body = response.json()
        except ValueError as e:
            raise Fatal("Response body is not valid JSON") from e
        if not isinstance(body, dict):
            raise Fatal(f"Unexpected response type: {type(body).__name__}")

        errors = body.get("errors")
        if errors:
            raise self._translate_graphql_errors(errors)

        return body.get("data") or {}

    @staticmethod
    def _retry_after(response: Any) -> float | None:
        raw = (response.headers or {}).get("Retry-After")
        if raw is None:
            return None
        try:
            return max(0.0, float(raw))
        except (TypeError, ValueError):
            return None

    def _raise_for_status(self, response: Any) -> None:
        """Map non-2xx HTTP statuses onto the client error taxonomy."""
        status = response.status_code
        if 200 <= status < 300:
            return
        raw_text = getattr(response, "text", "")
        text = sanitize_error_message(raw_text if isinstance(raw_text, str) else "", max_length=300)
        if status == 429:
            raise RateLimited(
                "Shopify API rate limit exceeded",
                retry_after=self._retry_after(response),
            )
        if status in (401, 403):
            raise Unauthorized(f"Shopify rejected credentials (HTTP {status})")
        if status >= 500:
            raise Transient(f"Shopify server error (HTTP {status})", details={"body": text})
        raise Fatal(f"Unexpected HTTP {status} from Shopify", details={"body": text})

    @staticmethod
    def _translate_graphql_errors(errors: Any) -> OrderAPIError:
        """Build a client error from a GraphQL ``errors`` array."""
        if not isinstance(errors, list):
            return Fatal(sanitize_error_message(str(errors), max_length=300) or "GraphQL error")

        codes = set()
        messages = []
        for err in errors:
            if not isinstance(err, dict):
                messages.append(str(err))
                continue
            messages.append(str(err.get("message", "")))
            code = (err.get("extensions") or {}).get("code")
            if code:
                codes.add(str(code).upper())

        message = sanitize_error_message("; ".join(m for m in messages if m), max_length=300)
        message = message or "GraphQL error"
        if codes & _THROTTLED_CODES:
            return RateLimited(message)
        if codes & _AUTH_CODES:
            return Unauthorized(message)
        if "INTERNAL_SERVER_ERROR" in codes:
            return Transient(message)
        return Fatal(message, details={"codes": sorted(codes)})

    def _normalize_order(self, node: dict) -> OrderRecord:
        """Convert a GraphQL order node into an OrderRecord.

        Args:
            node: Raw order node from the orders connection

        Returns:
            Normalized OrderRecord

        Raises:
            Fatal: If required fields are missing or malformed
        """
        money = ((node.get("totalPriceSet") or {}).get("shopMoney")) or {}
        customer = node.get("customer") or {}

        try:
            amount = Decimal(str(money.get("amount", "0")))
        except InvalidOperation as e:
            raise Fatal(f"Order {node.get('id')} has a malformed amount") from e

        try:
            record = OrderRecord(
                id=str(node["id"]),
                name=str(node.get("name", "")),
                created_at=str(node.get("createdAt", "")),
                financial_status=node.get("displayFinancialStatus"),
                fulfillment_status=node.get("displayFulfillmentStatus"),
                total=Money(
                    amount=amount,
                    currency_code=str(money.get("currencyCode") or "USD"),
                ),
                customer_name=customer.get("displayName"),
                customer_email=customer.get("email"),
            )
        except (KeyError, ValueError) as e:
            logger.warning("Malformed order node %s: %s", node.get("id"), e)
            raise Fatal(f"Malformed order node {node.get('id')}: {e}") from e

        if record.financial_status is None:
            logger.warning(
                "Order %s has unrecognized financial status %r",
                record.id, record.raw_financial_status,
            )
        return record
