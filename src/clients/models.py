"""Models for the remote order API contract.

Order snapshots returned by an OrderAPIClient are immutable pydantic
models. Financial status values are validated at this boundary so the
engine never sees a free-form status string.
"""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.errors.domain import ValidationError


class FinancialStatus(str, Enum):
    """Payment-lifecycle state of an order."""

    AUTHORIZED = "authorized"
    PAID = "paid"
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"
    VOIDED = "voided"

    @classmethod
    def parse(cls, value: "str | FinancialStatus") -> "FinancialStatus":
        """Parse a status from user input or the remote display form.

        Accepts ``paid``, ``PAID`` and ``Partially Paid`` alike.

        Args:
            value: Raw status value.

        Returns:
            The matching FinancialStatus.

        Raises:
            ValidationError: If the value is not an allowed status.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValidationError(f"Invalid financial status: {value!r}")
        normalized = value.strip().lower().replace(" ", "_").replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(
                f"Invalid financial status '{value}'. Allowed: {allowed}"
            ) from None

    @property
    def label(self) -> str:
        """Human-readable label, e.g. 'Partially Paid'."""
        return self.value.replace("_", " ").title()

    @property
    def tone(self) -> str:
        """Display tone used by status badges."""
        return STATUS_TONES[self]


STATUS_TONES: dict[FinancialStatus, str] = {
    FinancialStatus.PAID: "success",
    FinancialStatus.AUTHORIZED: "info",
    FinancialStatus.PENDING: "warning",
    FinancialStatus.PARTIALLY_PAID: "warning",
    FinancialStatus.PARTIALLY_REFUNDED: "info",
    FinancialStatus.REFUNDED: "critical",
    FinancialStatus.VOIDED: "critical",
}


def status_tone(value: "str | FinancialStatus | None") -> str:
    """Badge tone for a remote status value; anything unmapped is 'info'."""
    try:
        return FinancialStatus.parse(value).tone
    except ValidationError:
        return "info"


def status_label(value: "str | FinancialStatus | None") -> str:
    """Human-readable label for any remote status value, e.g. 'Partially Fulfilled'."""
    if isinstance(value, FinancialStatus):
        return value.label
    if not value:
        return "Unknown"
    return str(value).replace("_", " ").title()


class Money(BaseModel):
    """Monetary amount in a single currency."""

    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(..., description="Decimal amount (e.g. 149.99)")
    currency_code: str = Field(..., min_length=3, max_length=3, description="ISO 4217 code")


class OrderRecord(BaseModel):
    """Snapshot of a remote order taken at search time.

    Never mutated in place; a later re-fetch produces a new snapshot.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Remote order identifier")
    name: str = Field(..., description="Display name, e.g. '#1001'")
    created_at: str = Field(..., description="Creation timestamp (ISO 8601)")
    financial_status: FinancialStatus | None = Field(
        None, description="Financial status at search time; None if the remote value is unknown"
    )
    raw_financial_status: str | None = Field(
        None, description="Financial status exactly as the remote reported it"
    )
    fulfillment_status: str | None = Field(None, description="Fulfillment status at search time")
    total: Money = Field(..., description="Order total in shop currency")
    customer_name: str | None = Field(None, description="Customer display name")
    customer_email: str | None = Field(None, description="Customer email")

    @model_validator(mode="before")
    @classmethod
    def _keep_raw_status(cls, data: object) -> object:
        if isinstance(data, dict) and "raw_financial_status" not in data:
            raw = data.get("financial_status")
            if isinstance(raw, FinancialStatus):
                raw = raw.value
            data = {**data, "raw_financial_status": raw}
        return data

    @field_validator("financial_status", mode="before")
    @classmethod
    def _parse_status(cls, value: object) -> FinancialStatus | None:
        # Remote payloads use the upper-case display form, and Shopify
        # reports values (EXPIRED, null) outside FinancialStatus.
        if value is None or isinstance(value, FinancialStatus):
            return value
        try:
            return FinancialStatus.parse(value)  # type: ignore[arg-type]
        except ValidationError:
            return None

    @property
    def status_value(self) -> str | None:
        """Normalized status value, falling back to the raw remote value."""
        if self.financial_status is not None:
            return self.financial_status.value
        return self.raw_financial_status


class OrdersPage(BaseModel):
    """One page of orders returned by fetch_orders_page."""

    model_config = ConfigDict(frozen=True)

    items: tuple[OrderRecord, ...] = Field(default_factory=tuple)
    next_cursor: str | None = Field(None, description="Opaque cursor for the next page")
    has_more: bool = Field(False, description="Whether the remote reports more pages")
