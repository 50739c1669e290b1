"""Tests for CLI output formatting."""

import json

import pytest

from src.cli.config import ShopifyConfig, StatusMigratorConfig
from src.cli.output import format_config, format_job_panel, format_orders_table, format_status
from src.clients.errors import Unauthorized, ValidationFailed
from src.clients.models import OrdersPage
from src.orchestrator.job import JobOrchestrator
from tests.helpers import FakeOrderClient, make_order


async def _searched_job(client: FakeOrderClient, no_sleep, status: str = "pending"):
    orchestrator = JobOrchestrator(client, sleep=no_sleep)
    job = await orchestrator.start_search(status)
    await orchestrator.wait(job)
    return orchestrator, job


class TestFormatStatus:
    def test_badge_colors(self):
        assert format_status("paid") == "[green]Paid[/green]"
        assert format_status("PARTIALLY_REFUNDED") == "[blue]Partially Refunded[/blue]"
        assert format_status("voided") == "[red]Voided[/red]"

    def test_unmapped_values_use_info_color(self):
        assert format_status("EXPIRED") == "[blue]Expired[/blue]"
        assert format_status("PARTIALLY_FULFILLED") == "[blue]Partially Fulfilled[/blue]"

    def test_missing_value(self):
        assert format_status(None) == "—"


class TestFormatOrdersTable:
    """Tests for the matched-orders table."""

    @pytest.mark.asyncio
    async def test_renders_orders(self, fake_client, no_sleep):
        _, job = await _searched_job(fake_client, no_sleep)

        output = format_orders_table(job)

        assert "Pending Orders" in output
        assert "#1001" in output
        assert "#1005" in output
        assert "$25.00" in output
        assert "2024-03-01" in output

    @pytest.mark.asyncio
    async def test_guest_email_and_unrecognized_status(self, no_sleep):
        guest = make_order(1).model_copy(update={"customer_name": None, "customer_email": None})
        client = FakeOrderClient([guest, make_order(2, "EXPIRED")])
        _, job = await _searched_job(client, no_sleep)

        output = format_orders_table(job)

        assert "Email" in output
        assert "Guest" in output
        assert "Expired" in output
        assert "Unfulfilled" in output

    @pytest.mark.asyncio
    async def test_empty_result(self, no_sleep):
        client = FakeOrderClient()
        client.configure_pages([OrdersPage()])
        _, job = await _searched_job(client, no_sleep, "refunded")

        assert format_orders_table(job) == "No Refunded orders found."

    @pytest.mark.asyncio
    async def test_json(self, fake_client, no_sleep):
        _, job = await _searched_job(fake_client, no_sleep)

        parsed = json.loads(format_orders_table(job, as_json=True))

        assert parsed["phase"] == "searched"
        assert parsed["item_count"] == 5
        assert [o["name"] for o in parsed["orders"]] == ["#1001", "#1002", "#1003", "#1004", "#1005"]
        assert parsed["orders"][0]["total"] == "$25.00"


class TestFormatJobPanel:
    """Tests for the job result panel."""

    @pytest.mark.asyncio
    async def test_successful_update(self, fake_client, no_sleep):
        orchestrator, job = await _searched_job(fake_client, no_sleep)
        await orchestrator.start_update(job, "paid")
        await orchestrator.wait(job)

        output = format_job_panel(job)

        assert job.id in output
        assert "updated" in output
        assert "Successfully updated 5 orders" in output
        assert "Failures" not in output

    @pytest.mark.asyncio
    async def test_partial_failure_lists_orders(self, no_sleep):
        a, b = make_order(1), make_order(2)
        client = FakeOrderClient([a, b])
        client.configure_mutation_failure(b.id, ValidationFailed("Order is cancelled"))
        orchestrator, job = await _searched_job(client, no_sleep)
        await orchestrator.start_update(job, "paid")
        await orchestrator.wait(job)

        output = format_job_panel(job)

        assert "Failures" in output
        assert "E-3004" in output
        assert "Order: #1002" in output

    @pytest.mark.asyncio
    async def test_failed_search_shows_error(self, fake_client, no_sleep):
        fake_client.configure_fetch_failure(1, Unauthorized("denied"))
        _, job = await _searched_job(fake_client, no_sleep)

        output = format_job_panel(job)

        assert "E-3100" in output
        assert "Action:" in output

    @pytest.mark.asyncio
    async def test_json_omits_orders(self, fake_client, no_sleep):
        orchestrator, job = await _searched_job(fake_client, no_sleep)
        await orchestrator.start_update(job, "paid")
        await orchestrator.wait(job)

        parsed = json.loads(format_job_panel(job, as_json=True))

        assert parsed["phase"] == "updated"
        assert parsed["succeeded_count"] == 5
        assert parsed["orders"] == []
        assert parsed["to_status"] == "paid"


class TestFormatConfig:
    def test_masks_token(self):
        cfg = StatusMigratorConfig(
            shopify=ShopifyConfig(store_url="mystore.myshopify.com", access_token="shpat_secret")
        )

        output = format_config(cfg)

        assert "shpat_secret" not in output
        assert "REDACTED" in output
        assert "mystore.myshopify.com" in output
