"""Integration tests for the CLI: end-to-end command execution."""

import json
import logging
import os
from contextlib import contextmanager
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from src.cli.config import EngineConfig, LoggingConfig, ShopifyConfig, StatusMigratorConfig
from src.cli.main import EXIT_FAILED, EXIT_PARTIAL, JsonLogFormatter, app, setup_logging
from src.clients.errors import Unauthorized, ValidationFailed
from src.clients.models import FinancialStatus, OrdersPage
from tests.helpers import FakeOrderClient, make_order

runner = CliRunner()


@pytest.fixture
def cli_config() -> StatusMigratorConfig:
    return StatusMigratorConfig(
        shopify=ShopifyConfig(store_url="mystore.myshopify.com", access_token="shpat_secret"),
        engine=EngineConfig(base_delay_seconds=0),
    )


@contextmanager
def _wire_client(client: FakeOrderClient, cli_config: StatusMigratorConfig):
    """Patch config resolution, logging, and the client factory."""
    with (
        patch("src.cli.main.resolve_config", return_value=cli_config),
        patch("src.cli.main.setup_logging"),
        patch("src.cli.main.get_client", return_value=client),
    ):
        yield client


@pytest.fixture
def wired(cli_config, fake_client):
    with _wire_client(fake_client, cli_config):
        yield fake_client


class TestGeneralCommands:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "statusmigrator" in result.stdout

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("search", "migrate", "serve", "config"):
            assert command in result.stdout

    def test_config_show_json_masks_token(self, wired):
        result = runner.invoke(app, ["config", "show", "--json"])
        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert parsed["shopify"]["access_token"] == "***REDACTED***"
        assert parsed["engine"]["concurrency"] == 5

    def test_config_show_table(self, wired):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "shpat_secret" not in result.stdout

    def test_missing_config_file(self, tmp_path):
        with patch("src.cli.main.setup_logging"):
            result = runner.invoke(
                app, ["--config", str(tmp_path / "missing.yaml"), "config", "show"],
            )
        assert result.exit_code == EXIT_FAILED
        assert "not found" in result.stdout.lower()

    def test_invalid_config_file(self, tmp_path):
        config_file = tmp_path / "statusmigrator.yaml"
        config_file.write_text("engine:\n  concurrency: 0\n")
        with patch("src.cli.main.setup_logging"):
            result = runner.invoke(app, ["--config", str(config_file), "config", "show"])
        assert result.exit_code == EXIT_FAILED
        assert "validation failed" in result.stdout.lower()


class TestSearchCommand:
    """Tests for `statusmigrator search`."""

    def test_lists_orders(self, wired):
        result = runner.invoke(app, ["search", "--status", "pending"])
        assert result.exit_code == 0
        assert "#1001" in result.stdout
        assert "5 orders found" in result.stdout
        assert wired.mutation_calls() == []

    def test_cap(self, wired):
        result = runner.invoke(app, ["search", "-s", "pending", "--cap", "2"])
        assert result.exit_code == 0
        assert "more available" in result.stdout

    def test_json(self, wired):
        result = runner.invoke(app, ["search", "--status", "pending", "--json"])
        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert parsed["item_count"] == 5
        assert parsed["orders"][0]["id"] == "gid://shopify/Order/1"

    def test_invalid_status(self, wired):
        result = runner.invoke(app, ["search", "--status", "shipped"])
        assert result.exit_code == EXIT_FAILED
        assert "Invalid financial status" in result.stdout
        assert wired.fetch_calls() == []

    def test_search_failure(self, wired):
        wired.configure_fetch_failure(1, Unauthorized("Invalid API key or access token"))
        result = runner.invoke(app, ["search", "--status", "pending"])
        assert result.exit_code == EXIT_FAILED
        assert "E-3100" in result.stdout

    def test_missing_credentials(self):
        with (
            patch("src.cli.main.resolve_config", return_value=StatusMigratorConfig()),
            patch("src.cli.main.setup_logging"),
        ):
            result = runner.invoke(app, ["search", "--status", "pending"])
        assert result.exit_code == EXIT_FAILED
        assert "required" in result.stdout


class TestMigrateCommand:
    """Tests for `statusmigrator migrate`."""

    def test_migrate_with_yes(self, wired):
        result = runner.invoke(app, ["migrate", "--from", "pending", "--to", "paid", "--yes"])
        assert result.exit_code == 0
        assert "Successfully updated 5 orders" in result.stdout
        assert set(wired.statuses.values()) == {FinancialStatus.PAID}

    def test_confirmation_declined(self, wired):
        result = runner.invoke(app, ["migrate", "--from", "pending", "--to", "paid"], input="n\n")
        assert result.exit_code == 0
        assert "No orders were changed." in result.stdout
        assert wired.mutation_calls() == []

    def test_confirmation_accepted(self, wired):
        result = runner.invoke(app, ["migrate", "--from", "pending", "--to", "paid"], input="y\n")
        assert result.exit_code == 0
        assert len(wired.mutation_calls()) == 5

    def test_partial_failure_exit_code(self, cli_config):
        a, b, c = make_order(1), make_order(2), make_order(3)
        client = FakeOrderClient([a, b, c])
        client.configure_mutation_failure(b.id, ValidationFailed("Order is cancelled"))
        with _wire_client(client, cli_config):
            result = runner.invoke(app, ["migrate", "--from", "pending", "--to", "paid", "-y"])
        assert result.exit_code == EXIT_PARTIAL
        assert "2 of 3 orders updated" in result.stdout

    def test_invalid_target(self, wired):
        result = runner.invoke(app, ["migrate", "--from", "pending", "--to", "shipped", "-y"])
        assert result.exit_code == EXIT_FAILED
        assert wired.get_call_history() == []

    def test_nothing_to_update(self, cli_config):
        client = FakeOrderClient()
        client.configure_pages([OrdersPage()])
        with _wire_client(client, cli_config):
            result = runner.invoke(app, ["migrate", "--from", "voided", "--to", "paid", "-y"])
        assert result.exit_code == 0
        assert "0 orders found" in result.stdout
        assert client.mutation_calls() == []

    def test_failed_search_makes_no_updates(self, wired):
        wired.configure_fetch_failure(1, Unauthorized("denied"))
        result = runner.invoke(app, ["migrate", "--from", "pending", "--to", "paid", "-y"])
        assert result.exit_code == EXIT_FAILED
        assert wired.mutation_calls() == []

    def test_json_output(self, wired):
        result = runner.invoke(
            app, ["migrate", "--from", "pending", "--to", "paid", "-y", "--json", "-c", "2"],
        )
        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert parsed["phase"] == "updated"
        assert parsed["succeeded_count"] == 5
        assert parsed["failures"] == []


class TestServeCommand:
    def test_serve_runs_uvicorn(self, wired):
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(app, ["serve", "--port", "9100"])
        assert result.exit_code == 0
        args, kwargs = mock_run.call_args
        assert args[0] == "src.api.main:app"
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9100

    def test_serve_propagates_config_path(self, wired, monkeypatch, tmp_path):
        config_file = tmp_path / "statusmigrator.yaml"
        config_file.write_text("")
        monkeypatch.setenv("STATUSMIGRATOR_CONFIG_PATH", "unset")
        with patch("uvicorn.run"):
            result = runner.invoke(app, ["--config", str(config_file), "serve"])
        assert result.exit_code == 0
        assert os.environ["STATUSMIGRATOR_CONFIG_PATH"] == str(config_file)


class TestJsonMode:
    """--json output must be machine-parseable."""

    def test_migrate_json_requires_yes(self, wired):
        result = runner.invoke(app, ["migrate", "--from", "pending", "--to", "paid", "--json"])
        assert result.exit_code == EXIT_FAILED
        assert "--yes" in result.stdout
        assert wired.get_call_history() == []

    def test_confirmed_migrate_json_parses(self, wired):
        result = runner.invoke(app, ["migrate", "--from", "pending", "--to", "paid", "--json", "--yes"])
        assert result.exit_code == 0
        parsed = json.loads(result.stdout)
        assert parsed["succeeded_count"] == 5

    def test_json_log_lines_escape_message(self):
        record = logging.LogRecord(
            "src.orchestrator.job", logging.WARNING, __file__, 1,
            'order "%s" said: %s', ("#1002", 'bad "quote"\nnext'), None,
        )
        parsed = json.loads(JsonLogFormatter().format(record))
        assert parsed["message"] == 'order "#1002" said: bad "quote"\nnext'
        assert parsed["level"] == "WARNING"
        assert parsed["logger"] == "src.orchestrator.job"

    def test_setup_logging_writes_json_lines(self, tmp_path):
        log_file = tmp_path / "statusmigrator.log"
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(LoggingConfig(format="json", file=str(log_file)))
            logging.getLogger("src.cli.test").warning('bad "quote"\nnext')
            for handler in root.handlers:
                handler.close()
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)

        lines = log_file.read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["message"] == 'bad "quote"\nnext'
