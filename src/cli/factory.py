"""Factories that wire configuration into the client and orchestrator.

CLI commands and the API lifespan build their engine through these
functions so neither imports the concrete client directly.
"""

from src.cli.config import StatusMigratorConfig
from src.clients.base import OrderAPIClient
from src.clients.shopify import ShopifyOrderClient
from src.errors.domain import ValidationError
from src.orchestrator.batch.events import JobEventEmitter
from src.orchestrator.job import JobOrchestrator


def get_client(config: StatusMigratorConfig) -> OrderAPIClient:
    """Create the store API client described by ``config.shopify``.

    Raises:
        ValidationError: Store URL or access token is missing.
    """
    shopify = config.shopify
    if not shopify.is_configured:
        raise ValidationError(
            "Shopify store_url and access_token are required. Set them in "
            "statusmigrator.yaml or via STATUSMIGRATOR_SHOPIFY_STORE_URL and "
            "STATUSMIGRATOR_SHOPIFY_ACCESS_TOKEN."
        )
    return ShopifyOrderClient(
        store_url=shopify.store_url,
        access_token=shopify.access_token,
        api_version=shopify.api_version,
        timeout_seconds=shopify.timeout_seconds,
    )


def get_orchestrator(
    config: StatusMigratorConfig,
    client: OrderAPIClient,
    emitter: JobEventEmitter | None = None,
) -> JobOrchestrator:
    """Create a JobOrchestrator tuned by ``config.engine``."""
    engine = config.engine
    return JobOrchestrator(
        client,
        page_size=engine.page_size,
        item_cap=engine.item_cap,
        concurrency=engine.concurrency,
        retry_policy=engine.retry_policy(),
        emitter=emitter,
    )
