"""Factory functions wiring configuration into Graph, storage, and sync components.

Both the interactive console and the scheduled sync script build their
collaborators here, so swapping an implementation only touches this module.
"""

import structlog

from groups_connector.graph.auth import ClientCredentialTokenProvider
from groups_connector.graph.graph_client import GraphClient
from groups_connector.models.config import AppConfig
from groups_connector.storage.record_store import GroupRecordStore
from groups_connector.sync.sync_coordinator import SyncCoordinator
from groups_connector.sync.watermark_store import WatermarkStore

log = structlog.stdlib.get_logger()


def get_graph_client(config: AppConfig) -> GraphClient:
    """Build a Graph client authenticated with the app's client credentials.

    Args:
        config: Loaded application configuration

    Returns:
        GraphClient using the configured endpoint and schema polling limits
    """
    token_provider = ClientCredentialTokenProvider(
        tenant_id=config.graph.tenant_id,
        client_id=config.graph.client_id,
        client_secret=config.graph.client_secret,
        authority_host=str(config.graph.authority_host),
        timeout=config.graph.timeout_seconds,
    )
    return GraphClient(
        token_provider=token_provider,
        base_url=str(config.graph.base_url),
        timeout=config.graph.timeout_seconds,
        poll_interval=config.sync.schema_poll_interval_seconds,
        max_poll_attempts=config.sync.schema_max_attempts,
    )


def get_record_store(config: AppConfig) -> GroupRecordStore | None:
    """Open the local group store, or None when it is disabled."""
    if not config.sync.use_local_store:
        log.info("local_store_disabled")
        return None
    return GroupRecordStore(config.sync.database_path)


def get_sync_coordinator(
    config: AppConfig,
    graph_client: GraphClient,
    record_store: GroupRecordStore | None = None,
) -> SyncCoordinator:
    return SyncCoordinator(
        graph_client=graph_client,
        watermark_store=WatermarkStore(config.sync.watermark_path),
        record_store=record_store,
    )
