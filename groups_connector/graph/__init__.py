"""Microsoft Graph access for connections, schemas, items, and groups."""

from groups_connector.graph.auth import ClientCredentialTokenProvider
from groups_connector.graph.errors import (
    AuthenticationError,
    GraphServiceError,
    GraphThrottledError,
    OperationTimeoutError,
    SchemaRegistrationError,
)
from groups_connector.graph.graph_client import GraphClient, external_item_from_record

__all__ = [
    "AuthenticationError",
    "ClientCredentialTokenProvider",
    "GraphClient",
    "GraphServiceError",
    "GraphThrottledError",
    "OperationTimeoutError",
    "SchemaRegistrationError",
    "external_item_from_record",
]
