"""Microsoft Graph client for external connections and directory groups."""

import time
from typing import Any, Callable, Iterator
from urllib.parse import quote, urlparse

import requests
import structlog

from groups_connector.graph.auth import ClientCredentialTokenProvider
from groups_connector.graph.errors import (
    GraphServiceError,
    GraphThrottledError,
    OperationTimeoutError,
    SchemaRegistrationError,
    retry_after_hint,
)
from groups_connector.models.group import (
    ConnectionOperation,
    ExternalConnection,
    OperationStatus,
    Schema,
    SourceRecord,
)
from groups_connector.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()

GROUP_SELECT_FIELDS = ("id", "displayName", "description", "createdDateTime")
DELETED_GROUP_SELECT_FIELDS = GROUP_SELECT_FIELDS + ("deletedDateTime",)

TRANSIENT_ERRORS = (requests.ConnectionError, requests.Timeout, GraphThrottledError)


def external_item_from_record(record: SourceRecord) -> dict[str, Any]:
    """Build the external item pushed for a group.

    The item is readable by members of the group itself and carries the
    description as its full-text content.
    """
    return {
        "id": record.id,
        "acl": [
            {
                "type": "group",
                "value": record.id,
                "accessType": "grant",
            }
        ],
        "properties": record.as_external_item_properties(),
        "content": {
            "type": "text",
            "value": record.description or "",
        },
    }


class GraphClient:
    """Thin wrapper around the Microsoft Graph REST API.

    Covers the external connection endpoints used to manage the search index
    and the directory endpoints used to read groups.
    """

    def __init__(
        self,
        token_provider: ClientCredentialTokenProvider,
        base_url: str = "https://graph.microsoft.com/v1.0",
        session: requests.Session | None = None,
        timeout: float = 30.0,
        poll_interval: float = 3.0,
        max_poll_attempts: int = 100,
        max_retries: int = 3,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize Graph client.

        Args:
            token_provider: Source of bearer tokens
            base_url: Graph API root, including the version segment
            session: Optional requests session (a new one is created if None)
            timeout: Per-request timeout in seconds
            poll_interval: Seconds between operation status checks
            max_poll_attempts: Status checks before an operation is declared timed out
            max_retries: Retries for connection errors and throttling responses
            sleep: Function used to wait between polls and retries
        """
        self._token_provider = token_provider
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._max_poll_attempts = max_poll_attempts
        self._sleep = sleep
        self._send = exponential_backoff_retry(
            max_retries=max_retries,
            base_delay=1.0,
            max_delay=30.0,
            exceptions=TRANSIENT_ERRORS,
            sleep=sleep,
            delay_hint=retry_after_hint,
        )(self._send_once)

        log.info("graph_client_initialized", base_url=self._base_url)

    # Connections

    def create_connection(
        self, connection_id: str, name: str, description: str | None = None
    ) -> ExternalConnection:
        log.info("creating_connection", connection_id=connection_id, name=name)
        body = {"id": connection_id, "name": name, "description": description or ""}
        response = self._request("POST", "/external/connections", json_body=body)
        connection = ExternalConnection.from_graph(response.json())
        log.info("connection_created", connection_id=connection.id)
        return connection

    def list_connections(self) -> list[ExternalConnection]:
        connections = [
            ExternalConnection.from_graph(item)
            for item in self._paginate("/external/connections")
        ]
        log.info("connections_listed", count=len(connections))
        return connections

    def delete_connection(self, connection_id: str) -> None:
        log.info("deleting_connection", connection_id=connection_id)
        self._request("DELETE", f"/external/connections/{_segment(connection_id)}")
        log.info("connection_deleted", connection_id=connection_id)

    # Schema

    def register_schema(self, connection_id: str, schema: Schema) -> str:
        """
        Start asynchronous schema registration.

        Args:
            connection_id: Target connection
            schema: Schema to register

        Returns:
            Operation ID to poll with ``get_operation``

        Raises:
            GraphServiceError: If Graph rejects the request or omits the operation location
        """
        log.info(
            "registering_schema",
            connection_id=connection_id,
            property_count=len(schema.properties),
        )
        response = self._request(
            "PATCH",
            f"/external/connections/{_segment(connection_id)}/schema",
            json_body=schema.to_graph(),
            headers={"Prefer": "respond-async"},
        )

        location = response.headers.get("Location")
        if not location:
            raise GraphServiceError(
                response.status_code, None, "Registering schema failed: no operation location"
            )

        operation_id = urlparse(location).path.rstrip("/").rsplit("/", 1)[-1]
        log.info("schema_registration_accepted", connection_id=connection_id, operation_id=operation_id)
        return operation_id

    def get_operation(self, connection_id: str, operation_id: str) -> ConnectionOperation:
        response = self._request(
            "GET",
            f"/external/connections/{_segment(connection_id)}/operations/{_segment(operation_id)}",
        )
        return ConnectionOperation.from_graph(response.json())

    def wait_for_operation(self, connection_id: str, operation_id: str) -> ConnectionOperation:
        """
        Poll an operation until it completes or fails.

        Raises:
            SchemaRegistrationError: If the operation reports ``failed``
            OperationTimeoutError: If it is still pending after ``max_poll_attempts`` checks
        """
        for attempt in range(1, self._max_poll_attempts + 1):
            operation = self.get_operation(connection_id, operation_id)

            if operation.status == OperationStatus.COMPLETED:
                log.info("operation_completed", operation_id=operation_id, attempts=attempt)
                return operation

            if operation.status == OperationStatus.FAILED:
                log.error(
                    "operation_failed",
                    operation_id=operation_id,
                    error_code=operation.error_code,
                    error_message=operation.error_message,
                )
                raise SchemaRegistrationError(
                    None,
                    operation.error_code,
                    operation.error_message or "Schema registration failed",
                )

            log.debug(
                "operation_pending",
                operation_id=operation_id,
                status=operation.status.value,
                attempt=attempt,
            )
            if attempt < self._max_poll_attempts:
                self._sleep(self._poll_interval)

        log.error("operation_timed_out", operation_id=operation_id, attempts=self._max_poll_attempts)
        raise OperationTimeoutError(operation_id, self._max_poll_attempts)

    def register_schema_and_wait(self, connection_id: str, schema: Schema) -> ConnectionOperation:
        operation_id = self.register_schema(connection_id, schema)
        return self.wait_for_operation(connection_id, operation_id)

    def get_schema(self, connection_id: str) -> Schema:
        response = self._request("GET", f"/external/connections/{_segment(connection_id)}/schema")
        return Schema.from_graph(response.json())

    # Items

    def upsert_item(self, connection_id: str, item: dict[str, Any]) -> None:
        """Create or fully replace an external item (PUT semantics)."""
        body = {key: value for key, value in item.items() if key != "id"}
        self._request(
            "PUT",
            f"/external/connections/{_segment(connection_id)}/items/{_segment(item['id'])}",
            json_body=body,
        )
        log.debug("item_upserted", connection_id=connection_id, item_id=item["id"])

    def delete_item(self, connection_id: str, item_id: str) -> None:
        self._request(
            "DELETE",
            f"/external/connections/{_segment(connection_id)}/items/{_segment(item_id)}",
        )
        log.debug("item_deleted", connection_id=connection_id, item_id=item_id)

    # Directory

    def list_groups(self) -> list[SourceRecord]:
        """Return all live groups in the directory."""
        groups = [
            _record_from_group(item)
            for item in self._paginate("/groups", params={"$select": ",".join(GROUP_SELECT_FIELDS)})
        ]
        log.info("groups_fetched", count=len(groups))
        return groups

    def list_deleted_groups(self) -> list[SourceRecord]:
        """Return groups that are in the directory recycle bin."""
        groups = [
            _record_from_group(item)
            for item in self._paginate(
                "/directory/deletedItems/microsoft.graph.group",
                params={"$select": ",".join(DELETED_GROUP_SELECT_FIELDS)},
            )
        ]
        log.info("deleted_groups_fetched", count=len(groups))
        return groups

    def list_all_records(self) -> list[SourceRecord]:
        """Full snapshot of groups, tombstones included."""
        return self.list_groups() + self.list_deleted_groups()

    # Transport

    def _paginate(self, path: str, params: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
        """Yield every item of a collection, following @odata.nextLink."""
        response = self._request("GET", path, params=params)
        while True:
            payload = response.json()
            yield from payload.get("value", [])

            next_link = payload.get("@odata.nextLink")
            if not next_link:
                return
            # nextLink already carries the query string
            response = self._request("GET", next_link)

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> requests.Response:
        """Send a request and raise GraphServiceError on a non-success status."""
        url = path if path.startswith("http") else f"{self._base_url}{path}"
        return self._send(method, url, params, json_body, headers)

    def _send_once(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        json_body: Any,
        headers: dict[str, str] | None,
    ) -> requests.Response:
        request_headers = {
            "Authorization": f"Bearer {self._token_provider.get_token()}",
            "Accept": "application/json",
        }
        if headers:
            request_headers.update(headers)

        log.debug("graph_request", method=method, url=url)
        response = self._session.request(
            method,
            url,
            params=params,
            json=json_body,
            headers=request_headers,
            timeout=self._timeout,
        )

        if response.status_code >= 400:
            error = GraphServiceError.from_response(response)
            log.debug(
                "graph_request_failed",
                method=method,
                url=url,
                status_code=error.status_code,
                code=error.code,
            )
            raise error

        return response


def _segment(value: str) -> str:
    return quote(value, safe="")


def _record_from_group(payload: dict[str, Any]) -> SourceRecord:
    return SourceRecord(
        id=payload["id"],
        display_name=payload.get("displayName"),
        description=payload.get("description"),
        created_at=payload.get("createdDateTime"),
        deleted_at=payload.get("deletedDateTime"),
    )
