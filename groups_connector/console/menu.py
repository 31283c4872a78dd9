"""Interactive menu for managing the connection and pushing groups."""

import argparse
import sys
from enum import IntEnum
from typing import Callable

import requests
import structlog
from pydantic import BaseModel

from groups_connector.graph.errors import AuthenticationError, GraphServiceError
from groups_connector.graph.graph_client import GraphClient
from groups_connector.models.group import ExternalConnection, Schema, group_schema
from groups_connector.providers import get_graph_client, get_record_store, get_sync_coordinator
from groups_connector.sync.models import SyncReport
from groups_connector.sync.sync_coordinator import SyncCoordinator
from groups_connector.utils.config_loader import ConfigLoader, ConfigurationError
from groups_connector.utils.logging_config import configure_logging

log = structlog.stdlib.get_logger()

ACTION_ERRORS = (GraphServiceError, AuthenticationError, requests.RequestException)

NO_CONNECTION_WARNING = (
    "No connection selected. Please create a new connection or select an existing connection."
)


class MenuChoice(IntEnum):
    INVALID = 0
    CREATE_CONNECTION = 1
    CHOOSE_EXISTING_CONNECTION = 2
    DELETE_CONNECTION = 3
    REGISTER_SCHEMA = 4
    VIEW_SCHEMA = 5
    PUSH_UPDATED_ITEMS = 6
    PUSH_ALL_ITEMS = 7
    EXIT = 8


MENU_LABELS = {
    MenuChoice.CREATE_CONNECTION: "Create a connection",
    MenuChoice.CHOOSE_EXISTING_CONNECTION: "Select an existing connection",
    MenuChoice.DELETE_CONNECTION: "Delete current connection",
    MenuChoice.REGISTER_SCHEMA: "Register schema for current connection",
    MenuChoice.VIEW_SCHEMA: "View schema for current connection",
    MenuChoice.PUSH_UPDATED_ITEMS: "Push updated items to current connection",
    MenuChoice.PUSH_ALL_ITEMS: "Push ALL items to current connection",
    MenuChoice.EXIT: "Exit",
}


class ConsoleSession(BaseModel):
    """State carried between menu actions."""

    current_connection: ExternalConnection | None = None


class ConsoleApp:
    """Menu loop over a Graph client and a sync coordinator.

    Every action receives the ConsoleSession explicitly and may replace its
    ``current_connection``.
    """

    def __init__(
        self,
        graph_client: GraphClient,
        sync_coordinator: SyncCoordinator,
        schema: Schema | None = None,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
    ):
        self._graph_client = graph_client
        self._sync_coordinator = sync_coordinator
        self._schema = schema or group_schema()
        self._input = input_func
        self._output = output_func

    def run(self, session: ConsoleSession | None = None) -> int:
        """
        Show the menu until the operator exits.

        Returns:
            Process exit code: 0 on a normal exit, 1 after an unexpected error
        """
        session = session or ConsoleSession()
        self._output("Groups Search Connector\n")

        try:
            while True:
                choice = self.prompt_menu(session)
                if choice == MenuChoice.EXIT:
                    self._output("Goodbye...")
                    return 0
                self.dispatch(choice, session)
                self._output("")
        except (EOFError, KeyboardInterrupt):
            self._output("\nGoodbye...")
            return 0
        except Exception as e:
            log.exception("unexpected_error", error=str(e))
            self._output("An unexpected exception occurred.")
            self._output(str(e))
            return 1

    def dispatch(self, choice: MenuChoice, session: ConsoleSession) -> None:
        if choice == MenuChoice.CREATE_CONNECTION:
            self.create_connection(session)
        elif choice == MenuChoice.CHOOSE_EXISTING_CONNECTION:
            self.select_existing_connection(session)
        elif choice == MenuChoice.DELETE_CONNECTION:
            self.delete_current_connection(session)
        elif choice == MenuChoice.REGISTER_SCHEMA:
            self.register_schema(session)
        elif choice == MenuChoice.VIEW_SCHEMA:
            self.view_schema(session)
        elif choice == MenuChoice.PUSH_UPDATED_ITEMS:
            self.push_items(session, full_sync=False)
        elif choice == MenuChoice.PUSH_ALL_ITEMS:
            self.push_items(session, full_sync=True)
        else:
            self._output("Invalid choice! Please try again.")

    def prompt_menu(self, session: ConsoleSession) -> MenuChoice:
        current = session.current_connection
        self._output(f"Current connection: {current.name if current else 'NONE'}")
        self._output("Please choose one of the following options:")
        for choice, label in MENU_LABELS.items():
            self._output(f"{choice.value}. {label}")

        try:
            return MenuChoice(int(self._input("> ").strip()))
        except ValueError:
            return MenuChoice.INVALID

    def prompt_for_input(self, prompt: str, value_required: bool) -> str:
        """Ask for a value, repeating the prompt while a required value is empty."""
        while True:
            response = self._input(f"{prompt}: ").strip()
            if response or not value_required:
                return response
            self._output("You must provide a value")

    def create_connection(self, session: ConsoleSession) -> None:
        connection_id = self.prompt_for_input("Enter a unique ID for the new connection", True)
        name = self.prompt_for_input("Enter a name for the new connection", True)
        description = self.prompt_for_input("Enter a description for the new connection", False)

        try:
            connection = self._graph_client.create_connection(connection_id, name, description)
        except ACTION_ERRORS as e:
            self._report_error("creating new connection", e)
            return

        session.current_connection = connection
        self._output("New connection created")
        self._output(connection.model_dump_json(indent=2))

    def select_existing_connection(self, session: ConsoleSession) -> None:
        self._output("Getting existing connections...")
        try:
            connections = self._graph_client.list_connections()
        except ACTION_ERRORS as e:
            self._report_error("getting connections", e)
            return

        if not connections:
            self._output("No connections exist. Please create a new connection.")
            return

        self._output("Choose one of the following connections:")
        for number, connection in enumerate(connections, start=1):
            self._output(f"{number}. {connection.name}")

        while True:
            try:
                choice = int(self._input("Selection: ").strip())
            except ValueError:
                self._output("Invalid choice.")
                continue
            if 1 <= choice <= len(connections):
                break
            self._output("Invalid choice.")

        session.current_connection = connections[choice - 1]
        log.info("connection_selected", connection_id=session.current_connection.id)

    def delete_current_connection(self, session: ConsoleSession) -> None:
        connection = session.current_connection
        if connection is None:
            self._output(NO_CONNECTION_WARNING)
            return

        self._output(f"Deleting {connection.name} - THIS CANNOT BE UNDONE")
        self._output("Enter the connection name to confirm.")
        if self._input("> ").strip() != connection.name:
            self._output("Canceled")
            return

        try:
            self._graph_client.delete_connection(connection.id)
        except ACTION_ERRORS as e:
            self._report_error("deleting connection", e)
            return

        self._output(f"{connection.name} deleted")
        session.current_connection = None

    def register_schema(self, session: ConsoleSession) -> None:
        connection = session.current_connection
        if connection is None:
            self._output(NO_CONNECTION_WARNING)
            return

        self._output("Registering schema, this may take a moment...")
        try:
            self._graph_client.register_schema_and_wait(connection.id, self._schema)
        except ACTION_ERRORS as e:
            self._report_error("registering schema", e)
            return

        self._output("Schema registered")

    def view_schema(self, session: ConsoleSession) -> None:
        connection = session.current_connection
        if connection is None:
            self._output(NO_CONNECTION_WARNING)
            return

        try:
            schema = self._graph_client.get_schema(connection.id)
        except ACTION_ERRORS as e:
            self._report_error("getting schema", e)
            return

        self._output(schema.model_dump_json(indent=2))

    def push_items(self, session: ConsoleSession, full_sync: bool) -> SyncReport | None:
        connection = session.current_connection
        if connection is None:
            self._output(NO_CONNECTION_WARNING)
            return None

        if full_sync:
            self._output("Pushing ALL groups...")
        else:
            self._output("Pushing groups changed since the last upload...")
        report = self._sync_coordinator.sync(connection.id, full_sync=full_sync)

        self._output(
            f"Processed {report.items_upserted} add/updates, "
            f"{report.items_deleted + report.items_not_found} deletes, "
            f"{report.items_failed} failures"
        )
        for error in report.errors:
            self._output(f"  {error}")
        if report.watermark_advanced:
            self._output(f"Last upload time set to {report.start_time.isoformat()}")
        else:
            self._output("Last upload time unchanged; the next push will retry these changes")
        return report

    def _report_error(self, action: str, error: Exception) -> None:
        status = getattr(error, "status_code", None)
        log.error("console_action_failed", action=action, status_code=status, error=str(error))
        self._output(f"{status if status is not None else 'Request'} error {action}:")
        self._output(getattr(error, "message", None) or str(error))


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Manage a Microsoft Search connection for directory groups"
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration YAML file (default: config/default.yaml)",
        default=None,
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
        default=False,
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Console entry point."""
    args = parse_arguments(argv)

    try:
        config_loader = ConfigLoader()
        config = config_loader.load_config(args.config)
    except ConfigurationError as e:
        configure_logging(log_level="INFO", json_logs=False)
        log.error("configuration_error", error=str(e))
        print("Missing or invalid configuration", file=sys.stderr)
        print(str(e), file=sys.stderr)
        return 1

    configure_logging(
        log_level="DEBUG" if args.verbose else config.logging.log_level,
        json_logs=config.logging.json_logs,
        log_file=config.logging.log_file,
    )
    config_loader.validate_config(config)

    record_store = None
    try:
        graph_client = get_graph_client(config)
        record_store = get_record_store(config)
        coordinator = get_sync_coordinator(config, graph_client, record_store)
    except Exception as e:
        log.error("startup_failed", error=str(e), exc_info=True)
        print("Failed to start the connector", file=sys.stderr)
        print(str(e), file=sys.stderr)
        return 1

    try:
        return ConsoleApp(graph_client, coordinator).run()
    finally:
        if record_store is not None:
            record_store.close()
