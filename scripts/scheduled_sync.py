#!/usr/bin/env python3
"""
Scheduled synchronization script for the groups search connector.

Runs one sync pass without the interactive menu:
- Fetches directory groups (through the local store when enabled)
- Pushes changed groups and removes deleted ones from the connection
- Advances the watermark only when every item succeeded

Designed to be run on a schedule (e.g., via cron or a CI scheduler).

Usage:
    python scripts/scheduled_sync.py --connection-id CONNECTION_ID [--config CONFIG_PATH] [--full-sync]
"""

import argparse
import sys
from typing import Any

import structlog

from groups_connector.providers import get_graph_client, get_record_store, get_sync_coordinator
from groups_connector.utils.config_loader import ConfigLoader, ConfigurationError
from groups_connector.utils.logging_config import configure_logging

log = structlog.stdlib.get_logger()


def perform_sync(
    connection_id: str,
    config_path: str | None = None,
    full_sync: bool = False,
    verbose: bool = False,
) -> dict[str, Any]:
    """
    Perform one synchronization pass.

    Args:
        connection_id: Connection that receives the items
        config_path: Optional path to configuration file
        full_sync: If True, push every live group instead of changes only
        verbose: Force DEBUG logging

    Returns:
        Dictionary with sync statistics
    """
    try:
        config_loader = ConfigLoader()
        config = config_loader.load_config(config_path)
    except ConfigurationError as e:
        configure_logging(log_level="INFO", json_logs=True)
        log.error("configuration_error", error=str(e))
        return {"success": False, "error": str(e)}

    configure_logging(
        log_level="DEBUG" if verbose else config.logging.log_level,
        json_logs=True,
        log_file=config.logging.log_file,
    )

    record_store = None
    try:
        graph_client = get_graph_client(config)
        record_store = get_record_store(config)
        coordinator = get_sync_coordinator(config, graph_client, record_store)
        report = coordinator.sync(connection_id, full_sync=full_sync)
    except Exception as e:
        log.error("scheduled_sync_failed", connection_id=connection_id, error=str(e), exc_info=True)
        return {"success": False, "error": str(e)}
    finally:
        if record_store is not None:
            record_store.close()

    return {
        "success": report.success,
        "sync_type": "full" if full_sync else "incremental",
        "connection_id": connection_id,
        "items_upserted": report.items_upserted,
        "items_deleted": report.items_deleted,
        "items_not_found": report.items_not_found,
        "items_failed": report.items_failed,
        "total_changes": report.total_changes,
        "watermark_advanced": report.watermark_advanced,
        "start_time": report.start_time.isoformat(),
        "end_time": report.end_time.isoformat(),
        "duration_seconds": report.duration_seconds,
        "errors": report.errors,
    }


def main() -> None:
    """Main entry point for scheduled sync script."""
    parser = argparse.ArgumentParser(
        description="Scheduled synchronization for the groups search connector"
    )
    parser.add_argument(
        "--connection-id",
        type=str,
        required=True,
        help="ID of the external connection to push groups to",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--full-sync",
        action="store_true",
        help="Push all groups instead of changes since the last successful sync",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    args = parser.parse_args()

    stats = perform_sync(
        connection_id=args.connection_id,
        config_path=args.config,
        full_sync=args.full_sync,
        verbose=args.verbose,
    )

    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)

    if stats.get("success"):
        print("Status: ✓ SUCCESS")
    else:
        print("Status: ✗ FAILED")

    if "connection_id" in stats:
        print(f"Sync Type: {stats['sync_type']}")
        print(f"Connection: {stats['connection_id']}")
        print(f"Items Added/Updated: {stats['items_upserted']}")
        print(f"Items Deleted: {stats['items_deleted']}")
        print(f"Deletes Already Gone: {stats['items_not_found']}")
        print(f"Items Failed: {stats['items_failed']}")
        print(f"Total Changes: {stats['total_changes']}")
        print(f"Watermark Advanced: {stats['watermark_advanced']}")
        print(f"Duration: {stats['duration_seconds']:.2f} seconds")
        for error in stats["errors"]:
            print(f"Error: {error}")
    else:
        print(f"Error: {stats.get('error', 'Unknown error')}")

    print("=" * 60)

    sys.exit(0 if stats.get("success") else 1)


if __name__ == "__main__":
    main()
