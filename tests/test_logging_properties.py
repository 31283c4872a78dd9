"""Property-based tests for logging configuration.

Every JSON log line must carry a timestamp, a level, and the event name.
"""

import json
import logging
from io import StringIO

import structlog
from hypothesis import given, settings
from hypothesis import strategies as st

from groups_connector.utils.logging_config import configure_logging, get_logger


@given(
    log_level=st.sampled_from(["debug", "info", "warning", "error", "critical"]),
    group_id=st.text(min_size=1, max_size=40),
)
@settings(max_examples=50)
def test_json_logs_contain_required_fields(log_level: str, group_id: str) -> None:
    configure_logging(log_level="DEBUG", json_logs=True)
    structlog.configure(cache_logger_on_first_use=False)
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    logging.root.handlers = [handler]

    log = get_logger("test_logger")
    getattr(log, log_level)("group_uploaded", group_id=group_id)

    entry = json.loads(buffer.getvalue().strip().splitlines()[-1])
    assert entry["event"] == "group_uploaded"
    assert entry["level"] == log_level
    assert entry["group_id"] == group_id
    assert "timestamp" in entry
    assert entry["func_name"] == "test_json_logs_contain_required_fields"


def test_log_level_filters_lower_levels() -> None:
    configure_logging(log_level="WARNING", json_logs=True)
    structlog.configure(cache_logger_on_first_use=False)
    buffer = StringIO()
    logging.root.handlers = [logging.StreamHandler(buffer)]

    log = get_logger("test_logger")
    log.info("ignored")
    log.warning("kept")

    lines = buffer.getvalue().strip().splitlines()
    assert [json.loads(line)["event"] for line in lines] == ["kept"]


def test_log_file_receives_entries(tmp_path) -> None:
    log_file = tmp_path / "connector.log"
    configure_logging(log_level="INFO", json_logs=True, log_file=str(log_file))
    structlog.configure(cache_logger_on_first_use=False)

    get_logger("test_logger").info("sync_started", connection_id="groups")
    for handler in logging.root.handlers:
        handler.flush()

    assert "sync_started" in log_file.read_text()

    for handler in list(logging.root.handlers):
        handler.close()
        logging.root.removeHandler(handler)
