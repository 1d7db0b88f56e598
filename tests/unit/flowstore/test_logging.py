"""
Unit tests for log formatters.
"""

import io
import json
import logging
from pathlib import Path

from flowstore.core.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    configure_logging,
    storage_context,
)


def make_record(**extra):
    record = logging.LogRecord("flowstore.test", logging.WARNING, __file__, 1, "Invalid file", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStorageContext:

    def test_directory_and_file_joined(self):
        context = storage_context(make_record(directory="flows_js", file_name="inject.a.flows.js", node_id="a"))

        assert context == {"path": str(Path("flows_js") / "inject.a.flows.js"), "node_id": "a"}

    def test_file_only(self):
        context = storage_context(make_record(file_name="/u/flows.json", kind="flow"))

        assert context == {"path": "/u/flows.json", "kind": "flow"}

    def test_directory_only(self):
        assert storage_context(make_record(directory="flows_js")) == {"directory": "flows_js"}

    def test_empty(self):
        assert storage_context(make_record()) == {}


class TestStructuredFormatter:

    def test_storage_context_nested(self):
        line = StructuredFormatter(include_timestamp=False).format(
            make_record(directory="/flows_js", node_id="n1")
        )

        assert json.loads(line) == {
            "level": "WARNING",
            "logger": "flowstore.test",
            "message": "Invalid file",
            "storage": {"directory": "/flows_js", "node_id": "n1"},
        }

    def test_timestamp_without_context(self):
        entry = json.loads(StructuredFormatter().format(make_record()))

        assert "timestamp" in entry
        assert "storage" not in entry


class TestHumanReadableFormatter:

    def test_context_suffix(self):
        line = HumanReadableFormatter(include_timestamp=False).format(
            make_record(file_name="/u/flows.json", kind="flow")
        )

        assert line == "WARNING flowstore.test: Invalid file [path=/u/flows.json kind=flow]"

    def test_no_context(self):
        line = HumanReadableFormatter(include_timestamp=False).format(make_record())

        assert line == "WARNING flowstore.test: Invalid file"


class TestConfigureLogging:

    def test_single_handler(self):
        stream = io.StringIO()
        package_logger = configure_logging(level=logging.DEBUG, structured=True, stream=stream)
        try:
            configure_logging(level=logging.INFO, structured=True, stream=stream)

            assert len(package_logger.handlers) == 1
            assert package_logger.level == logging.INFO

            logging.getLogger("flowstore.storage").info("Synced", extra={"directory": "/d"})
            entry = json.loads(stream.getvalue())
            assert entry["message"] == "Synced"
            assert entry["storage"] == {"directory": "/d"}
        finally:
            for handler in list(package_logger.handlers):
                package_logger.removeHandler(handler)
            package_logger.setLevel(logging.NOTSET)
