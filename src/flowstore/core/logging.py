"""
Logging utilities for flowstore.

Storage modules attach where a message happened via 'extra':

    logger.warning("Invalid file", extra={"directory": d, "file_name": f})

Both formatters fold those fields into one storage context, joining
directory and file_name into the node file path they name.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


PACKAGE_LOGGER = "flowstore"


def storage_context(record: logging.LogRecord) -> Dict[str, Any]:
    """
    Collect the storage fields attached to a log record.

    Returns:
        Dict with 'path' (or 'directory' when no file is named), plus
        'node_id' and 'kind' when present
    """
    context: Dict[str, Any] = {}
    directory = getattr(record, "directory", None)
    file_name = getattr(record, "file_name", None)

    if file_name is not None:
        context["path"] = str(Path(directory) / file_name) if directory else str(file_name)
    elif directory is not None:
        context["directory"] = str(directory)

    for field in ("node_id", "kind"):
        value = getattr(record, field, None)
        if value is not None:
            context[field] = value
    return context


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per line.

    The storage context, if any, is nested under a 'storage' key.
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()

        context = storage_context(record)
        if context:
            entry["storage"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter for terminal output.

    Format: TIMESTAMP LEVEL LOGGER: MESSAGE [path=X node_id=Y]
    """

    def __init__(self, include_timestamp: bool = True):
        fmt = "%(levelname)s %(name)s: %(message)s"
        if include_timestamp:
            fmt = "%(asctime)s " + fmt
        super().__init__(fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = storage_context(record)
        if not context:
            return line
        return f"{line} [{' '.join(f'{k}={v}' for k, v in context.items())}]"


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    include_timestamp: bool = True,
    stream=None,
) -> logging.Logger:
    """
    Configure the flowstore package logger.

    Adds a single stream handler; calling again only updates the level.

    Args:
        level: Logging level (default: INFO)
        structured: If True, output JSON lines; if False, human-readable
        include_timestamp: Whether to include a timestamp in log lines
        stream: Output stream (default: stderr)

    Returns:
        The package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)

    if not package_logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        if structured:
            handler.setFormatter(StructuredFormatter(include_timestamp=include_timestamp))
        else:
            handler.setFormatter(HumanReadableFormatter(include_timestamp=include_timestamp))
        package_logger.addHandler(handler)

    for handler in package_logger.handlers:
        handler.setLevel(level)

    return package_logger
