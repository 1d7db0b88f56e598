"""
File utilities for flows and credentials files.

Provides:
- write_file: atomic write (temp file, fsync, rename) with optional backup
- read_file: read with backup restore and an empty-response fallback
- parse_flow_data: JSON or YAML flows parsing
"""

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from ..core.exceptions import StorageError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TEMP_SUFFIX = ".$$$"


def backup_filename(path: PathLike) -> Path:
    """Return the hidden backup path for a file: <dir>/.<name>.backup"""
    path = Path(path)
    return path.parent / f".{path.name}.backup"


def parse_json(data: str) -> Any:
    """Parse JSON, ignoring a leading byte order mark."""
    if data.startswith("\ufeff"):
        data = data[1:]
    return json.loads(data)


def parse_flow_data(data: str) -> Any:
    """
    Parse flows file content.

    JSON is tried first; anything else is parsed as YAML, so flows kept
    in YAML format load as well.

    Raises:
        yaml.YAMLError: If the content is neither JSON nor YAML
    """
    try:
        return parse_json(data)
    except ValueError:
        return yaml.safe_load(data.lstrip("\ufeff"))


def write_file(
    path: PathLike,
    content: str,
    backup_path: Optional[PathLike] = None,
) -> None:
    """
    Write content to a file using UTF-8 encoding.

    The content is written to a temporary file and fsynced before being
    renamed over the target, so the target is never left half-written. If
    backup_path is given and the target exists, it is copied there first.

    Args:
        path: Target file
        content: Text to write
        backup_path: Optional backup copy of the previous content

    Raises:
        StorageError: If the backup, write or rename fails
    """
    path = Path(path)
    temp_file = path.with_name(path.name + TEMP_SUFFIX)

    try:
        if backup_path and path.exists():
            shutil.copyfile(path, backup_path)

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(temp_file, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            try:
                os.fsync(f.fileno())
            except OSError as e:
                logger.warning(
                    f"fsync failed: {e}",
                    extra={"file_name": str(temp_file)},
                )

        os.replace(temp_file, path)
    except OSError as e:
        logger.warning(
            f"Write failed: {e}",
            extra={"file_name": str(path)},
        )
        raise StorageError(f"Failed writing {path} ({e})", directory=str(path.parent)) from e

    logger.debug(f"Wrote {path}")


def read_file(
    path: PathLike,
    backup_path: Optional[PathLike],
    empty_response: Any,
    kind: str,
) -> Any:
    """
    Read and parse a flows or credentials file.

    If the file is empty and a non-empty backup exists, the backup is
    copied over it and read instead.

    Args:
        path: File to read
        backup_path: Backup file to restore from when the file is empty
        empty_response: Value returned when there is nothing valid to read
        kind: Kind of file ('flow', 'credentials'), used in log messages

    Returns:
        Parsed content, or empty_response if the file is missing, empty
        with no usable backup, or cannot be parsed
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = f.read()
    except UnicodeDecodeError:
        logger.warning("Invalid file content", extra={"file_name": str(path), "kind": kind})
        return empty_response
    except OSError:
        if kind == "flow":
            logger.info("Creating new flows file", extra={"file_name": str(path), "kind": kind})
        return empty_response

    if len(data) == 0:
        logger.warning("Flows file is empty", extra={"file_name": str(path), "kind": kind})
        if not backup_path:
            return empty_response
        try:
            if os.stat(backup_path).st_size == 0:
                return empty_response
        except OSError:
            return empty_response

        logger.warning(
            f"Restoring from backup {backup_path}",
            extra={"file_name": str(path), "kind": kind},
        )
        try:
            shutil.copyfile(backup_path, path)
        except OSError as e:
            logger.warning(
                f"Restoring backup failed: {e}",
                extra={"file_name": str(path), "kind": kind},
            )
            return empty_response
        return read_file(path, backup_path, empty_response, kind)

    try:
        return parse_flow_data(data)
    except yaml.YAMLError:
        logger.warning("Invalid file content", extra={"file_name": str(path), "kind": kind})
        return empty_response
