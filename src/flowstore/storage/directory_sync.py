"""
Directory synchronization for node files.

Mirrors an ordered flows collection into a directory of .flows.js files:
- write: one file per node, then removal of files no longer in the flows
- read: parse every node file, restore the flows order, drop the order key

Records are processed one at a time; each file is closed before the next
node is encoded. The directory is assumed to have a single writer.
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from ..codec.encoder import STORAGE_EXTENSION, encode_record
from ..codec.parser import decode_document
from ..core.exceptions import ParseError, StorageError
from ..core.models import ORDER_KEY, validate_record

logger = logging.getLogger(__name__)

LOG_PREFIX = "flowstore: "


@dataclass
class SyncReport:
    """Outcome of writing flows to a directory."""
    directory: str
    written: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "directory": self.directory,
            "written": self.written,
            "removed": self.removed,
        }

    def summary(self) -> str:
        """Get a human-readable summary."""
        return (
            f"Synced {self.directory}: "
            f"{len(self.written)} written, {len(self.removed)} removed"
        )


def list_node_files(directory: Path, extension: str = STORAGE_EXTENSION) -> List[Path]:
    """List node files in a directory, sorted by name."""
    return sorted(
        p for p in Path(directory).iterdir()
        if p.name.endswith(extension) and p.is_file()
    )


def read_node_file(path: Path) -> Dict[str, Any]:
    """
    Read and parse a single node file.

    Raises:
        ParseError: If the file is not a valid node document
        OSError: If the file cannot be read
    """
    with open(path, "r", encoding="utf-8", newline="") as f:
        data = f.read()
    return decode_document(data, path=str(path))


def _order_of(record: Mapping[str, Any]) -> Any:
    order = record.get(ORDER_KEY)
    if isinstance(order, bool) or not isinstance(order, (int, float)):
        return None
    return order


def read_records_from_directory(
    directory: Path,
    empty_response: Any = None,
    extension: str = STORAGE_EXTENSION,
) -> Any:
    """
    Read a flows collection from the node files in a directory.

    A single unreadable or invalid file abandons the whole read: a partial
    collection would be indistinguishable from nodes that were removed.

    Args:
        directory: Directory holding node files
        empty_response: Value returned when nothing valid can be read
        extension: Node file extension

    Returns:
        Ordered list of node records, or empty_response if the directory is
        missing, holds no node files, or holds an invalid file
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.debug("Node directory does not exist", extra={"directory": str(directory)})
        return empty_response

    records = []

    try:
        for path in list_node_files(directory, extension):
            records.append(read_node_file(path))
    except (OSError, UnicodeDecodeError, ParseError) as e:
        logger.warning(
            f"{LOG_PREFIX}Invalid file: {e}",
            extra={"directory": str(directory)},
        )
        return empty_response

    if not records:
        return empty_response

    # Sort is stable: nodes without an order key keep filename order, last
    records.sort(key=lambda r: (_order_of(r) is None, _order_of(r) or 0))
    for record in records:
        record.pop(ORDER_KEY, None)

    logger.debug(
        f"Read {len(records)} nodes",
        extra={"directory": str(directory)},
    )
    return records


def _write_node_file(path: Path, data: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(data)


def write_records_to_directory(
    directory: Path,
    records: Sequence[Mapping[str, Any]],
    extension: str = STORAGE_EXTENSION,
) -> SyncReport:
    """
    Write a flows collection as node files and remove stale node files.

    The caller's records are not modified. Files written before a failure are
    left in place.

    Args:
        directory: Existing directory to write node files into
        records: Ordered list of node records
        extension: Node file extension used when removing stale files

    Returns:
        SyncReport listing written and removed filenames

    Raises:
        ValidationError: If a record lacks a usable 'id' or 'type'
        StorageError: If a node file cannot be written, or stale files
            cannot be removed
    """
    directory = Path(directory)
    report = SyncReport(directory=str(directory))
    records = copy.deepcopy(list(records))

    try:
        for order, record in enumerate(records):
            validate_record(record)
            record[ORDER_KEY] = order
            data, file_name = encode_record(record)
            _write_node_file(directory / file_name, data)
            report.written.append(file_name)
            logger.debug(
                "Wrote node file",
                extra={"directory": str(directory), "file_name": file_name, "node_id": record["id"]},
            )
    except (OSError, TypeError, ValueError) as e:
        raise StorageError(
            f"{LOG_PREFIX}Failed saving to {directory} ({e})",
            directory=str(directory),
        ) from e

    kept = set(report.written)
    try:
        for path in list_node_files(directory, extension):
            if path.name not in kept:
                path.unlink()
                report.removed.append(path.name)
                logger.debug(
                    "Removed stale node file",
                    extra={"directory": str(directory), "file_name": path.name},
                )
    except OSError as e:
        raise StorageError(
            f"{LOG_PREFIX}Failed cleaning up old files ({e})",
            directory=str(directory),
        ) from e

    logger.info(report.summary())
    return report


class DirectorySynchronizer:
    """
    Keeps a directory of node files in step with a flows collection.
    """

    def __init__(self, directory: Path, extension: str = STORAGE_EXTENSION):
        """
        Initialize the synchronizer.

        Args:
            directory: Directory holding node files
            extension: Node file extension
        """
        self.directory = Path(directory)
        self.extension = extension

    def read(self, empty_response: Any = None) -> Any:
        """Read the flows collection; see read_records_from_directory."""
        return read_records_from_directory(self.directory, empty_response, self.extension)

    def write(self, records: Sequence[Mapping[str, Any]]) -> SyncReport:
        """Write the flows collection; see write_records_to_directory."""
        return write_records_to_directory(self.directory, records, self.extension)

    def node_files(self) -> List[Path]:
        """List the node files currently in the directory."""
        return list_node_files(self.directory, self.extension)

    def exists(self) -> bool:
        """Check whether the node directory exists."""
        return self.directory.is_dir()
