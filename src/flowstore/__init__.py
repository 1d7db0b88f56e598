"""
flowstore: per-node file storage for dataflow editor flows.

This package provides:
- Codec: node record <-> self-describing .flows.js document
- Directory sync: mirror an ordered flows collection into a directory
- File utilities: atomic writes with backup, backup-aware reads
- FlowStorage: settings-driven facade for flows and credentials
"""

from .codec import decode_document, encode_record, escape_text, sanitize_type
from .core.exceptions import (
    ConfigError,
    FlowStoreError,
    ParseError,
    StorageError,
    ValidationError,
)
from .storage import (
    DirectorySynchronizer,
    FlowStorage,
    read_records_from_directory,
    write_records_to_directory,
)

__all__ = [
    "decode_document",
    "encode_record",
    "escape_text",
    "sanitize_type",
    "ConfigError",
    "FlowStoreError",
    "ParseError",
    "StorageError",
    "ValidationError",
    "DirectorySynchronizer",
    "FlowStorage",
    "read_records_from_directory",
    "write_records_to_directory",
]

__version__ = "0.1.0"
