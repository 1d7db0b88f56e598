"""
Storage for flows: node directory sync, file utilities and the storage facade.
"""

from .file_util import backup_filename, read_file, write_file
from .directory_sync import (
    DirectorySynchronizer,
    SyncReport,
    read_records_from_directory,
    write_records_to_directory,
)
from .flow_storage import FlowStorage

__all__ = [
    "backup_filename",
    "read_file",
    "write_file",
    "DirectorySynchronizer",
    "SyncReport",
    "read_records_from_directory",
    "write_records_to_directory",
    "FlowStorage",
]
