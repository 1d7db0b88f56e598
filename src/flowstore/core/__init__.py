"""
Core subpackage for flowstore.

Contains the record model, exceptions, and logging utilities.
"""

from .models import (
    FUNC_PARAMETERS,
    ORDER_KEY,
    SCRIPT_FIELDS,
    TEXT_FIELDS,
    LibraryDeclaration,
    function_parameters,
    validate_record,
)
from .exceptions import (
    FlowStoreError,
    ValidationError,
    ParseError,
    StorageError,
    ConfigError,
)

__all__ = [
    # Model
    "FUNC_PARAMETERS",
    "ORDER_KEY",
    "SCRIPT_FIELDS",
    "TEXT_FIELDS",
    "LibraryDeclaration",
    "function_parameters",
    "validate_record",
    # Exceptions
    "FlowStoreError",
    "ValidationError",
    "ParseError",
    "StorageError",
    "ConfigError",
]
