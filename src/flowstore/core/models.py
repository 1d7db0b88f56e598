"""
Record model for node files.

A record is a plain ordered dict (one node of a flow). This module names the
fields the codec treats specially and validates the fields it relies on.
"""

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from .exceptions import ValidationError


# Fields holding multi-line text, written as template literals
TEXT_FIELDS = ("info", "template")

# Fields holding script bodies, written as functions
SCRIPT_FIELDS = ("initialize", "func", "finalize")

# Transient key recording the position of a node in its flows collection
ORDER_KEY = "_order"

# Parameters every extracted function receives, in order
FUNC_PARAMETERS = (
    "node",
    "msg",
    "RED",
    "context",
    "flow",
    "global",
    "env",
    "util",
)


@dataclass
class LibraryDeclaration:
    """
    A library a function node imports.

    Attributes:
        var: Variable name the module is bound to inside the function
        module: Module name to load
    """
    var: Optional[str] = None
    module: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LibraryDeclaration":
        """Create from dictionary."""
        return cls(
            var=data.get("var"),
            module=data.get("module"),
        )


def library_declarations(record: Mapping[str, Any]) -> List[LibraryDeclaration]:
    """Return the library declarations of a record, in declaration order."""
    libs = record.get("libs") or []
    return [LibraryDeclaration.from_dict(lib) for lib in libs if isinstance(lib, Mapping)]


def function_parameters(record: Mapping[str, Any]) -> List[str]:
    """
    Build the parameter list for a record's extracted functions.

    The fixed parameters come first, followed by each declared library
    variable. Duplicates are kept.
    """
    params = list(FUNC_PARAMETERS)
    for lib in library_declarations(record):
        if lib.var is not None:
            params.append(str(lib.var))
    return params


def validate_record(record: Any) -> None:
    """
    Check that a record can be encoded to a node file.

    Raises:
        ValidationError: If the record is not a mapping, lacks a non-empty
            string 'id' or 'type', or has an id unusable in a filename
    """
    if not isinstance(record, Mapping):
        raise ValidationError(f"Node must be a mapping, got {type(record).__name__}")

    for name in ("id", "type"):
        value = record.get(name)
        if not isinstance(value, str) or value == "":
            raise ValidationError(f"Node is missing required field '{name}'", field=name)

    node_id = record["id"]
    if node_id in (".", "..") or any(c in node_id for c in ("/", "\\", "\x00")):
        raise ValidationError(f"Node id is not usable in a filename: {node_id!r}", field="id")
