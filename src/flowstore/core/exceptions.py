"""
Custom exceptions for the flowstore package.
"""

from typing import Optional


class FlowStoreError(Exception):
    """Base exception for all flowstore errors."""
    pass


class ValidationError(FlowStoreError):
    """
    A record cannot be encoded.

    Raised when:
    - The record is not a mapping
    - The required 'id' or 'type' field is missing or empty
    - The 'id' would produce a filename outside the target directory
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ParseError(FlowStoreError):
    """
    A document is not a valid node record.

    Raised when:
    - The document does not follow the .flows.js layout
    - The node literal is not valid JSON
    - A template literal contains an interpolation or a bad escape
    - A function body is not terminated
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        self.reason = message
        self.path = path
        self.line = line
        self.column = column
        super().__init__(self._format())

    def _format(self) -> str:
        location = ""
        if self.path:
            location = self.path
        if self.line is not None:
            location += f":{self.line}:{self.column}" if location else f"line {self.line}, column {self.column}"
        return f"{location}: {self.reason}" if location else self.reason

    def with_path(self, path: str) -> "ParseError":
        """Return a copy of this error attributed to a file path."""
        return ParseError(self.reason, path=path, line=self.line, column=self.column)


class StorageError(FlowStoreError):
    """
    Error persisting node files or flow snapshots.

    Raised when:
    - A node file cannot be encoded or written
    - Stale node files cannot be removed
    - An atomic file write fails
    """

    def __init__(self, message: str, directory: Optional[str] = None):
        super().__init__(message)
        self.directory = directory


class ConfigError(FlowStoreError):
    """
    Error in storage configuration.

    Raised when:
    - The settings file is missing or not valid YAML
    - Projects mode is enabled (not supported)
    - No user directory can be determined
    """
    pass
