"""
Codec for .flows.js node files.

This module provides:
- escape_text: escaping for template-literal text blocks
- encode_record: node record -> (document, filename)
- decode_document: document -> node record, parsed as data
- Content hashing for flows and node literals
"""

from .escaper import escape_text
from .encoder import STORAGE_EXTENSION, encode_record, node_filename, sanitize_type
from .parser import decode_document
from .hashing import compute_flows_hash, compute_literal_hash

__all__ = [
    "escape_text",
    "STORAGE_EXTENSION",
    "encode_record",
    "node_filename",
    "sanitize_type",
    "decode_document",
    "compute_flows_hash",
    "compute_literal_hash",
]
