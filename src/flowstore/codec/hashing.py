"""
Content hashing for flows and node files.

Flows are hashed in their stored key order: the editor compares hashes of
the flows it deployed with the flows read back from storage, so the order of
nodes and of keys within a node is significant.
"""

import hashlib
import json
from typing import Any, List, Mapping

from .encoder import blank_record, node_literal


def serialize_flows(flows: Any) -> str:
    """
    Serialize flows to a compact JSON string.

    Key order is preserved, non-ASCII characters are kept as-is, and no
    insignificant whitespace is emitted.
    """
    return json.dumps(flows, ensure_ascii=False, separators=(",", ":"))


def compute_flows_hash(flows: List[Mapping[str, Any]]) -> str:
    """
    Compute SHA256 hash of a flows collection.

    Args:
        flows: Ordered list of node records

    Returns:
        Hex-encoded SHA256 hash string
    """
    return hashlib.sha256(serialize_flows(flows).encode("utf-8")).hexdigest()


def compute_literal_hash(record: Mapping[str, Any]) -> str:
    """
    Compute SHA256 hash of the JSON literal part of a node file.

    Text and script fields are blanked before hashing, so edits confined to
    those fields leave the hash unchanged.

    Args:
        record: Node record

    Returns:
        Hex-encoded SHA256 hash string
    """
    literal = node_literal(blank_record(record))
    return hashlib.sha256(literal.encode("utf-8")).hexdigest()


def verify_flows_hash(flows: List[Mapping[str, Any]], expected: str) -> bool:
    """Check that a flows collection hashes to an expected value."""
    return compute_flows_hash(flows) == expected
