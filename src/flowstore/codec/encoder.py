"""
Encoding of node records into .flows.js documents.

A document holds:
1. The node as a JSON literal, with text and script fields blanked
2. Text fields (info, template) as template literals
3. Script fields (initialize, func, finalize) as async functions
4. A trailer exporting the node

Blanked fields keep their position in the JSON literal so that a hash over
it does not change when only an extracted block is edited.
"""

import copy
import json
import re
from typing import Any, Dict, List, Mapping, Tuple

from ..core.models import SCRIPT_FIELDS, TEXT_FIELDS, function_parameters, validate_record
from .escaper import escape_text


STORAGE_EXTENSION = ".flows.js"

NODE_NAME = "Node"
NODE_PREFIX = f"const {NODE_NAME} = "
NODE_SUFFIX = f"module.exports = {NODE_NAME};"
FUNC_INDENT = "  "
BLOCK_SEPARATOR = "\n\n"

_UNSAFE_TYPE_CHARS = re.compile(r"[^A-Za-z0-9]")


def sanitize_type(node_type: str) -> str:
    """Make a node type safe for use in a filename."""
    return _UNSAFE_TYPE_CHARS.sub("_", node_type).lower()


def node_filename(record: Mapping[str, Any]) -> str:
    """Return the filename of a record's node file."""
    return f"{sanitize_type(record['type'])}.{record['id']}{STORAGE_EXTENSION}"


def indent(code: str) -> str:
    """Indent every line of a script body by one indent unit."""
    return "\n".join(FUNC_INDENT + line for line in code.split("\n"))


def text_block(name: str, text: str) -> str:
    return f"{NODE_NAME}.{name} = `\n{escape_text(text)}\n`"


def function_block(name: str, body: str, params: List[str]) -> str:
    return (
        f"{NODE_NAME}.{name} = async function ({', '.join(params)}) {{\n"
        f"{indent(body)}\n"
        "}"
    )


def node_literal(record: Mapping[str, Any]) -> str:
    """Serialize a record as the JSON literal of a node file."""
    return json.dumps(record, indent=2, ensure_ascii=False)


def _is_extractable(record: Mapping[str, Any], name: str) -> bool:
    value = record.get(name)
    return isinstance(value, str) and value != ""


def blank_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of a record with its text and script fields blanked.

    Blanked fields are set to "" rather than removed.
    """
    blanked = copy.deepcopy(dict(record))
    for name in TEXT_FIELDS + SCRIPT_FIELDS:
        if _is_extractable(blanked, name):
            blanked[name] = ""
    return blanked


def encode_record(record: Mapping[str, Any]) -> Tuple[str, str]:
    """
    Encode a node record as a .flows.js document.

    The input record is not modified.

    Args:
        record: Node record with non-empty 'id' and 'type'

    Returns:
        Tuple of (document text, filename)

    Raises:
        ValidationError: If the record lacks a usable 'id' or 'type'
    """
    validate_record(record)

    params = function_parameters(record)
    extracted = []

    for name in TEXT_FIELDS:
        if _is_extractable(record, name):
            extracted.append(text_block(name, record[name]))

    for name in SCRIPT_FIELDS:
        if _is_extractable(record, name):
            extracted.append(function_block(name, record[name], params))

    parts = [NODE_PREFIX, node_literal(blank_record(record))]
    if extracted:
        parts.append(BLOCK_SEPARATOR)
        parts.append(BLOCK_SEPARATOR.join(extracted))
    parts.append(BLOCK_SEPARATOR)
    parts.append(NODE_SUFFIX)

    return "".join(parts), node_filename(record)
