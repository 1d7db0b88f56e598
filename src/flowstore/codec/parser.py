"""
Parsing of .flows.js documents back into node records.

Documents are read as data, never executed. The grammar is the fixed layout
the encoder writes:

    const Node = <JSON object>
    Node.<field> = `<template literal>`
    Node.<field> = async function (<params>) { <body> }
    Node.<field> = <JSON value>
    module.exports = Node;

Statements may end with ';' and may be separated by whitespace and comments.
Function bodies are delimited with a small lexer that skips strings,
template literals, comments and regular expression literals, so braces inside
them do not end the body early.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set, Tuple

from ..core.exceptions import ParseError
from ..core.models import SCRIPT_FIELDS, TEXT_FIELDS
from .encoder import FUNC_INDENT, NODE_NAME


_NODE_DECLARATION = re.compile(r"(?:const|let|var)\s+" + NODE_NAME + r"\s*=\s*")
_NODE_ASSIGNMENT = re.compile(NODE_NAME + r"\.([A-Za-z_$][\w$]*)\s*=\s*")
_NODE_EXPORT = re.compile(r"module\.exports\s*=\s*" + NODE_NAME + r"\s*;?")
_FUNCTION_HEAD = re.compile(r"(?:async\s+)?function\b\s*(?:[A-Za-z_$][\w$]*\s*)?\(")

_IDENTIFIER_CHAR = re.compile(r"[\w$]")

# Keywords after which a '/' starts a regular expression, not a division
_REGEX_PRECEDING_KEYWORDS = frozenset({
    "return", "typeof", "instanceof", "in", "of", "new", "delete", "void",
    "throw", "case", "do", "else", "yield", "await",
})

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}

_LINE_TERMINATORS = ("\n", "\r", "\u2028", "\u2029")

_JSON_DECODER = json.JSONDecoder()


@dataclass
class FunctionSource:
    """Source text of a function expression found in a document."""
    params: str
    body: str


def _position(text: str, pos: int):
    line = text.count("\n", 0, pos) + 1
    column = pos - (text.rfind("\n", 0, pos) + 1) + 1
    return line, column


class _Scanner:
    """Cursor over a document with error reporting by line and column."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def error(self, message: str, pos: Optional[int] = None) -> ParseError:
        line, column = _position(self.text, self.pos if pos is None else pos)
        return ParseError(message, line=line, column=column)

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        return self.text[index] if index < len(self.text) else ""

    def match(self, pattern: "re.Pattern"):
        m = pattern.match(self.text, self.pos)
        if m:
            self.pos = m.end()
        return m

    def skip_trivia(self) -> None:
        """Skip whitespace and comments."""
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isspace() or ch == "\ufeff":
                self.pos += 1
            elif text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end == -1 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end == -1:
                    raise self.error("Unterminated comment")
                self.pos = end + 2
            else:
                break

    def skip_semicolon(self) -> None:
        self.skip_trivia()
        if self.peek() == ";":
            self.pos += 1

    def json_value(self) -> Any:
        try:
            value, end = _JSON_DECODER.raw_decode(self.text, self.pos)
        except json.JSONDecodeError as e:
            raise self.error(f"Invalid JSON value: {e.msg}", pos=e.pos)
        except RecursionError:
            raise self.error("Node literal is nested too deeply")
        self.pos = end
        return value

    def template_literal(self) -> str:
        """Read a template literal and return its cooked value."""
        text = self.text
        start = self.pos
        self.pos += 1  # opening backtick
        out = []

        while True:
            if self.pos >= len(text):
                raise self.error("Unterminated template literal", pos=start)
            ch = text[self.pos]

            if ch == "`":
                self.pos += 1
                break
            if ch == "\\":
                out.append(self._template_escape())
                continue
            if ch == "$" and self.peek(1) == "{":
                raise self.error("Template literal interpolation is not supported")
            if ch == "\r":
                # Raw CR and CRLF cook to LF
                out.append("\n")
                self.pos += 2 if self.peek(1) == "\n" else 1
                continue

            out.append(ch)
            self.pos += 1

        return _join_surrogates("".join(out))

    def _template_escape(self) -> str:
        text = self.text
        escape_pos = self.pos
        self.pos += 1
        if self.pos >= len(text):
            raise self.error("Unterminated escape sequence", pos=escape_pos)
        ch = text[self.pos]
        self.pos += 1

        if ch in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[ch]
        if ch in _LINE_TERMINATORS:
            # Line continuation
            if ch == "\r" and self.peek() == "\n":
                self.pos += 1
            return ""
        if ch == "0" and not self.peek().isdigit():
            return "\0"
        if ch.isdigit():
            raise self.error("Octal escape sequences are not allowed in template literals", pos=escape_pos)
        if ch == "x":
            return chr(self._hex_digits(2, escape_pos))
        if ch == "u":
            if self.peek() == "{":
                end = text.find("}", self.pos)
                digits = text[self.pos + 1:end] if end != -1 else ""
                if not digits or not all(c in "0123456789abcdefABCDEF" for c in digits):
                    raise self.error("Invalid Unicode escape sequence", pos=escape_pos)
                code = int(digits, 16)
                if code > 0x10FFFF:
                    raise self.error("Undefined Unicode code-point", pos=escape_pos)
                self.pos = end + 1
                return chr(code)
            return chr(self._hex_digits(4, escape_pos))
        return ch

    def _hex_digits(self, count: int, escape_pos: int) -> int:
        digits = self.text[self.pos:self.pos + count]
        if len(digits) != count or not all(c in "0123456789abcdefABCDEF" for c in digits):
            raise self.error("Invalid hexadecimal escape sequence", pos=escape_pos)
        self.pos += count
        return int(digits, 16)

    def function_expression(self) -> FunctionSource:
        """Read a function expression and return its parameter and body source."""
        head = self.match(_FUNCTION_HEAD)
        if not head:
            raise self.error("Expected a function expression")

        params_start = self.pos
        params_end = _find_closing(self.text, params_start, "(", ")")
        if params_end == -1:
            raise self.error("Unterminated function parameter list", pos=head.start())
        self.pos = params_end + 1

        self.skip_trivia()
        if self.peek() != "{":
            raise self.error("Expected '{' to open the function body")
        body_start = self.pos + 1
        body_end = _find_closing(self.text, body_start, "{", "}")
        if body_end == -1:
            raise self.error("Unterminated function body", pos=head.start())
        self.pos = body_end + 1

        return FunctionSource(
            params=self.text[params_start:params_end],
            body=self.text[body_start:body_end],
        )


def _join_surrogates(text: str) -> str:
    """Combine UTF-16 surrogate pairs produced by \\u escapes."""
    if not any("\ud800" <= c <= "\udfff" for c in text):
        return text
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")


def _skip_quoted(text: str, pos: int, quote: str) -> int:
    """Return the index after a '...' or "..." string starting at pos."""
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        if ch == "\n":
            return -1
        i += 1
    return -1


def _skip_template(text: str, pos: int) -> int:
    """Return the index after a template literal starting at pos."""
    i = pos + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "`":
            return i + 1
        if ch == "$" and i + 1 < len(text) and text[i + 1] == "{":
            end = _find_closing(text, i + 2, "{", "}")
            if end == -1:
                return -1
            i = end + 1
            continue
        i += 1
    return -1


def _skip_regex(text: str, pos: int) -> int:
    """Return the index after a regular expression literal starting at pos."""
    i = pos + 1
    in_class = False
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "\n":
            return -1
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "/":
            i += 1
            while i < len(text) and _IDENTIFIER_CHAR.match(text[i]):
                i += 1
            return i
        i += 1
    return -1


def _starts_regex(text: str, pos: int) -> bool:
    """Decide whether the '/' at pos starts a regex rather than a division."""
    i = pos - 1
    while i >= 0 and text[i].isspace():
        i -= 1
    if i < 0:
        return True
    prev = text[i]
    if prev in ")]":
        return False
    if prev in "+-" and i > 0 and text[i - 1] == prev:
        # Postfix ++ or --
        return False
    if _IDENTIFIER_CHAR.match(prev):
        end = i + 1
        while i >= 0 and _IDENTIFIER_CHAR.match(text[i]):
            i -= 1
        word = text[i + 1:end]
        return word in _REGEX_PRECEDING_KEYWORDS
    return True


def _find_closing(text: str, pos: int, open_char: str, close_char: str) -> int:
    """
    Find the bracket closing an already-opened one.

    Args:
        text: Source text
        pos: Index just after the opening bracket
        open_char: Opening bracket character
        close_char: Closing bracket character

    Returns:
        Index of the closing bracket, or -1 if not found
    """
    depth = 1
    i = pos
    while i < len(text):
        ch = text[i]
        if ch in ("'", '"'):
            i = _skip_quoted(text, i, ch)
        elif ch == "`":
            i = _skip_template(text, i)
        elif ch == "/" and text.startswith("//", i):
            end = text.find("\n", i)
            i = len(text) if end == -1 else end + 1
        elif ch == "/" and text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = -1 if end == -1 else end + 2
        elif ch == "/" and _starts_regex(text, i):
            end = _skip_regex(text, i)
            # Not a complete regex literal: read the slash as division
            i = i + 1 if end == -1 else end
        else:
            if ch == open_char:
                depth += 1
            elif ch == close_char:
                depth -= 1
                if depth == 0:
                    return i
            i += 1
        if i == -1:
            return -1
    return -1


def outdent(code: str) -> str:
    """
    Remove one indent unit from every line of a script body.

    Empty lines are left as they are. If any other line does not start with
    the indent unit, the body was reformatted by hand and is returned
    unchanged.
    """
    lines = code.split("\n")
    out = []
    for line in lines:
        if line.startswith(FUNC_INDENT):
            out.append(line[len(FUNC_INDENT):])
        elif line in ("", "\r"):
            # Blank lines are exempt from the indent check
            out.append(line)
        else:
            return code
    return "\n".join(out)


def function_body(source: FunctionSource) -> str:
    """Recover the script text from an extracted function."""
    body = source.body
    # Framing newline is "\n", or "\r\n" in a CRLF checkout
    newline = "\r\n" if body.startswith("\r\n") else "\n"
    if body.startswith(newline):
        body = body[len(newline):]
    if body.endswith(newline):
        body = body[:-len(newline)]
    return outdent(body)


def unwrap_text(text: str) -> str:
    """Strip the newline the encoder adds at each end of a text block."""
    if text.startswith("\n"):
        text = text[1:]
    if text.endswith("\n"):
        text = text[:-1]
    return text


def _parse_statements(scanner: _Scanner) -> Tuple[Dict[str, Any], Set[str]]:
    """Parse the document, returning the node and the fields set from template literals."""
    templated = set()
    scanner.skip_trivia()
    if not scanner.match(_NODE_DECLARATION):
        raise scanner.error(f"Expected 'const {NODE_NAME} = ' at start of document")

    scanner.skip_trivia()
    node_pos = scanner.pos
    node = scanner.json_value()
    if not isinstance(node, dict):
        raise scanner.error(f"{NODE_NAME} must be a JSON object", pos=node_pos)
    scanner.skip_semicolon()

    while True:
        scanner.skip_trivia()
        if scanner.at_end():
            raise scanner.error(f"Missing 'module.exports = {NODE_NAME};' trailer")

        if scanner.match(_NODE_EXPORT):
            scanner.skip_trivia()
            if not scanner.at_end():
                raise scanner.error("Unexpected content after module.exports")
            return node, templated

        statement_pos = scanner.pos
        assignment = scanner.match(_NODE_ASSIGNMENT)
        if not assignment:
            raise scanner.error(
                f"Expected '{NODE_NAME}.<field> = ...' or 'module.exports = {NODE_NAME};'"
            )
        name = assignment.group(1)

        templated.discard(name)
        if scanner.peek() == "`":
            value = scanner.template_literal()
            templated.add(name)
        elif _FUNCTION_HEAD.match(scanner.text, scanner.pos):
            if name not in SCRIPT_FIELDS:
                raise scanner.error(f"Function assigned to non-script field '{name}'", pos=statement_pos)
            value = scanner.function_expression()
        else:
            value = scanner.json_value()

        node[name] = value
        scanner.skip_semicolon()


def decode_document(text: str, path: Optional[str] = None) -> Dict[str, Any]:
    """
    Parse a .flows.js document into a node record.

    The order key, if present, is left in the record.

    Args:
        text: Document text
        path: Optional file path used in error messages

    Returns:
        The node record, with key order as written

    Raises:
        ParseError: If the document does not follow the node file grammar
    """
    scanner = _Scanner(text)
    try:
        node, templated = _parse_statements(scanner)
    except ParseError as e:
        raise e.with_path(path) if path else e

    for name in SCRIPT_FIELDS:
        if isinstance(node.get(name), FunctionSource):
            node[name] = function_body(node[name])

    for name in TEXT_FIELDS:
        value = node.get(name)
        if name in templated and value != "":
            node[name] = unwrap_text(value)

    return node
