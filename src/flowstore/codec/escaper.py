"""
Escaping for template-literal text blocks.

Only the characters a template literal treats as special are escaped, so
multi-line text stays multi-line and readable in the node file. The parser's
template reader performs the inverse.
"""


# Characters that must be escaped inside a template literal
TEXT_ESCAPES = {
    "`": "\\`",
    "\\": "\\\\",
    "$": "\\$",
}


def escape_text(text: str) -> str:
    """
    Escape text to form the body of a template literal.

    Args:
        text: Raw field text

    Returns:
        Text with backticks, backslashes and dollar signs escaped
    """
    return "".join(TEXT_ESCAPES.get(c, c) for c in text)
