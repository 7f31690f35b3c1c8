"""
Header splitting for workflow documents.

A header is a block delimited by two lines consisting solely of "---",
anchored at the start of the document. Only whitespace may precede the
opening delimiter. The first following "---" line closes the header; any
later "---" line belongs to the body.
"""

import re
from dataclasses import dataclass

_HEADER_PATTERN = re.compile(
    r"\A\s*---[ \t]*\r?\n(?P<header>.*?)(?:\r?\n)?^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


@dataclass(frozen=True)
class HeaderSplit:
    """
    Result of splitting a document.

    Attributes:
        header: Header text between the delimiters (None without a header)
        body: Everything after the closing delimiter line, or the full text
        has_header: Whether a header block was found
    """

    header: str | None
    body: str
    has_header: bool


def split_header(text: str) -> HeaderSplit:
    """
    Split a document into header and body.

    A document without a header is valid; the whole text becomes the body.

    Example:
        >>> split_header("---\\nname: x\\n---\\nHello")
        HeaderSplit(header='name: x', body='Hello', has_header=True)
        >>> split_header("just body text")
        HeaderSplit(header=None, body='just body text', has_header=False)
    """
    match = _HEADER_PATTERN.match(text)
    if match is None:
        return HeaderSplit(header=None, body=text, has_header=False)

    return HeaderSplit(
        header=match.group("header"),
        body=text[match.end() :],
        has_header=True,
    )


__all__ = ["HeaderSplit", "split_header"]
