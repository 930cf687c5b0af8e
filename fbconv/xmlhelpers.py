"""Low-level helpers shared by the XML tree, its reader and its writer."""

from __future__ import annotations

import enum

__all__ = [
    "CRSP",
    "CRTAB",
    "EscapeMode",
    "cr_indent",
    "escape_string",
    "is_in_character_range",
    "is_integer",
    "is_whitespace",
    "space_decompose",
    "space_match",
    "trim_indent",
]

# Strings used by cr_indent: a line break followed by the indent character.
CRSP = "\n" + " " * 64
CRTAB = "\n" + "\t" * 16

_WHITESPACE = frozenset(" \t\n\r")


class EscapeMode(enum.Enum):
    """How strictly character data is escaped on output."""

    NORMAL = 0
    CANONICAL_TEXT = 1
    CANONICAL_ATTR = 2


def is_whitespace(s: str) -> bool:
    """Return True if the string holds only spaces, tabs and line breaks."""
    return all(ch in _WHITESPACE for ch in s)


def trim_indent(s: str) -> str:
    """Drop everything from the first line break of a whitespace-only string."""
    if not is_whitespace(s):
        return s
    for pos, ch in enumerate(s):
        if ch in "\n\r":
            return s[:pos]
    return s


def space_match(a: str, b: str) -> bool:
    """Return True if namespace ``a`` is empty or equal to ``b``."""
    return a == "" or a == b


def space_decompose(s: str) -> tuple[str, str]:
    """Split a ``namespace:tag`` identifier at its first colon."""
    space, colon, key = s.partition(":")
    if not colon:
        return "", s
    return space, key


def cr_indent(n: int, source: str) -> str:
    """Return a line break followed by ``n`` copies of the source's indent character."""
    if n < 0:
        return source[:1]
    if n < len(source):
        return source[: n + 1]
    return source + source[1:2] * (n - len(source) + 1)


def is_integer(s: str) -> bool:
    """Return True if the string looks like a (possibly negative) integer."""
    return all(
        "0" <= ch <= "9" or (pos == 0 and ch == "-") for pos, ch in enumerate(s)
    )


def is_in_character_range(ch: int) -> bool:
    """Return True if the code point is allowed in an XML document."""
    return (
        ch in (0x09, 0x0A, 0x0D)
        or 0x20 <= ch <= 0xD7FF
        or 0xE000 <= ch <= 0xFFFD
        or 0x10000 <= ch <= 0x10FFFF
    )


def _escape_char(ch: str, mode: EscapeMode) -> str:
    if ch == "&":
        return "&amp;"
    if ch == "<":
        return "&lt;"
    if ch == ">":
        return ch if mode is EscapeMode.CANONICAL_ATTR else "&gt;"
    if ch == "'":
        return ch if mode is not EscapeMode.NORMAL else "&apos;"
    if ch == '"':
        return ch if mode is EscapeMode.CANONICAL_TEXT else "&quot;"
    if ch == "\t":
        return ch if mode is not EscapeMode.CANONICAL_ATTR else "&#x9;"
    if ch == "\n":
        return ch if mode is not EscapeMode.CANONICAL_ATTR else "&#xA;"
    if ch == "\r":
        return ch if mode is EscapeMode.NORMAL else "&#xD;"
    if not is_in_character_range(ord(ch)):
        return "\uFFFD"
    return ch


def escape_string(s: str, mode: EscapeMode = EscapeMode.NORMAL) -> str:
    """Return the string with XML special characters replaced by references."""
    return "".join(_escape_char(ch, mode) for ch in s)