import pytest

from fbconv.xmlhelpers import (
    CRSP,
    CRTAB,
    EscapeMode,
    cr_indent,
    escape_string,
    is_in_character_range,
    is_integer,
    is_whitespace,
    space_decompose,
    space_match,
    trim_indent,
)


@pytest.mark.parametrize(
    "text, mode, expected",
    [
        ("&", EscapeMode.NORMAL, "&amp;"),
        ("<", EscapeMode.CANONICAL_ATTR, "&lt;"),
        (">", EscapeMode.NORMAL, "&gt;"),
        (">", EscapeMode.CANONICAL_ATTR, ">"),
        ("'", EscapeMode.NORMAL, "&apos;"),
        ("'", EscapeMode.CANONICAL_TEXT, "'"),
        ('"', EscapeMode.NORMAL, "&quot;"),
        ('"', EscapeMode.CANONICAL_TEXT, '"'),
        ("\t", EscapeMode.CANONICAL_ATTR, "&#x9;"),
        ("\t", EscapeMode.NORMAL, "\t"),
        ("\n", EscapeMode.CANONICAL_ATTR, "&#xA;"),
        ("\r", EscapeMode.CANONICAL_TEXT, "&#xD;"),
        ("\r", EscapeMode.NORMAL, "\r"),
        ("\x01", EscapeMode.NORMAL, "\uFFFD"),
    ],
)
def test_escape_string_single_characters(text, mode, expected):
    assert escape_string(text, mode) == expected


def test_escape_string_leaves_plain_text_alone():
    assert escape_string("hello world", EscapeMode.NORMAL) == "hello world"


@pytest.mark.parametrize("mode", list(EscapeMode))
def test_escape_string_is_concatenative(mode):
    left, right = "a<b&'c", '"d>\te\r\n'
    assert escape_string(left + right, mode) == escape_string(left, mode) + escape_string(right, mode)


def test_is_whitespace():
    assert is_whitespace(" \t\n\r") is True
    assert is_whitespace("") is True
    assert is_whitespace(" a ") is False


def test_trim_indent_keeps_non_whitespace():
    assert trim_indent("x \n  ") == "x \n  "


def test_trim_indent_keeps_whitespace_without_newline():
    assert trim_indent("   ") == "   "


def test_trim_indent_cuts_at_newline():
    assert trim_indent(" \n    ") == " "


def test_space_decompose():
    assert space_decompose("p:price") == ("p", "price")
    assert space_decompose("title") == ("", "title")
    assert space_decompose("a:b:c") == ("a", "b:c")


def test_space_match():
    assert space_match("", "p") is True
    assert space_match("p", "p") is True
    assert space_match("p", "") is False


def test_cr_indent_negative_gives_bare_newline():
    assert cr_indent(-1, CRSP) == CRSP[:1]


@pytest.mark.parametrize("source", [CRSP, CRTAB])
@pytest.mark.parametrize("n", [0, 1, 5, 15, 64, 100])
def test_cr_indent_shape(source, n):
    result = cr_indent(n, source)
    assert len(result) == n + 1
    assert result[0] == "\n"
    assert set(result[1:]) <= {source[1]}


def test_is_integer():
    assert is_integer("12") is True
    assert is_integer("-3") is True
    assert is_integer("") is True
    assert is_integer("1a") is False
    assert is_integer("--1") is False


def test_is_in_character_range():
    assert is_in_character_range(ord("\t")) is True
    assert is_in_character_range(0x0B) is False
    assert is_in_character_range(0xFFFE) is False
    assert is_in_character_range(0x10000) is True