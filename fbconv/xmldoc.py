"""XML documents: reading raw XML into an element tree and writing it back."""

from __future__ import annotations

import io
import os
import re
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Optional, TextIO, Union

from .xmlhelpers import CRSP, CRTAB, cr_indent, is_whitespace, space_decompose
from .xmltree import (
    CharData,
    Comment,
    Directive,
    Element,
    IndentFunc,
    ProcInst,
    Token,
    WriteSettings,
)

__all__ = ["Document", "ReadSettings", "XMLFormatError"]


class XMLFormatError(ValueError):
    """Raised when XML input cannot be parsed."""


def _default_charset_reader(label: str, data: bytes) -> bytes:
    return data


@dataclass
class ReadSettings:
    """Parsing options."""

    charset_reader: Callable[[str, bytes], Union[bytes, str]] = _default_charset_reader
    permissive: bool = False
    entity: dict[str, str] = field(default_factory=dict)


_PREDEFINED = {"amp": "&", "lt": "<", "gt": ">", "quot": '"', "apos": "'"}
_ENTITY_RE = re.compile(r"&(#x[0-9a-fA-F]+|#[0-9]+|[A-Za-z_][\w.\-:]*);")
_NAME_RE = re.compile(r"[^\s<>/=\"'!?]+")
_WS_RE = re.compile(r"\s*")
_DECL_ENC_RE = re.compile(rb"""^\s*<\?xml[^>]*?encoding=["']([^"']+)["']""")


class _Tokenizer:
    """Produces raw tokens without checking that tags are balanced."""

    def __init__(self, text: str, settings: ReadSettings) -> None:
        self.text = text.replace("\r\n", "\n")
        self.pos = 0
        self.settings = settings

    def _error(self, message: str) -> XMLFormatError:
        return XMLFormatError(f"etree: {message} at offset {self.pos}")

    def _decode(self, raw: str) -> str:
        def repl(m: re.Match) -> str:
            name = m.group(1)
            if name.startswith("#x"):
                return chr(int(name[2:], 16))
            if name.startswith("#"):
                return chr(int(name[1:]))
            if name in _PREDEFINED:
                return _PREDEFINED[name]
            if name in self.settings.entity:
                return self.settings.entity[name]
            if self.settings.permissive:
                return m.group(0)
            raise self._error(f"invalid character entity &{name};")

        return _ENTITY_RE.sub(repl, raw)

    def _skip_ws(self) -> None:
        self.pos = _WS_RE.match(self.text, self.pos).end()

    def _find(self, marker: str, what: str) -> int:
        end = self.text.find(marker, self.pos)
        if end < 0:
            raise self._error(f"unterminated {what}")
        return end

    def tokens(self):
        text = self.text
        while self.pos < len(text):
            lt = text.find("<", self.pos)
            if lt < 0:
                lt = len(text)
            if lt > self.pos:
                raw = text[self.pos : lt]
                self.pos = lt
                yield ("text", self._decode(raw))
                continue
            if text.startswith("<?", self.pos):
                end = self._find("?>", "processing instruction")
                body = text[self.pos + 2 : end]
                self.pos = end + 2
                m = re.match(r"(\S*)\s*(.*)", body, re.S)
                yield ("pi", m.group(1), m.group(2))
            elif text.startswith("<!--", self.pos):
                self.pos += 4
                end = self._find("-->", "comment")
                yield ("comment", text[self.pos : end])
                self.pos = end + 3
            elif text.startswith("<![CDATA[", self.pos):
                self.pos += 9
                end = self._find("]]>", "CDATA section")
                yield ("text", text[self.pos : end])
                self.pos = end + 3
            elif text.startswith("<!", self.pos):
                yield ("directive", self._directive())
            elif text.startswith("</", self.pos):
                self.pos += 2
                m = _NAME_RE.match(text, self.pos)
                if not m:
                    raise self._error("invalid end tag")
                self.pos = m.end()
                self._skip_ws()
                if not text.startswith(">", self.pos):
                    raise self._error("invalid characters in end tag")
                self.pos += 1
                yield ("end", m.group(0))
            else:
                yield from self._start()

    def _directive(self) -> str:
        text = self.text
        start = self.pos + 2
        pos = start
        depth = 0
        quote = ""
        while pos < len(text):
            ch = text[pos]
            if quote:
                if ch == quote:
                    quote = ""
            elif ch in "'\"":
                quote = ch
            elif ch == "<":
                depth += 1
            elif ch == ">":
                if depth == 0:
                    self.pos = pos + 1
                    return text[start:pos]
                depth -= 1
            pos += 1
        raise self._error("unterminated directive")

    def _start(self):
        text = self.text
        self.pos += 1
        m = _NAME_RE.match(text, self.pos)
        if not m:
            raise self._error("invalid start tag")
        name = m.group(0)
        self.pos = m.end()
        attrs: list[tuple[str, str]] = []
        while True:
            self._skip_ws()
            if self.pos >= len(text):
                raise self._error("unexpected end of input in tag")
            if text.startswith("/>", self.pos):
                self.pos += 2
                yield ("start", name, attrs)
                yield ("end", name)
                return
            if text[self.pos] == ">":
                self.pos += 1
                yield ("start", name, attrs)
                return
            am = _NAME_RE.match(text, self.pos)
            if not am:
                raise self._error("invalid attribute")
            key = am.group(0)
            self.pos = am.end()
            self._skip_ws()
            if text.startswith("=", self.pos):
                self.pos += 1
                self._skip_ws()
                if self.pos < len(text) and text[self.pos] in "'\"":
                    quote = text[self.pos]
                    self.pos += 1
                    end = self._find(quote, "attribute value")
                    value = self._decode(text[self.pos : end])
                    self.pos = end + 1
                elif self.settings.permissive:
                    vm = re.compile(r"[^\s>]*").match(text, self.pos)
                    value = self._decode(vm.group(0))
                    self.pos = vm.end()
                else:
                    raise self._error("unquoted attribute value")
            elif self.settings.permissive:
                value = key
            else:
                raise self._error(f"attribute {key} without value")
            attrs.append((key, value))


class Document(Element):
    """A complete XML hierarchy; its children usually include one root element."""

    def __init__(
        self,
        read_settings: Optional[ReadSettings] = None,
        write_settings: Optional[WriteSettings] = None,
    ) -> None:
        super().__init__()
        self.read_settings = read_settings or ReadSettings()
        self.write_settings = write_settings or WriteSettings()
        self._indent: Optional[IndentFunc] = None

    def copy(self) -> "Document":
        """Return a deep copy of the document."""
        doc = Document(self.read_settings, self.write_settings)
        doc._indent = self._indent
        doc.attrs = [type(a)(a.key, a.value, a.space) for a in self.attrs]
        doc.children = [child._dup(doc) for child in self.children]
        return doc

    def root(self) -> Optional[Element]:
        """Return the root element, or None."""
        return next((c for c in self.children if isinstance(c, Element)), None)

    def set_root(self, element: Element) -> None:
        """Replace the root element, detaching the new one from its old parent."""
        if element.parent is not None:
            element.parent.remove_child(element)
        element.parent = self
        for pos, child in enumerate(self.children):
            if isinstance(child, Element):
                child.parent = None
                self.children[pos] = element
                return
        self.children.append(element)

    # Reading

    def _decode_input(self, data: bytes) -> str:
        m = _DECL_ENC_RE.match(data)
        if m:
            label = m.group(1).decode("ascii", errors="replace")
            if label.lower().replace("_", "-") not in ("utf-8", "utf8"):
                converted = self.read_settings.charset_reader(label, data)
                if isinstance(converted, str):
                    return converted
                data = converted
        return data.decode("utf-8", errors="replace")

    def read_from(self, stream: Union[BinaryIO, TextIO]) -> int:
        """Parse XML from a stream into this document; return bytes read."""
        data = stream.read()
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        text = data if isinstance(data, str) else self._decode_input(raw)
        stack: list[Element] = [self]
        prev: Optional[Token] = None
        for token in _Tokenizer(text, self.read_settings).tokens():
            if not stack:
                raise XMLFormatError("etree: invalid XML format")
            top = stack[-1]
            kind = token[0]
            if kind == "start":
                space, tag = space_decompose(token[1])
                element = top.create_element(token[1])
                for key, value in token[2]:
                    aspace, akey = space_decompose(key)
                    element._create_attr(aspace, akey, value)
                del space, tag
                stack.append(element)
                prev = None
            elif kind == "end":
                prev = stack.pop()
            elif kind == "text":
                if prev is None:
                    top._attach(CharData(token[1], is_whitespace(token[1])))
                else:
                    prev.tail = token[1]
            elif kind == "comment":
                prev = top.create_comment(token[1])
            elif kind == "directive":
                prev = top.create_directive(token[1])
            elif kind == "pi":
                prev = top.create_proc_inst(token[1], token[2])
        return len(raw)

    def read_from_file(self, filename: Union[str, os.PathLike]) -> None:
        """Parse XML from a file."""
        with open(filename, "rb") as f:
            self.read_from(f)

    def read_from_bytes(self, data: bytes) -> None:
        """Parse XML from bytes."""
        self.read_from(io.BytesIO(data))

    def read_from_string(self, text: str) -> None:
        """Parse XML from a string."""
        self.read_from(io.StringIO(text))

    # Writing

    def _serialize(self) -> str:
        out = io.StringIO()
        non_char = 0
        for child in self.children:
            is_text = isinstance(child, CharData)
            if not is_text:
                non_char += 1
            child.write_to(
                out, self.write_settings, 0, self._indent, not is_text and non_char > 1
            )
        return out.getvalue()

    def write_to(self, stream) -> int:  # type: ignore[override]
        """Serialize the document to a text or binary stream; return bytes written."""
        text = self._serialize()
        data = text.encode("utf-8")
        if isinstance(stream, io.TextIOBase):
            stream.write(text)
        else:
            stream.write(data)
        return len(data)

    def write_to_file(self, filename: Union[str, os.PathLike]) -> None:
        """Serialize the document into a file."""
        with open(filename, "wb") as f:
            self.write_to(f)

    def write_to_bytes(self) -> bytes:
        """Serialize the document to UTF-8 bytes."""
        return self._serialize().encode("utf-8")

    def write_to_string(self) -> str:
        """Serialize the document to a string."""
        return self._serialize()

    # Indentation

    def indent(self, spaces: int) -> None:
        """Indent output by ``spaces`` per level; a negative value disables indenting."""
        if spaces < 0:
            self._indent = lambda depth: ""
        else:
            self._indent = lambda depth: cr_indent(depth * spaces, CRSP)
        self.remove_blanks()

    def indent_tabs(self) -> None:
        """Indent output with one tab per level."""
        self._indent = lambda depth: cr_indent(depth, CRTAB)
        self.remove_blanks()