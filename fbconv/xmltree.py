"""Element tree tokens: elements, attributes, character data, comments,
directives and processing instructions, with their serialization."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass
from typing import Callable, Optional, TextIO, Union

from .xmlhelpers import (
    EscapeMode,
    escape_string,
    is_whitespace,
    space_decompose,
    space_match,
    trim_indent,
)
from .xmlpath import Path, compile_path

__all__ = [
    "Attr",
    "CharData",
    "Comment",
    "Directive",
    "Element",
    "IndentFunc",
    "ProcInst",
    "Token",
    "WriteSettings",
    "new_attr",
    "new_element",
]

IndentFunc = Callable[[int], str]

_ENCODING_RE = re.compile(r'encoding=".+"')


@dataclass
class WriteSettings:
    """Serialization options."""

    canonical_end_tags: bool = False
    canonical_text: bool = False
    canonical_attr_val: bool = False

    @property
    def text_mode(self) -> EscapeMode:
        return EscapeMode.CANONICAL_TEXT if self.canonical_text else EscapeMode.NORMAL

    @property
    def attr_mode(self) -> EscapeMode:
        return EscapeMode.CANONICAL_ATTR if self.canonical_attr_val else EscapeMode.NORMAL


def _write_indent(
    out: TextIO, depth: int, indent: Optional[IndentFunc], align: bool
) -> None:
    if align and depth >= 0 and indent is not None:
        out.write(indent(depth))


def _write_tail(out: TextIO, tail: str, settings: WriteSettings) -> None:
    if tail:
        out.write(escape_string(tail, settings.text_mode))


@dataclass
class Attr:
    """A key-value attribute of an element."""

    key: str
    value: str
    space: str = ""

    @property
    def qualified_key(self) -> str:
        return f"{self.space}:{self.key}" if self.space else self.key

    def write_to(self, out: TextIO, settings: WriteSettings) -> None:
        """Write the attribute as ``key="value"``."""
        out.write(self.qualified_key)
        out.write('="')
        out.write(escape_string(self.value, settings.attr_mode))
        out.write('"')


def new_attr(key: str, value: str) -> Attr:
    """Create an attribute; the key may carry a ``namespace:`` prefix."""
    space, skey = space_decompose(key)
    return Attr(skey, value, space)


@dataclass(eq=False)
class CharData:
    """Character data inside an element. It never has a tail."""

    data: str
    whitespace: bool = False
    parent: Optional["Element"] = dataclasses.field(default=None, repr=False)

    @property
    def tail(self) -> str:
        return ""

    @tail.setter
    def tail(self, value: str) -> None:
        pass

    def _dup(self, parent: Optional["Element"]) -> "CharData":
        return CharData(self.data, self.whitespace, parent)

    def write_to(
        self,
        out: TextIO,
        settings: WriteSettings,
        depth: int = 0,
        indent: Optional[IndentFunc] = None,
        align: bool = False,
    ) -> None:
        """Write the escaped character data; it is never indented."""
        out.write(escape_string(self.data, settings.text_mode))


@dataclass(eq=False)
class Comment:
    """An XML comment."""

    data: str
    tail: str = ""
    parent: Optional["Element"] = dataclasses.field(default=None, repr=False)

    def _dup(self, parent: Optional["Element"]) -> "Comment":
        return Comment(self.data, self.tail, parent)

    def write_to(
        self,
        out: TextIO,
        settings: WriteSettings,
        depth: int = 0,
        indent: Optional[IndentFunc] = None,
        align: bool = False,
    ) -> None:
        """Write the comment followed by its tail."""
        _write_indent(out, depth, indent, align)
        out.write(f"<!--{self.data}-->")
        _write_tail(out, self.tail, settings)


@dataclass(eq=False)
class Directive:
    """An XML directive such as a DOCTYPE declaration."""

    data: str
    tail: str = ""
    parent: Optional["Element"] = dataclasses.field(default=None, repr=False)

    def _dup(self, parent: Optional["Element"]) -> "Directive":
        return Directive(self.data, self.tail, parent)

    def write_to(
        self,
        out: TextIO,
        settings: WriteSettings,
        depth: int = 0,
        indent: Optional[IndentFunc] = None,
        align: bool = False,
    ) -> None:
        """Write the directive followed by its tail."""
        _write_indent(out, depth, indent, align)
        out.write(f"<!{self.data}>")
        _write_tail(out, self.tail, settings)


@dataclass(eq=False)
class ProcInst:
    """An XML processing instruction."""

    target: str
    inst: str = ""
    tail: str = ""
    parent: Optional["Element"] = dataclasses.field(default=None, repr=False)

    def _dup(self, parent: Optional["Element"]) -> "ProcInst":
        return ProcInst(self.target, self.inst, self.tail, parent)

    def write_to(
        self,
        out: TextIO,
        settings: WriteSettings,
        depth: int = 0,
        indent: Optional[IndentFunc] = None,
        align: bool = False,
    ) -> None:
        """Write the instruction; any declared encoding becomes UTF-8."""
        _write_indent(out, depth, indent, align)
        out.write("<?")
        out.write(self.target)
        if self.inst:
            out.write(" ")
            out.write(_ENCODING_RE.sub('encoding="UTF-8"', self.inst))
        out.write("?>")
        _write_tail(out, self.tail, settings)


class Element:
    """An XML element with its attributes, child tokens and tail text."""

    def __init__(self, tag: str = "", space: str = "") -> None:
        self.space = space
        self.tag = tag
        self.attrs: list[Attr] = []
        self.children: list[Token] = []
        self.tail = ""
        self.parent: Optional[Element] = None

    def __repr__(self) -> str:
        return f"Element({self.qualified_tag!r}, attrs={len(self.attrs)}, children={len(self.children)})"

    @property
    def qualified_tag(self) -> str:
        return f"{self.space}:{self.tag}" if self.space else self.tag

    def _attach(self, token: "Token") -> "Token":
        token.parent = self
        self.children.append(token)
        return token

    # Text

    @property
    def text(self) -> str:
        """The character data immediately following the opening tag."""
        parts = []
        for child in self.children:
            if not isinstance(child, CharData):
                break
            parts.append(child.data)
        return "".join(parts)

    def set_text(self, text: str) -> "Element":
        """Replace the leading character data, creating it if needed."""
        if self.children and isinstance(self.children[0], CharData):
            self.children[0].data = text
            return self
        self.children.insert(0, CharData(text, False, self))
        return self

    def set_tail(self, text: str) -> "Element":
        """Replace the text following the closing tag."""
        self.tail = text
        return self

    # Structure

    def copy(self) -> "Element":
        """Return a deep, unparented copy of the element."""
        return self._dup(None)

    def _dup(self, parent: Optional["Element"]) -> "Element":
        dup = Element(self.tag, self.space)
        dup.tail = self.tail
        dup.parent = parent
        dup.attrs = [dataclasses.replace(a) for a in self.attrs]
        dup.children = [child._dup(dup) for child in self.children]
        return dup

    def create_element(self, tag: str) -> "Element":
        """Create an element and add it as the last child."""
        space, stag = space_decompose(tag)
        child = Element(stag, space)
        self._attach(child)
        return child

    def add_child(self, token: "Token") -> None:
        """Add a token as the last child, detaching it from its old parent."""
        if token.parent is not None:
            token.parent.remove_child(token)
        self._attach(token)

    def _create_with_attrs(self, tag: str, attrs: tuple) -> "Element":
        child = self.create_element(tag)
        child.attrs.extend(
            dataclasses.replace(a) for a in attrs if a is not None and a.key and a.value
        )
        return child

    def add_next(self, tag: str, *attrs: Optional[Attr]) -> "Element":
        """Create a child with the given non-empty attributes; return the child."""
        return self._create_with_attrs(tag, attrs)

    def add_same(self, tag: str, *attrs: Optional[Attr]) -> "Element":
        """Create a child with the given non-empty attributes; return this element."""
        self._create_with_attrs(tag, attrs)
        return self

    def insert_child(self, existing: Optional["Token"], token: "Token") -> None:
        """Insert a token before ``existing``, or at the end if it is not a child."""
        if token.parent is not None:
            token.parent.remove_child(token)
        token.parent = self
        for pos, child in enumerate(self.children):
            if child is existing:
                self.children.insert(pos, token)
                return
        self.children.append(token)

    def remove_child(self, token: "Token") -> Optional["Token"]:
        """Remove a child token; return it, or None if it is not a child."""
        for pos, child in enumerate(self.children):
            if child is token:
                del self.children[pos]
                child.parent = None
                return token
        return None

    # Attributes

    def select_attr(self, key: str) -> Optional[Attr]:
        """Return the first attribute matching the key, or None."""
        space, skey = space_decompose(key)
        return next(
            (a for a in self.attrs if space_match(space, a.space) and a.key == skey),
            None,
        )

    def select_attr_value(self, key: str, default: str) -> str:
        """Return the value of the attribute matching the key, or the default."""
        attr = self.select_attr(key)
        return default if attr is None else attr.value

    def create_attr(self, key: str, value: str) -> Attr:
        """Set an attribute, replacing the value of an existing one."""
        space, skey = space_decompose(key)
        return self._create_attr(space, skey, value)

    def _create_attr(self, space: str, key: str, value: str) -> Attr:
        for attr in self.attrs:
            if attr.space == space and attr.key == key:
                attr.value = value
                return attr
        attr = Attr(key, value, space)
        self.attrs.append(attr)
        return attr

    def remove_attr(self, key: str) -> Optional[Attr]:
        """Remove and return the attribute with exactly this key, or None."""
        space, skey = space_decompose(key)
        for pos, attr in enumerate(self.attrs):
            if attr.space == space and attr.key == skey:
                return self.attrs.pop(pos)
        return None

    def sort_attrs(self) -> None:
        """Sort attributes by namespace, then key."""
        self.attrs.sort(key=lambda a: (a.space, a.key))

    # Selection

    def child_elements(self) -> list["Element"]:
        """Return all child elements."""
        return [c for c in self.children if isinstance(c, Element)]

    def select_element(self, tag: str) -> Optional["Element"]:
        """Return the first child element with the given tag, or None."""
        return next(iter(self.select_elements(tag)), None)

    def select_elements(self, tag: str) -> list["Element"]:
        """Return all child elements with the given tag."""
        space, stag = space_decompose(tag)
        return [
            c for c in self.child_elements() if space_match(space, c.space) and c.tag == stag
        ]

    def find_elements(self, path: Union[str, Path]) -> list["Element"]:
        """Return all elements matched by a path string or compiled path."""
        compiled = compile_path(path) if isinstance(path, str) else path
        return compiled.traverse(self)

    def find_element(self, path: Union[str, Path]) -> Optional["Element"]:
        """Return the first element matched by the path, or None."""
        return next(iter(self.find_elements(path)), None)

    def get_path(self) -> str:
        """Return the absolute path of the element."""
        tags = []
        seg: Optional[Element] = self
        while seg is not None:
            if seg.tag:
                tags.append(seg.tag)
            seg = seg.parent
        return "/" + "/".join(reversed(tags))

    def get_relative_path(self, source: Optional["Element"]) -> str:
        """Return the path of this element relative to ``source``, or "" if unrelated."""
        if source is None:
            return ""
        path: list[Element] = []
        seg: Optional[Element] = self
        while seg is not None and seg is not source:
            path.append(seg)
            seg = seg.parent
        if seg is source:
            if not path:
                return "."
            return "./" + "/".join(e.tag for e in reversed(path))

        climb = 0
        seg = source
        while seg is not None:
            found = next((i for i, e in enumerate(path) if e is seg), -1)
            if found >= 0:
                del path[found:]
                break
            climb += 1
            seg = seg.parent
        if seg is None:
            return ""
        return "/".join([".."] * climb + [e.tag for e in reversed(path)])

    # Creation of other tokens

    def create_char_data(self, data: str) -> CharData:
        """Add character data as the last child."""
        return self._attach(CharData(data))

    def create_comment(self, comment: str) -> Comment:
        """Add a comment as the last child."""
        return self._attach(Comment(comment))

    def create_directive(self, data: str) -> Directive:
        """Add a directive as the last child."""
        return self._attach(Directive(data))

    def create_proc_inst(self, target: str, inst: str) -> ProcInst:
        """Add a processing instruction as the last child."""
        return self._attach(ProcInst(target, inst))

    # Formatting

    def remove_blanks(self) -> None:
        """Recursively drop indentation between child tokens."""
        self.children = [
            c for c in self.children if not (isinstance(c, CharData) and c.whitespace)
        ]
        for child in self.children:
            if child.tail:
                child.tail = trim_indent(child.tail)
            if isinstance(child, Element):
                child.remove_blanks()

    def write_to(
        self,
        out: TextIO,
        settings: Optional[WriteSettings] = None,
        depth: int = 0,
        indent: Optional[IndentFunc] = None,
        align: bool = False,
    ) -> None:
        """Serialize the element, its children and its tail to a text stream."""
        settings = settings or WriteSettings()
        _write_indent(out, depth, indent, align)
        qname = self.qualified_tag
        out.write("<" + qname)
        for attr in self.attrs:
            out.write(" ")
            attr.write_to(out, settings)
        if self.children:
            out.write(">")
            align_children = align and self.tag != "p"
            have_elements = prev_has_tail = prev_was_text = False
            for child in self.children:
                is_text = isinstance(child, CharData)
                if not is_text:
                    have_elements = True
                child.write_to(
                    out,
                    settings,
                    depth + 1,
                    indent,
                    not prev_has_tail and not prev_was_text and align_children,
                )
                prev_has_tail = bool(child.tail) and not is_whitespace(child.tail)
                prev_was_text = is_text
            if (
                have_elements
                and not prev_has_tail
                and not prev_was_text
                and depth >= 0
                and indent is not None
                and align_children
            ):
                out.write(indent(depth))
            out.write(f"</{qname}>")
        elif settings.canonical_end_tags:
            out.write(f"></{qname}>")
        else:
            out.write("/>")
        _write_tail(out, self.tail, settings)


Token = Union[Element, CharData, Comment, Directive, ProcInst]


def new_element(tag: str) -> Element:
    """Create an unparented element; the tag may carry a ``namespace:`` prefix."""
    space, stag = space_decompose(tag)
    return Element(stag, space)