"""XPath-like element selection over an element tree.

Elements are expected to expose ``space``, ``tag``, ``attrs`` (items with
``space``, ``key`` and ``value``), ``children`` (child tokens), ``parent``
and a ``text`` property.

Supported selectors and filters::

    .               current element
    ..              parent of the current element
    *               all child elements
    /               root element when used at the start of a path
    //              all descendants
    tag             child elements with the given tag
    [#]             element at the given index (1-based, negative from the end)
    [@attrib]       elements with the given attribute
    [@attrib='val'] elements with the attribute set to val
    [tag]           elements with a child element named tag
    [tag='val']     elements with a child named tag whose text is val
    [text()]        elements with non-empty text
    [text()='val']  elements whose text is val
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .xmlhelpers import is_integer, space_decompose, space_match

__all__ = ["Path", "PathError", "compile_path"]

Selector = Callable[[Any], list]
Filter = Callable[[list], list]


class PathError(ValueError):
    """Raised when a path string cannot be compiled."""

    def __init__(self, message: str) -> None:
        super().__init__("etree: " + message)


def _is_element(token: Any) -> bool:
    return hasattr(token, "tag") and hasattr(token, "children")


def _child_elements(element: Any) -> list:
    return [c for c in element.children if _is_element(c)]


# Selectors


def _select_self(element: Any) -> list:
    return [element]


def _select_root(element: Any) -> list:
    root = element
    while root.parent is not None:
        root = root.parent
    return [root]


def _select_parent(element: Any) -> list:
    return [element.parent] if element.parent is not None else []


def _select_descendants(element: Any) -> list:
    found = []
    queue = deque([element])
    while queue:
        current = queue.popleft()
        found.append(current)
        queue.extend(_child_elements(current))
    return found


def _select_by_tag(name: str) -> Selector:
    space, tag = space_decompose(name)

    def select(element: Any) -> list:
        return [
            c
            for c in _child_elements(element)
            if space_match(space, c.space) and c.tag == tag
        ]

    return select


# Filters


def _filter_pos(index: int) -> Filter:
    def apply(candidates: list) -> list:
        if index >= 0:
            return [candidates[index]] if index < len(candidates) else []
        return [candidates[index]] if -index <= len(candidates) else []

    return apply


def _has_attr(element: Any, space: str, key: str, value: str | None) -> bool:
    return any(
        space_match(space, a.space) and a.key == key and (value is None or a.value == value)
        for a in element.attrs
    )


def _filter_attr(name: str, value: str | None = None) -> Filter:
    space, key = space_decompose(name)

    def apply(candidates: list) -> list:
        return [c for c in candidates if _has_attr(c, space, key, value)]

    return apply


def _filter_text(value: str | None = None) -> Filter:
    def apply(candidates: list) -> list:
        if value is None:
            return [c for c in candidates if c.text != ""]
        return [c for c in candidates if c.text == value]

    return apply


def _filter_child(name: str, text: str | None = None) -> Filter:
    space, tag = space_decompose(name)

    def apply(candidates: list) -> list:
        # A candidate is kept once for every matching child, as the traversal
        # deduplicates the final results.
        return [
            c
            for c in candidates
            for cc in _child_elements(c)
            if space_match(space, cc.space)
            and cc.tag == tag
            and (text is None or cc.text == text)
        ]

    return apply


@dataclass(frozen=True)
class _Segment:
    select: Selector
    filters: tuple[Filter, ...]

    def apply(self, element: Any) -> list:
        candidates = self.select(element)
        for flt in self.filters:
            candidates = flt(candidates)
        return candidates


class Path:
    """A compiled path that selects elements from a tree."""

    def __init__(self, segments: Sequence[_Segment] = ()) -> None:
        self._segments = tuple(segments)

    def traverse(self, element: Any) -> list:
        """Return all elements matched from ``element``, without duplicates, in match order."""
        if not self._segments:
            return []
        last = len(self._segments) - 1
        results: list = []
        seen: set[int] = set()
        queue = deque([(element, 0)])
        while queue:
            current, index = queue.popleft()
            candidates = self._segments[index].apply(current)
            if index == last:
                for c in candidates:
                    if id(c) not in seen:
                        seen.add(id(c))
                        results.append(c)
            else:
                queue.extend((c, index + 1) for c in candidates)
        return results


def _split_path(path: str) -> list[str]:
    pieces = []
    start = 0
    in_quote = False
    for pos, ch in enumerate(path):
        if ch == "'":
            in_quote = not in_quote
        elif ch == "/" and not in_quote:
            pieces.append(path[start:pos])
            start = pos + 1
    pieces.append(path[start:])
    return pieces


def _parse_selector(text: str) -> Selector:
    match text:
        case ".":
            return _select_self
        case "..":
            return _select_parent
        case "*":
            return _child_elements
        case "":
            return _select_descendants
        case _:
            return _select_by_tag(text)


def _parse_filter(text: str) -> Filter:
    if not text:
        raise PathError("path contains an empty filter expression.")

    eq = text.find("='")
    if eq >= 0:
        close = text.find("'", eq + 2)
        if close != len(text) - 1:
            raise PathError("path has mismatched filter quotes.")
        value = text[eq + 2 : close]
        if text.startswith("@"):
            return _filter_attr(text[1:eq], value)
        if text.startswith("text()"):
            return _filter_text(value)
        return _filter_child(text[:eq], value)

    if text.startswith("@"):
        return _filter_attr(text[1:])
    if text == "text()":
        return _filter_text()
    if is_integer(text):
        try:
            pos = int(text)
        except ValueError:
            pos = 0
        return _filter_pos(pos - 1 if pos > 0 else pos)
    return _filter_child(text)


def _parse_segment(text: str) -> _Segment:
    head, *filter_texts = text.split("[")
    selector = _parse_selector(head)
    filters = []
    error: PathError | None = None
    for ftext in filter_texts:
        if not ftext.endswith("]"):
            error = PathError("path has invalid filter [brackets].")
            break
        try:
            filters.append(_parse_filter(ftext[:-1]))
        except PathError as exc:
            error = exc
    if error is not None:
        raise error
    return _Segment(selector, tuple(filters))


def compile_path(path: str) -> Path:
    """Compile an XPath-like string; raise PathError if it is malformed."""
    if path.endswith("//"):
        path += "*"
    segments = []
    if path.startswith("/"):
        segments.append(_Segment(_select_root, ()))
        path = path[1:]
    segments.extend(_parse_segment(piece) for piece in _split_path(path))
    return Path(segments)