"""Merging change sets and reading typed values out of merged configuration."""

from __future__ import annotations

import copy
import datetime
import json
import os
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from .confencoders import Encoder, JsonEncoder, TomlEncoder, YamlEncoder
from .confsource import ChangeSet

__all__ = ["JsonReader", "Value", "Values", "replace_env_vars"]

_ENV_RE = re.compile(rb"\$\{([A-Za-z0-9_]+)\}")
_INT_RE = re.compile(r"[+-]?[0-9]+")
_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

_DURATION_PART = re.compile(r"([0-9]*(?:\.[0-9]*)?)([^0-9.]+)")
_DURATION_UNITS = {
    "ns": Decimal(1),
    "us": Decimal(1000),
    "µs": Decimal(1000),
    "μs": Decimal(1000),
    "ms": Decimal(1000000),
    "s": Decimal(1000000000),
    "m": Decimal(60 * 1000000000),
    "h": Decimal(3600 * 1000000000),
}

_json = JsonEncoder()


def replace_env_vars(raw: bytes) -> bytes:
    """Replace every ``${NAME}`` with the environment variable's value, or nothing."""
    return _ENV_RE.sub(
        lambda m: os.environ.get(m.group(1).decode("ascii"), "").encode("utf-8"), raw
    )


def _merge_into(dst: dict, src: dict) -> dict:
    for key, value in src.items():
        current = dst.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            _merge_into(current, value)
        else:
            dst[key] = copy.deepcopy(value)
    return dst


def _lookup(data: Any, path: Iterable[str]) -> Any:
    for key in path:
        if not isinstance(data, dict) or key not in data:
            return None
        data = data[key]
    return data


def _parse_duration(text: str) -> datetime.timedelta:
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return datetime.timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")
    total = Decimal(0)
    pos = 0
    while pos < len(rest):
        m = _DURATION_PART.match(rest, pos)
        if not m or m.group(1) in ("", "."):
            raise ValueError(f"invalid duration {text!r}")
        unit = _DURATION_UNITS.get(m.group(2))
        if unit is None:
            raise ValueError(f"unknown unit {m.group(2)!r} in duration {text!r}")
        try:
            total += Decimal(m.group(1)) * unit
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration {text!r}") from exc
        pos = m.end()
    delta = datetime.timedelta(microseconds=float(total / 1000))
    return -delta if negative else delta


def _go_format(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        text = repr(value)
        return text[:-2] if text.endswith(".0") else text
    if isinstance(value, dict):
        return "map[" + " ".join(f"{k}:{_go_format(value[k])}" for k in sorted(value)) + "]"
    if isinstance(value, list):
        return "[" + " ".join(_go_format(v) for v in value) + "]"
    return str(value)


def _json_copy(data: Any) -> Any:
    return json.loads(_json.encode(data))


class Value:
    """A single configuration value with typed accessors."""

    def __init__(self, data: Any = None) -> None:
        self._data = data

    def __repr__(self) -> str:
        return f"Value({self._data!r})"

    def as_bool(self, default: bool) -> bool:
        """Return the boolean, parsing strings such as "true" or "0"."""
        if isinstance(self._data, bool):
            return self._data
        if isinstance(self._data, str):
            if self._data in _TRUE:
                return True
            if self._data in _FALSE:
                return False
        return default

    def as_int(self, default: int) -> int:
        """Return the integer, parsing decimal strings."""
        data = self._data
        if isinstance(data, int) and not isinstance(data, bool):
            return data
        if isinstance(data, str) and _INT_RE.fullmatch(data):
            return int(data)
        return default

    def as_str(self, default: str) -> str:
        """Return the string, or the default for any other type."""
        return self._data if isinstance(self._data, str) else default

    def as_float(self, default: float) -> float:
        """Return the number as a float, parsing numeric strings."""
        data = self._data
        if isinstance(data, (int, float)) and not isinstance(data, bool):
            return float(data)
        if isinstance(data, str) and data == data.strip() and "_" not in data:
            try:
                return float(data)
            except ValueError:
                return default
        return default

    def as_duration(self, default: datetime.timedelta) -> datetime.timedelta:
        """Parse a duration string such as "1h30m" or "250ms"."""
        if not isinstance(self._data, str):
            return default
        try:
            return _parse_duration(self._data)
        except ValueError:
            return default

    def as_string_list(self, default: Optional[list[str]]) -> Optional[list[str]]:
        """Return a list of strings from an array or a comma-separated string."""
        data = self._data
        if isinstance(data, str):
            parts = data.split(",")
            if len(parts) > 1:
                return parts
        if isinstance(data, list) and all(isinstance(v, str) for v in data):
            return list(data)
        return default

    def as_string_map(self, default: Optional[dict[str, str]]) -> Optional[dict[str, str]]:
        """Return a mapping with every value formatted as text."""
        if not isinstance(self._data, dict):
            return default
        return {k: _go_format(v) for k, v in self._data.items()}

    def data(self) -> Any:
        """Return a deep copy of the value as plain JSON data."""
        return _json_copy(self._data)

    def to_bytes(self) -> bytes:
        """Return the value encoded as JSON, or empty bytes if it cannot be."""
        try:
            return _json.encode(self._data)
        except ValueError:
            return b""


class Values:
    """The whole parsed configuration of one change set."""

    def __init__(self, change_set: ChangeSet) -> None:
        self.change_set = change_set
        raw = replace_env_vars(change_set.data)
        try:
            self._root: Any = json.loads(raw.decode("utf-8"))
        except ValueError:
            self._root = change_set.data.decode("utf-8", errors="replace")

    def __str__(self) -> str:
        return "json"

    def get(self, *path: str) -> Value:
        """Return the value at the path; a missing path gives an empty value."""
        return Value(_lookup(self._root, path))

    def delete(self, *path: str) -> None:
        """Remove the value at the path; with no path, clear everything."""
        if not path:
            self._root = {}
            return
        if len(path) == 1:
            if isinstance(self._root, dict):
                self._root.pop(path[0], None)
            return
        parent = _lookup(self._root, path[:-1])
        if isinstance(parent, dict):
            parent.pop(path[-1], None)
        self.set(parent, *path[:-1])

    def set(self, value: Any, *path: str) -> None:
        """Store a value at the path, creating intermediate mappings."""
        if not path:
            self._root = value
            return
        if not isinstance(self._root, dict):
            self._root = {}
        node = self._root
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value

    def to_bytes(self) -> bytes:
        """Return the configuration encoded as JSON, or empty bytes if it cannot be."""
        try:
            return _json.encode(self._root)
        except ValueError:
            return b""

    def map(self) -> dict[str, Any]:
        """Return the top-level mapping, or an empty one."""
        return dict(self._root) if isinstance(self._root, dict) else {}

    def data(self) -> Any:
        """Return a deep copy of the configuration as plain JSON data."""
        return _json_copy(self._root)


class JsonReader:
    """Merges change sets of any known format into one JSON change set."""

    name = "json"

    def __init__(self, encoders: Iterable[Encoder] = ()) -> None:
        self._json = JsonEncoder()
        self.encodings: dict[str, Encoder] = {
            "json": JsonEncoder(),
            "yaml": YamlEncoder(),
            "toml": TomlEncoder(),
            "yml": YamlEncoder(),
        }
        for encoder in encoders:
            self.encodings[encoder.name] = encoder

    def __str__(self) -> str:
        return self.name

    def merge(self, *change_sets: Optional[ChangeSet]) -> ChangeSet:
        """Deep-merge change sets in order, later ones overriding earlier ones."""
        merged: Optional[dict] = None
        for change_set in change_sets:
            if change_set is None or not change_set.data:
                continue
            codec = self.encodings.get(change_set.format, self._json)
            data = codec.decode(change_set.data)
            if data is None:
                continue
            if not isinstance(data, dict):
                raise ValueError(f"{codec.name}: configuration must be a mapping")
            merged = _merge_into({} if merged is None else merged, data)
        result = ChangeSet(
            data=self._json.encode(merged),
            format=self._json.name,
            source="json",
            timestamp=datetime.datetime.now(datetime.timezone.utc),
        )
        result.checksum = result.sum()
        return result

    def values(self, change_set: Optional[ChangeSet]) -> Values:
        """Parse a JSON change set into values."""
        if change_set is None:
            raise ValueError("changeset is nil")
        if change_set.format != "json":
            raise ValueError("unsupported format")
        return Values(change_set)