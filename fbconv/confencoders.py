"""Encoders that turn configuration data into bytes and back."""

from __future__ import annotations

import abc
import datetime
import json
import tomllib
from typing import Any

import tomli_w
import yaml

__all__ = ["Encoder", "JsonEncoder", "TomlEncoder", "YamlEncoder"]

# Characters that are escaped inside JSON strings so the output is safe to embed in HTML.
_HTML_SAFE = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def _to_text(data: bytes | str) -> str:
    return data if isinstance(data, str) else bytes(data).decode("utf-8")


def _key_text(key: Any) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    return str(key)


def _jsonify(value: Any) -> Any:
    """Bring decoded data to the shapes JSON can hold: string keys, no dates."""
    if isinstance(value, dict):
        return {_key_text(k): _jsonify(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonify(v) for v in value]
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    return value


class Encoder(abc.ABC):
    """Turns configuration values into bytes of one format and back."""

    name = ""

    @abc.abstractmethod
    def encode(self, value: Any) -> bytes:
        """Serialize a value; raise ValueError if it cannot be represented."""

    @abc.abstractmethod
    def decode(self, data: bytes | str) -> Any:
        """Parse bytes into plain values; raise ValueError on malformed input."""

    def __str__(self) -> str:
        return self.name


class JsonEncoder(Encoder):
    """Compact JSON with sorted keys and HTML-significant characters escaped."""

    name = "json"

    def encode(self, value: Any) -> bytes:
        try:
            text = json.dumps(
                value,
                ensure_ascii=False,
                separators=(",", ":"),
                sort_keys=True,
                allow_nan=False,
            )
        except TypeError as exc:
            raise ValueError(f"json: unable to encode value: {exc}") from exc
        return text.translate(_HTML_SAFE).encode("utf-8")

    def decode(self, data: bytes | str) -> Any:
        return json.loads(_to_text(data))


class YamlEncoder(Encoder):
    """YAML, decoded into the same shapes JSON would give."""

    name = "yaml"

    def encode(self, value: Any) -> bytes:
        try:
            text = yaml.safe_dump(
                _jsonify(value),
                sort_keys=True,
                default_flow_style=False,
                allow_unicode=True,
            )
        except yaml.YAMLError as exc:
            raise ValueError(f"yaml: unable to encode value: {exc}") from exc
        return text.encode("utf-8")

    def decode(self, data: bytes | str) -> Any:
        try:
            return _jsonify(yaml.safe_load(_to_text(data)))
        except yaml.YAMLError as exc:
            raise ValueError(f"yaml: {exc}") from exc


class TomlEncoder(Encoder):
    """TOML; dates and times decode to ISO 8601 strings."""

    name = "toml"

    def encode(self, value: Any) -> bytes:
        try:
            return tomli_w.dumps(value).encode("utf-8")
        except (TypeError, AttributeError) as exc:
            raise ValueError(f"toml: unable to encode value: {exc}") from exc

    def decode(self, data: bytes | str) -> Any:
        return _jsonify(tomllib.loads(_to_text(data)))