"""Configuration sources: change sets read from files or held in memory."""

from __future__ import annotations

import abc
import dataclasses
import datetime
import hashlib
import os
import threading
from dataclasses import dataclass
from typing import Optional

from .confencoders import Encoder, JsonEncoder

__all__ = [
    "DEFAULT_PATH",
    "ChangeSet",
    "FileSource",
    "MemorySource",
    "Source",
    "file_format",
]

DEFAULT_PATH = "config.json"


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass
class ChangeSet:
    """A set of configuration data read from one source."""

    data: bytes = b""
    checksum: str = ""
    format: str = ""
    source: str = ""
    timestamp: Optional[datetime.datetime] = None

    def sum(self) -> str:
        """Return the MD5 checksum of the data as hex."""
        return hashlib.md5(self.data, usedforsecurity=False).hexdigest()


class Source(abc.ABC):
    """A place configuration is loaded from."""

    name = ""

    @abc.abstractmethod
    def read(self) -> ChangeSet:
        """Return the current data of the source."""

    def __str__(self) -> str:
        return self.name


def file_format(path: str, encoder: Encoder) -> str:
    """Return the text after the last dot of the path, or the encoder's name."""
    parts = path.split(".")
    if len(parts) > 1:
        return parts[-1]
    return encoder.name


class FileSource(Source):
    """Configuration read from a file; the format follows its extension."""

    name = "file"

    def __init__(
        self, path: str | os.PathLike = DEFAULT_PATH, encoder: Optional[Encoder] = None
    ) -> None:
        self.path = os.fspath(path)
        self.encoder = encoder or JsonEncoder()

    def read(self) -> ChangeSet:
        """Read the whole file; raise OSError if it cannot be read."""
        with open(self.path, "rb") as fh:
            data = fh.read()
            mtime = os.fstat(fh.fileno()).st_mtime
        change_set = ChangeSet(
            data=data,
            format=file_format(self.path, self.encoder),
            source=self.name,
            timestamp=datetime.datetime.fromtimestamp(mtime, datetime.timezone.utc),
        )
        change_set.checksum = change_set.sum()
        return change_set


def _as_bytes(data: bytes | str) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


class MemorySource(Source):
    """Configuration held in memory and replaceable at run time."""

    name = "memory"

    def __init__(self, change_set: Optional[ChangeSet] = None) -> None:
        self._lock = threading.Lock()
        self._change_set = ChangeSet(source=self.name)
        self.update(change_set)

    @classmethod
    def from_json(cls, data: bytes | str) -> "MemorySource":
        """Create a source holding JSON data."""
        return cls(ChangeSet(data=_as_bytes(data), format="json"))

    @classmethod
    def from_yaml(cls, data: bytes | str) -> "MemorySource":
        """Create a source holding YAML data."""
        return cls(ChangeSet(data=_as_bytes(data), format="yaml"))

    def read(self) -> ChangeSet:
        """Return a copy of the held change set."""
        with self._lock:
            return dataclasses.replace(self._change_set)

    def update(self, change_set: Optional[ChangeSet]) -> None:
        """Replace the held data and format; None is ignored."""
        if change_set is None:
            return
        fresh = ChangeSet(
            data=bytes(change_set.data),
            format=change_set.format,
            source=self.name,
            timestamp=_now(),
        )
        fresh.checksum = fresh.sum()
        with self._lock:
            self._change_set = fresh