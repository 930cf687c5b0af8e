"""Recognising zip archives and FB2 books and the Unicode form a book uses."""

from __future__ import annotations

import codecs
import enum
import io
import os
import zipfile
from typing import BinaryIO

__all__ = [
    "SourceEncoding",
    "detect_utf",
    "is_archive_file",
    "is_book_file",
    "is_book_in_archive",
    "select_reader",
]

_ARCHIVE_HEADER_SIZE = 262
_BOOK_HEADER_SIZE = 512
_CHUNK = 4096


class SourceEncoding(enum.Enum):
    """Unicode form of a book as told by its byte order mark."""

    UNKNOWN = 0
    UTF8 = 1
    UTF16_BE = 2
    UTF16_LE = 3
    UTF32_BE = 4
    UTF32_LE = 5


_CODECS = {
    SourceEncoding.UTF8: "utf-8-sig",
    SourceEncoding.UTF16_BE: "utf-16",
    SourceEncoding.UTF16_LE: "utf-16",
    SourceEncoding.UTF32_BE: "utf-32",
    SourceEncoding.UTF32_LE: "utf-32",
}


def _has_ext(name: str, ext: str) -> bool:
    return os.path.splitext(name)[1].lower() == ext


def _is_zip_header(buf: bytes) -> bool:
    return (
        len(buf) >= 4
        and buf[0] == 0x50
        and buf[1] == 0x4B
        and buf[2] in (0x3, 0x5, 0x7)
        and buf[3] in (0x4, 0x6, 0x8)
    )


def _is_fb2_header(buf: bytes) -> bool:
    text = buf.decode("utf-8", errors="replace")
    return text.startswith("<?xml") and "<FictionBook" in text


def is_archive_file(fname: str | os.PathLike) -> bool:
    """Return True if the file has a .zip extension and a zip signature.

    Raises OSError if the file cannot be read and EOFError if it is empty.
    """
    if not _has_ext(os.fspath(fname), ".zip"):
        return False
    with open(fname, "rb") as file:
        header = file.read(_ARCHIVE_HEADER_SIZE)
    if not header:
        raise EOFError(f"empty file: {os.fspath(fname)}")
    if len(header) < _ARCHIVE_HEADER_SIZE:
        return False
    return _is_zip_header(header)


def detect_utf(buf: bytes) -> SourceEncoding:
    """Detect the Unicode form from the byte order mark at the start of ``buf``."""
    head = bytes(buf[:4]).ljust(4, b"\x01")
    if head == b"\x00\x00\xfe\xff":
        return SourceEncoding.UTF32_BE
    if head == b"\xff\xfe\x00\x00":
        return SourceEncoding.UTF32_LE
    if head[:3] == b"\xef\xbb\xbf":
        return SourceEncoding.UTF8
    if head[:2] == b"\xfe\xff":
        return SourceEncoding.UTF16_BE
    if head[:2] == b"\xff\xfe":
        return SourceEncoding.UTF16_LE
    return SourceEncoding.UNKNOWN


class _TranscodingReader(io.RawIOBase):
    """A binary stream that yields UTF-8 for a stream in another Unicode form."""

    def __init__(self, raw: BinaryIO, codec: str) -> None:
        super().__init__()
        self._raw = raw
        self._decoder = codecs.getincrementaldecoder(codec)(errors="replace")
        self._pending = b""
        self._eof = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        while not self._pending and not self._eof:
            chunk = self._raw.read(_CHUNK)
            self._eof = not chunk
            self._pending = self._decoder.decode(chunk, final=self._eof).encode("utf-8")
        count = min(len(buffer), len(self._pending))
        buffer[:count] = self._pending[:count]
        self._pending = self._pending[count:]
        return count


def select_reader(stream: BinaryIO, encoding: SourceEncoding) -> BinaryIO:
    """Return a binary stream yielding UTF-8 without a byte order mark.

    For an unknown encoding the stream is returned as it is.
    """
    if encoding is SourceEncoding.UNKNOWN:
        return stream
    try:
        codec = _CODECS[encoding]
    except KeyError:
        raise ValueError(f"unsupported encoding: {encoding!r}") from None
    return _TranscodingReader(stream, codec)


def _check_book(open_stream) -> tuple[bool, SourceEncoding]:
    with open_stream() as stream:
        head = stream.read(4)
    if not head:
        raise EOFError("empty book")
    encoding = detect_utf(head)
    with open_stream() as stream:
        header = select_reader(stream, encoding).read(_BOOK_HEADER_SIZE)
    if not header:
        raise EOFError("empty book")
    return _is_fb2_header(header), encoding


def is_book_file(fname: str | os.PathLike) -> tuple[bool, SourceEncoding]:
    """Return whether the file is an FB2 book and its detected Unicode form.

    Raises OSError if the file cannot be read and EOFError if it is empty.
    """
    if not _has_ext(os.fspath(fname), ".fb2"):
        return False, SourceEncoding.UNKNOWN
    return _check_book(lambda: open(fname, "rb"))


def is_book_in_archive(
    archive: zipfile.ZipFile, info: zipfile.ZipInfo | str
) -> tuple[bool, SourceEncoding]:
    """Return whether an archive entry is an FB2 book and its Unicode form."""
    name = info.filename if isinstance(info, zipfile.ZipInfo) else info
    if not _has_ext(name, ".fb2"):
        return False, SourceEncoding.UNKNOWN
    return _check_book(lambda: archive.open(info))