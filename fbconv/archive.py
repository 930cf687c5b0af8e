"""Walking the files stored in a zip archive."""

from __future__ import annotations

import os
import zipfile
from typing import Iterator

__all__ = ["walk"]


def walk(
    archive: str | os.PathLike, pattern: str = ""
) -> Iterator[tuple[zipfile.ZipFile, zipfile.ZipInfo]]:
    """Yield ``(zip_file, info)`` for every file whose name starts with ``pattern``.

    Directories are skipped. The archive stays open while the generator runs,
    so entries can be read with ``zip_file.open(info)``.
    """
    with zipfile.ZipFile(archive) as zip_file:
        for info in zip_file.infolist():
            if not info.is_dir() and info.filename.startswith(pattern):
                yield zip_file, info