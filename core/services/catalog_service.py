"""Folder scanning and natural ordering for `FolderCatalog`.

The scan is a single non-recursive directory listing. It never opens the
image files themselves, so a corrupt file is still catalogued and only fails
later when its metadata or pixels are read.
"""

from __future__ import annotations

import locale
import os
from pathlib import Path
import re
from typing import Any
import unicodedata

from loguru import logger

from core.errors import IOFailure
from core.models import CatalogEntry, FolderCatalog

SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".jpg",
        ".jpeg",
        ".png",
        ".heic",
        ".heif",
        ".tiff",
        ".tif",
        ".gif",
        ".bmp",
        ".raw",
        ".cr2",
        ".cr3",
        ".nef",
        ".arw",
        ".orf",
        ".rw2",
        ".dng",
    }
)

_DIGITS = re.compile(r"(\d+)")


def is_supported_image(path: str | Path) -> bool:
    """True when the file extension is in the supported set (case-insensitive)."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def _fold(text: str) -> str:
    """Casefold and strip diacritics so "Émile" collates with "emile"."""
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def natural_sort_key(name: str) -> tuple[list[Any], str]:
    """Sort key ordering "img2" before "img10", ignoring case and accents.

    Text runs are folded and then compared through the active locale's
    collation (`main` sets LC_COLLATE from the environment); digit runs
    compare numerically. The raw name breaks ties so the order is total.
    """
    parts: list[Any] = []
    for idx, part in enumerate(_DIGITS.split(name)):
        if idx % 2:
            parts.append(int(part))
        else:
            parts.append(locale.strxfrm(_fold(part)))
    return parts, name


def scan_directory(directory: str | Path) -> FolderCatalog:
    """List the supported, non-hidden image files of `directory`.

    Raises:
        IOFailure: When the directory is missing or cannot be read.
    """
    folder = os.path.abspath(os.fspath(directory))
    entries: list[CatalogEntry] = []
    try:
        with os.scandir(folder) as it:
            for item in it:
                if item.name.startswith("."):
                    continue
                if not is_supported_image(item.name):
                    continue
                try:
                    if not item.is_file():
                        continue
                    st = item.stat()
                except OSError as ex:
                    # File vanished between listing and stat; skip just this one
                    logger.debug("stat failed for {}: {}", item.path, ex)
                    continue
                entries.append(
                    CatalogEntry(
                        path=os.path.join(folder, item.name),
                        name=item.name,
                        size=int(st.st_size),
                        mtime_ns=int(st.st_mtime_ns),
                    )
                )
    except OSError as ex:
        logger.error("Cannot read folder {}: {}", folder, ex)
        raise IOFailure(folder, ex.strerror or str(ex)) from ex

    entries.sort(key=lambda e: natural_sort_key(e.name))
    logger.info("Scanned {}: {} image(s)", folder, len(entries))
    return FolderCatalog(directory=folder, entries=tuple(entries))


def locate(catalog: FolderCatalog, path: str | Path) -> int | None:
    """Return the index of `path` in `catalog`, or None if absent."""
    return catalog.locate(os.path.abspath(os.fspath(path)))
