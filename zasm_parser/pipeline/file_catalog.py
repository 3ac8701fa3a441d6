"""
FileCatalog
===========

In-memory collection of named source members used to satisfy ``COPY``
statements and to preload library macros.

The parser only needs the read-only :class:`FileCatalogLike` protocol
(``find`` and ``list``); :class:`FileCatalog` is the stock implementation.

Member lookup (:meth:`FileCatalog.find`) tries, in order:

1. Exact name (case-insensitive)
2. Name without its extension (``PAYLIB.MAC`` -> ``PAYLIB``)
3. Name plus one of ``.MAC``, ``.ASM``, ``.INC``, ``.MACLIB``
4. Any member whose extension-less name equals the extension-less request
5. A single member whose name contains the request
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from ..passes.columns import split_records

logger = logging.getLogger(__name__)

LIBRARY_EXTENSIONS = (".MAC", ".ASM", ".INC", ".MACLIB")


@dataclass
class SourceFile:
    """One named member: a macro library, copybook or source program."""

    name: str
    content: str
    path: Optional[str] = None

    @property
    def lines(self) -> List[str]:
        return split_records(self.content)


class FileCatalogLike(Protocol):
    def find(self, name: str) -> Optional[SourceFile]:
        ...

    def list(self) -> List[SourceFile]:
        ...


def normalize_name(name: str) -> str:
    """Upper-case *name* and drop any directory part and the last extension."""
    base = name.replace("\\", "/").rsplit("/", 1)[-1].strip().upper()
    stem, dot, _ext = base.rpartition(".")
    return stem if dot and stem else base


class FileCatalog:
    """
    Mutable, case-insensitive name -> :class:`SourceFile` map.

    Parameters
    ----------
    files:
        Optional initial members.
    """

    def __init__(self, files: Optional[Iterable[SourceFile]] = None) -> None:
        self._files: Dict[str, SourceFile] = {}
        for source in files or ():
            self._files[source.name.upper()] = source

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, name: str, content: str, path: Optional[str] = None) -> SourceFile:
        """Add or replace member *name*."""
        source = SourceFile(name=name, content=content, path=path)
        self._files[name.upper()] = source
        logger.debug("Catalog: added %s (%d lines)", name, len(source.lines))
        return source

    def remove(self, name: str) -> bool:
        return self._files.pop(name.upper(), None) is not None

    def clear(self) -> None:
        self._files.clear()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, name: str) -> Optional[SourceFile]:
        """Exact (case-insensitive) lookup."""
        return self._files.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._files

    def find(self, name: str) -> Optional[SourceFile]:
        """Resolve *name* using the fallback chain described above."""
        key = name.strip().upper()
        if not key:
            return None

        exact = self._files.get(key)
        if exact is not None:
            return exact

        stem = normalize_name(key)
        if stem != key and stem in self._files:
            logger.debug("Catalog: %s resolved without extension", name)
            return self._files[stem]

        for ext in LIBRARY_EXTENSIONS:
            candidate = self._files.get(stem + ext)
            if candidate is not None:
                logger.debug("Catalog: %s resolved as %s", name, candidate.name)
                return candidate

        for source in self._files.values():
            if normalize_name(source.name) == stem:
                logger.debug("Catalog: %s resolved by stem to %s", name, source.name)
                return source

        partial = [s for k, s in self._files.items() if stem in k]
        if len(partial) == 1:
            logger.debug("Catalog: %s resolved by partial match to %s", name, partial[0].name)
            return partial[0]
        return None

    def list(self) -> List[SourceFile]:
        return list(self._files.values())

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_directory(cls, directory: str, recursive: bool = False) -> "FileCatalog":
        """
        Load every regular file under *directory*.

        Members are named after the file name (with extension), so both
        ``COPY PAYLIB`` and ``COPY PAYLIB.MAC`` find ``PAYLIB.mac``.
        """
        root = Path(directory)
        catalog = cls()
        if not root.is_dir():
            logger.warning("Library directory not found: %s", directory)
            return catalog

        paths = root.rglob("*") if recursive else root.iterdir()
        for path in sorted(paths):
            if not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                logger.error("Failed to read library member %s: %s", path, exc)
                continue
            catalog.add(path.name, content, path=str(path))

        logger.info("Loaded %d library members from %s", len(catalog), directory)
        return catalog

    def __repr__(self) -> str:
        return f"FileCatalog({sorted(s.name for s in self._files.values())})"
