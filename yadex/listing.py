"""Directory enumeration and the per-entry model handed to the index template."""

from __future__ import annotations

import asyncio
import logging
import os
import stat
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import quote

from markupsafe import Markup, escape

from .errors import NotFound

logger = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class DirectoryEntryView:
    """One listed entry.

    ``name`` is the filename for display (undecodable bytes replaced) and is
    escaped by the template. ``href`` is already percent-encoded and
    attribute-escaped, with a trailing ``/`` for directories.
    """

    name: str
    is_dir: bool
    size: int
    href: Markup
    datetime: Optional[str]

    def to_template_data(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "is_dir": self.is_dir,
            "size": self.size,
            "href": self.href,
            "datetime": self.datetime,
        }


@dataclass(frozen=True)
class IndexRenderModel:
    entries: Tuple[DirectoryEntryView, ...]
    maybe_truncated: bool
    path: str = "/"

    def to_template_data(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "entries": [entry.to_template_data() for entry in self.entries],
            "maybe_truncated": self.maybe_truncated,
        }


def entry_href(raw_name: str, is_dir: bool) -> Markup:
    """Return the link target for ``raw_name`` relative to its directory.

    Percent-encoding keeps the name a single path segment; the attribute
    escape on top keeps it inert inside ``href="..."``.
    """
    encoded = quote(raw_name, safe="", errors="surrogateescape")
    if is_dir:
        encoded += "/"
    return escape(encoded)


def display_name(raw_name: str) -> str:
    return os.fsencode(raw_name).decode("utf-8", errors="replace")


def format_mtime(timestamp: float) -> Optional[str]:
    try:
        return datetime.fromtimestamp(timestamp).strftime(DATETIME_FORMAT)
    except (OverflowError, OSError, ValueError):
        return None


def _stat_entry(entry: os.DirEntry) -> os.stat_result:
    return entry.stat()


def build_entry_view(entry: os.DirEntry) -> Optional[DirectoryEntryView]:
    """Build the view for ``entry``, or ``None`` if its metadata is unreadable."""
    try:
        info = _stat_entry(entry)
    except OSError as exc:
        # Skipped entries are not reported to the client.
        logger.debug("Skipping %r: %s", entry.name, exc)
        return None

    is_dir = stat.S_ISDIR(info.st_mode)
    return DirectoryEntryView(
        name=display_name(entry.name),
        is_dir=is_dir,
        size=info.st_size,
        href=entry_href(entry.name, is_dir),
        datetime=format_mtime(info.st_mtime),
    )


_END = object()


class DirectoryStream:
    """A ``scandir`` iterator read from worker threads one entry at a time.

    The lock serialises reads against ``close`` so a request cancelled while
    a read is in flight closes the handle only after that read returns.
    """

    def __init__(self, path: Path):
        self.path = path
        self._scanner = os.scandir(path)
        self._lock = threading.Lock()

    def read_entry(self) -> Union[DirectoryEntryView, None, object]:
        """Return the next entry's view, ``None`` if it was skipped, or ``_END``."""
        with self._lock:
            entry = next(self._scanner, None)
        if entry is None:
            return _END
        return build_entry_view(entry)

    def close(self) -> None:
        with self._lock:
            self._scanner.close()


def open_directory(root: Path, request_path: str) -> DirectoryStream:
    """Open ``request_path`` below ``root``.

    Raises:
        NotFound: If the path leaves ``root``, does not exist or is not a
            readable directory
    """
    try:
        root = root.resolve()
        candidate = (root / request_path.lstrip("/")).resolve()
        candidate.relative_to(root)
        return DirectoryStream(candidate)
    except (OSError, ValueError) as exc:
        raise NotFound(request_path) from exc


async def list_directory(root: Path, request_path: str, limit: int) -> IndexRenderModel:
    """Enumerate up to ``limit`` entries (0 means no bound) of a directory.

    Entries keep the order the filesystem yields them; entries whose metadata
    cannot be read are skipped and do not count towards ``limit``.
    ``maybe_truncated`` is set when ``limit`` entries were returned, i.e. more
    entries may exist.

    Args:
        root: Directory that request paths are confined to
        request_path: Decoded URL path of the directory
        limit: Maximum number of entries to return
    """
    bound = limit or sys.maxsize
    stream = await asyncio.to_thread(open_directory, root, request_path)

    entries: List[DirectoryEntryView] = []
    try:
        while len(entries) < bound:
            try:
                result = await asyncio.to_thread(stream.read_entry)
            except OSError as exc:
                raise NotFound(request_path) from exc
            if result is _END:
                break
            if result is not None:
                entries.append(result)
    finally:
        await asyncio.to_thread(stream.close)

    return IndexRenderModel(
        entries=tuple(entries),
        maybe_truncated=limit > 0 and len(entries) == limit,
        path=display_name(request_path),
    )
