"""Metadata cache for resolved static files.

Maps the normalized request path to a ``FileEntry`` so the mount walk
and content-type lookup run once per path. Every read still re-stats
the file and swaps in a fresh entry when the modification time moved.

Thread safety:
    Entries are frozen; a refresh builds a new entry and replaces the
    map slot under a short lock. Two concurrent first requests for the
    same path both resolve and both store equal entries; the last write
    wins, which is harmless.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import threading
from collections import OrderedDict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

import anyio

from perch.errors import StaleFileError
from perch.static.config import StaticDirectory
from perch.static.paths import resolve

logger = logging.getLogger("perch.static")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(path: str) -> str:
    """MIME type from the file extension, ``application/octet-stream`` if unknown."""
    content_type, _ = mimetypes.guess_type(path)
    return content_type or DEFAULT_CONTENT_TYPE


@dataclass(frozen=True, slots=True)
class FileEntry:
    """Cached metadata for one static file."""

    on_disk_path: str
    modified_time: datetime
    mtime_ns: int
    size: int
    content_type: str
    stat: os.stat_result

    @classmethod
    def from_stat(cls, on_disk_path: str, stat: os.stat_result) -> FileEntry:
        return cls(
            on_disk_path=on_disk_path,
            modified_time=datetime.fromtimestamp(stat.st_mtime, tz=UTC),
            mtime_ns=stat.st_mtime_ns,
            size=stat.st_size,
            content_type=guess_content_type(on_disk_path),
            stat=stat,
        )

    def refreshed(self, stat: os.stat_result) -> FileEntry:
        """A new entry for the same file with metadata from *stat*."""
        return FileEntry.from_stat(self.on_disk_path, stat)

    def is_stale(self, stat: os.stat_result) -> bool:
        return stat.st_mtime_ns != self.mtime_ns

    @property
    def mtime_ms(self) -> int:
        """Modification time in whole milliseconds since the epoch."""
        return self.mtime_ns // 1_000_000

    @property
    def etag(self) -> str:
        """Weak validator built from size and modification time."""
        return f'W/"{self.size:x}-{self.mtime_ms:x}"'


class FileCache:
    """Request path -> ``FileEntry``.

    Unbounded by default: the set of keys is limited to paths that
    resolved to real files. ``max_entries`` turns it into an LRU cache.
    """

    __slots__ = ("_entries", "_lock", "max_entries")

    def __init__(self, max_entries: int | None = None) -> None:
        self.max_entries = max_entries
        self._entries: OrderedDict[str, FileEntry] = OrderedDict()
        self._lock = threading.Lock()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> FileEntry | None:
        entry = self._entries.get(key)
        if entry is not None and self.max_entries is not None:
            with self._lock:
                if key in self._entries:
                    self._entries.move_to_end(key)
        return entry

    def put(self, key: str, entry: FileEntry) -> None:
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("Evicted %s from static file cache", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def get_or_refresh(
        self, key: str, mounts: Iterable[StaticDirectory]
    ) -> FileEntry | None:
        """Return the current entry for *key*, resolving it on a miss.

        Returns ``None`` when no mount has a regular file for *key*.

        Raises:
            PathTraversalError: From resolution on a miss.
            StaleFileError: *key* was cached but its file can no longer be
                stat'ed. The entry is kept, so a restored file is served
                again on a later request.
        """
        entry = self.get(key)

        if entry is None:
            resolved = await resolve(key, mounts)
            if resolved is None:
                return None
            entry = FileEntry.from_stat(resolved.on_disk_path, resolved.stat)
            logger.debug("Cached %s -> %s (%s)", key, entry.on_disk_path, entry.content_type)
            self.put(key, entry)
            return entry

        try:
            current = await anyio.Path(entry.on_disk_path).stat()
        except OSError as exc:
            raise StaleFileError(key, entry.on_disk_path) from exc

        if entry.is_stale(current):
            entry = entry.refreshed(current)
            logger.debug("Refreshed %s after modification", key)
            self.put(key, entry)
        return entry
