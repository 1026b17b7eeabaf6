"""Request-path resolution against the configured static directories.

All path arithmetic goes through ``posixpath`` so request paths and
cache keys look the same on every platform; ``os.path`` is never used
here.

Resolution, per request path:

1. Normalize the already percent-decoded path (ASGI decodes
   ``scope["path"]`` once). A path whose last segment is ``.`` names a
   directory and resolves to nothing.
2. Walk the mounts in order. A mount with a prefix only sees paths under
   that prefix, with the prefix removed.
3. Join onto the mount root. A candidate outside the root raises
   ``PathTraversalError`` and stops the walk.
4. Stat the candidate. Missing, unreadable, unrepresentable (embedded
   NUL) or non-regular files move on to the next mount; the first regular
   file wins.
"""

import logging
import os
import posixpath
import stat as stat_module
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

import anyio

from perch.errors import PathTraversalError
from perch.static.config import StaticDirectory

logger = logging.getLogger("perch.static")


@dataclass(frozen=True, slots=True)
class ResolvedFile:
    """A regular file found under one of the mounts."""

    on_disk_path: str
    stat: os.stat_result


def normalize_request_path(path: str) -> str:
    """Collapse ``.``/``..``/duplicate slashes in a decoded request *path*.

    *path* is never percent-decoded here: ASGI servers hand over
    ``scope["path"]`` already decoded, and decoding twice would map
    ``/a%2520b.txt`` onto ``a b.txt``.

    ``posixpath.normpath`` keeps a leading ``//``; it is folded to ``/``
    so the result can be used as a stable cache key.
    """
    path = path.replace("\\", "/")
    normalized = posixpath.normpath(path) if path else "."
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def normalize_url_path(url_path: str) -> str:
    """Percent-decode a URL path as written in a link, then normalize it.

    For paths that never went through an ASGI server, such as the ones
    templates pass to ``StaticFiles.cache_busted_path``.
    """
    return normalize_request_path(unquote(url_path))


def is_directory_path(normalized_path: str) -> bool:
    """True if the last segment of *normalized_path* is ``.``."""
    return posixpath.basename(normalized_path) == "."


def strip_mount_prefix(path: str, mount: StaticDirectory) -> str | None:
    """Return *path* relative to the mount's prefix, or ``None`` if outside it.

    Matching is per segment: ``/assets`` covers ``/assets`` and
    ``/assets/app.css`` but not ``/assets-old/app.css``.
    """
    prefix = mount.mount_path
    if prefix is None:
        return path
    if path == prefix:
        return ""
    if path.startswith(prefix + "/"):
        return path[len(prefix) :]
    return None


def join_under_root(root: str, relative: str) -> str:
    """Join *relative* onto *root* and normalize.

    Unlike ``posixpath.join``, an absolute *relative* does not replace
    the root: ``join_under_root("/srv", "/a.css") == "/srv/a.css"``.
    """
    return posixpath.normpath(f"{root}/{relative}")


def is_within_root(candidate: str, root: str) -> bool:
    """True if *candidate* is *root* itself or somewhere below it."""
    if root == "/":
        return candidate.startswith("/")
    return candidate == root or candidate.startswith(root + "/")


def _candidates(
    normalized_path: str, mounts: Iterable[StaticDirectory]
) -> Iterable[tuple[StaticDirectory, str]]:
    for mount in mounts:
        relative = strip_mount_prefix(normalized_path, mount)
        if relative is None:
            continue
        yield mount, join_under_root(mount.root, relative)


async def resolve(request_path: str, mounts: Iterable[StaticDirectory]) -> ResolvedFile | None:
    """Find the regular file serving *request_path*, or ``None``.

    Raises:
        PathTraversalError: The path escaped a mount root. No further
            mounts are tried.
    """
    normalized = normalize_request_path(request_path)
    if is_directory_path(normalized):
        return None

    for mount, candidate in _candidates(normalized, mounts):
        if not is_within_root(candidate, mount.root):
            raise PathTraversalError(request_path, mount.root)

        try:
            stat_result = await anyio.Path(candidate).stat()
        except (OSError, ValueError):
            continue

        if not stat_module.S_ISREG(stat_result.st_mode):
            continue

        logger.debug("Resolved %s -> %s", request_path, candidate)
        return ResolvedFile(on_disk_path=candidate, stat=stat_result)

    return None


def find_sync(request_path: str, mounts: Iterable[StaticDirectory]) -> ResolvedFile | None:
    """Blocking mount walk for building URLs outside a request.

    Same prefix handling as ``resolve`` but without the traversal guard:
    callers pass paths they control (template helpers, asset manifests),
    not client input.
    """
    normalized = normalize_request_path(request_path)
    if is_directory_path(normalized):
        return None

    for _mount, candidate in _candidates(normalized, mounts):
        try:
            stat_result = Path(candidate).stat()
        except (OSError, ValueError):
            continue
        if stat_module.S_ISREG(stat_result.st_mode):
            return ResolvedFile(on_disk_path=candidate, stat=stat_result)
    return None
