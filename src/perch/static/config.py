"""Static file serving configuration.

``StaticDirectory`` is one mount (root directory plus optional URL
prefix); ``StaticConfig`` holds the ordered mounts and the response
options. Both are frozen and validated at construction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from perch.errors import ConfigurationError

logger = logging.getLogger("perch.static")


def _normalize_mount_path(mount_path: str | None) -> str | None:
    """``"assets/"`` -> ``"/assets"``; ``"/"``, ``""`` and ``None`` -> ``None``."""
    if mount_path is None:
        return None
    stripped = mount_path.strip("/")
    return "/" + stripped if stripped else None


@dataclass(frozen=True, slots=True)
class StaticDirectory:
    """A directory on disk, optionally mounted under a URL prefix.

    ``root`` is the absolute, forward-slash form of ``path`` and is what
    the traversal guard compares against. A root that does not exist yet
    (build output, uploads) is accepted with a warning and simply misses
    until it appears::

        StaticDirectory("./public")
        StaticDirectory("./build/assets", mount_path="/assets")
    """

    path: str | Path
    mount_path: str | None = None
    root: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        resolved = Path(self.path).resolve()
        if not resolved.exists():
            logger.warning("Static directory %s does not exist yet", resolved)
        elif not resolved.is_dir():
            msg = f"Static directory path is not a directory: {self.path}"
            raise ConfigurationError(msg)
        object.__setattr__(self, "root", resolved.as_posix())
        object.__setattr__(self, "mount_path", _normalize_mount_path(self.mount_path))


def _coerce_dirs(dirs: object) -> tuple[StaticDirectory, ...]:
    if isinstance(dirs, (str, Path, StaticDirectory)):
        dirs = (dirs,)
    result: list[StaticDirectory] = []
    for item in dirs:  # type: ignore[attr-defined]
        if isinstance(item, StaticDirectory):
            result.append(item)
        elif isinstance(item, (str, Path)):
            result.append(StaticDirectory(item))
        else:
            msg = f"Expected StaticDirectory, str or Path in dirs, got {type(item).__name__}"
            raise ConfigurationError(msg)
    return tuple(result)


@dataclass(frozen=True, slots=True)
class StaticConfig:
    """Options for ``StaticFiles``. Immutable after creation.

    ``dirs`` are consulted first to last; the first directory holding a
    regular file for the request path wins. Plain paths are accepted and
    wrapped in ``StaticDirectory``::

        StaticConfig(
            dirs=("./public", StaticDirectory("./vendor", mount_path="/vendor")),
            max_age=3600,
        )
    """

    dirs: tuple[StaticDirectory, ...]
    enable_gzip: bool = True
    max_age: int = 0
    cache_control: str | None = None  # Overrides max_age when set
    etag: bool = True

    # Compression
    gzip_min_size: int = 1024  # Files must be strictly larger than this
    gzip_level: int = 6

    # Streaming
    chunk_size: int = 64 * 1024

    # Metadata cache bound; None keeps every resolved path for the process lifetime
    max_cache_entries: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "dirs", _coerce_dirs(self.dirs))
        if not self.dirs:
            msg = "StaticConfig needs at least one directory"
            raise ConfigurationError(msg)
        if self.max_age < 0:
            msg = f"max_age must be >= 0, got {self.max_age}"
            raise ConfigurationError(msg)
        if not 0 <= self.gzip_level <= 9:
            msg = f"gzip_level must be between 0 and 9, got {self.gzip_level}"
            raise ConfigurationError(msg)
        if self.chunk_size <= 0:
            msg = f"chunk_size must be positive, got {self.chunk_size}"
            raise ConfigurationError(msg)
        if self.max_cache_entries is not None and self.max_cache_entries <= 0:
            msg = f"max_cache_entries must be positive or None, got {self.max_cache_entries}"
            raise ConfigurationError(msg)

    @property
    def cache_control_header(self) -> str:
        """The ``Cache-Control`` value sent with every 200 response."""
        if self.cache_control is not None:
            return self.cache_control
        return f"public, max-age={self.max_age}"
