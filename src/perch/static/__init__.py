"""Static file pipeline: path resolution, metadata cache, compression.

``perch.middleware.StaticFiles`` ties these together; the pieces are
importable on their own for tooling that needs the same resolution
rules (asset manifests, template URL helpers).
"""

from perch.static.cache import FileCache, FileEntry
from perch.static.compression import is_compressible, should_compress
from perch.static.config import StaticConfig, StaticDirectory
from perch.static.paths import ResolvedFile, normalize_request_path, resolve

__all__ = [
    "FileCache",
    "FileEntry",
    "ResolvedFile",
    "StaticConfig",
    "StaticDirectory",
    "is_compressible",
    "normalize_request_path",
    "resolve",
    "should_compress",
]
