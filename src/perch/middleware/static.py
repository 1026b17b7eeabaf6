"""Static file serving middleware.

Serves files from one or more directories, each optionally mounted
under a URL prefix, with Last-Modified/ETag validation, Cache-Control,
and on-the-fly gzip for compressible types.

Falls through to the next handler for other methods, unknown paths,
directories, and traversal attempts.
"""

import logging

from perch.errors import PathTraversalError
from perch.http.conditional import http_date
from perch.http.request import Request
from perch.http.response import StreamingResponse
from perch.middleware.protocol import AnyResponse, Next
from perch.static.cache import FileCache, FileEntry
from perch.static.compression import gzip_chunks, should_compress
from perch.static.config import StaticConfig
from perch.static.paths import (
    find_sync,
    is_directory_path,
    normalize_request_path,
    normalize_url_path,
)
from perch.static.streams import file_chunks

logger = logging.getLogger("perch.static")


class StaticFiles:
    """Middleware that serves static files from prioritized directories.

    Directories are tried first to last; the first one holding a regular
    file for the request path serves it. Resolved paths are cached for
    the life of the middleware and revalidated against the file's
    modification time on every request.

    Security: request paths are normalized with POSIX semantics and every
    candidate must stay under its directory root. A path that escapes is
    never served and no other directory is tried.

    Usage::

        app.add_middleware(StaticFiles(StaticConfig(
            dirs=(
                StaticDirectory("./public"),
                StaticDirectory("./node_modules/htmx.org/dist", mount_path="/vendor"),
            ),
            max_age=3600,
        )))
    """

    __slots__ = ("cache", "config")

    def __init__(self, config: StaticConfig) -> None:
        self.config = config
        self.cache = FileCache(config.max_cache_entries)

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        """Serve a static file or fall through."""
        if request.method not in ("GET", "HEAD"):
            return await next(request)

        request_path = normalize_request_path(request.path)
        if is_directory_path(request_path):
            logger.debug("Static fall-through for %s: directory path", request.path)
            return await next(request)

        try:
            entry = await self.cache.get_or_refresh(request_path, self.config.dirs)
        except PathTraversalError as exc:
            logger.warning("Rejected static path %r: %s", request.path, exc)
            return await next(request)

        if entry is None:
            logger.debug("Static fall-through for %s: no file", request.path)
            return await next(request)

        return self._respond(request, entry)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _respond(self, request: Request, entry: FileEntry) -> StreamingResponse:
        """Build the 200/304 response for a resolved file."""
        config = self.config
        etag = entry.etag if config.etag else None

        response = StreamingResponse(chunks=(), status=200, content_type=entry.content_type)
        response = response.with_header("Last-Modified", http_date(entry.modified_time))
        if etag is not None:
            response = response.with_header("ETag", etag)
        if config.enable_gzip:
            response = response.with_vary("Accept-Encoding")

        if request.is_fresh(entry.modified_time, etag):
            return response.with_status(304)

        response = response.with_header("Content-Length", str(entry.size)).with_header(
            "Cache-Control", config.cache_control_header
        )

        if request.method == "HEAD":
            return response

        body = file_chunks(entry.on_disk_path, config.chunk_size)

        compress = should_compress(
            entry.content_type,
            entry.size,
            enabled=config.enable_gzip,
            min_size=config.gzip_min_size,
        )
        if compress and request.accepts_encoding("gzip"):
            return (
                response.without_header("Content-Length")
                .with_header("Content-Encoding", "gzip")
                .with_chunks(gzip_chunks(body, config.gzip_level))
            )
        return response.with_chunks(body)

    def cache_busted_path(self, path: str) -> str:
        """Append ``?mtime=<ms>`` to *path* so each file revision gets a new URL.

        *path* is the URL path as it appears in a link, so it is
        percent-decoded before lookup.

        Uses the cached entry when the path has been served already,
        otherwise stats the file directly (blocking). Unknown files come
        back unchanged. Never populates the cache.
        """
        key = normalize_url_path(path)
        entry = self.cache.get(key)
        if entry is not None:
            return f"{path}?mtime={entry.mtime_ms}"

        found = find_sync(key, self.config.dirs)
        if found is None:
            return path
        return f"{path}?mtime={found.stat.st_mtime_ns // 1_000_000}"

    get_cache_busted_path = cache_busted_path
