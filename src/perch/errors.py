"""Perch exception hierarchy.

Shared across the static pipeline, App, handler, and middleware so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when app or static-file configuration is invalid.

    Raised at construction time, never while serving a request.
    """


class PathTraversalError(PerchError):
    """A request path resolved outside the root of a static directory.

    ``StaticFiles`` catches this and falls through to the next handler.
    Resolution stops at the first mount that rejects the path.
    """

    def __init__(self, request_path: str, root: str) -> None:
        super().__init__(f"{request_path!r} escapes static root {root!r}")
        self.request_path = request_path
        self.root = root


class StaleFileError(PerchError):
    """A previously cached static file can no longer be stat'ed.

    Propagates out of ``StaticFiles`` so a vanished file shows up as a
    failed request instead of a silent fall-through.
    """

    def __init__(self, request_path: str, on_disk_path: str) -> None:
        super().__init__(f"cached file for {request_path!r} is gone: {on_disk_path}")
        self.request_path = request_path
        self.on_disk_path = on_disk_path


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by route dispatch, middleware, or handlers. The ASGI handler
    catches these and dispatches to the matching ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — nothing handled the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """405 — route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
