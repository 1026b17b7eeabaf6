"""Immutable HTTP request.

Frozen metadata plus the two questions a static file server asks of a
request: is the client's cached copy still fresh, and which
content-codings does it accept.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from perch.http.conditional import is_fresh
from perch.http.encoding import accepts_encoding
from perch.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is percent-decoded, as ASGI delivers it in ``scope["path"]``.
    """

    method: str
    path: str
    headers: Headers
    http_version: str = "1.1"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None

    # -- Negotiation --

    def accepts_encoding(self, coding: str) -> bool:
        """True if the client accepts *coding* (``Accept-Encoding``)."""
        return accepts_encoding(self.headers.get_tokens("accept-encoding"), coding)

    def is_fresh(self, last_modified: datetime, etag: str | None = None) -> bool:
        """True if the conditional headers match the current representation."""
        return is_fresh(self.headers, last_modified, etag)

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: dict[str, Any]) -> Request:
        """Create a Request from an ASGI HTTP scope."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
        )
