"""HTTP responses with a chainable .with_*() transformation API.

Each transformation returns a new response. Immutable by convention,
built incrementally by design.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Mapping
from dataclasses import dataclass, replace


def _without(headers: tuple[tuple[str, str], ...], name: str) -> tuple[tuple[str, str], ...]:
    lowered = name.lower()
    return tuple((k, v) for k, v in headers if k.lower() != lowered)


def _with_vary(
    headers: tuple[tuple[str, str], ...], field_name: str
) -> tuple[tuple[str, str], ...]:
    """Merge *field_name* into the (single) ``Vary`` header."""
    members: list[str] = []
    for name, value in headers:
        if name.lower() == "vary":
            members.extend(part.strip() for part in value.split(",") if part.strip())
    if "*" in members or any(m.lower() == field_name.lower() for m in members):
        return headers
    members.append(field_name)
    return (*_without(headers, "vary"), ("Vary", ", ".join(members)))


def get_header(headers: tuple[tuple[str, str], ...], name: str) -> str | None:
    """Return the first value of *name* (case-insensitive), or ``None``."""
    lowered = name.lower()
    for key, value in headers:
        if key.lower() == lowered:
            return value
    return None


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response with a fully buffered body.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def without_header(self, name: str) -> Response:
        """Return a new Response with every *name* header removed."""
        return replace(self, headers=_without(self.headers, name))

    def with_vary(self, field_name: str) -> Response:
        """Return a new Response whose ``Vary`` header lists *field_name*."""
        return replace(self, headers=_with_vary(self.headers, field_name))

    def header(self, name: str) -> str | None:
        """First value of header *name*, or ``None``."""
        return get_header(self.headers, name)

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


@dataclass(frozen=True, slots=True)
class StreamingResponse:
    """An HTTP response whose body is produced chunk by chunk.

    Headers are sent first, then each chunk as an ASGI body message with
    ``more_body=True``. An explicit ``Content-Length`` header is sent
    as-is; without one the server frames the body itself.

    Supports the same ``.with_*()`` chainable API as ``Response``
    so middleware can modify headers/status without knowing the
    response is streamed.
    """

    chunks: Iterable[bytes] | AsyncIterator[bytes] = ()
    status: int = 200
    content_type: str = "application/octet-stream"
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> StreamingResponse:
        """Return a new StreamingResponse with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> StreamingResponse:
        """Return a new StreamingResponse with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> StreamingResponse:
        """Return a new StreamingResponse with additional headers."""
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def with_content_type(self, content_type: str) -> StreamingResponse:
        """Return a new StreamingResponse with a different content type."""
        return replace(self, content_type=content_type)

    def without_header(self, name: str) -> StreamingResponse:
        """Return a new StreamingResponse with every *name* header removed."""
        return replace(self, headers=_without(self.headers, name))

    def with_vary(self, field_name: str) -> StreamingResponse:
        """Return a new StreamingResponse whose ``Vary`` header lists *field_name*."""
        return replace(self, headers=_with_vary(self.headers, field_name))

    def with_chunks(self, chunks: Iterable[bytes] | AsyncIterator[bytes]) -> StreamingResponse:
        """Return a new StreamingResponse with a replaced body."""
        return replace(self, chunks=chunks)

    def header(self, name: str) -> str | None:
        """First value of header *name*, or ``None``."""
        return get_header(self.headers, name)
