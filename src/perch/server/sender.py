"""ASGI response sending — translates perch responses to ASGI messages.

Handles both buffered responses and streamed bodies (static files).
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator, Iterable
from contextlib import aclosing

from perch._internal.asgi import Send
from perch.http.response import Response, StreamingResponse

logger = logging.getLogger("perch.server")


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _encode_headers(
    content_type: str | None, headers: tuple[tuple[str, str], ...]
) -> list[tuple[bytes, bytes]]:
    raw_headers: list[tuple[bytes, bytes]] = []
    if content_type is not None:
        raw_headers.append((b"content-type", content_type.encode("latin-1")))
    for name, value in headers:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return raw_headers


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Translate a buffered Response into ASGI send() calls.

    ``Content-Length`` always reflects the body; for ``HEAD`` it is the
    length the body would have had.
    """
    allowed = _body_allowed(response.status)
    raw_headers = _encode_headers(
        response.content_type if allowed else None,
        tuple((k, v) for k, v in response.headers if k.lower() != "content-length"),
    )

    body = response.body_bytes if allowed else b""
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )


async def _send_chunks(chunks: Iterable[bytes] | AsyncIterator[bytes], send: Send) -> None:
    if isinstance(chunks, AsyncIterator):
        async for chunk in chunks:
            if chunk:
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
    else:
        for chunk in chunks:
            if chunk:
                await send({"type": "http.response.body", "body": chunk, "more_body": True})


async def send_streaming_response(
    response: StreamingResponse,
    send: Send,
    *,
    head: bool = False,
) -> None:
    """Send a streamed body chunk by chunk.

    Headers go out first, then each non-empty chunk with
    ``more_body=True``, then an empty closing message. Headers are sent
    as given: a ``Content-Length`` set by the producer is kept, and
    without one the server frames the body.

    A failure while producing chunks is logged and re-raised; the
    status line is already on the wire, so the server has to abort the
    connection.
    """
    allowed = _body_allowed(response.status)
    raw_headers = _encode_headers(response.content_type if allowed else None, response.headers)

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )

    if allowed and not head:
        try:
            chunks = response.chunks
            if isinstance(chunks, AsyncGenerator):
                # Closed even when send() fails mid-stream
                async with aclosing(chunks) as source:
                    await _send_chunks(source, send)
            else:
                await _send_chunks(chunks, send)
        except Exception:
            logger.exception("Response body failed mid-stream (status %d)", response.status)
            raise

    await send({"type": "http.response.body", "body": b"", "more_body": False})
