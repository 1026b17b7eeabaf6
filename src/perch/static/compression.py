"""Gzip decisions and streamed gzip encoding for static responses.

Text-like formats shrink well under gzip. Images, audio, video, fonts
and archives are already compressed, so gzipping them only burns CPU.
"""

import zlib
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing

# Exact types outside ``text/*`` that compress well
COMPRESSIBLE_TYPES: frozenset[str] = frozenset(
    {
        "application/javascript",
        "application/ecmascript",
        "application/json",
        "application/ld+json",
        "application/manifest+json",
        "application/xml",
        "application/xhtml+xml",
        "application/rss+xml",
        "application/atom+xml",
        "application/x-javascript",
        "application/x-www-form-urlencoded",
        "application/graphql",
        "application/wasm",
        "application/x-sh",
        "application/x-tex",
        "application/rtf",
        "application/postscript",
        "application/vnd.ms-fontobject",
        "font/otf",
        "font/ttf",
        "image/svg+xml",
        "image/x-icon",
        "image/vnd.microsoft.icon",
        "image/bmp",
    }
)

# Structured-syntax suffixes (RFC 6839) that mark a text-based format
COMPRESSIBLE_SUFFIXES: tuple[str, ...] = ("+json", "+xml", "+text")

# text/* types that are streamed incrementally and must not be buffered
_NEVER_COMPRESS: frozenset[str] = frozenset({"text/event-stream"})

GZIP_WBITS = 16 + zlib.MAX_WBITS


def is_compressible(content_type: str) -> bool:
    """True if *content_type* is worth gzip-encoding.

    Parameters such as ``; charset=utf-8`` are ignored.
    """
    mime = content_type.split(";", 1)[0].strip().lower()
    if not mime or mime in _NEVER_COMPRESS:
        return False
    if mime.startswith("text/"):
        return True
    if mime in COMPRESSIBLE_TYPES:
        return True
    return mime.endswith(COMPRESSIBLE_SUFFIXES)


def should_compress(
    content_type: str, size: int, *, enabled: bool = True, min_size: int = 1024
) -> bool:
    """Gzip is enabled, the file is larger than *min_size*, and the type compresses."""
    return enabled and size > min_size and is_compressible(content_type)


async def gzip_chunks(
    chunks: AsyncGenerator[bytes, None], level: int = 6
) -> AsyncIterator[bytes]:
    """Gzip-encode an async byte stream without buffering it whole.

    Empty compressor output is skipped; the gzip trailer is emitted once
    the source is exhausted. Closing this stream closes *chunks*.
    """
    compressor = zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS)
    async with aclosing(chunks) as source:
        async for chunk in source:
            data = compressor.compress(chunk)
            if data:
                yield data
    tail = compressor.flush()
    if tail:
        yield tail
