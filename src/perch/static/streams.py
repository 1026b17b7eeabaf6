"""Async file body streaming."""

from collections.abc import AsyncIterator

import anyio

DEFAULT_CHUNK_SIZE = 64 * 1024


async def file_chunks(path: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield the bytes of *path* in ``chunk_size`` pieces.

    The file is opened when iteration starts, so open/read errors surface
    to whoever consumes the body (the response sender), not to the code
    that built the response.
    """
    async with await anyio.open_file(path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            yield chunk
