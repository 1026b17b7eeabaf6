"""Handler return-value conversion.

Route and error handlers may return a response object, ``str``,
``bytes``, or a ``(body, status)`` tuple.
"""

from typing import Any

from perch.http.response import Response, StreamingResponse


def to_response(result: Any) -> Response | StreamingResponse:
    """Convert a handler return value into a response."""
    if isinstance(result, (Response, StreamingResponse)):
        return result

    if isinstance(result, tuple) and len(result) == 2 and isinstance(result[1], int):
        body, status = result
        return to_response(body).with_status(status)

    if isinstance(result, bytes):
        return Response(body=result, content_type="application/octet-stream")

    if isinstance(result, str):
        return Response(body=result)

    if result is None:
        return Response(body="", status=204)

    msg = (
        f"Handler returned {type(result).__name__}; expected Response, "
        "StreamingResponse, str, bytes, or (body, status)"
    )
    raise TypeError(msg)
