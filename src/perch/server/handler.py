"""ASGI handler — translates ASGI scope/messages to perch types.

The only component that touches raw ASGI directly. Converts scope dicts
to typed Request objects, dispatches through middleware and routing,
and sends the response back through ASGI send().
"""

from collections.abc import Callable
from typing import Any

from perch._internal.asgi import Scope, Send
from perch._internal.invoke import invoke
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import StreamingResponse
from perch.middleware.protocol import AnyResponse, Next
from perch.routing.router import Router
from perch.server.errors import handle_http_error, handle_internal_error
from perch.server.results import to_response
from perch.server.sender import send_response, send_streaming_response


def build_pipeline(
    router: Router, middleware: tuple[Callable[..., Any], ...]
) -> Next:
    """Wrap *middleware* (first = outermost) around route dispatch."""

    async def dispatch(req: Request) -> AnyResponse:
        route = router.match(req.method, req.path)
        if route.takes_request:
            result = await invoke(route.handler, req)
        else:
            result = await invoke(route.handler)
        return to_response(result)

    handler: Next = dispatch
    for mw in reversed(middleware):

        async def make_next(req: Request, _mw: Any = mw, _next: Next = handler) -> AnyResponse:
            return await _mw(req, _next)

        handler = make_next
    return handler


async def handle_request(
    scope: Scope,
    send: Send,
    *,
    pipeline: Next,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope)

    try:
        response = await pipeline(request)
    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)

    head = request.method == "HEAD"
    if isinstance(response, StreamingResponse):
        await send_streaming_response(response, send, head=head)
    else:
        await send_response(response, send, head=head)
