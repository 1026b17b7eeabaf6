"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> AnyResponse

Built-in middleware:
    StaticFiles -- Serve files from prioritized, optionally mounted directories
"""

from perch.middleware.protocol import AnyResponse, Middleware, Next
from perch.middleware.static import StaticFiles

__all__ = [
    "AnyResponse",
    "Middleware",
    "Next",
    "StaticFiles",
]
