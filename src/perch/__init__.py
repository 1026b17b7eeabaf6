"""Perch — static file serving for ASGI applications.

Serves files from prioritized, optionally mounted directories with
Last-Modified/ETag validation, Cache-Control, and gzip for text formats.
Everything it cannot serve falls through to the next handler.

Basic usage::

    from perch import App, StaticConfig, StaticDirectory, StaticFiles

    static = StaticFiles(StaticConfig(
        dirs=(StaticDirectory("./public"), StaticDirectory("./dist", mount_path="/assets")),
        max_age=3600,
    ))

    app = App()
    app.add_middleware(static)

    @app.route("/")
    def index():
        return f'<link rel="stylesheet" href="{static.cache_busted_path("/site.css")}">'

Run with any ASGI server, e.g. ``uvicorn module:app``.
"""

__version__ = "0.1.0"
__all__ = [
    "AnyResponse",
    "App",
    "AppConfig",
    "ConfigurationError",
    "HTTPError",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "PathTraversalError",
    "PerchError",
    "Request",
    "Response",
    "StaleFileError",
    "StaticConfig",
    "StaticDirectory",
    "StaticFiles",
    "StreamingResponse",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "StreamingResponse"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("AnyResponse", "Middleware", "Next"):
        from perch.middleware import protocol as _mw

        return getattr(_mw, name)

    if name == "StaticFiles":
        from perch.middleware.static import StaticFiles

        return StaticFiles

    if name in ("StaticConfig", "StaticDirectory"):
        from perch.static import config as _static_config

        return getattr(_static_config, name)

    if name in (
        "ConfigurationError",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "PathTraversalError",
        "PerchError",
        "StaleFileError",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
