"""Shared fixtures for perch tests."""

import os
from collections.abc import Callable
from pathlib import Path

import pytest

from perch.app import App
from perch.http.headers import Headers
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import AnyResponse, Next
from perch.middleware.static import StaticFiles
from perch.static.config import StaticConfig, StaticDirectory

# Fixed modification time: 2024-01-02T03:04:05.678Z
FIXED_MTIME_NS = 1_704_164_645_678_000_000

CSS_2000 = ("body { color: red; }\n" * 100)[:2000]


def set_mtime(path: Path, mtime_ns: int = FIXED_MTIME_NS) -> None:
    os.utime(path, ns=(mtime_ns, mtime_ns))


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """A public directory with text, binary and nested files."""
    public = tmp_path / "public"
    public.mkdir()

    (public / "style.css").write_text("body { color: red; }")
    (public / "big.css").write_text(CSS_2000)
    (public / "small.css").write_text("a" * 500)
    (public / "app.js").write_text("console.log('hello');")
    (public / "image.png").write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 3000)
    (public / "data.xyz123").write_bytes(b"\x00\x01\x02\x03")
    (public / "index.html").write_text("<h1>Home</h1>")

    css = public / "css"
    css.mkdir()
    (css / "main.css").write_text("h1 { font-size: 2em; }")

    (public / "docs").mkdir()

    # Outside the root: must never be served
    (tmp_path / "secret.txt").write_text("top secret")

    for path in public.rglob("*"):
        if path.is_file():
            set_mtime(path)
    return public


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a Request without going through ASGI."""

    def _make(method: str = "GET", path: str = "/", headers: dict[str, str] | None = None) -> Request:
        return Request(method=method, path=path, headers=Headers.from_pairs(headers))

    return _make


async def fallthrough(request: Request, next: Next) -> AnyResponse:  # noqa: ARG001
    """Terminal middleware that marks requests StaticFiles declined."""
    return Response(body="fell through", status=404)


def make_app(*dirs: StaticDirectory | str | Path, **options: object) -> tuple[App, StaticFiles]:
    """App with StaticFiles in front of the ``fallthrough`` marker."""
    static = StaticFiles(StaticConfig(dirs=dirs, **options))  # type: ignore[arg-type]
    app = App()
    app.add_middleware(static)
    app.add_middleware(fallthrough)
    return app, static
