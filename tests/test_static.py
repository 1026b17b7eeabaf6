"""Tests for the static file serving middleware."""

import gzip
import logging
from pathlib import Path

import pytest
from conftest import CSS_2000, FIXED_MTIME_NS, make_app, set_mtime

from perch.app import App
from perch.middleware.static import StaticFiles
from perch.static.config import StaticConfig, StaticDirectory
from perch.testing import TestClient

LAST_MODIFIED = "Tue, 02 Jan 2024 03:04:05 GMT"


# ------------------------------------------------------------------
# Serving
# ------------------------------------------------------------------


class TestServing:
    async def test_serves_css(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/style.css")
        assert response.status == 200
        assert "text/css" in response.content_type
        assert response.text == "body { color: red; }"
        assert response.header("content-length") == "20"

    async def test_nested_file(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/css/main.css")
        assert response.status == 200
        assert response.text == "h1 { font-size: 2em; }"

    async def test_binary_file(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/image.png")
        assert response.status == 200
        assert response.content_type == "image/png"
        assert response.body.startswith(b"\x89PNG")

    async def test_unknown_extension_is_octet_stream(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/data.xyz123")
        assert response.content_type == "application/octet-stream"
        assert response.body == b"\x00\x01\x02\x03"

    async def test_query_string_is_ignored(self, static_dir: Path) -> None:
        app, static = make_app(static_dir)
        busted = static.cache_busted_path("/style.css")
        async with TestClient(app) as client:
            response = await client.get(busted)
        assert response.status == 200
        assert response.text == "body { color: red; }"

    async def test_percent_encoded_path(self, static_dir: Path) -> None:
        (static_dir / "hello world.txt").write_text("hi")
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/hello%20world.txt")
        assert response.status == 200
        assert response.text == "hi"

    async def test_path_is_decoded_once(self, static_dir: Path) -> None:
        (static_dir / "a%20b.txt").write_text("literal percent")
        (static_dir / "a b.txt").write_text("space")
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            literal = await client.get("/a%2520b.txt")
            spaced = await client.get("/a%20b.txt")
        assert literal.text == "literal percent"
        assert spaced.text == "space"

    async def test_decoded_scope_path(self, static_dir: Path) -> None:
        (static_dir / "a%20b.txt").write_text("literal percent")
        app, _ = make_app(static_dir)
        messages: list[dict] = []

        async def receive() -> dict:
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message: dict) -> None:
            messages.append(message)

        scope = {
            "type": "http",
            "method": "GET",
            "path": "/a%20b.txt",
            "raw_path": b"/a%2520b.txt",
            "query_string": b"",
            "headers": [],
        }
        await app(scope, receive, send)

        assert messages[0]["status"] == 200
        assert b"".join(m.get("body", b"") for m in messages[1:]) == b"literal percent"

    async def test_directory_created_after_startup(self, tmp_path: Path) -> None:
        build = tmp_path / "build"
        app, _ = make_app(build)
        async with TestClient(app) as client:
            assert (await client.get("/app.js")).text == "fell through"
            build.mkdir()
            (build / "app.js").write_text("built")
            assert (await client.get("/app.js")).text == "built"

    async def test_small_chunks_reassemble(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir, chunk_size=7, enable_gzip=False)
        async with TestClient(app) as client:
            response = await client.get("/big.css")
        assert response.text == CSS_2000

    async def test_last_modified(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/style.css")
        assert response.header("last-modified") == LAST_MODIFIED

    async def test_weak_etag(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/style.css")
        mtime_ms = FIXED_MTIME_NS // 1_000_000
        assert response.header("etag") == f'W/"{20:x}-{mtime_ms:x}"'

    async def test_etag_disabled(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir, etag=False)
        async with TestClient(app) as client:
            response = await client.get("/style.css")
        assert response.header("etag") is None


# ------------------------------------------------------------------
# Fall-through
# ------------------------------------------------------------------


class TestFallThrough:
    async def test_missing_file(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/nope.css")
        assert response.status == 404
        assert response.text == "fell through"

    @pytest.mark.parametrize("path", ["/", "/docs", "/docs/", "/css/."])
    async def test_directories(self, static_dir: Path, path: str) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get(path)
        assert response.text == "fell through"

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "OPTIONS"])
    async def test_other_methods(self, static_dir: Path, method: str) -> None:
        app, static = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.request(method, "/style.css")
        assert response.text == "fell through"
        assert len(static.cache) == 0

    @pytest.mark.parametrize("path", ["../secret.txt", "%2e%2e/secret.txt", "..%2Fsecret.txt"])
    async def test_traversal_is_not_served(
        self, static_dir: Path, path: str, caplog: pytest.LogCaptureFixture
    ) -> None:
        app, _ = make_app(static_dir)
        with caplog.at_level(logging.WARNING, logger="perch.static"):
            async with TestClient(app) as client:
                response = await client.get(path)
        assert response.text == "fell through"
        assert "top secret" not in response.text
        assert "Rejected static path" in caplog.text

    async def test_nul_byte_falls_through(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/style%00.css")
        assert response.status == 404
        assert response.text == "fell through"

    async def test_absolute_dotdot_stays_in_root(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/../secret.txt")
        assert response.text == "fell through"

    async def test_routes_behind_static(self, static_dir: Path) -> None:
        static = StaticFiles(StaticConfig(dirs=(static_dir,)))
        app = App()
        app.add_middleware(static)

        @app.route("/health")
        def health():
            return "ok"

        async with TestClient(app) as client:
            assert (await client.get("/health")).text == "ok"
            assert (await client.get("/missing")).status == 404


# ------------------------------------------------------------------
# Multiple directories
# ------------------------------------------------------------------


class TestDirectories:
    @pytest.fixture
    def two_dirs(self, tmp_path: Path) -> tuple[Path, Path]:
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()
        (first / "shared.txt").write_text("from first")
        (second / "shared.txt").write_text("from second")
        (second / "only-second.txt").write_text("second only")
        return first, second

    async def test_first_directory_wins(self, two_dirs: tuple[Path, Path]) -> None:
        app, _ = make_app(*two_dirs)
        async with TestClient(app) as client:
            assert (await client.get("/shared.txt")).text == "from first"
            assert (await client.get("/only-second.txt")).text == "second only"

    async def test_mount_prefix(self, two_dirs: tuple[Path, Path]) -> None:
        first, second = two_dirs
        app, _ = make_app(first, StaticDirectory(second, mount_path="/vendor"))
        async with TestClient(app) as client:
            assert (await client.get("/vendor/shared.txt")).text == "from second"
            assert (await client.get("/only-second.txt")).text == "fell through"
            assert (await client.get("/vendor-x/shared.txt")).text == "fell through"

    async def test_mounted_before_unmounted(self, two_dirs: tuple[Path, Path]) -> None:
        first, second = two_dirs
        (first / "vendor").mkdir()
        (first / "vendor" / "shared.txt").write_text("nested in first")
        app, _ = make_app(StaticDirectory(second, mount_path="/vendor"), first)
        async with TestClient(app) as client:
            assert (await client.get("/vendor/shared.txt")).text == "from second"
            assert (await client.get("/shared.txt")).text == "from first"


# ------------------------------------------------------------------
# Conditional requests
# ------------------------------------------------------------------


class TestConditional:
    async def test_if_modified_since_echo_is_304(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get(
                "/style.css", headers={"If-Modified-Since": LAST_MODIFIED}
            )
        assert response.status == 304
        assert response.body == b""
        assert response.content_type == ""
        assert response.header("last-modified") == LAST_MODIFIED
        assert response.header("content-length") is None

    async def test_older_if_modified_since_is_200(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get(
                "/style.css", headers={"If-Modified-Since": "Mon, 01 Jan 2024 00:00:00 GMT"}
            )
        assert response.status == 200
        assert response.text == "body { color: red; }"

    async def test_etag_round_trip_is_304(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            first = await client.get("/style.css")
            second = await client.get(
                "/style.css", headers={"If-None-Match": first.header("etag") or ""}
            )
        assert second.status == 304
        assert second.header("etag") == first.header("etag")
        assert second.header("vary") == "Accept-Encoding"

    async def test_etag_mismatch_ignores_date(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get(
                "/style.css",
                headers={"If-None-Match": '"stale"', "If-Modified-Since": LAST_MODIFIED},
            )
        assert response.status == 200

    async def test_no_cache_forces_200(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get(
                "/style.css",
                headers={"If-Modified-Since": LAST_MODIFIED, "Cache-Control": "no-cache"},
            )
        assert response.status == 200

    async def test_modified_file_is_200(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            await client.get("/style.css")
            set_mtime(static_dir / "style.css", FIXED_MTIME_NS + 60_000_000_000)
            response = await client.get(
                "/style.css", headers={"If-Modified-Since": LAST_MODIFIED}
            )
        assert response.status == 200
        assert response.header("last-modified") == "Tue, 02 Jan 2024 03:05:05 GMT"


# ------------------------------------------------------------------
# Cache-Control
# ------------------------------------------------------------------


class TestCacheControl:
    async def test_default(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/style.css")
        assert response.header("cache-control") == "public, max-age=0"

    async def test_max_age(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir, max_age=86400)
        async with TestClient(app) as client:
            response = await client.get("/style.css")
        assert response.header("cache-control") == "public, max-age=86400"

    async def test_override(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir, cache_control="public, max-age=31536000, immutable")
        async with TestClient(app) as client:
            response = await client.get("/style.css")
        assert response.header("cache-control") == "public, max-age=31536000, immutable"


# ------------------------------------------------------------------
# Compression
# ------------------------------------------------------------------


class TestCompression:
    async def test_large_text_is_gzipped(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/big.css", headers={"Accept-Encoding": "gzip, br"})
        assert response.status == 200
        assert response.header("content-encoding") == "gzip"
        assert response.header("content-length") is None
        assert response.header("vary") == "Accept-Encoding"
        assert gzip.decompress(response.body) == CSS_2000.encode()

    async def test_client_without_gzip(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/big.css")
        assert response.header("content-encoding") is None
        assert response.header("content-length") == "2000"
        assert response.text == CSS_2000

    async def test_gzip_refused_by_quality(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/big.css", headers={"Accept-Encoding": "gzip;q=0"})
        assert response.header("content-encoding") is None

    async def test_small_file_not_gzipped(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/small.css", headers={"Accept-Encoding": "gzip"})
        assert response.header("content-encoding") is None
        assert response.header("content-length") == "500"
        assert response.text == "a" * 500

    async def test_binary_not_gzipped(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/image.png", headers={"Accept-Encoding": "gzip"})
        assert response.header("content-encoding") is None
        assert response.header("content-length") == "3008"

    async def test_gzip_disabled(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir, enable_gzip=False)
        async with TestClient(app) as client:
            response = await client.get("/big.css", headers={"Accept-Encoding": "gzip"})
        assert response.header("content-encoding") is None
        assert response.header("vary") is None
        assert response.header("content-length") == "2000"

    async def test_vary_on_uncompressed_response(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.get("/image.png")
        assert response.header("vary") == "Accept-Encoding"


# ------------------------------------------------------------------
# HEAD
# ------------------------------------------------------------------


class TestHead:
    async def test_head_matches_get_headers(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            get = await client.get("/style.css")
            head = await client.head("/style.css")
        assert head.status == 200
        assert head.body == b""
        assert head.content_type == get.content_type
        assert head.headers == get.headers

    async def test_head_keeps_length_for_compressible(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.head("/big.css", headers={"Accept-Encoding": "gzip"})
        assert response.header("content-length") == "2000"
        assert response.header("content-encoding") is None
        assert response.body == b""

    async def test_head_missing_falls_through(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        async with TestClient(app) as client:
            response = await client.head("/nope.css")
        assert response.status == 404


# ------------------------------------------------------------------
# Metadata cache
# ------------------------------------------------------------------


class TestCacheCoherence:
    async def test_served_path_is_cached(self, static_dir: Path) -> None:
        app, static = make_app(static_dir)
        async with TestClient(app) as client:
            await client.get("/style.css")
            await client.get("/./style.css")
        assert "/style.css" in static.cache
        assert len(static.cache) == 1

    async def test_modified_file_is_served_fresh(self, static_dir: Path) -> None:
        app, _ = make_app(static_dir)
        target = static_dir / "style.css"
        async with TestClient(app) as client:
            assert (await client.get("/style.css")).text == "body { color: red; }"
            target.write_text("body { color: blue; margin: 0; }")
            set_mtime(target, FIXED_MTIME_NS + 1_000_000_000)
            response = await client.get("/style.css")
        assert response.text == "body { color: blue; margin: 0; }"
        assert response.header("content-length") == "32"

    async def test_deleted_cached_file_is_500(
        self, static_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        app, static = make_app(static_dir)
        async with TestClient(app) as client:
            await client.get("/style.css")
            (static_dir / "style.css").unlink()
            response = await client.get("/style.css")
        assert response.status == 500
        assert "StaleFileError" in caplog.text
        assert "/style.css" in static.cache

    async def test_missing_path_is_not_cached(self, static_dir: Path) -> None:
        app, static = make_app(static_dir)
        async with TestClient(app) as client:
            await client.get("/nope.css")
        assert len(static.cache) == 0


# ------------------------------------------------------------------
# Cache-busted paths
# ------------------------------------------------------------------


class TestCacheBustedPath:
    def test_appends_mtime_ms(self, static_dir: Path) -> None:
        _, static = make_app(static_dir)
        expected = FIXED_MTIME_NS // 1_000_000
        assert static.cache_busted_path("/style.css") == f"/style.css?mtime={expected}"

    def test_percent_encoded_link(self, static_dir: Path) -> None:
        (static_dir / "hello world.txt").write_text("hi")
        set_mtime(static_dir / "hello world.txt")
        _, static = make_app(static_dir)
        expected = FIXED_MTIME_NS // 1_000_000
        assert static.cache_busted_path("/hello%20world.txt") == (
            f"/hello%20world.txt?mtime={expected}"
        )

    def test_does_not_populate_cache(self, static_dir: Path) -> None:
        _, static = make_app(static_dir)
        static.cache_busted_path("/style.css")
        assert len(static.cache) == 0

    def test_missing_file_unchanged(self, static_dir: Path) -> None:
        _, static = make_app(static_dir)
        assert static.cache_busted_path("/nope.css") == "/nope.css"

    def test_keeps_mount_prefix(self, static_dir: Path) -> None:
        _, static = make_app(StaticDirectory(static_dir, mount_path="/static"))
        expected = FIXED_MTIME_NS // 1_000_000
        assert static.cache_busted_path("/static/css/main.css") == (
            f"/static/css/main.css?mtime={expected}"
        )
        assert static.cache_busted_path("/css/main.css") == "/css/main.css"

    async def test_uses_cached_entry(self, static_dir: Path) -> None:
        app, static = make_app(static_dir)
        async with TestClient(app) as client:
            await client.get("/style.css")
        entry = static.cache.get("/style.css")
        assert entry is not None
        assert static.get_cache_busted_path("/style.css") == f"/style.css?mtime={entry.mtime_ms}"

    def test_alias(self) -> None:
        assert StaticFiles.get_cache_busted_path is StaticFiles.cache_busted_path
