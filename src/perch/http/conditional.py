"""Conditional requests — HTTP dates and freshness evaluation.

A cached copy is *fresh* when the client's validators still match the
current representation, in which case the server answers ``304 Not
Modified`` without a body (RFC 9110 §13.1, §13.2.2).
"""

from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime

from perch.http.headers import Headers


def http_date(value: datetime) -> str:
    """Format *value* as an IMF-fixdate (``Sun, 06 Nov 1994 08:49:37 GMT``)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return format_datetime(value.astimezone(UTC), usegmt=True)


def parse_http_date(value: str) -> datetime | None:
    """Parse an HTTP date header, or ``None`` if it is malformed."""
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _strip_weak(tag: str) -> str:
    return tag[2:] if tag.startswith("W/") else tag


def _etag_matches(candidates: list[str], etag: str) -> bool:
    """Weak comparison of If-None-Match members against *etag*."""
    current = _strip_weak(etag)
    return any(tag == "*" or _strip_weak(tag) == current for tag in candidates)


def is_fresh(headers: Headers, last_modified: datetime, etag: str | None = None) -> bool:
    """True if the request's validators say the client's copy is current.

    - No ``If-None-Match`` and no ``If-Modified-Since``: not fresh.
    - ``Cache-Control: no-cache`` on the request: not fresh.
    - ``If-None-Match`` is evaluated first and, when present, decides.
    - ``If-Modified-Since`` compares at one-second resolution, since HTTP
      dates carry no fractional seconds.
    """
    if_none_match = headers.get_tokens("if-none-match")
    if_modified_since = headers.get("if-modified-since")
    if not if_none_match and not if_modified_since:
        return False

    cache_control = [token.lower() for token in headers.get_tokens("cache-control")]
    if "no-cache" in cache_control:
        return False

    if if_none_match:
        return etag is not None and _etag_matches(if_none_match, etag)

    since = parse_http_date(if_modified_since or "")
    if since is None:
        return False
    return int(last_modified.timestamp()) <= int(since.timestamp())
