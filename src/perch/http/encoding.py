"""Accept-Encoding negotiation.

Parses the request's ``Accept-Encoding`` members into quality values and
answers whether a given content-coding is acceptable (RFC 9110 §12.5.3).
"""

from collections.abc import Iterable


def _parse_quality(params: list[str]) -> float:
    for param in params:
        name, _, value = param.partition("=")
        if name.strip().lower() != "q":
            continue
        try:
            q = float(value.strip())
        except ValueError:
            return 0.0
        return min(max(q, 0.0), 1.0)
    return 1.0


def parse_accept_encoding(members: Iterable[str]) -> dict[str, float]:
    """Map each listed content-coding to its quality value.

    *members* are the comma-separated items of the header, e.g. the
    result of ``Headers.get_tokens("accept-encoding")``. Codings are
    lower-cased; when a coding repeats, the highest quality wins.
    """
    qualities: dict[str, float] = {}
    for member in members:
        coding, *params = member.split(";")
        coding = coding.strip().lower()
        if not coding:
            continue
        q = _parse_quality(params)
        qualities[coding] = max(q, qualities.get(coding, 0.0))
    return qualities


def accepts_encoding(members: Iterable[str], coding: str) -> bool:
    """True if the client accepts *coding* for the response body.

    - An explicit entry decides (``gzip;q=0`` is a refusal).
    - Otherwise ``*`` decides for any coding.
    - ``identity`` is acceptable unless refused.
    - With no ``Accept-Encoding`` at all only ``identity`` is acceptable.
    """
    coding = coding.lower()
    qualities = parse_accept_encoding(members)
    if coding in qualities:
        return qualities[coding] > 0
    if "*" in qualities:
        return qualities["*"] > 0
    return coding == "identity"
