"""URL helpers shared by the registry and the favicon cache."""

from __future__ import annotations

from typing import Final
from urllib.parse import urlsplit

_EXPLICIT_SCHEMES: Final[tuple[str, ...]] = ("http://", "https://")
DEFAULT_SCHEME_PREFIX: Final[str] = "https://"


def ensure_scheme(url: str) -> str:
    """Prefix ``url`` with ``https://`` unless it already names http(s).

    The check is a plain prefix test, matching what users type in the add
    dialog: ``example.com`` becomes ``https://example.com`` while
    ``http://intranet`` is kept as-is.
    """

    if url.startswith(_EXPLICIT_SCHEMES):
        return url
    return f"{DEFAULT_SCHEME_PREFIX}{url}"


def extract_hostname(url: str) -> str | None:
    """Return the lowercased hostname of an absolute URL, or ``None``.

    Scheme-less strings, empty hosts and values ``urlsplit`` refuses to parse
    (for example an unbalanced IPv6 bracket) all yield ``None``.
    """

    try:
        parsed = urlsplit(url.strip())
        hostname = parsed.hostname
    except ValueError:
        return None

    if not parsed.scheme or not hostname:
        return None
    return hostname


__all__ = ["DEFAULT_SCHEME_PREFIX", "ensure_scheme", "extract_hostname"]
