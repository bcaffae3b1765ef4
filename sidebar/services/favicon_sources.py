"""Ordered list of remote endpoints that may serve a domain's icon.

Order matters: third-party icon services usually return better-sized images
than the site's own ``/favicon.ico``, so they are tried first and the domain's
conventional paths act as the last resort.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True, slots=True)
class FaviconSource:
    """A named URL template; ``{domain}`` is replaced by the hostname."""

    name: str
    template: str

    def url_for(self, domain: str) -> str:
        return self.template.format(domain=domain)


DEFAULT_FAVICON_SOURCES: Final[tuple[FaviconSource, ...]] = (
    FaviconSource("duckduckgo", "https://icons.duckduckgo.com/ip3/{domain}.ico"),
    FaviconSource("google", "https://www.google.com/s2/favicons?domain={domain}&sz=128"),
    FaviconSource("favicon.io", "https://favicon.io/favicon/{domain}"),
    FaviconSource("site-favicon", "https://{domain}/favicon.ico"),
    FaviconSource("apple-touch-icon", "https://{domain}/apple-touch-icon.png"),
    FaviconSource(
        "apple-touch-icon-precomposed",
        "https://{domain}/apple-touch-icon-precomposed.png",
    ),
)

__all__ = ["DEFAULT_FAVICON_SOURCES", "FaviconSource"]
