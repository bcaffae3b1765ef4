"""Server-side mirror of the sidebar's embedded content frame.

The HTTP surface has no DOM, so the frame is represented by this small state
holder. It satisfies :class:`sidebar.services.hibernate.ContentHost`; clients
read its snapshot to decide what the real frame should display.
"""

from __future__ import annotations

import logging
from typing import Final

logger = logging.getLogger(__name__)

BLANK_SRC: Final[str] = "about:blank"


class EmbeddedView:
    def __init__(self) -> None:
        self.src: str = BLANK_SRC
        self.current_url: str | None = None
        self.overlay_visible: bool = False

    @property
    def has_content(self) -> bool:
        return self.src != BLANK_SRC

    def load(self, url: str) -> None:
        self.src = url
        self.current_url = url

    def unload(self) -> None:
        # current_url survives so refresh/open-in-tab still know the site.
        self.src = BLANK_SRC

    def show_overlay(self) -> None:
        self.overlay_visible = True

    def hide_overlay(self) -> None:
        self.overlay_visible = False

    def refresh(self) -> str | None:
        """Reload the current site; returns the URL loaded, if any."""

        if self.current_url is None:
            return None
        self.src = self.current_url
        return self.current_url

    def clear(self) -> None:
        """Reset to the welcome state after the active site disappears."""

        logger.debug("Clearing embedded view (was %s)", self.current_url)
        self.src = BLANK_SRC
        self.current_url = None
        self.overlay_visible = False


__all__ = ["BLANK_SRC", "EmbeddedView"]
