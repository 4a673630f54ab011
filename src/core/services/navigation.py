"""Application shell navigation.

Only exists once the gate is ``profile_ready``. Admin-only pages are both
hidden from ``visible_pages()`` and refused by ``navigate()``, so a direct
navigation call cannot bypass the check.
"""

from __future__ import annotations

import logging
from enum import Enum

from core.domain.models import Session

logger = logging.getLogger(__name__)


class Page(str, Enum):
    DASHBOARD = "dashboard"
    CHAT = "chat"
    PROFILE = "profile"
    BILLING = "billing"
    FEEDBACK = "feedback"


_ADMIN_PAGES = frozenset({Page.FEEDBACK})

_HEADERS: dict[Page, tuple[str, str]] = {
    Page.DASHBOARD: ("Dashboard", "Your current focus and next step (based on your onboarding)."),
    Page.CHAT: ("Chat", "Your Design Business Strategist (context-aware)."),
    Page.PROFILE: ("Profile", "Your onboarding answers (read-only)."),
    Page.BILLING: ("Plan", "Your plan, remaining free messages and upgrade options."),
    Page.FEEDBACK: ("Feedback", "Only visible to admin. Shows ratings + comments on assistant replies."),
}


class AppShell:
    """Current page plus the navigation rules for one authenticated session."""

    def __init__(self, session: Session, *, start: Page = Page.DASHBOARD) -> None:
        self._session = session
        self._current = start

    @property
    def current(self) -> Page:
        return self._current

    @property
    def title(self) -> str:
        return _HEADERS[self._current][0]

    @property
    def subtitle(self) -> str:
        return _HEADERS[self._current][1]

    def can_open(self, page: Page) -> bool:
        return page not in _ADMIN_PAGES or self._session.is_admin

    def visible_pages(self) -> list[Page]:
        return [page for page in Page if self.can_open(page)]

    def navigate(self, page: Page) -> bool:
        """Switch page; returns False (and changes nothing) when not allowed."""

        if not self.can_open(page):
            logger.info("Navigation to %s refused for non-admin session", page.value)
            return False
        self._current = page
        return True
