"""
Tests for the application shell navigation rules
"""
from core.domain.models import Session
from core.services.navigation import AppShell, Page


def test_starts_on_dashboard():
    shell = AppShell(Session.authenticated("u-1", False))

    assert shell.current is Page.DASHBOARD
    assert shell.title == "Dashboard"


def test_non_admin_cannot_open_feedback():
    shell = AppShell(Session.authenticated("u-1", False))
    shell.navigate(Page.CHAT)

    assert shell.navigate(Page.FEEDBACK) is False
    assert shell.current is Page.CHAT
    assert Page.FEEDBACK not in shell.visible_pages()


def test_admin_can_open_feedback():
    shell = AppShell(Session.authenticated("u-1", True))

    assert shell.navigate(Page.FEEDBACK) is True
    assert shell.current is Page.FEEDBACK
    assert shell.subtitle.startswith("Only visible to admin")


def test_header_follows_current_page():
    shell = AppShell(Session.authenticated("u-1", False))

    shell.navigate(Page.BILLING)

    assert shell.title == "Plan"
    assert shell.visible_pages() == [Page.DASHBOARD, Page.CHAT, Page.PROFILE, Page.BILLING]
