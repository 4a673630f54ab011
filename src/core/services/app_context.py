"""Application context.

Replaces module-scoped globals with one explicit object created at command
start and torn down at exit or logout. It owns the backend client and the
gate, and mounts the shell, the entitlement model and the conversation
controller only while the gate is ``profile_ready``.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import httpx

from adapters.backend_client import BackendClient
from adapters.cookie_store import clear_cookies, load_cookies, save_cookies
from core.config import AppSettings
from core.interfaces.backend import BackendAPI
from core.services.conversation import ConversationController
from core.services.entitlement import EntitlementModel
from core.services.feedback import FeedbackBoard
from core.services.gate import GateHooks, GateStateMachine, GateView
from core.services.navigation import AppShell, Page

logger = logging.getLogger(__name__)


class AppContext:
    def __init__(self, settings: AppSettings, backend: BackendAPI) -> None:
        self.settings = settings
        self.backend = backend
        self.gate = GateStateMachine(
            backend,
            GateHooks(state_changed=self._on_gate_change, session_ended=self._unmount_app),
        )
        self.shell: AppShell | None = None
        self.entitlement: EntitlementModel | None = None
        self.conversation: ConversationController | None = None
        self.feedback: FeedbackBoard | None = None

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AsyncIterator["AppContext"]:
        """Build the context for one CLI command and persist cookies on exit."""

        settings = settings or AppSettings()
        session_file: Path | None = settings.resolved_session_file() if settings.persist_session else None
        cookies = load_cookies(session_file) if session_file is not None else None

        client = BackendClient(settings, cookies=cookies, transport=transport)
        context = cls(settings, client)
        try:
            yield context
        finally:
            context._unmount_app()
            if session_file is not None:
                _persist_cookies(client.cookies, session_file)
            await client.aclose()

    # --- gate wiring ----------------------------------------------------

    def _on_gate_change(self, view: GateView) -> None:
        if view.is_ready and self.shell is None:
            self._mount_app(view)
        elif not view.is_ready and self.shell is not None:
            self._unmount_app()

    def _mount_app(self, view: GateView) -> None:
        logger.debug("Mounting application shell for user %s", view.session.user_id)
        self.shell = AppShell(view.session)
        self.entitlement = EntitlementModel(self.backend, on_auth_lost=self.gate.session_expired)
        self.conversation = ConversationController(
            self.backend,
            self.entitlement,
            is_ready=lambda: self.gate.is_ready,
            on_auth_lost=self.gate.session_expired,
        )

    def _unmount_app(self) -> None:
        if self.conversation is not None:
            self.conversation.unmount()
        if self.entitlement is not None:
            self.entitlement.close()
        if self.feedback is not None:
            self.feedback.close()
        self.shell = None
        self.entitlement = None
        self.conversation = None
        self.feedback = None

    # --- operations -----------------------------------------------------

    async def start(self) -> GateView:
        return await self.gate.resolve()

    async def enter_chat(self) -> bool:
        """Open the chat page: quota refresh, offers and history run concurrently."""

        if self.shell is None or self.entitlement is None or self.conversation is None:
            return False
        self.shell.navigate(Page.CHAT)
        hydration = self.conversation.mount()
        await asyncio.gather(self.entitlement.refresh(), self.entitlement.load_offers(), hydration)
        return True

    def feedback_board(self) -> FeedbackBoard | None:
        if self.shell is None or not self.shell.navigate(Page.FEEDBACK):
            return None
        if self.feedback is not None:
            self.feedback.close()
        self.feedback = FeedbackBoard(self.backend, self.gate.session)
        return self.feedback

    def logout(self) -> GateView:
        return self.gate.logout()


def _persist_cookies(cookies: httpx.Cookies, session_file: Path) -> None:
    try:
        if len(cookies.jar) == 0:
            clear_cookies(session_file)
        else:
            save_cookies(cookies, session_file)
    except OSError as exc:
        logger.warning("Could not persist session cookies to %s: %s", session_file, exc)
