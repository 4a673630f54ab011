"""Conversation controller.

Owns the chat history for one mounted chat view: hydrates it from the
server once per mount, appends the user's turn optimistically, appends the
assistant's turn once the server answers, and turns a 402 into the paywall
state. There are no automatic retries; every failure ends that attempt.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable

from core.domain.models import Failure, Message, Paywall
from core.errors import AuthenticationRequired, QuotaExceeded, RemoteError
from core.interfaces.backend import BackendAPI
from core.services.entitlement import EntitlementModel

logger = logging.getLogger(__name__)

FREE_LIMIT_MESSAGE = "You've used all your free messages. Upgrade to keep chatting."


class SendOutcome(str, Enum):
    SENT = "sent"
    PAYWALL = "paywall"
    FAILED = "failed"
    AUTH_LOST = "auth_lost"
    REFUSED = "refused"


class _MountToken:
    __slots__ = ("cancelled",)

    def __init__(self) -> None:
        self.cancelled = False


class ConversationController:
    """Chat history + send protocol for the authenticated user."""

    def __init__(
        self,
        backend: BackendAPI,
        entitlement: EntitlementModel,
        *,
        is_ready: Callable[[], bool],
        on_auth_lost: Callable[[], object] | None = None,
    ) -> None:
        self._backend = backend
        self._entitlement = entitlement
        self._is_ready = is_ready
        self._on_auth_lost = on_auth_lost
        self._token: _MountToken | None = None
        self._sending = False

        self.messages: list[Message] = []
        self.draft: str = ""
        self.failure: Failure | None = None
        self.paywall: Paywall = Paywall.cleared()
        self.hydrated = False

    @property
    def sending(self) -> bool:
        return self._sending

    @property
    def can_send(self) -> bool:
        return bool(self.draft.strip()) and not self._sending and self._is_ready()

    # --- mount / hydration ----------------------------------------------

    def mount(self) -> asyncio.Task[None]:
        """Start a fresh view and hydrate it from the server history."""

        self.unmount()
        token = _MountToken()
        self._token = token
        self.messages = []
        self.hydrated = False
        return asyncio.get_running_loop().create_task(self._hydrate(token))

    def unmount(self) -> None:
        if self._token is not None:
            self._token.cancelled = True
            self._token = None

    async def _hydrate(self, token: _MountToken) -> None:
        try:
            history = await self._backend.fetch_history()
        except RemoteError as exc:
            logger.info("History unavailable (%s); starting empty", exc.message)
            history = []
        if token.cancelled:
            logger.debug("Dropping history response for an unmounted view")
            return
        # Messages sent while hydration was pending stay after the history.
        self.messages = [*history, *self.messages]
        self.hydrated = True

    # --- send -----------------------------------------------------------

    async def send(self, text: str | None = None) -> SendOutcome:
        content = (self.draft if text is None else text).strip()
        if not content or self._sending or not self._is_ready():
            logger.debug("Send refused (empty=%s, sending=%s)", not content, self._sending)
            return SendOutcome.REFUSED

        self.failure = None
        self.paywall = Paywall.cleared()
        if self._entitlement.is_free_blocked:
            logger.info("Free quota exhausted locally; raising paywall without a request")
            self.paywall = Paywall.raised(FREE_LIMIT_MESSAGE)
            return SendOutcome.PAYWALL

        self._sending = True
        self.messages.append(Message.user(content))
        self.draft = ""
        try:
            reply = await self._backend.send_chat(content)
        except QuotaExceeded as exc:
            logger.info("Server rejected send with 402")
            self.paywall = Paywall.raised(exc.message)
            self._entitlement.record_quota_exceeded()
            return SendOutcome.PAYWALL
        except AuthenticationRequired as exc:
            self.failure = exc.to_failure()
            if self._on_auth_lost is not None:
                self._on_auth_lost()
            return SendOutcome.AUTH_LOST
        except RemoteError as exc:
            logger.warning("Chat send failed: %s", exc.message)
            self.failure = exc.to_failure()
            return SendOutcome.FAILED
        finally:
            self._sending = False

        self.messages.append(Message.assistant(reply.reply))
        self._entitlement.record_sent(reply.remaining_free_messages)
        return SendOutcome.SENT
