"""
Pytest configuration and fixtures for testing
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from adapters.backend_client import BackendClient
from core.config import AppSettings
from core.domain.models import (
    ChatReply,
    FeedbackRow,
    Message,
    OnboardingDraft,
    Offers,
    Plan,
    ProfileLookup,
    SessionInfo,
    Subscription,
)

API = "https://api.test"


class FakeBackend:
    """In-memory backend.

    Attributes hold the next answer for each call; an Exception instance is
    raised instead of returned. ``hold(name)`` pauses that call until the
    returned event is set, to drive race/cancellation scenarios.
    """

    def __init__(self) -> None:
        self.session: SessionInfo | Exception = SessionInfo(authenticated=True, user_id="u-1", is_admin=False)
        self.snapshot: SessionInfo | Exception | None = None
        self.lookups: list[ProfileLookup | Exception] = [ProfileLookup(exists=True, profile=None)]
        self.create_result: bool | Exception = True
        self.subscription: Subscription | Exception = Subscription(plan=Plan.FREE, active=False)
        self.offers: Offers | Exception = Offers(monthly={"enabled": True, "price": "£19"}, lifetime={"enabled": True, "price": "£149"})
        self.checkout: str | Exception = "https://pay.example/checkout/abc"
        self.chat_replies: list[ChatReply | Exception] = []
        self.history: list[Message] = []
        self.feedback: list[FeedbackRow] | Exception = []
        self.calls: list[str] = []
        self.sent: list[str] = []
        self.drafts: list[OnboardingDraft] = []
        self.cleared = 0
        self._holds: dict[str, asyncio.Event] = {}

    def hold(self, name: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds[name] = event
        return event

    def count(self, name: str) -> int:
        return self.calls.count(name)

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        event = self._holds.get(name)
        if event is not None:
            await event.wait()

    @staticmethod
    def _answer(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    async def check_session(self) -> SessionInfo:
        await self._enter("check_session")
        return self._answer(self.session)

    async def fetch_quota_snapshot(self) -> SessionInfo:
        await self._enter("fetch_quota_snapshot")
        value = self.session if self.snapshot is None else self.snapshot
        return self._answer(value)

    async def fetch_profile(self) -> ProfileLookup:
        await self._enter("fetch_profile")
        value = self.lookups.pop(0) if len(self.lookups) > 1 else self.lookups[0]
        return self._answer(value)

    async def create_profile(self, draft: OnboardingDraft) -> bool:
        await self._enter("create_profile")
        self.drafts.append(draft)
        return self._answer(self.create_result)

    async def fetch_billing_status(self) -> Subscription:
        await self._enter("fetch_billing_status")
        return self._answer(self.subscription)

    async def fetch_offers(self) -> Offers:
        await self._enter("fetch_offers")
        return self._answer(self.offers)

    async def create_checkout(self, plan: Plan) -> str:
        await self._enter("create_checkout")
        return self._answer(self.checkout)

    async def send_chat(self, message: str) -> ChatReply:
        await self._enter("send_chat")
        self.sent.append(message)
        value = self.chat_replies.pop(0) if self.chat_replies else ChatReply(reply=f"echo: {message}")
        return self._answer(value)

    async def fetch_history(self) -> list[Message]:
        await self._enter("fetch_history")
        return list(self.history)

    async def fetch_admin_feedback(self) -> list[FeedbackRow]:
        await self._enter("fetch_admin_feedback")
        return self._answer(self.feedback)

    async def request_login_code(self, email: str) -> None:
        await self._enter("request_login_code")

    async def verify_login_code(self, email: str, code: str) -> None:
        await self._enter("verify_login_code")

    def clear_session(self) -> None:
        self.cleared += 1


Route = Callable[[httpx.Request], httpx.Response]


class Router:
    """``httpx.MockTransport`` handler keyed by ``"METHOD /path"``."""

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []

    def add(self, key: str, status: int = 200, body: Any = None, headers: dict[str, str] | None = None) -> None:
        def route(request: httpx.Request) -> httpx.Response:
            if body is None:
                return httpx.Response(status, headers=headers)
            if isinstance(body, (bytes, str)):
                return httpx.Response(status, content=body, headers=headers)
            return httpx.Response(status, json=body, headers=headers)

        self.routes[key] = route

    def raise_on(self, key: str, exc: Exception) -> None:
        def route(request: httpx.Request) -> httpx.Response:
            raise exc

        self.routes[key] = route

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = f"{request.method} {request.url.path}"
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, json={"error": f"no route for {key}"})
        return route(request)

    def last_json(self, key: str) -> Any:
        method, path = key.split(" ", 1)
        for request in reversed(self.requests):
            if request.method == method and request.url.path == path:
                return json.loads(request.content or b"null")
        return None


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return AppSettings(
        api_base_url=API,
        http_timeout_seconds=5.0,
        persist_session=False,
        session_file=tmp_path / "session.json",
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
async def client(settings, router):
    backend = BackendClient(settings, transport=httpx.MockTransport(router))
    yield backend
    await backend.aclose()


@pytest.fixture
def valid_draft() -> OnboardingDraft:
    return OnboardingDraft(
        details="I'm stuck on hourly pricing. I tried fixed packages but clients compared me to cheap competitors.",
    )
