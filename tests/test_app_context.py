"""
Tests for the application context: mounting, cookie persistence, chat entry
"""
import asyncio
import json

import httpx
import pytest

from core.domain.models import FeedbackRating, FeedbackRow, SessionInfo
from core.services.app_context import AppContext
from core.services.gate import GateState
from core.services.navigation import Page


def _ready_routes(router, *, admin=False):
    router.add("GET /me", body={"authenticated": True, "userId": "u-1", "isAdmin": admin, "plan": "free", "remaining_free_messages": 2})
    router.add("GET /profile", body={"exists": True, "profile": {"business_type": "Freelancer"}})


@pytest.mark.asyncio
async def test_shell_is_mounted_only_when_ready(settings, router):
    router.add("GET /me", body={"authenticated": False})

    async with AppContext.open(settings, transport=httpx.MockTransport(router)) as ctx:
        view = await ctx.start()

        assert view.state is GateState.UNAUTHENTICATED
        assert ctx.shell is None
        assert ctx.conversation is None


@pytest.mark.asyncio
async def test_enter_chat_loads_quota_offers_and_history(settings, router):
    _ready_routes(router)
    router.add("GET /billing/status", body={"subscription": {"plan": "free", "active": False}})
    router.add("GET /billing/offers", body={"offers": {"monthly": {"enabled": True}, "lifetime": {"enabled": True}}})
    router.add("GET /chat/history", body={"history": [{"id": 1, "role": "assistant", "content": "Welcome back."}]})

    async with AppContext.open(settings, transport=httpx.MockTransport(router)) as ctx:
        await ctx.start()
        entered = await ctx.enter_chat()

        assert entered is True
        assert ctx.shell.current is Page.CHAT
        assert ctx.entitlement.remaining == 2
        assert ctx.entitlement.offers.monthly.enabled is True
        assert [m.content for m in ctx.conversation.messages] == ["Welcome back."]


@pytest.mark.asyncio
async def test_expired_session_unmounts_the_shell(settings, router):
    _ready_routes(router)
    router.add("POST /chat", status=401)

    async with AppContext.open(settings, transport=httpx.MockTransport(router)) as ctx:
        await ctx.start()
        conversation = ctx.conversation

        await conversation.send("hello")

        assert ctx.gate.state is GateState.UNAUTHENTICATED
        assert ctx.shell is None
        assert ctx.entitlement is None


@pytest.mark.asyncio
async def test_feedback_board_requires_admin(settings, router):
    _ready_routes(router)

    async with AppContext.open(settings, transport=httpx.MockTransport(router)) as ctx:
        await ctx.start()

        assert ctx.feedback_board() is None
        assert ctx.shell.current is Page.DASHBOARD


@pytest.mark.asyncio
async def test_session_cookies_survive_between_runs(settings, router):
    settings = settings.model_copy(update={"persist_session": True})
    router.add("POST /auth/verify", body={"ok": True}, headers={"set-cookie": "sid=s3cret; Path=/"})
    _ready_routes(router)

    async with AppContext.open(settings, transport=httpx.MockTransport(router)) as ctx:
        await ctx.backend.verify_login_code("me@studio.com", "123456")

    stored = json.loads(settings.session_file.read_text(encoding="utf-8"))
    assert [row["name"] for row in stored] == ["sid"]

    async with AppContext.open(settings, transport=httpx.MockTransport(router)) as ctx:
        await ctx.start()

    assert router.requests[-2].headers.get("cookie") == "sid=s3cret"


@pytest.mark.asyncio
async def test_logout_removes_the_session_file(settings, router):
    settings = settings.model_copy(update={"persist_session": True})
    settings.session_file.write_text(json.dumps([{"name": "sid", "value": "old", "domain": "api.test", "path": "/"}]), encoding="utf-8")
    _ready_routes(router)

    async with AppContext.open(settings, transport=httpx.MockTransport(router)) as ctx:
        await ctx.start()
        view = ctx.logout()

        assert view.state is GateState.UNAUTHENTICATED

    assert not settings.session_file.exists()


@pytest.mark.asyncio
async def test_quota_outage_during_chat_entry_keeps_the_session(settings, router):
    settings = settings.model_copy(update={"persist_session": True})
    router.add(
        "GET /me",
        body={"authenticated": True, "userId": "u-1", "plan": "free", "remaining_free_messages": 2},
        headers={"set-cookie": "sid=abc; Path=/"},
    )
    router.add("GET /profile", body={"exists": True, "profile": None})
    router.add("GET /billing/status", body={"subscription": {"plan": "free", "active": False}})
    router.add("GET /chat/history", body={"history": []})

    async with AppContext.open(settings, transport=httpx.MockTransport(router)) as ctx:
        await ctx.start()
        router.add("GET /me", status=503)

        await ctx.enter_chat()

        assert ctx.gate.state is GateState.PROFILE_READY
        assert ctx.shell is not None
        assert ctx.entitlement.remaining is None
        assert ctx.backend.cookies.get("sid") == "abc"

    stored = json.loads(settings.session_file.read_text(encoding="utf-8"))
    assert [row["name"] for row in stored] == ["sid"]


@pytest.mark.asyncio
async def test_unbounded_quota_value_still_reaches_ready(settings, router):
    router.add("GET /me", body={"authenticated": True, "userId": "u-1", "plan": "lifetime", "remainingFreeMessages": 2.5})
    router.add("GET /profile", body={"exists": True, "profile": None})

    async with AppContext.open(settings, transport=httpx.MockTransport(router)) as ctx:
        view = await ctx.start()

        assert view.state is GateState.PROFILE_READY


@pytest.mark.asyncio
async def test_logout_closes_an_open_feedback_board(settings, fake_backend):
    fake_backend.session = SessionInfo(authenticated=True, user_id="admin-1", is_admin=True)
    fake_backend.feedback = [FeedbackRow(id="f1", rating=FeedbackRating.UP)]
    ctx = AppContext(settings, fake_backend)
    await ctx.start()
    board = ctx.feedback_board()
    release = fake_backend.hold("fetch_admin_feedback")

    pending = asyncio.create_task(board.load())
    while fake_backend.count("fetch_admin_feedback") == 0:
        await asyncio.sleep(0)
    ctx.logout()
    release.set()
    await pending

    assert ctx.feedback is None
    assert board.rows == []
    assert board.loading is False
