"""
Tests for the admin feedback board
"""
import asyncio

import pytest

from core.domain.models import FailureKind, FeedbackFilter, FeedbackRating, FeedbackRow, Session
from core.errors import RemoteStatusError
from core.services.feedback import ADMIN_ONLY_MESSAGE, FeedbackBoard

ADMIN = Session.authenticated("admin-1", True)


def _rows():
    return [
        FeedbackRow(id="f1", rating=FeedbackRating.DOWN, comment="Too generic"),
        FeedbackRow(id="f2", rating=FeedbackRating.UP),
        FeedbackRow(id="f3", rating=FeedbackRating.DOWN),
    ]


@pytest.mark.asyncio
async def test_non_admin_is_rejected_without_request(fake_backend):
    board = FeedbackBoard(fake_backend, Session.authenticated("u-1", False))

    rows = await board.load()

    assert rows == []
    assert board.failure.kind is FailureKind.AUTH
    assert board.failure.message == ADMIN_ONLY_MESSAGE
    assert fake_backend.count("fetch_admin_feedback") == 0


@pytest.mark.asyncio
async def test_admin_rows_can_be_filtered_by_rating(fake_backend):
    fake_backend.feedback = _rows()
    board = FeedbackBoard(fake_backend, ADMIN)

    await board.load()

    assert [row.id for row in board.filtered()] == ["f1", "f2", "f3"]
    assert [row.id for row in board.filtered(FeedbackFilter.DOWN)] == ["f1", "f3"]
    assert [row.id for row in board.filtered(FeedbackFilter.UP)] == ["f2"]
    assert board.loading is False


@pytest.mark.asyncio
async def test_closed_board_ignores_late_rows(fake_backend):
    fake_backend.feedback = _rows()
    release = fake_backend.hold("fetch_admin_feedback")
    board = FeedbackBoard(fake_backend, ADMIN)

    pending = asyncio.create_task(board.load())
    while fake_backend.count("fetch_admin_feedback") == 0:
        await asyncio.sleep(0)
    assert board.loading is True

    board.close()
    release.set()
    await pending

    assert board.rows == []
    assert board.loading is False


@pytest.mark.asyncio
async def test_server_rejection_is_shown(fake_backend):
    fake_backend.feedback = RemoteStatusError("admin feedback", status=403, message="Forbidden")
    board = FeedbackBoard(fake_backend, ADMIN)

    rows = await board.load()

    assert rows == []
    assert board.failure.status == 403
    assert board.failure.message == "Forbidden"
