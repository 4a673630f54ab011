"""Admin feedback board (read-only list of ratings on assistant replies)."""

from __future__ import annotations

import logging

from core.domain.models import Failure, FailureKind, FeedbackFilter, FeedbackRow, Session
from core.errors import RemoteError
from core.interfaces.backend import BackendAPI

logger = logging.getLogger(__name__)

ADMIN_ONLY_MESSAGE = "Feedback is only available to admins."


class FeedbackBoard:
    def __init__(self, backend: BackendAPI, session: Session) -> None:
        self._backend = backend
        self._session = session
        self._generation = 0

        self.rows: list[FeedbackRow] = []
        self.loading = False
        self.failure: Failure | None = None

    def close(self) -> None:
        """Unmount: a load still in flight no longer touches the board."""

        self._generation += 1
        self.loading = False

    async def load(self) -> list[FeedbackRow]:
        """Fetch the rows; non-admin sessions are rejected without a request."""

        if not self._session.is_admin:
            logger.info("Feedback load refused for non-admin session")
            self.rows = []
            self.failure = Failure(kind=FailureKind.AUTH, status=403, message=ADMIN_ONLY_MESSAGE)
            return self.rows

        self._generation += 1
        generation = self._generation
        self.loading = True
        self.failure = None
        try:
            rows = await self._backend.fetch_admin_feedback()
        except RemoteError as exc:
            if generation == self._generation:
                logger.warning("Feedback load failed: %s", exc.message)
                self.rows = []
                self.failure = exc.to_failure()
            return self.rows
        finally:
            if generation == self._generation:
                self.loading = False

        if generation == self._generation:
            self.rows = rows
        else:
            logger.debug("Dropping feedback rows for a closed board")
        return self.rows

    def filtered(self, rating: FeedbackFilter = FeedbackFilter.ALL) -> list[FeedbackRow]:
        return [row for row in self.rows if rating.matches(row)]
