"""Entitlement / quota model.

Keeps two views of the remaining free messages:

- ``confirmed_remaining``: last value the server reported.
- ``optimistic_remaining``: local decrements applied after successful sends.

The server always wins: any authoritative refresh overwrites the optimistic
value instead of merging with it. The local counter only ever drives a UX
short-circuit; the server can still answer 402 while it shows headroom.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from core.domain.models import Failure, Offers, Plan, SessionInfo, Subscription
from core.errors import AuthenticationRequired, RemoteError
from core.interfaces.backend import BackendAPI

logger = logging.getLogger(__name__)


class EntitlementModel:
    """Plan, quota and checkout state for the authenticated user."""

    def __init__(self, backend: BackendAPI, *, on_auth_lost: Callable[[], object] | None = None) -> None:
        self._backend = backend
        self._on_auth_lost = on_auth_lost
        self._generation = 0
        self._checkout_in_flight = False
        self._snapshot_plan: Plan | None = None

        self.subscription: Subscription | None = None
        self.confirmed_remaining: int | None = None
        self.optimistic_remaining: int | None = None
        self.offers: Offers = Offers.fallback()
        self.failure: Failure | None = None
        self.checkout_failure: Failure | None = None

    # --- derived state --------------------------------------------------

    @property
    def plan(self) -> Plan | None:
        """Effective plan: a paid subscription only counts while active."""

        if self.subscription is not None:
            if self.subscription.plan.is_paid and not self.subscription.active:
                return Plan.FREE
            return self.subscription.plan
        return self._snapshot_plan

    @property
    def remaining(self) -> int | None:
        """Remaining free messages; None means unbounded or unknown."""

        if self.plan is not None and self.plan.is_paid:
            return None
        if self.optimistic_remaining is not None:
            return self.optimistic_remaining
        return self.confirmed_remaining

    @property
    def is_free_blocked(self) -> bool:
        return self.plan is Plan.FREE and self.remaining == 0

    @property
    def checkout_in_progress(self) -> bool:
        return self._checkout_in_flight

    # --- lifecycle ------------------------------------------------------

    def _bump(self) -> int:
        self._generation += 1
        return self._generation

    def close(self) -> None:
        """Unmount: responses still in flight become no-ops."""

        self._bump()

    def _auth_lost(self) -> None:
        if self._on_auth_lost is not None:
            self._on_auth_lost()

    # --- server refresh -------------------------------------------------

    async def refresh(self) -> None:
        """Fetch billing status and the quota snapshot concurrently."""

        generation = self._bump()
        billing, snapshot = await asyncio.gather(
            self._backend.fetch_billing_status(),
            self._backend.fetch_quota_snapshot(),
            return_exceptions=True,
        )
        if generation != self._generation:
            logger.debug("Dropping entitlement refresh after unmount")
            return

        for outcome in (billing, snapshot):
            if isinstance(outcome, AuthenticationRequired):
                self._auth_lost()
                return
            if isinstance(outcome, BaseException) and not isinstance(outcome, RemoteError):
                raise outcome

        if isinstance(billing, RemoteError):
            logger.warning("Billing status unavailable: %s", billing.message)
            self.failure = billing.to_failure()
        else:
            self.subscription = billing
            self.failure = None

        if isinstance(snapshot, RemoteError):
            logger.warning("Quota snapshot unavailable: %s", snapshot.message)
            return
        self._apply_snapshot(snapshot)

    def _apply_snapshot(self, snapshot: SessionInfo) -> None:
        if not snapshot.authenticated:
            self._auth_lost()
            return
        if snapshot.plan is not None:
            self._snapshot_plan = snapshot.plan
        self.confirmed_remaining = snapshot.remaining_free_messages
        self.optimistic_remaining = None

    async def load_offers(self) -> Offers:
        generation = self._generation
        try:
            offers = await self._backend.fetch_offers()
        except RemoteError as exc:
            logger.info("Offers unavailable (%s); showing lifetime only", exc.message)
            offers = Offers.fallback()
        if generation == self._generation:
            self.offers = offers
        return self.offers

    # --- send bookkeeping -----------------------------------------------

    def record_sent(self, confirmed_remaining: int | None = None) -> None:
        """Account for one successful send."""

        if confirmed_remaining is not None:
            self.confirmed_remaining = confirmed_remaining
            self.optimistic_remaining = None
            return
        if self.plan is not Plan.FREE:
            return
        current = self.remaining
        if current is None:
            return
        self.optimistic_remaining = max(0, current - 1)

    def record_quota_exceeded(self) -> None:
        """The server answered 402: resync the counter to zero."""

        self.confirmed_remaining = 0
        self.optimistic_remaining = None
        if self.plan is None:
            self._snapshot_plan = Plan.FREE

    # --- checkout -------------------------------------------------------

    async def start_checkout(self, plan: Plan) -> str | None:
        """Request a checkout URL. A second call while one is pending is refused."""

        if not plan.is_paid:
            raise ValueError(f"checkout requires a paid plan, got {plan.value!r}")
        if self._checkout_in_flight:
            logger.info("Checkout for %s refused: another checkout is in flight", plan.value)
            return None

        self._checkout_in_flight = True
        self.checkout_failure = None
        try:
            url = await self._backend.create_checkout(plan)
        except AuthenticationRequired:
            self._auth_lost()
            return None
        except RemoteError as exc:
            logger.warning("Checkout failed: %s", exc.message)
            self.checkout_failure = exc.to_failure()
            return None
        finally:
            self._checkout_in_flight = False
        return url
