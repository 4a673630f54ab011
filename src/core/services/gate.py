"""Session/entitlement gate.

Resolves, in strict order, whether the user must log in, must onboard, or
may enter the application shell. Exactly one ``GateView`` is exposed at a
time and it is always derived from the latest ``(session, profile lookup)``
pair: every transition bumps an epoch and any response that comes back for
an older epoch is dropped without touching state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from core.domain.models import (
    Failure,
    OnboardingDraft,
    Profile,
    ProfileLookup,
    Session,
)
from core.errors import AuthenticationRequired, RemoteError
from core.interfaces.backend import BackendAPI

logger = logging.getLogger(__name__)

PROFILE_NOT_CONFIRMED = (
    "Your answers were sent but the profile is not confirmed yet. Please submit again."
)


class GateState(str, Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    PROFILE_LOADING = "profile_loading"
    PROFILE_MISSING = "profile_missing"
    PROFILE_READY = "profile_ready"
    PROFILE_ERROR = "profile_error"


@dataclass(frozen=True)
class GateView:
    """The single renderable gate state."""

    state: GateState
    session: Session
    profile: Profile | None = None
    failure: Failure | None = None
    notice: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.state is GateState.PROFILE_READY


@dataclass
class GateHooks:
    """Optional callbacks for the layers above (app context, UI)."""

    state_changed: Callable[[GateView], None] | None = None
    session_ended: Callable[[], None] | None = None


class GateStateMachine:
    """Auth → profile gate in front of the application shell."""

    def __init__(self, backend: BackendAPI, hooks: GateHooks | None = None) -> None:
        self._backend = backend
        self._hooks = hooks or GateHooks()
        self._epoch = 0
        self._submitting = False
        self._view = GateView(state=GateState.LOADING, session=Session.pending())

    @property
    def view(self) -> GateView:
        return self._view

    @property
    def state(self) -> GateState:
        return self._view.state

    @property
    def session(self) -> Session:
        return self._view.session

    @property
    def is_ready(self) -> bool:
        return self._view.is_ready

    @property
    def submitting(self) -> bool:
        return self._submitting

    # --- internals ------------------------------------------------------

    def _next_epoch(self) -> int:
        self._epoch += 1
        return self._epoch

    def _is_current(self, epoch: int) -> bool:
        if epoch != self._epoch:
            logger.debug("Dropping superseded gate response (epoch %s, current %s)", epoch, self._epoch)
            return False
        return True

    def _transition(
        self,
        state: GateState,
        session: Session,
        *,
        profile: Profile | None = None,
        failure: Failure | None = None,
        notice: str | None = None,
    ) -> GateView:
        previous = self._view.state
        self._view = GateView(state=state, session=session, profile=profile, failure=failure, notice=notice)
        if previous is not state:
            logger.info("Gate: %s -> %s", previous.value, state.value)
        if self._hooks.state_changed is not None:
            self._hooks.state_changed(self._view)
        return self._view

    def _end_session(self, reason: str) -> GateView:
        self._next_epoch()
        logger.info("Ending session: %s", reason)
        self._backend.clear_session()
        view = self._transition(GateState.UNAUTHENTICATED, Session.unauthenticated())
        if self._hooks.session_ended is not None:
            self._hooks.session_ended()
        return view

    async def _fetch_lookup(self, epoch: int, session: Session) -> ProfileLookup | None:
        """Fetch the profile; on failure apply the failure transition and return None."""

        try:
            lookup = await self._backend.fetch_profile()
        except AuthenticationRequired:
            if self._is_current(epoch):
                self._end_session("profile fetch rejected the session (401)")
            return None
        except RemoteError as exc:
            if self._is_current(epoch):
                logger.warning("Profile fetch failed: %s", exc.message)
                self._transition(GateState.PROFILE_ERROR, session, failure=exc.to_failure())
            return None
        if not self._is_current(epoch):
            return None
        return lookup

    async def _load_profile(self, epoch: int, session: Session) -> GateView:
        lookup = await self._fetch_lookup(epoch, session)
        if lookup is None:
            return self._view
        if lookup.exists:
            if lookup.profile is None:
                logger.info("Profile exists but payload is empty; rendering placeholder")
            return self._transition(GateState.PROFILE_READY, session, profile=lookup.profile)
        return self._transition(GateState.PROFILE_MISSING, session)

    # --- operations -----------------------------------------------------

    async def resolve(self) -> GateView:
        """Run the full gate: session check, then profile fetch."""

        epoch = self._next_epoch()
        self._transition(GateState.LOADING, Session.pending())

        try:
            info = await self._backend.check_session()
        except RemoteError as exc:
            if not self._is_current(epoch):
                return self._view
            logger.warning("Session check failed (%s); treating as unauthenticated", exc.message)
            return self._transition(GateState.UNAUTHENTICATED, Session.unauthenticated())

        if not self._is_current(epoch):
            return self._view
        if not info.authenticated:
            return self._transition(GateState.UNAUTHENTICATED, Session.unauthenticated())

        session = Session.authenticated(info.user_id, info.is_admin)
        self._transition(GateState.PROFILE_LOADING, session)
        return await self._load_profile(epoch, session)

    async def on_logged_in(self) -> GateView:
        """Login callback: re-check the session instead of assuming success."""

        if self.state is not GateState.UNAUTHENTICATED:
            logger.info("Ignoring login callback in state %s", self.state.value)
            return self._view
        return await self.resolve()

    async def retry_profile(self) -> GateView:
        if self.state is not GateState.PROFILE_ERROR:
            return self._view
        epoch = self._next_epoch()
        session = self.session
        self._transition(GateState.PROFILE_LOADING, session)
        return await self._load_profile(epoch, session)

    async def submit_onboarding(self, draft: OnboardingDraft) -> GateView:
        """Create the profile (201 and 409 both count) and confirm with a re-fetch."""

        if self.state is not GateState.PROFILE_MISSING:
            logger.info("Onboarding submission refused in state %s", self.state.value)
            return self._view
        if self._submitting:
            logger.info("Onboarding submission already in flight")
            return self._view

        self._submitting = True
        epoch = self._epoch
        session = self.session
        try:
            try:
                created = await self._backend.create_profile(draft)
            except AuthenticationRequired:
                if self._is_current(epoch):
                    return self._end_session("profile save rejected the session (401)")
                return self._view
            except RemoteError as exc:
                if self._is_current(epoch):
                    logger.warning("Profile save failed: %s", exc.message)
                    return self._transition(GateState.PROFILE_MISSING, session, failure=exc.to_failure())
                return self._view

            if not self._is_current(epoch):
                return self._view

            lookup = await self._fetch_lookup(epoch, session)
            if lookup is None:
                return self._view
            if not lookup.exists:
                return self._transition(GateState.PROFILE_MISSING, session, notice=PROFILE_NOT_CONFIRMED)

            if not created and lookup.profile is not None and not lookup.profile.same_answers_as(draft):
                logger.warning("Profile already existed; the stored answers differ from this submission and were kept")
            return self._transition(GateState.PROFILE_READY, session, profile=lookup.profile)
        finally:
            self._submitting = False

    def logout(self) -> GateView:
        return self._end_session("logout")

    def session_expired(self) -> GateView:
        """Called by mounted controllers when the server answers 401."""

        if not self.session.is_authenticated:
            return self._view
        return self._end_session("session expired")
