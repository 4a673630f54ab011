"""Contrato del backend remoto.

Por qué Protocol:
- Los servicios (gate, entitlement, conversación) dependen de esta
  abstracción, no de httpx.
- Permite sustituir el cliente real por un fake en memoria en los tests.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

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


@runtime_checkable
class BackendAPI(Protocol):
    """Llamadas credenciales (cookie de sesión) al backend.

    Reglas de diseño:
    - Todas son asíncronas e independientes entre sí.
    - Los fallos se señalan con `core.errors.RemoteError` y subclases.
    - Ninguna reintenta automáticamente.
    """

    async def check_session(self) -> SessionInfo: ...

    async def fetch_quota_snapshot(self) -> SessionInfo: ...

    async def fetch_profile(self) -> ProfileLookup: ...

    async def create_profile(self, draft: OnboardingDraft) -> bool: ...

    async def fetch_billing_status(self) -> Subscription: ...

    async def fetch_offers(self) -> Offers: ...

    async def create_checkout(self, plan: Plan) -> str: ...

    async def send_chat(self, message: str) -> ChatReply: ...

    async def fetch_history(self) -> list[Message]: ...

    async def fetch_admin_feedback(self) -> list[FeedbackRow]: ...

    async def request_login_code(self, email: str) -> None: ...

    async def verify_login_code(self, email: str, code: str) -> None: ...

    def clear_session(self) -> None: ...
