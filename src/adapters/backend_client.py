"""Cliente remoto del backend (sesión, perfil, billing, chat, admin).

Responsabilidad:
- Hacer las llamadas HTTP credenciales (cookie de sesión compartida).
- Validar cada respuesta contra su modelo Pydantic en el borde.
- Traducir status codes y fallos de red a `core.errors`.

No reintenta nunca: cada fallo es terminal para ese intento.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import (
    ChatReply,
    FeedbackRow,
    Message,
    OnboardingDraft,
    Offers,
    Plan,
    Profile,
    ProfileLookup,
    SessionInfo,
    Subscription,
)
from core.errors import (
    AuthenticationRequired,
    MalformedResponse,
    QuotaExceeded,
    RemoteError,
    RemoteStatusError,
    TransportFailure,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_QUOTA_MESSAGE = "You've used all your free messages. Upgrade to keep chatting."


def _server_message(data: Any) -> str | None:
    """Mensaje literal del servidor (`message` o `error`) si existe."""

    if not isinstance(data, dict):
        return None
    for key in ("message", "error"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class BackendClient:
    """Implementación httpx de `core.interfaces.backend.BackendAPI`."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        cookies: httpx.Cookies | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._client = build_async_client(self._settings, cookies=cookies, transport=transport)

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def clear_session(self) -> None:
        self._client.cookies.clear()

    # --- plumbing -------------------------------------------------------

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        payload: dict[str, Any] | None = None,
    ) -> tuple[httpx.Response, Any]:
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.TransportError as exc:
            logger.warning("%s %s: transport failure: %s", method, path, exc)
            raise TransportFailure(operation) from exc
        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response, _json_or_none(response)

    def _raise_for_status(
        self,
        operation: str,
        response: httpx.Response,
        data: Any,
        *,
        fallback_message: str | None = None,
    ) -> None:
        if response.is_success:
            return
        status = response.status_code
        message = _server_message(data) or fallback_message
        if status == 401:
            raise AuthenticationRequired(operation, status=status, message=message)
        if status == 402:
            raise QuotaExceeded(operation, status=status, message=message or DEFAULT_QUOTA_MESSAGE)
        logger.warning("%s failed with HTTP %s", operation, status)
        raise RemoteStatusError(operation, status=status, message=message)

    def _parse(self, model: type[ModelT], operation: str, response: httpx.Response, data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning("%s: unexpected response format: %s", operation, exc.errors()[:3])
            raise self._malformed(operation, response) from exc

    @staticmethod
    def _malformed(operation: str, response: httpx.Response) -> MalformedResponse:
        label = operation[:1].upper() + operation[1:]
        return MalformedResponse(
            operation,
            status=response.status_code,
            message=f"{label} failed ({response.status_code}): unexpected response format",
        )

    # --- sesión / login -------------------------------------------------

    async def check_session(self) -> SessionInfo:
        """`GET /me`. Cualquier non-OK equivale a no autenticado."""

        response, data = await self._request("session check", "GET", "/me")
        if not response.is_success:
            logger.info("Session check returned HTTP %s; treating as unauthenticated", response.status_code)
            return SessionInfo(authenticated=False)
        return self._parse(SessionInfo, "session check", response, data)

    async def fetch_quota_snapshot(self) -> SessionInfo:
        """`GET /me` para refrescar la cuota.

        A diferencia de `check_session`, un non-OK es un fallo (401 →
        `AuthenticationRequired`, resto → `RemoteStatusError`): solo un 401
        o un `authenticated: false` explícito cuentan como sesión perdida.
        """

        response, data = await self._request("quota snapshot", "GET", "/me")
        self._raise_for_status("quota snapshot", response, data)
        return self._parse(SessionInfo, "quota snapshot", response, data)

    async def request_login_code(self, email: str) -> None:
        response, data = await self._request("login code request", "POST", "/auth/request-code", payload={"email": email})
        self._raise_for_status("login code request", response, data, fallback_message="Failed to send login code.")

    async def verify_login_code(self, email: str, code: str) -> None:
        response, data = await self._request(
            "login verification",
            "POST",
            "/auth/verify",
            payload={"email": email, "code": code},
        )
        self._raise_for_status("login verification", response, data, fallback_message="Invalid or expired code.")

    # --- perfil ---------------------------------------------------------

    async def fetch_profile(self) -> ProfileLookup:
        """`GET /profile` → `{exists, profile?}`.

        La existencia es autoritativa: un `profile` ausente o inválido con
        `exists: true` se devuelve como `profile=None`.
        """

        response, data = await self._request("profile fetch", "GET", "/profile")
        self._raise_for_status("profile fetch", response, data)
        if not isinstance(data, dict) or not isinstance(data.get("exists"), bool):
            raise self._malformed("profile fetch", response)

        profile: Profile | None = None
        raw_profile = data.get("profile")
        if isinstance(raw_profile, dict):
            try:
                profile = Profile.model_validate(raw_profile)
            except ValidationError as exc:
                logger.warning("Profile payload ignored (invalid): %s", exc.errors()[:3])
        return ProfileLookup(exists=data["exists"], profile=profile)

    async def create_profile(self, draft: OnboardingDraft) -> bool:
        """`POST /profile`. Devuelve False si ya existía (409), que no es error."""

        response, data = await self._request("profile save", "POST", "/profile", payload=draft.to_payload())
        if response.status_code == 409:
            logger.info("Profile already exists (409); treating onboarding as complete")
            return False
        self._raise_for_status("profile save", response, data)
        return True

    # --- billing --------------------------------------------------------

    async def fetch_billing_status(self) -> Subscription:
        response, data = await self._request("billing status", "GET", "/billing/status")
        self._raise_for_status("billing status", response, data)
        if isinstance(data, dict) and data.get("error"):
            raise RemoteStatusError("billing status", status=response.status_code, message=str(data["error"]))
        subscription = data.get("subscription") if isinstance(data, dict) else None
        if not isinstance(subscription, dict):
            raise self._malformed("billing status", response)
        return self._parse(Subscription, "billing status", response, subscription)

    async def fetch_offers(self) -> Offers:
        response, data = await self._request("offers", "GET", "/billing/offers")
        self._raise_for_status("offers", response, data)
        offers = data.get("offers") if isinstance(data, dict) else None
        if not isinstance(offers, dict):
            raise self._malformed("offers", response)
        return self._parse(Offers, "offers", response, offers)

    async def create_checkout(self, plan: Plan) -> str:
        """`POST /billing/checkout` → URL de redirección del proveedor de pago."""

        response, data = await self._request("checkout", "POST", "/billing/checkout", payload={"plan": plan.value})
        self._raise_for_status("checkout", response, data)
        url = data.get("url") if isinstance(data, dict) else None
        if not isinstance(url, str) or not url.strip():
            raise MalformedResponse(
                "checkout",
                status=response.status_code,
                message=_server_message(data) or "Checkout failed: no redirect URL returned",
            )
        return url.strip()

    # --- chat -----------------------------------------------------------

    async def send_chat(self, message: str) -> ChatReply:
        """`POST /chat`. HTTP 402 → `QuotaExceeded` (siempre con mensaje legible)."""

        response, data = await self._request("chat", "POST", "/chat", payload={"message": message})
        self._raise_for_status("chat", response, data)
        return self._parse(ChatReply, "chat", response, data)

    async def fetch_history(self) -> list[Message]:
        """`GET /chat/history`. Cualquier fallo da un historial vacío."""

        try:
            response, data = await self._request("history", "GET", "/chat/history")
        except RemoteError:
            return []
        if not response.is_success:
            logger.info("History fetch returned HTTP %s; starting empty", response.status_code)
            return []
        rows = data.get("history") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            return []

        messages: list[Message] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                messages.append(Message.from_history(row))
            except ValidationError:
                logger.debug("Skipping malformed history row: %r", row)
        return messages

    # --- admin ----------------------------------------------------------

    async def fetch_admin_feedback(self) -> list[FeedbackRow]:
        response, data = await self._request("admin feedback", "GET", "/admin/feedback")
        self._raise_for_status("admin feedback", response, data)
        if not isinstance(data, dict) or data.get("ok") is not True or not isinstance(data.get("rows"), list):
            raise MalformedResponse(
                "admin feedback",
                status=response.status_code,
                message=_server_message(data) or "Unexpected response format.",
            )

        rows: list[FeedbackRow] = []
        for raw in data["rows"]:
            try:
                rows.append(FeedbackRow.model_validate(raw))
            except ValidationError:
                logger.debug("Skipping malformed feedback row: %r", raw)
        return rows
