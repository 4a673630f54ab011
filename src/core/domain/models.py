"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta en el borde: cada endpoint se parsea a un modelo
  y un payload que no cumple el contrato se rechaza antes de entrar al Core.
- Un único esquema por concepto (p.ej. `Profile`): los alias absorben las
  variantes camelCase/snake_case del servidor y el estado solo ve una forma.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from core.domain.choices import (
    BusinessType,
    Goal12Months,
    MainBottleneck,
    MonthlyRevenue,
    PricingModel,
)

DETAILS_MIN_LENGTH = 40


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FailureKind(str, Enum):
    """Clases de fallo visibles para la UI."""

    TRANSPORT = "transport"
    AUTH = "auth"
    ENTITLEMENT = "entitlement"
    STATUS = "status"
    INVALID = "invalid"


class Failure(BaseModel):
    """Variante de error (tagged) que los servicios guardan como estado."""

    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    status: int | None = None
    message: str = Field(..., min_length=1)


# --- Sesión ---------------------------------------------------------------


class SessionStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    PENDING = "pending"
    AUTHENTICATED = "authenticated"


class Session(BaseModel):
    """Sesión del usuario tal como la ve el cliente.

    `user_id` e `is_admin` solo existen en estado autenticado y siempre
    provienen de la misma respuesta de `/me`.
    """

    model_config = ConfigDict(frozen=True)

    status: SessionStatus = SessionStatus.UNAUTHENTICATED
    user_id: str | None = None
    is_admin: bool = False

    @classmethod
    def unauthenticated(cls) -> "Session":
        return cls(status=SessionStatus.UNAUTHENTICATED)

    @classmethod
    def pending(cls) -> "Session":
        return cls(status=SessionStatus.PENDING)

    @classmethod
    def authenticated(cls, user_id: str | None, is_admin: bool) -> "Session":
        return cls(status=SessionStatus.AUTHENTICATED, user_id=user_id, is_admin=bool(is_admin))

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED


class Plan(str, Enum):
    FREE = "free"
    MONTHLY = "monthly"
    LIFETIME = "lifetime"

    @property
    def is_paid(self) -> bool:
        return self is not Plan.FREE


def _lenient_plan(value: Any) -> Any:
    if value is None or isinstance(value, Plan):
        return value
    try:
        return Plan(str(value).strip().lower())
    except ValueError:
        return None


def _lenient_count(value: Any) -> int | None:
    """Contador de mensajes gratis; cualquier valor no entero es "sin límite/desconocido"."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text.lstrip("-").isdigit():
            return None
        value = int(text)
    if not isinstance(value, int):
        return None
    return max(0, value)


class SessionInfo(BaseModel):
    """Respuesta de `GET /me` (incluye el snapshot de cuota si el servidor lo envía)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    authenticated: bool = False
    user_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("userId", "user_id"),
    )
    is_admin: bool = Field(
        default=False,
        validation_alias=AliasChoices("isAdmin", "is_admin"),
    )
    plan: Plan | None = None
    remaining_free_messages: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices(
            "remainingFreeMessages",
            "remaining_free_messages",
            "free_messages_remaining",
        ),
    )

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value: Any) -> Any:
        if value is None:
            return None
        return str(value)

    @field_validator("is_admin", mode="before")
    @classmethod
    def _null_is_not_admin(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("plan", mode="before")
    @classmethod
    def _coerce_plan(cls, value: Any) -> Any:
        return _lenient_plan(value)

    @field_validator("remaining_free_messages", mode="before")
    @classmethod
    def _coerce_remaining(cls, value: Any) -> Any:
        return _lenient_count(value)


# --- Perfil ---------------------------------------------------------------


class Profile(BaseModel):
    """Perfil de onboarding (write-once, copia de solo lectura en el cliente).

    Por qué un solo esquema versionado:
    - El servidor responde en snake_case y versiones antiguas del cliente
      guardaban camelCase; ambos se normalizan aquí.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    schema_version: int = 1
    business_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("business_type", "businessType"),
    )
    pricing_model: str | None = Field(
        default=None,
        validation_alias=AliasChoices("pricing_model", "pricingModel"),
    )
    monthly_revenue: str | None = Field(
        default=None,
        validation_alias=AliasChoices("monthly_revenue", "monthlyRevenue"),
    )
    main_bottleneck: str | None = Field(
        default=None,
        validation_alias=AliasChoices("main_bottleneck", "mainBottleneck"),
    )
    goal_12_months: str | None = Field(
        default=None,
        validation_alias=AliasChoices("goal_12_months", "goal12Months"),
    )
    details: str | None = None
    created_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("created_at", "createdAt", "createdAtISO"),
    )

    def answers(self) -> dict[str, str | None]:
        """Pares etiqueta → valor en el orden del cuestionario."""

        return {
            "Business type": self.business_type,
            "Pricing model": self.pricing_model,
            "Monthly revenue": self.monthly_revenue,
            "Main bottleneck": self.main_bottleneck,
            "12-month goal": self.goal_12_months,
        }

    def same_answers_as(self, draft: "OnboardingDraft") -> bool:
        payload = draft.to_payload()
        return all(
            getattr(self, key) == payload[key]
            for key in ("business_type", "pricing_model", "monthly_revenue", "main_bottleneck", "goal_12_months", "details")
        )


class ProfileLookup(BaseModel):
    """Respuesta de `GET /profile`: la existencia es lo autoritativo."""

    model_config = ConfigDict(frozen=True)

    exists: bool
    profile: Profile | None = None


class OnboardingDraft(BaseModel):
    """Envío único del onboarding (no existe ruta de edición)."""

    model_config = ConfigDict(frozen=True)

    business_type: BusinessType = BusinessType.FREELANCER
    pricing_model: PricingModel = PricingModel.HOURLY
    monthly_revenue: MonthlyRevenue = MonthlyRevenue.UNDER_2K
    main_bottleneck: MainBottleneck = MainBottleneck.LOW_PRICING
    goal_12_months: Goal12Months = Goal12Months.FEWER_BETTER_CLIENTS
    details: str = Field(
        ...,
        min_length=DETAILS_MIN_LENGTH,
        max_length=10_000,
        description="Problemas principales y lo que ya se intentó.",
    )

    @field_validator("details", mode="before")
    @classmethod
    def _strip_details(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    def to_payload(self) -> dict[str, str]:
        return self.model_dump(mode="json")


# --- Billing / entitlement ------------------------------------------------


class Subscription(BaseModel):
    """`subscription` de `GET /billing/status`."""

    model_config = ConfigDict(extra="ignore")

    plan: Plan = Plan.FREE
    status: str | None = None
    active: bool = False
    current_period_end: datetime | None = None

    @field_validator("plan", mode="before")
    @classmethod
    def _normalize_plan(cls, value: Any) -> Any:
        if value is None:
            return Plan.FREE
        if isinstance(value, Plan):
            return value
        return str(value).strip().lower()

    @field_validator("active", mode="before")
    @classmethod
    def _null_is_inactive(cls, value: Any) -> Any:
        return False if value is None else value


class Offer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    price: str | None = None

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class Offers(BaseModel):
    """Ofertas de upgrade (`GET /billing/offers`)."""

    model_config = ConfigDict(extra="ignore")

    monthly: Offer = Field(default_factory=Offer)
    lifetime: Offer = Field(default_factory=lambda: Offer(enabled=True))

    @classmethod
    def fallback(cls) -> "Offers":
        """Default cuando no se pueden obtener las ofertas: solo lifetime visible."""

        return cls(monthly=Offer(enabled=False), lifetime=Offer(enabled=True))

    def visible_plans(self) -> list[Plan]:
        plans: list[Plan] = []
        if self.monthly.enabled:
            plans.append(Plan.MONTHLY)
        if self.lifetime.enabled:
            plans.append(Plan.LIFETIME)
        return plans

    def price_for(self, plan: Plan) -> str | None:
        if plan is Plan.MONTHLY:
            return self.monthly.price
        if plan is Plan.LIFETIME:
            return self.lifetime.price
        return None


# --- Conversación ---------------------------------------------------------


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """Roles desconocidos se tratan como `user`."""

        if isinstance(value, Role):
            return value
        if isinstance(value, str) and value.strip().lower() == cls.ASSISTANT.value:
            return cls.ASSISTANT
        return cls.USER


class Message(BaseModel):
    """Mensaje del historial (append-only desde el punto de vista del cliente)."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Role = Role.USER
    content: str = ""
    timestamp: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("timestamp", "created_at", "createdAt"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if value is None or value == "":
            return uuid.uuid4().hex
        return str(value)

    @field_validator("role", mode="before")
    @classmethod
    def _coerce_role(cls, value: Any) -> Role:
        return Role.parse(value)

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _lenient_timestamp(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        if isinstance(value, (datetime, int, float)):
            return value
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None

    @classmethod
    def from_history(cls, row: dict[str, Any]) -> "Message":
        """Fila de `GET /chat/history` (`{id, role, content, created_at}`)."""

        return cls.model_validate(row)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content, timestamp=_utcnow())

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, timestamp=_utcnow())


class ChatReply(BaseModel):
    """Respuesta de `POST /chat`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    reply: str
    remaining_free_messages: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices(
            "remainingFreeMessages",
            "remaining_free_messages",
            "free_messages_remaining",
        ),
    )

    @field_validator("remaining_free_messages", mode="before")
    @classmethod
    def _coerce_remaining(cls, value: Any) -> Any:
        return _lenient_count(value)


class Paywall(BaseModel):
    """Estado transitorio de paywall (nunca persistido)."""

    model_config = ConfigDict(frozen=True)

    active: bool = False
    message: str = ""
    cta: str = "Upgrade to keep chatting"

    @classmethod
    def cleared(cls) -> "Paywall":
        return cls()

    @classmethod
    def raised(cls, message: str) -> "Paywall":
        return cls(active=True, message=message)


# --- Feedback (admin) -----------------------------------------------------


class FeedbackRating(str, Enum):
    UP = "up"
    DOWN = "down"


class FeedbackFilter(str, Enum):
    ALL = "all"
    UP = "up"
    DOWN = "down"

    def matches(self, row: "FeedbackRow") -> bool:
        return self is FeedbackFilter.ALL or row.rating.value == self.value


class FeedbackRow(BaseModel):
    """Valoración de una respuesta del asistente, con contexto."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    created_at: datetime | None = None
    rating: FeedbackRating
    comment: str | None = None
    user_email: str | None = None
    assistant_message_id: str | None = None
    assistant_reply: str | None = None
    user_prompt: str | None = None

    @field_validator("id", "assistant_message_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Any:
        return None if value is None else str(value)
