"""Taxonomía de errores remotos.

Por qué excepciones tipadas:
- El adaptador HTTP traduce status codes / fallos de red a una jerarquía fija.
- Los servicios las capturan en el punto de llamada y las convierten en
  estado (`Failure`); nunca llegan a la capa de render.
"""

from __future__ import annotations

from core.domain.models import Failure, FailureKind


class RemoteError(Exception):
    """Fallo de una llamada al backend."""

    kind: FailureKind = FailureKind.STATUS

    def __init__(self, operation: str, *, status: int | None = None, message: str | None = None) -> None:
        self.operation = operation
        self.status = status
        self.message = message or default_failure_message(operation, status)
        super().__init__(self.message)

    def to_failure(self) -> Failure:
        return Failure(kind=self.kind, status=self.status, message=self.message)


class TransportFailure(RemoteError):
    """Red, DNS o timeout: el request nunca obtuvo respuesta."""

    kind = FailureKind.TRANSPORT


class AuthenticationRequired(RemoteError):
    """HTTP 401: la sesión ya no es válida."""

    kind = FailureKind.AUTH


class QuotaExceeded(RemoteError):
    """HTTP 402: el servidor rechaza por falta de entitlement (paywall)."""

    kind = FailureKind.ENTITLEMENT


class RemoteStatusError(RemoteError):
    """Cualquier otra respuesta non-OK."""

    kind = FailureKind.STATUS


class MalformedResponse(RemoteError):
    """El cuerpo no cumple el contrato del endpoint."""

    kind = FailureKind.INVALID


def default_failure_message(operation: str, status: int | None) -> str:
    label = operation[:1].upper() + operation[1:] if operation else "Request"
    if status is None:
        return f"{label} failed (network error)"
    return f"{label} failed ({status})"
