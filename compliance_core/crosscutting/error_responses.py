"""
===============================================================================
MÓDULO: Respuestas de error estándar (RFC 7807 / Problem Details)
===============================================================================

Objetivo
--------
Traducir los errores tipados del core (resultados de casos de uso y
ComplianceError) a un payload Problem Details estable, independiente del
transporte que lo exponga.

Regla de aislamiento
--------------------
Un recurso de otro tenant y un recurso inexistente producen el MISMO payload
byte a byte: no se incluye el identificador pedido ni ningún dato del tenant.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  ProblemDetail + problem_from_error / problem_from_exception

Responsabilidades:
  - Definir catálogo de códigos visibles (ErrorCode)
  - Mapear código -> status HTTP
  - Construir el payload RFC7807 (pydantic)

Colaboradores:
  - application/authorization.py (AuthorizationError)
  - application/usecases/* (BootstrapError, UserError, IncidentError)
  - crosscutting/exceptions.py (ComplianceError)
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel

from .exceptions import ComplianceError


class ErrorCode(str, Enum):
    # 4xx
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID_BOOTSTRAP_SECRET = "INVALID_BOOTSTRAP_SECRET"
    ALREADY_BOOTSTRAPPED = "ALREADY_BOOTSTRAPPED"
    ALREADY_NOTIFIED = "ALREADY_NOTIFIED"
    ALREADY_CLOSED = "ALREADY_CLOSED"
    ALREADY_SUSPENDED = "ALREADY_SUSPENDED"

    # 5xx
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    AUDIT_WRITE_FAILED = "AUDIT_WRITE_FAILED"
    OPERATION_TIMEOUT = "OPERATION_TIMEOUT"


_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.INVALID_BOOTSTRAP_SECRET: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.ALREADY_BOOTSTRAPPED: 409,
    ErrorCode.ALREADY_NOTIFIED: 409,
    ErrorCode.ALREADY_CLOSED: 409,
    ErrorCode.ALREADY_SUSPENDED: 409,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.DATABASE_ERROR: 503,
    ErrorCode.AUDIT_WRITE_FAILED: 503,
    ErrorCode.OPERATION_TIMEOUT: 504,
}

_TITLE_BY_STATUS: dict[int, str] = {
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}

# Códigos internos que se presentan con otro código visible.
_ALIASES: dict[str, ErrorCode] = {
    "FORBIDDEN_ROLE": ErrorCode.FORBIDDEN,
    "FORBIDDEN_TENANT": ErrorCode.NOT_FOUND,
    "INCIDENT_NOT_FOUND": ErrorCode.NOT_FOUND,
}


class ProblemDetail(BaseModel):
    """
    Modelo RFC 7807 (Problem Details).

    Campos extra:
    - code: error code estable para clientes
    - error_id: solo para errores de infraestructura (correlación con logs)
    """

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    code: ErrorCode
    instance: str | None = None
    error_id: str | None = None

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


class _TypedError(Protocol):
    code: Any
    message: str


def _visible_code(raw: Any) -> ErrorCode:
    value = raw.value if isinstance(raw, Enum) else str(raw)
    if value in _ALIASES:
        return _ALIASES[value]
    try:
        return ErrorCode(value)
    except ValueError:
        return ErrorCode.INTERNAL_ERROR


def _build(code: ErrorCode, detail: str, **extra: Any) -> ProblemDetail:
    status = _STATUS_BY_CODE[code]
    return ProblemDetail(
        title=_TITLE_BY_STATUS[status],
        status=status,
        detail=detail,
        code=code,
        **extra,
    )


def problem_from_error(error: _TypedError, *, instance: str | None = None) -> ProblemDetail:
    """Payload para un error tipado devuelto por un caso de uso."""
    code = _visible_code(error.code)
    if code == ErrorCode.NOT_FOUND:
        # Mensaje fijo: no depende del recurso ni del motivo interno.
        return _build(code, "Resource not found.", instance=instance)
    return _build(code, error.message, instance=instance)


def problem_from_exception(
    exc: ComplianceError, *, instance: str | None = None
) -> ProblemDetail:
    """Payload para una falla de infraestructura (sin filtrar el detalle interno)."""
    code = _visible_code(exc.error_code)
    if code == ErrorCode.INTERNAL_ERROR or _STATUS_BY_CODE[code] < 500:
        code = ErrorCode.INTERNAL_ERROR
    detail = "The operation could not be completed."
    return _build(code, detail, instance=instance, error_id=exc.error_id)
