"""
===============================================================================
BOOTSTRAP / PROVISIONING USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Name:
    Bootstrap Use Case Results

Business Goal:
    Modelos compartidos de resultados y errores para:
      - bootstrap de plataforma (super-admin inicial)
      - provisioning de tenants y usuarios de tenant

Why (Context / Intención):
    - Los errores de bootstrap son decisiones de política definitivas: se
      devuelven tipados al operador (nunca se reintentan en silencio).
    - Fallas de infraestructura (AuditWriteError, DatabaseError) NO viven
      acá: se levantan como excepciones.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    bootstrap_results models (module)

Responsibilities:
    - BootstrapErrorCode / BootstrapError como contrato de error.
    - Resultados: BootstrapResult, BootstrapStatusResult, TenantResult,
      TenantUserResult.

Collaborators:
    - domain.entities: Tenant, TenantUser, BootstrapStatus
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from ....domain.entities import BootstrapStatus, Tenant, TenantUser


class BootstrapErrorCode(str, Enum):
    """
    Códigos:
      - INVALID_BOOTSTRAP_SECRET: secreto incorrecto (comparación constante).
      - ALREADY_BOOTSTRAPPED: la plataforma ya tiene super-admin.
      - VALIDATION_ERROR: input inválido/incompleto.
      - FORBIDDEN: actor sin rol/scope para provisionar.
      - NOT_FOUND: tenant inexistente (o no visible para el actor).
      - CONFLICT: slug / email ya registrado.
    """

    INVALID_BOOTSTRAP_SECRET = "INVALID_BOOTSTRAP_SECRET"
    ALREADY_BOOTSTRAPPED = "ALREADY_BOOTSTRAPPED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"


@dataclass(frozen=True)
class BootstrapError:
    code: BootstrapErrorCode
    message: str
    resource: str | None = None


@dataclass
class BootstrapResult:
    """created=True solo si este llamado creó al super-admin."""

    created: bool = False
    user_id: UUID | None = None
    error: BootstrapError | None = None


@dataclass
class BootstrapStatusResult:
    status: BootstrapStatus | None = None
    error: BootstrapError | None = None


@dataclass
class TenantResult:
    tenant: Tenant | None = None
    error: BootstrapError | None = None


@dataclass
class TenantUserResult:
    user: TenantUser | None = None
    error: BootstrapError | None = None


def error_from_denial(reason_code: str, *, resource: str | None = None) -> BootstrapError:
    """
    Traduce una denegación del guard a BootstrapError.

    FORBIDDEN_TENANT se presenta como NOT_FOUND: un tenant de otro cliente y
    un tenant inexistente son indistinguibles.
    """
    if reason_code == "FORBIDDEN_ROLE":
        return BootstrapError(
            code=BootstrapErrorCode.FORBIDDEN,
            message="Access denied.",
            resource=resource,
        )
    return BootstrapError(
        code=BootstrapErrorCode.NOT_FOUND,
        message="Resource not found.",
        resource=resource,
    )
