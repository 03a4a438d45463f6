"""
===============================================================================
TENANT AUTHORIZATION GUARD (Single Decision Point)
===============================================================================

Name:
    TenantAuthorizationGuard

Business Goal:
    Único punto de decisión de autorización para toda operación sensible:
      - check de rol (membership exacta)
      - check de aislamiento de tenant
      - denegación cross-tenant indistinguible de "no existe"

Why (Context / Intención):
    - Checks de rol/scope dispersos por ruta generan inconsistencias.
    - Un TENANT_ADMIN de "acme" NO debe poder inferir que un recurso de
      "globex" existe adivinando IDs: "existe en otro tenant" y "no existe"
      producen exactamente el mismo error hacia afuera.

-------------------------------------------------------------------------------
CRC CARD (Component-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    TenantAuthorizationGuard (+ Allow / Deny / ResourceAccess)

Responsibilities:
    - authorize(): decisión pura Allow | Deny(reason), sin side effects en Allow.
    - authorize_resource(): rol -> lookup (acotado por timeout) -> tenant.
    - outward_error(): mapear la decisión interna al error visible.
    - Reportar intentos cross-tenant a un listener (best-effort). El listener
      debe encolar y volver: la denegación no espera I/O de incidentes.

Collaborators:
    - domain.scope: Actor, has_role, can_act_on_tenant
    - crosscutting.timing.run_with_timeout
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Final, Generic, Iterable, TypeVar, Union

from ..crosscutting.timing import run_with_timeout
from ..domain.scope import Actor, Role, can_act_on_tenant, has_role

logger = logging.getLogger(__name__)

R = TypeVar("R")

CrossTenantListener = Callable[[Actor, str], None]

_MSG_NOT_FOUND: Final[str] = "Resource not found."
_MSG_FORBIDDEN: Final[str] = "Access denied."


class AuthorizationErrorCode(str, Enum):
    """
    Códigos de decisión.

      - FORBIDDEN_ROLE: el rol del actor no está en el set requerido.
      - FORBIDDEN_TENANT: actor TENANT sobre otro tenant (solo interno).
      - NOT_FOUND: forma visible de FORBIDDEN_TENANT y de "no existe".
    """

    FORBIDDEN_ROLE = "FORBIDDEN_ROLE"
    FORBIDDEN_TENANT = "FORBIDDEN_TENANT"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class AuthorizationError:
    """Error visible de autorización (lo que ve el caller externo)."""

    code: AuthorizationErrorCode
    message: str
    resource: str | None = None


@dataclass(frozen=True, slots=True)
class Allow:
    @property
    def allowed(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Deny:
    reason: AuthorizationErrorCode

    @property
    def allowed(self) -> bool:
        return False


AuthorizationDecision = Union[Allow, Deny]

ALLOW: Final[Allow] = Allow()


@dataclass(frozen=True)
class ResourceAccess(Generic[R]):
    """
    Resultado de authorize_resource().

    - resource: presente solo si hay acceso
    - error: error visible (NOT_FOUND / FORBIDDEN_ROLE)
    - decision: decisión interna (para auditoría/detección, nunca hacia afuera)
    """

    resource: R | None = None
    error: AuthorizationError | None = None
    decision: AuthorizationDecision = ALLOW


def outward_error(
    decision: AuthorizationDecision, *, resource: str | None = None
) -> AuthorizationError | None:
    """
    Traduce la decisión al error visible.

    FORBIDDEN_TENANT se presenta como NOT_FOUND (mismo código, mismo mensaje
    que un recurso inexistente).
    """
    if isinstance(decision, Allow):
        return None
    if decision.reason == AuthorizationErrorCode.FORBIDDEN_ROLE:
        return AuthorizationError(
            code=AuthorizationErrorCode.FORBIDDEN_ROLE,
            message=_MSG_FORBIDDEN,
            resource=resource,
        )
    return not_found_error(resource)


def not_found_error(resource: str | None = None) -> AuthorizationError:
    return AuthorizationError(
        code=AuthorizationErrorCode.NOT_FOUND,
        message=_MSG_NOT_FOUND,
        resource=resource,
    )


class TenantAuthorizationGuard:
    """
    Punto único de autorización.

    Orden garantizado: rol primero, tenant después. En Allow no hay side
    effects; en Deny(FORBIDDEN_TENANT) se notifica al listener (si existe).
    """

    def __init__(self, cross_tenant_listener: CrossTenantListener | None = None):
        self._cross_tenant_listener = cross_tenant_listener

    def authorize(
        self,
        actor: Actor,
        required_roles: Iterable[Role],
        target_tenant_id: str | None = None,
    ) -> AuthorizationDecision:
        # 1) Rol
        if not has_role(actor, required_roles):
            logger.info(
                "authorization denied",
                extra={
                    "reason": AuthorizationErrorCode.FORBIDDEN_ROLE.value,
                    "actor_role": actor.role.value,
                },
            )
            return Deny(AuthorizationErrorCode.FORBIDDEN_ROLE)

        # 2) Aislamiento de tenant
        if target_tenant_id is not None and not can_act_on_tenant(
            actor, target_tenant_id
        ):
            self._on_cross_tenant(actor, target_tenant_id)
            return Deny(AuthorizationErrorCode.FORBIDDEN_TENANT)

        return ALLOW

    def authorize_resource(
        self,
        actor: Actor,
        required_roles: Iterable[Role],
        load: Callable[[], R | None],
        tenant_of: Callable[[R], str | None],
        *,
        resource_name: str | None = None,
        timeout_seconds: float | None = None,
    ) -> ResourceAccess[R]:
        """
        Autoriza el acceso a un recurso identificado por el caller.

        - El rol se valida ANTES del lookup (no se toca storage si no hay rol).
        - Recurso inexistente y recurso de otro tenant => mismo NOT_FOUND.
        - Un recurso sin tenant (plataforma) no es visible para actores TENANT.
        - Timeout del lookup => OperationTimeoutError (falla de infraestructura).
        """
        roles = tuple(required_roles)

        # 1) Rol (sin lookup)
        role_decision = self.authorize(actor, roles)
        if isinstance(role_decision, Deny):
            return ResourceAccess(
                error=outward_error(role_decision, resource=resource_name),
                decision=role_decision,
            )

        # 2) Lookup acotado
        resource = run_with_timeout(
            load, timeout_seconds, operation="authorization_lookup"
        )
        if resource is None:
            return ResourceAccess(
                error=not_found_error(resource_name),
                decision=Deny(AuthorizationErrorCode.NOT_FOUND),
            )

        # 3) Tenant del recurso
        owner_tenant_id = tenant_of(resource)
        if owner_tenant_id is None:
            decision: AuthorizationDecision = (
                ALLOW
                if not actor.tenant_id
                else Deny(AuthorizationErrorCode.FORBIDDEN_TENANT)
            )
        else:
            decision = self.authorize(actor, roles, owner_tenant_id)

        if isinstance(decision, Deny):
            return ResourceAccess(
                error=outward_error(decision, resource=resource_name),
                decision=decision,
            )
        return ResourceAccess(resource=resource, decision=ALLOW)

    def _on_cross_tenant(self, actor: Actor, target_tenant_id: str) -> None:
        """Notifica al listener; se asume no bloqueante (ver cross_tenant_listener)."""
        logger.warning(
            "cross-tenant access denied",
            extra={
                "reason": AuthorizationErrorCode.FORBIDDEN_TENANT.value,
                "actor_role": actor.role.value,
            },
        )
        if self._cross_tenant_listener is None:
            return
        try:
            self._cross_tenant_listener(actor, target_tenant_id)
        except Exception as exc:
            # Best-effort: la denegación ya está decidida.
            logger.warning(
                "cross-tenant listener failed",
                extra={"error": str(exc)},
            )
