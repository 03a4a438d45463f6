"""
===============================================================================
USE CASE: Get Tenant User (sensitive read)
===============================================================================

Name:
    Get Tenant User Use Case

Business Goal:
    Leer un usuario de tenant por id respetando el aislamiento:
      - TENANT_ADMIN / TENANT_DPO: solo usuarios de su tenant
      - PLATFORM / SYSTEM: cualquier tenant

Why (Context / Intención):
    - Escenario típico de ataque: un admin de "acme" prueba IDs de usuarios
      de "globex". Debe recibir exactamente el mismo NOT_FOUND que para un id
      inexistente, y nada de "globex" debe aparecer en la auditoría de "acme".
    - La lectura exitosa es una lectura sensible: se audita en el tenant
      dueño del recurso.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    GetTenantUserUseCase

Responsibilities:
    - guard.authorize_resource (rol -> lookup -> tenant).
    - Auditar tenant_user.read (BEST_EFFORT) solo en éxito.

Collaborators:
    - TenantUserRepository.find_by_id
    - TenantAuthorizationGuard
    - AuditTrail
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final
from uuid import UUID

from ....domain.audit import AuditEventName
from ....domain.repositories import TenantUserRepository
from ....domain.scope import Actor, Role
from ...audit_trail import AuditPolicy, AuditTrail
from ...authorization import AuthorizationErrorCode, TenantAuthorizationGuard
from .user_results import UserResult, forbidden, not_found

READ_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.SUPER_ADMIN, Role.DPO, Role.SYSTEM, Role.TENANT_ADMIN, Role.TENANT_DPO}
)


@dataclass(frozen=True)
class GetTenantUserInput:
    actor: Actor
    user_id: UUID


class GetTenantUserUseCase:
    def __init__(
        self,
        tenant_user_repository: TenantUserRepository,
        guard: TenantAuthorizationGuard,
        audit_trail: AuditTrail,
        *,
        lookup_timeout_seconds: float | None = None,
    ) -> None:
        self._users = tenant_user_repository
        self._guard = guard
        self._audit = audit_trail
        self._timeout = lookup_timeout_seconds

    def execute(self, input_data: GetTenantUserInput) -> UserResult:
        access = self._guard.authorize_resource(
            input_data.actor,
            READ_ROLES,
            load=lambda: self._users.find_by_id(input_data.user_id),
            tenant_of=lambda user: user.tenant_id,
            resource_name="TenantUser",
            timeout_seconds=self._timeout,
        )
        if access.error is not None:
            if access.error.code == AuthorizationErrorCode.FORBIDDEN_ROLE:
                return UserResult(error=forbidden())
            return UserResult(error=not_found())

        user = access.resource
        event = self._audit.build_event(
            AuditEventName.TENANT_USER_READ,
            actor=input_data.actor,
            tenant_id=user.tenant_id,
            target_id=user.id,
        )
        self._audit.record(event, policy=AuditPolicy.BEST_EFFORT)
        return UserResult(user=user)
