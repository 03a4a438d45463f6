"""
===============================================================================
USE CASE: Create Tenant User
===============================================================================

Name:
    Create Tenant User Use Case

Business Goal:
    Alta de usuarios finales (TENANT_USER / TENANT_DPO) dentro de un tenant.
      - PLATFORM / SYSTEM: en cualquier tenant
      - TENANT_ADMIN: SOLO en su propio tenant

Why (Context / Intención):
    - Un TENANT_ADMIN que apunta a otro tenant recibe NOT_FOUND, igual que
      si el tenant no existiera (no se filtra la existencia de otros clientes).

Error Mapping:
    - FORBIDDEN: rol no permitido
    - NOT_FOUND: tenant inexistente u otro tenant
    - VALIDATION_ERROR: campos inválidos / rol no asignable
    - CONFLICT: email ya registrado en el tenant
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Final
from uuid import uuid4

from ....domain.audit import AuditEventName, safe_metadata
from ....domain.entities import TenantUser
from ....domain.repositories import TenantRepository, TenantUserRepository
from ....domain.scope import Actor, Role
from ....domain.services import EmailHasher, PasswordHasher
from ...audit_trail import AuditPolicy, AuditTrail
from ...authorization import Deny, TenantAuthorizationGuard
from .bootstrap_platform import validate_user_fields
from .bootstrap_results import (
    BootstrapError,
    BootstrapErrorCode,
    TenantUserResult,
    error_from_denial,
)

logger = logging.getLogger(__name__)

_ALLOWED_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.SUPER_ADMIN, Role.SYSTEM, Role.TENANT_ADMIN}
)
_ASSIGNABLE_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.TENANT_USER, Role.TENANT_DPO}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CreateTenantUserInput:
    actor: Actor
    tenant_id: str
    email: str
    display_name: str
    password: str = field(repr=False)
    role: Role = Role.TENANT_USER


class CreateTenantUserUseCase:
    def __init__(
        self,
        tenant_repository: TenantRepository,
        tenant_user_repository: TenantUserRepository,
        password_hasher: PasswordHasher,
        email_hasher: EmailHasher,
        guard: TenantAuthorizationGuard,
        audit_trail: AuditTrail,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._tenants = tenant_repository
        self._users = tenant_user_repository
        self._password_hasher = password_hasher
        self._email_hasher = email_hasher
        self._guard = guard
        self._audit = audit_trail
        self._clock = clock

    def execute(self, input_data: CreateTenantUserInput) -> TenantUserResult:
        # ---------------------------------------------------------------------
        # 1) Autorización (rol + aislamiento de tenant).
        # ---------------------------------------------------------------------
        decision = self._guard.authorize(
            input_data.actor, _ALLOWED_ROLES, input_data.tenant_id
        )
        if isinstance(decision, Deny):
            return TenantUserResult(
                error=error_from_denial(decision.reason, resource="Tenant")
            )

        # ---------------------------------------------------------------------
        # 2) Tenant (mismo NOT_FOUND que la denegación cross-tenant).
        # ---------------------------------------------------------------------
        tenant = self._tenants.find_by_id(input_data.tenant_id)
        if tenant is None:
            return TenantUserResult(
                error=error_from_denial("NOT_FOUND", resource="Tenant")
            )

        # ---------------------------------------------------------------------
        # 3) Validación.
        # ---------------------------------------------------------------------
        if input_data.role not in _ASSIGNABLE_ROLES:
            return self._error(
                BootstrapErrorCode.VALIDATION_ERROR,
                "Role must be TENANT_USER or TENANT_DPO.",
            )
        message = validate_user_fields(
            input_data.email, input_data.display_name, input_data.password
        )
        if message is not None:
            return self._error(BootstrapErrorCode.VALIDATION_ERROR, message)

        email_hash = self._email_hasher.hash(input_data.email)
        if self._users.exists_email_hash(tenant.id, email_hash):
            return self._error(BootstrapErrorCode.CONFLICT, "User already exists.")

        # ---------------------------------------------------------------------
        # 4) Persistir + auditar.
        # ---------------------------------------------------------------------
        created = self._users.create_tenant_user(
            TenantUser(
                id=uuid4(),
                tenant_id=tenant.id,
                email_hash=email_hash,
                display_name=input_data.display_name.strip(),
                password_hash=self._password_hasher.hash(input_data.password),
                role=input_data.role,
                created_at=self._clock(),
            )
        )

        event = self._audit.build_event(
            AuditEventName.TENANT_USER_CREATED,
            actor=input_data.actor,
            tenant_id=tenant.id,
            target_id=created.id,
            metadata=safe_metadata(role=created.role),
        )
        self._audit.record(event, policy=AuditPolicy.BEST_EFFORT)

        return TenantUserResult(user=created)

    @staticmethod
    def _error(code: BootstrapErrorCode, message: str) -> TenantUserResult:
        return TenantUserResult(
            error=BootstrapError(code=code, message=message, resource="TenantUser")
        )
