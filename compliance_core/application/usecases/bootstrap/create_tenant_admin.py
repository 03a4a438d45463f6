"""
===============================================================================
USE CASE: Create Tenant Admin
===============================================================================

Name:
    Create Tenant Admin Use Case

Business Goal:
    Provisionar el administrador de un tenant (resuelto por slug):
      - solo PLATFORM (SUPER_ADMIN) o SYSTEM
      - email hasheado (HMAC) y password hasheado (Argon2)
      - email único dentro del tenant

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    CreateTenantAdminUseCase

Responsibilities:
    - Autorizar vía TenantAuthorizationGuard.
    - Resolver tenant por slug.
    - Validar campos y unicidad de email (por hash).
    - Persistir TenantUser(role=TENANT_ADMIN) y auditar.

Collaborators:
    - TenantRepository.find_by_slug
    - TenantUserRepository.exists_email_hash / create_tenant_admin
    - PasswordHasher / EmailHasher
    - AuditTrail

Error Mapping:
    - FORBIDDEN / NOT_FOUND / VALIDATION_ERROR / CONFLICT
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

_ALLOWED_ROLES: Final[frozenset[Role]] = frozenset({Role.SUPER_ADMIN, Role.SYSTEM})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CreateTenantAdminInput:
    actor: Actor
    tenant_slug: str
    email: str
    display_name: str
    password: str = field(repr=False)


class CreateTenantAdminUseCase:
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

    def execute(self, input_data: CreateTenantAdminInput) -> TenantUserResult:
        # 1) Autorización
        decision = self._guard.authorize(input_data.actor, _ALLOWED_ROLES)
        if isinstance(decision, Deny):
            return TenantUserResult(
                error=error_from_denial(decision.reason, resource="TenantUser")
            )

        # 2) Tenant
        tenant = self._tenants.find_by_slug((input_data.tenant_slug or "").strip().lower())
        if tenant is None:
            return self._error(BootstrapErrorCode.NOT_FOUND, "Tenant not found.", "Tenant")

        # 3) Validación + unicidad
        message = validate_user_fields(
            input_data.email, input_data.display_name, input_data.password
        )
        if message is not None:
            return self._error(BootstrapErrorCode.VALIDATION_ERROR, message)

        email_hash = self._email_hasher.hash(input_data.email)
        if self._users.exists_email_hash(tenant.id, email_hash):
            return self._error(BootstrapErrorCode.CONFLICT, "User already exists.")

        # 4) Persistir
        created = self._users.create_tenant_admin(
            TenantUser(
                id=uuid4(),
                tenant_id=tenant.id,
                email_hash=email_hash,
                display_name=input_data.display_name.strip(),
                password_hash=self._password_hasher.hash(input_data.password),
                role=Role.TENANT_ADMIN,
                created_at=self._clock(),
            )
        )

        # 5) Auditoría
        event = self._audit.build_event(
            AuditEventName.TENANT_ADMIN_CREATED,
            actor=input_data.actor,
            tenant_id=tenant.id,
            target_id=created.id,
            metadata=safe_metadata(role=created.role),
        )
        self._audit.record(event, policy=AuditPolicy.BEST_EFFORT)

        logger.info(
            "tenant admin created",
            extra={"tenant_id": tenant.id, "user_id": str(created.id)},
        )
        return TenantUserResult(user=created)

    @staticmethod
    def _error(
        code: BootstrapErrorCode, message: str, resource: str = "TenantUser"
    ) -> TenantUserResult:
        return TenantUserResult(
            error=BootstrapError(code=code, message=message, resource=resource)
        )
