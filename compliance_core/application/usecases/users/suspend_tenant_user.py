"""
===============================================================================
USE CASE: Suspend Tenant User
===============================================================================

Name:
    Suspend Tenant User Use Case

Business Goal:
    Suspender un usuario de tenant (acción compliance-critical):
      - la auditoría es CRITICAL: si no se puede registrar, el caller recibe
        AuditWriteError
      - un TENANT_ADMIN solo puede suspender usuarios de su tenant y no puede
        suspenderse a sí mismo

Error Mapping:
    - FORBIDDEN: rol no permitido
    - NOT_FOUND: usuario inexistente u otro tenant
    - ALREADY_SUSPENDED: ya suspendido
    - VALIDATION_ERROR: auto-suspensión
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Final
from uuid import UUID

from ....domain.audit import AuditEventName, safe_metadata
from ....domain.repositories import TenantUserRepository
from ....domain.scope import Actor, Role
from ...audit_trail import AuditPolicy, AuditTrail
from ...authorization import AuthorizationErrorCode, TenantAuthorizationGuard
from .user_results import UserError, UserErrorCode, UserResult, forbidden, not_found

logger = logging.getLogger(__name__)

_SUSPEND_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.SUPER_ADMIN, Role.SYSTEM, Role.TENANT_ADMIN}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SuspendTenantUserInput:
    actor: Actor
    user_id: UUID


class SuspendTenantUserUseCase:
    def __init__(
        self,
        tenant_user_repository: TenantUserRepository,
        guard: TenantAuthorizationGuard,
        audit_trail: AuditTrail,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._users = tenant_user_repository
        self._guard = guard
        self._audit = audit_trail
        self._clock = clock

    def execute(self, input_data: SuspendTenantUserInput) -> UserResult:
        actor = input_data.actor

        # ---------------------------------------------------------------------
        # 1) Autorizar + cargar.
        # ---------------------------------------------------------------------
        access = self._guard.authorize_resource(
            actor,
            _SUSPEND_ROLES,
            load=lambda: self._users.find_by_id(input_data.user_id),
            tenant_of=lambda user: user.tenant_id,
            resource_name="TenantUser",
        )
        if access.error is not None:
            if access.error.code == AuthorizationErrorCode.FORBIDDEN_ROLE:
                return UserResult(error=forbidden())
            return UserResult(error=not_found())

        user = access.resource

        # ---------------------------------------------------------------------
        # 2) Reglas de negocio.
        # ---------------------------------------------------------------------
        if actor.actor_id is not None and actor.actor_id == user.id:
            return UserResult(
                error=UserError(
                    code=UserErrorCode.VALIDATION_ERROR,
                    message="Users cannot suspend themselves.",
                )
            )
        if user.is_suspended:
            return UserResult(
                error=UserError(
                    code=UserErrorCode.ALREADY_SUSPENDED,
                    message="User is already suspended.",
                )
            )

        # ---------------------------------------------------------------------
        # 3) Efecto + auditoría crítica.
        # ---------------------------------------------------------------------
        now = self._clock()
        suspended = self._users.suspend(user.id, now)
        if suspended is None:
            return UserResult(error=not_found())

        event = self._audit.build_event(
            AuditEventName.TENANT_USER_SUSPENDED,
            actor=actor,
            tenant_id=suspended.tenant_id,
            target_id=suspended.id,
            metadata=safe_metadata(role=suspended.role),
            occurred_at=now,
        )
        self._audit.record(event, policy=AuditPolicy.CRITICAL)

        logger.info("tenant user suspended", extra={"user_id": str(suspended.id)})
        return UserResult(user=suspended)
