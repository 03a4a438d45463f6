"""
===============================================================================
USE CASE: Create Tenant
===============================================================================

Name:
    Create Tenant Use Case

Business Goal:
    Crear un tenant (cliente) garantizando:
      - solo actores PLATFORM (SUPER_ADMIN) o SYSTEM pueden crearlo
      - slug único e inmutable
      - evento tenant.created en la auditoría

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    CreateTenantUseCase

Responsibilities:
    - Autorizar vía TenantAuthorizationGuard.
    - Normalizar y validar slug + name.
    - Verificar unicidad de slug (check + create atómico en el repo).
    - Auditar (BEST_EFFORT: el tenant ya existe y es recuperable).

Collaborators:
    - TenantRepository: find_by_slug, create
    - TenantAuthorizationGuard
    - AuditTrail

Error Mapping:
    - FORBIDDEN: rol no permitido
    - VALIDATION_ERROR: slug / name inválidos
    - CONFLICT: slug ya existe
===============================================================================
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Final
from uuid import uuid4

from ....domain.audit import AuditEventName, SafeLabel, safe_metadata
from ....domain.entities import Tenant
from ....domain.repositories import TenantRepository
from ....domain.scope import Actor, Role
from ...audit_trail import AuditPolicy, AuditTrail
from ...authorization import Deny, TenantAuthorizationGuard
from .bootstrap_results import (
    BootstrapError,
    BootstrapErrorCode,
    TenantResult,
    error_from_denial,
)

logger = logging.getLogger(__name__)

SLUG_PATTERN: Final = re.compile(r"^[a-z0-9][a-z0-9-]{1,62}$")
_ALLOWED_ROLES: Final[frozenset[Role]] = frozenset({Role.SUPER_ADMIN, Role.SYSTEM})
_RESOURCE_NAME: Final[str] = "Tenant"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CreateTenantInput:
    actor: Actor
    slug: str
    name: str


class CreateTenantUseCase:
    def __init__(
        self,
        tenant_repository: TenantRepository,
        guard: TenantAuthorizationGuard,
        audit_trail: AuditTrail,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._tenants = tenant_repository
        self._guard = guard
        self._audit = audit_trail
        self._clock = clock

    def execute(self, input_data: CreateTenantInput) -> TenantResult:
        # ---------------------------------------------------------------------
        # 1) Autorización (solo PLATFORM / SYSTEM).
        # ---------------------------------------------------------------------
        decision = self._guard.authorize(input_data.actor, _ALLOWED_ROLES)
        if isinstance(decision, Deny):
            return TenantResult(
                error=error_from_denial(decision.reason, resource=_RESOURCE_NAME)
            )

        # ---------------------------------------------------------------------
        # 2) Normalizar + validar.
        # ---------------------------------------------------------------------
        slug = (input_data.slug or "").strip().lower()
        name = (input_data.name or "").strip()
        if not SLUG_PATTERN.match(slug):
            return self._validation_error(
                "Slug must be 2-63 lowercase letters, digits or dashes."
            )
        if not name:
            return self._validation_error("Tenant name is required.")

        # ---------------------------------------------------------------------
        # 3) Unicidad (rápido) + create atómico.
        # ---------------------------------------------------------------------
        if self._tenants.find_by_slug(slug) is not None:
            return self._conflict()

        tenant = Tenant(id=str(uuid4()), slug=slug, name=name, created_at=self._clock())
        if not self._tenants.create(tenant):
            return self._conflict()

        # ---------------------------------------------------------------------
        # 4) Auditoría.
        # ---------------------------------------------------------------------
        event = self._audit.build_event(
            AuditEventName.TENANT_CREATED,
            actor=input_data.actor,
            tenant_id=tenant.id,
            target_id=tenant.id,
            metadata=safe_metadata(slug=SafeLabel(tenant.slug)),
        )
        self._audit.record(event, policy=AuditPolicy.BEST_EFFORT)

        logger.info("tenant created", extra={"tenant_id": tenant.id})
        return TenantResult(tenant=tenant)

    @staticmethod
    def _validation_error(message: str) -> TenantResult:
        return TenantResult(
            error=BootstrapError(
                code=BootstrapErrorCode.VALIDATION_ERROR,
                message=message,
                resource=_RESOURCE_NAME,
            )
        )

    @staticmethod
    def _conflict() -> TenantResult:
        return TenantResult(
            error=BootstrapError(
                code=BootstrapErrorCode.CONFLICT,
                message="Tenant slug already exists.",
                resource=_RESOURCE_NAME,
            )
        )
