"""
===============================================================================
USE CASE: List Audit Events (tenant-scoped audit view)
===============================================================================

Name:
    List Audit Events Use Case

Business Goal:
    Consultar el audit trail respetando el aislamiento:
      - actores TENANT ven SOLO eventos de su tenant
      - PLATFORM / SYSTEM pueden filtrar por cualquier tenant (o ver todo)

Why (Context / Intención):
    - La vista de auditoría de "acme" nunca debe mostrar eventos de "globex".
      Pedir otro tenant devuelve lista vacía (no revela si tiene eventos).
    - Consultar la auditoría es en sí una lectura sensible: se registra
      audit.events_listed (BEST_EFFORT).

Collaborators:
    - AuditEventRepository.list_events
    - TenantAuthorizationGuard
    - AuditTrail
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, List

from ....domain.audit import AuditEvent, AuditEventName, safe_metadata
from ....domain.repositories import AuditEventRepository
from ....domain.scope import Actor, ActorScope, Role
from ...audit_trail import AuditPolicy, AuditTrail
from ...authorization import (
    AuthorizationError,
    AuthorizationErrorCode,
    Deny,
    TenantAuthorizationGuard,
    outward_error,
)

_AUDIT_READ_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.SUPER_ADMIN, Role.DPO, Role.SYSTEM, Role.TENANT_ADMIN, Role.TENANT_DPO}
)
_MAX_LIMIT: Final[int] = 500


@dataclass(frozen=True)
class ListAuditEventsInput:
    actor: Actor
    tenant_id: str | None = None
    event_name: AuditEventName | None = None
    limit: int = 100
    offset: int = 0


@dataclass
class AuditEventListResult:
    events: List[AuditEvent] = field(default_factory=list)
    error: AuthorizationError | None = None


class ListAuditEventsUseCase:
    def __init__(
        self,
        repository: AuditEventRepository,
        guard: TenantAuthorizationGuard,
        audit_trail: AuditTrail,
    ) -> None:
        self._events = repository
        self._guard = guard
        self._audit = audit_trail

    def execute(self, input_data: ListAuditEventsInput) -> AuditEventListResult:
        actor = input_data.actor

        # 1) Rol + tenant pedido
        decision = self._guard.authorize(actor, _AUDIT_READ_ROLES, input_data.tenant_id)
        if isinstance(decision, Deny):
            if decision.reason == AuthorizationErrorCode.FORBIDDEN_ROLE:
                return AuditEventListResult(error=outward_error(decision))
            return AuditEventListResult(events=[])

        # 2) Tenant efectivo: un actor TENANT siempre queda anclado al suyo
        tenant_id = input_data.tenant_id
        if actor.scope == ActorScope.TENANT:
            tenant_id = actor.tenant_id

        limit = max(1, min(input_data.limit, _MAX_LIMIT))
        events = self._events.list_events(
            tenant_id=tenant_id,
            event_name=input_data.event_name,
            limit=limit,
            offset=max(0, input_data.offset),
        )

        # 3) Lectura sensible
        access_event = self._audit.build_event(
            AuditEventName.AUDIT_EVENTS_LISTED,
            actor=actor,
            tenant_id=tenant_id,
            metadata=safe_metadata(result_count=len(events)),
        )
        self._audit.record(access_event, policy=AuditPolicy.BEST_EFFORT)

        return AuditEventListResult(events=events)
