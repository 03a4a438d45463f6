"""
===============================================================================
USE CASES: List Incidents / List Pending CNIL
===============================================================================

Name:
    ListIncidentsUseCase, ListPendingCnilUseCase

Business Goal:
    - Listar incidentes por status / tipo / tenant.
    - Listar incidentes pendientes de notificación CNIL (notificables, sin
      notificar, deadline no vencido) con su estado de deadline.

Why (Context / Intención):
    - Actores TENANT (TENANT_ADMIN / TENANT_DPO) solo ven su propio tenant.
      Pedir otro tenant devuelve una lista vacía: indistinguible de un tenant
      sin incidentes.
    - La vista "pending CNIL" es de plataforma (DPO / SUPER_ADMIN).

Collaborators:
    - SecurityIncidentRepository.list_incidents / list_pending_cnil
    - TenantAuthorizationGuard
    - domain.incident.deadline_state
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Final

from ....crosscutting.config import get_settings
from ....domain.incident import IncidentStatus, IncidentType, deadline_state
from ....domain.repositories import SecurityIncidentRepository
from ....domain.scope import Actor, ActorScope, Role
from ...authorization import AuthorizationErrorCode, Deny, TenantAuthorizationGuard
from .incident_results import (
    IncidentListResult,
    PendingCnilItem,
    PendingCnilResult,
    forbidden,
)

_LIST_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.SUPER_ADMIN, Role.DPO, Role.SYSTEM, Role.TENANT_ADMIN, Role.TENANT_DPO}
)
_PENDING_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.SUPER_ADMIN, Role.DPO, Role.SYSTEM}
)
_MAX_LIMIT: Final[int] = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ListIncidentsInput:
    actor: Actor
    status: IncidentStatus | None = None
    incident_type: IncidentType | None = None
    tenant_id: str | None = None
    limit: int = 100
    offset: int = 0


class ListIncidentsUseCase:
    def __init__(
        self,
        repository: SecurityIncidentRepository,
        guard: TenantAuthorizationGuard,
    ) -> None:
        self._incidents = repository
        self._guard = guard

    def execute(self, input_data: ListIncidentsInput) -> IncidentListResult:
        actor = input_data.actor

        # 1) Rol + tenant efectivo
        decision = self._guard.authorize(actor, _LIST_ROLES, input_data.tenant_id)
        if isinstance(decision, Deny):
            if decision.reason == AuthorizationErrorCode.FORBIDDEN_ROLE:
                return IncidentListResult(error=forbidden())
            return IncidentListResult(incidents=[])

        tenant_id = input_data.tenant_id
        if actor.scope == ActorScope.TENANT:
            tenant_id = actor.tenant_id

        # 2) Query acotada
        limit = max(1, min(input_data.limit, _MAX_LIMIT))
        incidents = self._incidents.list_incidents(
            status=input_data.status,
            incident_type=input_data.incident_type,
            tenant_id=tenant_id,
            limit=limit,
            offset=max(0, input_data.offset),
        )
        return IncidentListResult(incidents=incidents)


class ListPendingCnilUseCase:
    def __init__(
        self,
        repository: SecurityIncidentRepository,
        guard: TenantAuthorizationGuard,
        *,
        warning_hours: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._incidents = repository
        self._guard = guard
        self._warning_hours = warning_hours or get_settings().cnil_deadline_warning_hours
        self._clock = clock

    def execute(self, actor: Actor) -> PendingCnilResult:
        if isinstance(self._guard.authorize(actor, _PENDING_ROLES), Deny):
            return PendingCnilResult(error=forbidden())

        now = self._clock()
        items = []
        for incident in self._incidents.list_pending_cnil(now):
            remaining = (incident.cnil_deadline - now).total_seconds() / 3600
            items.append(
                PendingCnilItem(
                    incident=incident,
                    deadline_state=deadline_state(
                        incident, now, warning_hours=self._warning_hours
                    ),
                    hours_remaining=round(remaining, 2),
                )
            )
        # Más urgente primero.
        items.sort(key=lambda item: item.hours_remaining)
        return PendingCnilResult(items=items)
