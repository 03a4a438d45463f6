"""
===============================================================================
INCIDENT LIFECYCLE (Shared One-Way Transition Flow)
===============================================================================

Name:
    IncidentTransitionUseCase (base)

Business Goal:
    Flujo común para las transiciones monotónicas de un incidente:
      - notificar a la CNIL
      - notificar a los usuarios afectados
      - cerrar

Why (Context / Intención):
    - Cada transición setea su campo UNA sola vez; la repetición devuelve
      ALREADY_NOTIFIED / ALREADY_CLOSED y no toca el valor original.
    - Dos llamados concurrentes no pueden ganar ambos: el update es un
      compare-and-set contra la fila leída; el perdedor relee y ve el campo
      ya seteado.
    - Toda transición se audita como CRITICAL (compliance record).

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    IncidentTransitionUseCase

Responsibilities:
    - Autorizar + cargar el incidente (guard.authorize_resource).
    - Aplicar la transición con reintento acotado sobre el CAS.
    - Auditar con el evento de la subclase.

Collaborators:
    - SecurityIncidentRepository: get, update(expected=...)
    - TenantAuthorizationGuard
    - AuditTrail
===============================================================================
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Final
from uuid import UUID

from ....domain.audit import AuditEventName, SafeValue, safe_metadata
from ....domain.incident import SecurityIncident, deadline_state
from ....domain.repositories import SecurityIncidentRepository
from ....domain.scope import Actor, Role
from ...audit_trail import AuditPolicy, AuditTrail
from ...authorization import AuthorizationErrorCode, TenantAuthorizationGuard
from .incident_results import IncidentError, IncidentResult, forbidden, not_found

logger = logging.getLogger(__name__)

LIFECYCLE_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.SUPER_ADMIN, Role.DPO, Role.SYSTEM}
)
_MAX_ATTEMPTS: Final[int] = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IncidentTransitionUseCase:
    """Base de las transiciones one-way (no se usa directamente)."""

    event_name: AuditEventName

    def __init__(
        self,
        repository: SecurityIncidentRepository,
        guard: TenantAuthorizationGuard,
        audit_trail: AuditTrail,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._incidents = repository
        self._guard = guard
        self._audit = audit_trail
        self._clock = clock

    # Hooks de la subclase ------------------------------------------------
    def _already_done(self, incident: SecurityIncident) -> IncidentError | None:
        raise NotImplementedError

    # Flujo común ---------------------------------------------------------
    def _run(
        self,
        actor: Actor,
        incident_id: UUID,
        transition: Callable[[SecurityIncident, datetime], SecurityIncident],
    ) -> IncidentResult:
        # ---------------------------------------------------------------------
        # 1) Autorizar + cargar.
        # ---------------------------------------------------------------------
        access = self._guard.authorize_resource(
            actor,
            LIFECYCLE_ROLES,
            load=lambda: self._incidents.get(incident_id),
            tenant_of=lambda incident: incident.tenant_id,
            resource_name="SecurityIncident",
        )
        if access.error is not None:
            if access.error.code == AuthorizationErrorCode.FORBIDDEN_ROLE:
                return IncidentResult(error=forbidden())
            return IncidentResult(error=not_found())

        # ---------------------------------------------------------------------
        # 2) Transición (CAS con reintento acotado).
        # ---------------------------------------------------------------------
        current: SecurityIncident | None = access.resource
        for _ in range(_MAX_ATTEMPTS):
            if current is None:
                return IncidentResult(error=not_found())

            already = self._already_done(current)
            if already is not None:
                return IncidentResult(error=already)

            now = self._clock()
            updated = transition(current, now)
            if self._incidents.update(updated, expected=current):
                break
            current = self._incidents.get(incident_id)
        else:
            raise RuntimeError("incident transition did not converge")

        # ---------------------------------------------------------------------
        # 3) Auditoría crítica.
        # ---------------------------------------------------------------------
        event = self._audit.build_event(
            self.event_name,
            actor=actor,
            tenant_id=updated.tenant_id,
            target_id=updated.id,
            metadata=self._metadata(current, updated),
            occurred_at=now,
        )
        self._audit.record(event, policy=AuditPolicy.CRITICAL)

        logger.info(
            "incident transition applied",
            extra={
                "incident_id": str(updated.id),
                "event_name": self.event_name.value,
            },
        )
        return IncidentResult(incident=updated)

    def _metadata(
        self, before: SecurityIncident, after: SecurityIncident, **extra: Any
    ) -> dict[str, SafeValue]:
        return safe_metadata(
            incident_type=after.type,
            severity=after.severity,
            status=after.status,
            deadline_state=deadline_state(before, after.updated_at or self._clock()),
            **extra,
        )
