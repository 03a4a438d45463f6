"""
===============================================================================
USE CASE: Close Incident
===============================================================================

Name:
    Close Incident Use Case

Business Goal:
    Cerrar un incidente (status CLOSED, closed_at). One-way: un segundo
    cierre devuelve ALREADY_CLOSED. Cerrar no borra: el incidente sigue
    siendo un registro de compliance y aún puede notificarse.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final
from uuid import UUID

from ....domain.audit import AuditEventName
from ....domain.incident import IncidentStatus, SecurityIncident, with_closed
from ....domain.scope import Actor
from .incident_lifecycle import IncidentTransitionUseCase
from .incident_results import IncidentError, IncidentErrorCode, IncidentResult

_MAX_REMEDIATION_LENGTH: Final[int] = 5000


@dataclass(frozen=True)
class CloseIncidentInput:
    actor: Actor
    incident_id: UUID
    remediation_actions: str | None = None


class CloseIncidentUseCase(IncidentTransitionUseCase):
    event_name = AuditEventName.INCIDENT_CLOSED

    def execute(self, input_data: CloseIncidentInput) -> IncidentResult:
        remediation = (input_data.remediation_actions or "").strip() or None
        if remediation is not None and len(remediation) > _MAX_REMEDIATION_LENGTH:
            return IncidentResult(
                error=IncidentError(
                    code=IncidentErrorCode.VALIDATION_ERROR,
                    message="Remediation actions text is too long.",
                )
            )
        return self._run(
            input_data.actor,
            input_data.incident_id,
            lambda incident, now: with_closed(incident, now, remediation),
        )

    def _already_done(self, incident: SecurityIncident) -> IncidentError | None:
        if incident.status != IncidentStatus.CLOSED:
            return None
        return IncidentError(
            code=IncidentErrorCode.ALREADY_CLOSED,
            message="Incident is already closed.",
        )
