"""
===============================================================================
USE CASE: Notify CNIL (Art. 33)
===============================================================================

Name:
    Notify CNIL Use Case

Business Goal:
    Registrar que la autoridad fue notificada. cnil_notified_at se setea
    una sola vez; un segundo llamado devuelve ALREADY_NOTIFIED y deja el
    valor original intacto.

Error Mapping:
    - FORBIDDEN / INCIDENT_NOT_FOUND / ALREADY_NOTIFIED / VALIDATION_ERROR
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final
from uuid import UUID

from ....domain.audit import AuditEventName
from ....domain.incident import SecurityIncident, with_cnil_notified
from ....domain.scope import Actor
from .incident_lifecycle import IncidentTransitionUseCase
from .incident_results import IncidentError, IncidentErrorCode, IncidentResult

_MAX_REFERENCE_LENGTH: Final[int] = 120


@dataclass(frozen=True)
class NotifyCnilInput:
    actor: Actor
    incident_id: UUID
    cnil_reference: str | None = None


class NotifyCnilUseCase(IncidentTransitionUseCase):
    event_name = AuditEventName.INCIDENT_CNIL_NOTIFIED

    def execute(self, input_data: NotifyCnilInput) -> IncidentResult:
        reference = (input_data.cnil_reference or "").strip() or None
        if reference is not None and len(reference) > _MAX_REFERENCE_LENGTH:
            return IncidentResult(
                error=IncidentError(
                    code=IncidentErrorCode.VALIDATION_ERROR,
                    message="CNIL reference is too long.",
                )
            )
        return self._run(
            input_data.actor,
            input_data.incident_id,
            lambda incident, now: with_cnil_notified(incident, now, reference),
        )

    def _already_done(self, incident: SecurityIncident) -> IncidentError | None:
        if incident.cnil_notified_at is None:
            return None
        return IncidentError(
            code=IncidentErrorCode.ALREADY_NOTIFIED,
            message="CNIL was already notified for this incident.",
        )
