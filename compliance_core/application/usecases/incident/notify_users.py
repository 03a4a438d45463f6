"""
===============================================================================
USE CASE: Notify Affected Users (Art. 34)
===============================================================================

Name:
    Notify Users Use Case

Business Goal:
    Registrar que los usuarios afectados fueron notificados. One-way:
    users_notified_at se setea una sola vez (ALREADY_NOTIFIED al repetir).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from ....domain.audit import AuditEventName
from ....domain.incident import SecurityIncident, with_users_notified
from ....domain.scope import Actor
from .incident_lifecycle import IncidentTransitionUseCase
from .incident_results import IncidentError, IncidentErrorCode, IncidentResult


@dataclass(frozen=True)
class NotifyUsersInput:
    actor: Actor
    incident_id: UUID


class NotifyUsersUseCase(IncidentTransitionUseCase):
    event_name = AuditEventName.INCIDENT_USERS_NOTIFIED

    def execute(self, input_data: NotifyUsersInput) -> IncidentResult:
        return self._run(input_data.actor, input_data.incident_id, with_users_notified)

    def _already_done(self, incident: SecurityIncident) -> IncidentError | None:
        if incident.users_notified_at is None:
            return None
        return IncidentError(
            code=IncidentErrorCode.ALREADY_NOTIFIED,
            message="Users were already notified for this incident.",
        )
