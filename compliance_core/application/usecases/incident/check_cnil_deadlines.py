"""
===============================================================================
USE CASE: Check CNIL Deadlines (scheduled job)
===============================================================================

Name:
    Check CNIL Deadlines Use Case

Business Goal:
    Recorrer los incidentes notificables aún no notificados y alertar por
    log los que están por vencer (< warning_hours) o ya vencidos.

Why (Context / Intención):
    - list_pending_cnil excluye los vencidos; este job los incluye para que
      un deadline incumplido nunca pase desapercibido.
    - Recorre también incidentes cerrados: cerrar no exime de notificar.

Collaborators:
    - SecurityIncidentRepository.list_incidents (paginado)
    - domain.incident.deadline_state
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Final, List
from uuid import UUID

from ....crosscutting.config import get_settings
from ....domain.incident import DeadlineState, deadline_state
from ....domain.repositories import SecurityIncidentRepository

logger = logging.getLogger(__name__)

_PAGE_SIZE: Final[int] = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DeadlineReport:
    approaching: List[UUID] = field(default_factory=list)
    overdue: List[UUID] = field(default_factory=list)
    checked: int = 0


class CheckCnilDeadlinesUseCase:
    def __init__(
        self,
        repository: SecurityIncidentRepository,
        *,
        warning_hours: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._incidents = repository
        self._warning_hours = warning_hours or get_settings().cnil_deadline_warning_hours
        self._clock = clock

    def execute(self) -> DeadlineReport:
        now = self._clock()
        report = DeadlineReport()

        offset = 0
        while True:
            page = self._incidents.list_incidents(limit=_PAGE_SIZE, offset=offset)
            for incident in page:
                state = deadline_state(incident, now, warning_hours=self._warning_hours)
                if state == DeadlineState.NOT_APPLICABLE:
                    continue
                report.checked += 1
                if state == DeadlineState.OVERDUE:
                    report.overdue.append(incident.id)
                    logger.error(
                        "CNIL deadline overdue",
                        extra={"incident_id": str(incident.id)},
                    )
                elif state == DeadlineState.APPROACHING:
                    report.approaching.append(incident.id)
                    logger.warning(
                        "CNIL deadline approaching",
                        extra={"incident_id": str(incident.id)},
                    )
            if len(page) < _PAGE_SIZE:
                break
            offset += _PAGE_SIZE

        return report
