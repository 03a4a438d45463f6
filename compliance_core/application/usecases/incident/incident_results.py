"""
===============================================================================
INCIDENT USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Name:
    Incident Use Case Results

Business Goal:
    Contrato estable de resultados y errores para el ciclo de vida de
    incidentes de seguridad (alta manual, notificaciones, cierre, listados).

Why (Context / Intención):
    - Repetir una transición one-way (notificar CNIL dos veces, cerrar dos
      veces) es una decisión de política: se devuelve, no se levanta.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    incident_results models (module)

Responsibilities:
    - IncidentErrorCode / IncidentError.
    - IncidentResult, IncidentListResult, PendingCnilItem, PendingCnilResult.

Collaborators:
    - domain.incident: SecurityIncident, DeadlineState
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ....domain.incident import DeadlineState, SecurityIncident


class IncidentErrorCode(str, Enum):
    """
    Códigos:
      - ALREADY_NOTIFIED: el timestamp de notificación ya estaba seteado.
      - ALREADY_CLOSED: el incidente ya estaba cerrado.
      - INCIDENT_NOT_FOUND: id desconocido (o no visible para el actor).
      - FORBIDDEN: rol no permitido.
      - VALIDATION_ERROR: input inválido.
    """

    ALREADY_NOTIFIED = "ALREADY_NOTIFIED"
    ALREADY_CLOSED = "ALREADY_CLOSED"
    INCIDENT_NOT_FOUND = "INCIDENT_NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"


@dataclass(frozen=True)
class IncidentError:
    code: IncidentErrorCode
    message: str
    resource: str | None = "SecurityIncident"


@dataclass
class IncidentResult:
    incident: SecurityIncident | None = None
    error: IncidentError | None = None


@dataclass
class IncidentListResult:
    incidents: List[SecurityIncident] = field(default_factory=list)
    error: IncidentError | None = None


@dataclass(frozen=True)
class PendingCnilItem:
    incident: SecurityIncident
    deadline_state: DeadlineState
    hours_remaining: float


@dataclass
class PendingCnilResult:
    items: List[PendingCnilItem] = field(default_factory=list)
    error: IncidentError | None = None


def not_found() -> IncidentError:
    return IncidentError(
        code=IncidentErrorCode.INCIDENT_NOT_FOUND, message="Incident not found."
    )


def forbidden() -> IncidentError:
    return IncidentError(code=IncidentErrorCode.FORBIDDEN, message="Access denied.")
