"""
===============================================================================
TARJETA CRC — domain/incident.py
===============================================================================

Módulo:
    Incidentes de Seguridad (Dominio)

Responsabilidades:
    - Definir SecurityIncident y sus enums (tipo, severidad, riesgo, estado).
    - Reglas puras:
        * tabla de escalamiento (LOW -> MEDIUM -> HIGH)
        * cálculo de deadline CNIL (created_at + 72h si es notificable)
        * estado del deadline (OK / APPROACHING / OVERDUE)
        * transiciones monotónicas (notify CNIL, notify users, close)
        * clasificación de etiquetas de PII sensibles (hallazgos en logs)

Colaboradores:
    - application/incident_detection.py: crea / escala incidentes.
    - application/usecases/incident/*: ciclo de vida manual.
    - domain.repositories.SecurityIncidentRepository.

Notas:
    - Entidad inmutable: cada transición devuelve una copia (dataclasses.replace).
    - Nunca se borra (registro de compliance).
    - Timestamps de notificación: se setean una vez y nunca se limpian.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Final, Iterable
from uuid import UUID


class IncidentType(str, Enum):
    BRUTE_FORCE = "BRUTE_FORCE"
    CROSS_TENANT_ACCESS = "CROSS_TENANT_ACCESS"
    DATA_BREACH = "DATA_BREACH"
    DATA_LEAK = "DATA_LEAK"
    PII_IN_LOGS = "PII_IN_LOGS"
    DATA_LOSS = "DATA_LOSS"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    MALWARE = "MALWARE"
    VULNERABILITY_EXPLOITED = "VULNERABILITY_EXPLOITED"
    OTHER = "OTHER"


class IncidentSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RiskLevel(str, Enum):
    UNKNOWN = "UNKNOWN"  # evaluación en curso
    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class IncidentStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class DetectionSource(str, Enum):
    SYSTEM = "SYSTEM"
    MONITORING = "MONITORING"
    USER = "USER"
    AUDIT = "AUDIT"
    PENTEST = "PENTEST"


class DataCategory(str, Enum):
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class DeadlineState(str, Enum):
    NOT_APPLICABLE = "NOT_APPLICABLE"  # no notificable o ya notificado
    OK = "OK"
    APPROACHING = "APPROACHING"
    OVERDUE = "OVERDUE"


SEVERITY_ORDER: Final[dict[IncidentSeverity, int]] = {
    IncidentSeverity.LOW: 1,
    IncidentSeverity.MEDIUM: 2,
    IncidentSeverity.HIGH: 3,
    IncidentSeverity.CRITICAL: 4,
}

RISK_ORDER: Final[dict[RiskLevel, int]] = {
    RiskLevel.UNKNOWN: 0,
    RiskLevel.NONE: 1,
    RiskLevel.LOW: 2,
    RiskLevel.MEDIUM: 3,
    RiskLevel.HIGH: 4,
}

# Tabla de escalamiento por breach repetido dentro de la ventana.
# CRITICAL no se toca (solo lo asigna detección de cross-tenant o un DPO).
_SEVERITY_ESCALATION: Final[dict[IncidentSeverity, IncidentSeverity]] = {
    IncidentSeverity.LOW: IncidentSeverity.MEDIUM,
    IncidentSeverity.MEDIUM: IncidentSeverity.HIGH,
    IncidentSeverity.HIGH: IncidentSeverity.HIGH,
    IncidentSeverity.CRITICAL: IncidentSeverity.CRITICAL,
}

_RISK_ESCALATION: Final[dict[RiskLevel, RiskLevel]] = {
    RiskLevel.UNKNOWN: RiskLevel.LOW,
    RiskLevel.NONE: RiskLevel.LOW,
    RiskLevel.LOW: RiskLevel.MEDIUM,
    RiskLevel.MEDIUM: RiskLevel.HIGH,
    RiskLevel.HIGH: RiskLevel.HIGH,
}


@dataclass(frozen=True, slots=True)
class DetectionContext:
    """Contexto de una detección automática (sin PII)."""

    occurred_at: datetime
    source_ip: str | None = None
    detected_by: DetectionSource = DetectionSource.SYSTEM


@dataclass(frozen=True, slots=True)
class SecurityIncident:
    """
    Incidente de seguridad (registro de compliance).

    - tenant_id None => incidente de plataforma.
    - cnil_deadline None => no notificable a la autoridad.
    """

    id: UUID
    type: IncidentType
    severity: IncidentSeverity
    risk_level: RiskLevel
    created_at: datetime
    title: str
    tenant_id: str | None = None
    description: str = ""
    status: IncidentStatus = IncidentStatus.OPEN
    cnil_deadline: datetime | None = None
    cnil_notified_at: datetime | None = None
    cnil_reference: str | None = None
    users_notified_at: datetime | None = None
    closed_at: datetime | None = None
    remediation_actions: str | None = None
    identity_fingerprint: str | None = None
    source_ip: str | None = None
    breach_count: int = 1
    users_affected: int = 0
    records_affected: int = 0
    data_categories: tuple[DataCategory, ...] = field(default_factory=tuple)
    detected_by: DetectionSource = DetectionSource.SYSTEM
    created_by: UUID | None = None
    updated_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == IncidentStatus.OPEN

    @property
    def requires_cnil_notification(self) -> bool:
        return self.cnil_deadline is not None

    @property
    def requires_users_notification(self) -> bool:
        return self.risk_level == RiskLevel.HIGH


# -----------------------------------------------------------------------------
# Reglas puras
# -----------------------------------------------------------------------------
def severity_at_least(severity: IncidentSeverity, minimum: IncidentSeverity) -> bool:
    return SEVERITY_ORDER[severity] >= SEVERITY_ORDER[minimum]


def escalate_severity(severity: IncidentSeverity) -> IncidentSeverity:
    return _SEVERITY_ESCALATION[severity]


def escalate_risk(risk: RiskLevel) -> RiskLevel:
    return _RISK_ESCALATION[risk]


def compute_cnil_deadline(
    created_at: datetime,
    severity: IncidentSeverity,
    *,
    min_severity: IncidentSeverity,
    deadline_hours: int = 72,
) -> datetime | None:
    """created_at + deadline_hours si la severidad alcanza el mínimo notificable."""
    if not severity_at_least(severity, min_severity):
        return None
    return created_at + timedelta(hours=deadline_hours)


def deadline_state(
    incident: SecurityIncident,
    now: datetime,
    *,
    warning_hours: int = 24,
) -> DeadlineState:
    """
    Estado del deadline CNIL.

    - OVERDUE: now > deadline y sin notificar
    - APPROACHING: quedan menos de warning_hours
    """
    if incident.cnil_deadline is None or incident.cnil_notified_at is not None:
        return DeadlineState.NOT_APPLICABLE
    if now > incident.cnil_deadline:
        return DeadlineState.OVERDUE
    if incident.cnil_deadline - now < timedelta(hours=warning_hours):
        return DeadlineState.APPROACHING
    return DeadlineState.OK


def escalated(
    incident: SecurityIncident,
    now: datetime,
    *,
    min_severity: IncidentSeverity,
    deadline_hours: int = 72,
) -> SecurityIncident:
    """
    Escala severidad y riesgo un paso.

    El deadline queda anclado a created_at: si el incidente se vuelve
    notificable al escalar, se calcula en ese momento; si ya existía, no cambia.
    """
    severity = escalate_severity(incident.severity)
    deadline = incident.cnil_deadline or compute_cnil_deadline(
        incident.created_at,
        severity,
        min_severity=min_severity,
        deadline_hours=deadline_hours,
    )
    return replace(
        incident,
        severity=severity,
        risk_level=escalate_risk(incident.risk_level),
        breach_count=incident.breach_count + 1,
        cnil_deadline=deadline,
        updated_at=now,
    )


def with_cnil_notified(
    incident: SecurityIncident, now: datetime, reference: str | None = None
) -> SecurityIncident:
    if incident.cnil_notified_at is not None:
        raise ValueError("cnil_notified_at is already set")
    return replace(
        incident, cnil_notified_at=now, cnil_reference=reference, updated_at=now
    )


def with_users_notified(incident: SecurityIncident, now: datetime) -> SecurityIncident:
    if incident.users_notified_at is not None:
        raise ValueError("users_notified_at is already set")
    return replace(incident, users_notified_at=now, updated_at=now)


def with_closed(
    incident: SecurityIncident, now: datetime, remediation_actions: str | None = None
) -> SecurityIncident:
    if incident.status == IncidentStatus.CLOSED:
        raise ValueError("incident is already closed")
    return replace(
        incident,
        status=IncidentStatus.CLOSED,
        closed_at=now,
        remediation_actions=remediation_actions,
        updated_at=now,
    )


# Etiquetas de tipo de PII (nunca valores) que elevan un hallazgo en logs.
_SENSITIVE_PII_MARKERS: Final[tuple[str, ...]] = (
    "national_id",
    "payment",
    "credit",
    "ssn",
    "social_security",
)


def has_sensitive_pii(pii_types: Iterable[str]) -> bool:
    """True si alguna etiqueta de tipo de PII es de categoría sensible."""
    return any(
        marker in label.lower() for label in pii_types for marker in _SENSITIVE_PII_MARKERS
    )
