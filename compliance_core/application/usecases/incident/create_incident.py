"""
===============================================================================
USE CASE: Create Incident (manual)
===============================================================================

Name:
    Create Incident Use Case

Business Goal:
    Alta manual de un incidente de seguridad por un DPO o SUPER_ADMIN
    (reporte de usuario, auditoría interna, pentest, ...).

Why (Context / Intención):
    - Las detecciones automáticas viven en IncidentDetectionEngine; este caso
      cubre lo que un humano declara.
    - El deadline CNIL sigue la misma regla: created_at + 72h si la severidad
      alcanza el mínimo notificable configurado.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    CreateIncidentUseCase

Responsibilities:
    - Autorizar (DPO / SUPER_ADMIN / SYSTEM).
    - Validar título y contadores.
    - Calcular cnil_deadline y persistir.
    - Auditar incident.created (CRITICAL).

Collaborators:
    - SecurityIncidentRepository.create
    - TenantAuthorizationGuard
    - AuditTrail
    - domain.incident.compute_cnil_deadline

Error Mapping:
    - FORBIDDEN: rol no permitido
    - VALIDATION_ERROR: título vacío/largo, contadores negativos
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Final, Tuple
from uuid import uuid4

from ....crosscutting.config import get_settings
from ....domain.audit import AuditEventName, safe_metadata
from ....domain.incident import (
    DataCategory,
    DetectionSource,
    IncidentSeverity,
    IncidentType,
    RiskLevel,
    SecurityIncident,
    compute_cnil_deadline,
)
from ....domain.repositories import SecurityIncidentRepository
from ....domain.scope import Actor, Role
from ...audit_trail import AuditPolicy, AuditTrail
from ...authorization import Deny, TenantAuthorizationGuard
from .incident_results import IncidentError, IncidentErrorCode, IncidentResult, forbidden

logger = logging.getLogger(__name__)

_ALLOWED_ROLES: Final[frozenset[Role]] = frozenset(
    {Role.SUPER_ADMIN, Role.DPO, Role.SYSTEM}
)
_MAX_TITLE_LENGTH: Final[int] = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CreateIncidentInput:
    actor: Actor
    type: IncidentType
    severity: IncidentSeverity
    title: str
    description: str = ""
    tenant_id: str | None = None
    risk_level: RiskLevel = RiskLevel.UNKNOWN
    data_categories: Tuple[DataCategory, ...] = field(default_factory=tuple)
    users_affected: int = 0
    records_affected: int = 0
    detected_by: DetectionSource = DetectionSource.USER
    source_ip: str | None = None


class CreateIncidentUseCase:
    def __init__(
        self,
        repository: SecurityIncidentRepository,
        guard: TenantAuthorizationGuard,
        audit_trail: AuditTrail,
        *,
        min_notifiable_severity: IncidentSeverity | None = None,
        cnil_deadline_hours: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        settings = get_settings()
        self._incidents = repository
        self._guard = guard
        self._audit = audit_trail
        self._min_severity = min_notifiable_severity or IncidentSeverity(
            settings.incident_notification_min_severity
        )
        self._deadline_hours = cnil_deadline_hours or settings.cnil_deadline_hours
        self._clock = clock

    def execute(self, input_data: CreateIncidentInput) -> IncidentResult:
        # ---------------------------------------------------------------------
        # 1) Autorización.
        # ---------------------------------------------------------------------
        decision = self._guard.authorize(input_data.actor, _ALLOWED_ROLES)
        if isinstance(decision, Deny):
            return IncidentResult(error=forbidden())

        # ---------------------------------------------------------------------
        # 2) Validación.
        # ---------------------------------------------------------------------
        title = (input_data.title or "").strip()
        if not title or len(title) > _MAX_TITLE_LENGTH:
            return self._validation_error(
                f"Title is required (max {_MAX_TITLE_LENGTH} characters)."
            )
        if input_data.users_affected < 0 or input_data.records_affected < 0:
            return self._validation_error("Affected counts must be >= 0.")

        # ---------------------------------------------------------------------
        # 3) Construir + persistir.
        # ---------------------------------------------------------------------
        now = self._clock()
        incident = SecurityIncident(
            id=uuid4(),
            type=input_data.type,
            severity=input_data.severity,
            risk_level=input_data.risk_level,
            created_at=now,
            updated_at=now,
            title=title,
            description=(input_data.description or "").strip(),
            tenant_id=input_data.tenant_id,
            cnil_deadline=compute_cnil_deadline(
                now,
                input_data.severity,
                min_severity=self._min_severity,
                deadline_hours=self._deadline_hours,
            ),
            source_ip=input_data.source_ip,
            users_affected=input_data.users_affected,
            records_affected=input_data.records_affected,
            data_categories=tuple(input_data.data_categories),
            detected_by=input_data.detected_by,
            created_by=input_data.actor.actor_id,
        )
        stored = self._incidents.create(incident)

        # ---------------------------------------------------------------------
        # 4) Auditoría crítica (sin título ni descripción: texto libre).
        # ---------------------------------------------------------------------
        event = self._audit.build_event(
            AuditEventName.INCIDENT_CREATED,
            actor=input_data.actor,
            tenant_id=stored.tenant_id,
            target_id=stored.id,
            metadata=safe_metadata(
                incident_type=stored.type,
                severity=stored.severity,
                risk_level=stored.risk_level,
                users_affected=stored.users_affected,
                notifiable=stored.requires_cnil_notification,
            ),
            occurred_at=now,
        )
        self._audit.record(event, policy=AuditPolicy.CRITICAL)

        logger.info(
            "incident created manually",
            extra={"incident_id": str(stored.id), "severity": stored.severity.value},
        )
        return IncidentResult(incident=stored)

    @staticmethod
    def _validation_error(message: str) -> IncidentResult:
        return IncidentResult(
            error=IncidentError(code=IncidentErrorCode.VALIDATION_ERROR, message=message)
        )
