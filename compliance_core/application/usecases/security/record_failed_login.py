"""
===============================================================================
USE CASE: Record Failed Login
===============================================================================

Name:
    Record Failed Login Use Case

Business Goal:
    Alimentar el tracker con cada fallo de autenticación y, cuando el conteo
    cruza un punto de disparo, delegar en el motor de detección.

Why (Context / Intención):
    - La detección de fuerza bruta NUNCA debe romper el login: cualquier
      error interno se loguea y se devuelve un outcome "no trackeado".
      (Si el feature de seguridad fallara el login, sería un vector de DoS.)
    - Solo los breaches (6, 11, 16... con threshold=5) llaman al motor: el
      motor crea una vez y escala en los siguientes.
    - La IP de origen tiene su propio contador: una IP que falla contra
      muchas cuentas (spraying) abre un incidente de plataforma por IP aunque
      ninguna identidad llegue a su umbral.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    RecordFailedLoginUseCase

Responsibilities:
    - tracker.record -> conteos por identidad y por IP
    - is_threshold_breach -> engine.on_threshold_exceeded /
      engine.on_ip_threshold_exceeded
    - Auditar auth.login.failed (BEST_EFFORT, sin PII)

Collaborators:
    - FailedLoginTracker
    - IncidentDetectionEngine
    - AuditTrail
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from ....domain.audit import AuditEventName, safe_metadata
from ....domain.incident import DetectionContext
from ....domain.scope import Actor
from ...audit_trail import AuditPolicy, AuditTrail
from ...failed_login_tracker import FailedLoginTracker, is_threshold_breach
from ...incident_detection import IncidentDetectionEngine

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RecordFailedLoginInput:
    identity_fingerprint: str
    source_ip: str | None = None
    tenant_id: str | None = None
    occurred_at: datetime | None = None


@dataclass(frozen=True)
class FailedLoginOutcome:
    tracked: bool
    attempt_count: int = 0
    threshold_exceeded: bool = False
    incident_id: UUID | None = None
    ip_incident_id: UUID | None = None


class RecordFailedLoginUseCase:
    def __init__(
        self,
        tracker: FailedLoginTracker,
        engine: IncidentDetectionEngine,
        audit_trail: AuditTrail,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._tracker = tracker
        self._engine = engine
        self._audit = audit_trail
        self._clock = clock

    def execute(self, input_data: RecordFailedLoginInput) -> FailedLoginOutcome:
        try:
            return self._track(input_data)
        except Exception:
            # Nunca propagar: el flujo de autenticación sigue.
            logger.exception("failed login tracking error")
            return FailedLoginOutcome(tracked=False)

    def _track(self, input_data: RecordFailedLoginInput) -> FailedLoginOutcome:
        occurred_at = input_data.occurred_at or self._clock()
        threshold = self._tracker.config.threshold
        context = DetectionContext(occurred_at=occurred_at, source_ip=input_data.source_ip)

        # 1) Contar (identidad + IP)
        counts = self._tracker.record(
            input_data.identity_fingerprint, input_data.source_ip, occurred_at
        )
        count = counts.identity_count
        over = count > threshold

        # 2) Auditoría best-effort (sin email, sin IP)
        event = self._audit.build_event(
            AuditEventName.AUTH_LOGIN_FAILED,
            actor=Actor.system(),
            tenant_id=input_data.tenant_id,
            metadata=safe_metadata(attempt_count=count, threshold_exceeded=over),
            occurred_at=occurred_at,
        )
        self._audit.record(event, policy=AuditPolicy.BEST_EFFORT)

        # 3) Breach por identidad => motor de detección
        incident_id = None
        if is_threshold_breach(count, threshold):
            logger.warning(
                "brute force threshold exceeded",
                extra={"attempt_count": count, "threshold": threshold},
            )
            incident_id = self._engine.on_threshold_exceeded(
                input_data.identity_fingerprint, input_data.tenant_id, context
            ).id

        # 4) Breach por IP => incidente de plataforma correlado por IP
        ip_incident_id = None
        ip_threshold = self._tracker.config.ip_threshold
        if input_data.source_ip and is_threshold_breach(counts.ip_count, ip_threshold):
            logger.warning(
                "source ip failure threshold exceeded",
                extra={"attempt_count": counts.ip_count, "threshold": ip_threshold},
            )
            ip_incident_id = self._engine.on_ip_threshold_exceeded(
                input_data.source_ip, context
            ).id

        return FailedLoginOutcome(
            tracked=True,
            attempt_count=count,
            threshold_exceeded=over,
            incident_id=incident_id,
            ip_incident_id=ip_incident_id,
        )
