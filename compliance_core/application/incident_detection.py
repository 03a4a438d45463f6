"""
===============================================================================
SERVICE: Incident Detection Engine
===============================================================================

Name:
    IncidentDetectionEngine

Qué es:
    Consume señales de detección (breaches del tracker de logins por
    identidad o por IP, intentos cross-tenant, exports masivos, PII en logs,
    fallos de backup) y las convierte en SecurityIncident persistidos, con
    deadline CNIL y evento de auditoría.

Why:
    - El incidente es el registro autoritativo de compliance (Art. 33).
    - Breaches repetidos de la misma clave dentro de la ventana de
      correlación escalan el MISMO incidente: nunca se duplica.
    - El reporte cross-tenant corre fuera del request: la denegación no debe
      tardar distinto según exista o no el recurso ajeno.

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Component: IncidentDetectionEngine
Responsibilities:
  - on_threshold_exceeded() / on_ip_threshold_exceeded(): find-or-create
    serializado por clave
      * existe OPEN BRUTE_FORCE en ventana => escalar (LOW->MEDIUM->HIGH)
      * no existe => crear LOW con cnil_deadline = created_at + 72h
  - on_cross_tenant_attempt(): incidente CRITICAL / riesgo HIGH
  - on_mass_export(): DATA_LEAK HIGH / riesgo MEDIUM sobre el umbral
  - on_pii_in_logs(): PII_IN_LOGS de plataforma (HIGH si hay PII sensible)
  - on_backup_failure(): DATA_LOSS HIGH de plataforma tras N fallos seguidos
  - cross_tenant_listener(): reporte en background (executor propio)
  - Auditar incident.created / incident.escalated (CRITICAL)
Collaborators:
  - domain.incident: reglas puras (escalamiento, deadline, PII sensible)
  - domain.repositories.SecurityIncidentRepository
  - application.audit_trail.AuditTrail
  - Settings: ventana de correlación, horas de deadline, severidad mínima,
    umbrales de export y backup
===============================================================================
"""

from __future__ import annotations

import contextvars
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Final, Hashable, Iterator, Sequence, Set
from uuid import UUID, uuid4

from ..crosscutting.config import get_settings
from ..domain.audit import AuditEventName, safe_metadata
from ..domain.incident import (
    DataCategory,
    DetectionContext,
    DetectionSource,
    IncidentSeverity,
    IncidentType,
    RiskLevel,
    SecurityIncident,
    compute_cnil_deadline,
    escalated,
    has_sensitive_pii,
)
from ..domain.repositories import SecurityIncidentRepository
from ..domain.scope import Actor
from .audit_trail import AuditPolicy, AuditTrail

logger = logging.getLogger(__name__)

_BRUTE_FORCE_TITLE: Final[str] = "Brute force attack detected"
_IP_BRUTE_FORCE_TITLE: Final[str] = "Brute force attack detected from a single source"
_CROSS_TENANT_TITLE: Final[str] = "Cross-tenant access attempt"
_MASS_EXPORT_TITLE: Final[str] = "Unusual data export volume"
_PII_IN_LOGS_TITLE: Final[str] = "PII detected in logs"
_BACKUP_FAILURE_TITLE: Final[str] = "Repeated backup failures"
_MAX_UPDATE_ATTEMPTS: Final[int] = 3
_REPORTER_WORKERS: Final[int] = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IncidentDetectionConfig:
    correlation_window_minutes: int = 60
    cnil_deadline_hours: int = 72
    min_notifiable_severity: IncidentSeverity = IncidentSeverity.LOW
    mass_export_record_threshold: int = 10_000
    backup_failure_threshold: int = 2

    @classmethod
    def from_settings(cls) -> "IncidentDetectionConfig":
        settings = get_settings()
        return cls(
            correlation_window_minutes=settings.incident_correlation_window_minutes,
            cnil_deadline_hours=settings.cnil_deadline_hours,
            min_notifiable_severity=IncidentSeverity(
                settings.incident_notification_min_severity
            ),
            mass_export_record_threshold=settings.mass_export_record_threshold,
            backup_failure_threshold=settings.backup_failure_threshold,
        )


class _KeyedLocks:
    """
    Un lock por clave de correlación (serializa find-or-create).

    Las entradas cuentan referencias: la clave se libera cuando ningún
    thread la tiene tomada ni esperando.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, list] = {}  # key -> [lock, refs]

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._entries[key] = entry
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


class IncidentDetectionEngine:
    def __init__(
        self,
        repository: SecurityIncidentRepository,
        audit_trail: AuditTrail,
        config: IncidentDetectionConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._repository = repository
        self._audit = audit_trail
        self._config = config or IncidentDetectionConfig.from_settings()
        self._clock = clock
        self._locks = _KeyedLocks()
        self._reporter = ThreadPoolExecutor(
            max_workers=_REPORTER_WORKERS, thread_name_prefix="incident-report"
        )
        self._pending: Set[Future] = set()
        self._pending_lock = threading.Lock()

    # =========================================================================
    # Brute force
    # =========================================================================
    def on_threshold_exceeded(
        self,
        identity_fingerprint: str,
        tenant_id: str | None,
        context: DetectionContext,
    ) -> SecurityIncident:
        """
        Crea o escala el incidente BRUTE_FORCE de la identidad.

        Raises:
            AuditWriteError: el incidente quedó persistido pero la auditoría
                crítica falló (el caller decide).
        """
        return self._create_or_escalate(
            key=(IncidentType.BRUTE_FORCE, identity_fingerprint, tenant_id),
            find=lambda: self._repository.find_open_by_correlation(
                incident_type=IncidentType.BRUTE_FORCE,
                identity_fingerprint=identity_fingerprint,
                tenant_id=tenant_id,
                created_since=self._window_start(context),
            ),
            create=lambda: self._brute_force_incident(
                _BRUTE_FORCE_TITLE,
                context,
                tenant_id=tenant_id,
                identity_fingerprint=identity_fingerprint,
                source_ip=context.source_ip,
            ),
            context=context,
        )

    def on_ip_threshold_exceeded(
        self, source_ip: str, context: DetectionContext
    ) -> SecurityIncident:
        """
        Crea o escala el incidente BRUTE_FORCE de una IP que falla contra
        muchas identidades (password spraying).

        Incidente de plataforma: la IP puede atacar cuentas de varios tenants.
        """
        return self._create_or_escalate(
            key=(IncidentType.BRUTE_FORCE, "ip", source_ip),
            find=lambda: self._repository.find_open_by_correlation(
                incident_type=IncidentType.BRUTE_FORCE,
                identity_fingerprint=None,
                tenant_id=None,
                created_since=self._window_start(context),
                source_ip=source_ip,
            ),
            create=lambda: self._brute_force_incident(
                _IP_BRUTE_FORCE_TITLE,
                context,
                tenant_id=None,
                identity_fingerprint=None,
                source_ip=source_ip,
            ),
            context=context,
        )

    def _create_or_escalate(
        self,
        *,
        key: Hashable,
        find: Callable[[], SecurityIncident | None],
        create: Callable[[], SecurityIncident],
        context: DetectionContext,
    ) -> SecurityIncident:
        with self._locks.hold(key):
            for _ in range(_MAX_UPDATE_ATTEMPTS):
                existing = find()
                if existing is None:
                    return self._store_new(create())

                updated = escalated(
                    existing,
                    context.occurred_at,
                    min_severity=self._config.min_notifiable_severity,
                    deadline_hours=self._config.cnil_deadline_hours,
                )
                if self._repository.update(updated, expected=existing):
                    self._audit_incident(
                        AuditEventName.INCIDENT_ESCALATED,
                        updated,
                        previous_severity=existing.severity,
                    )
                    logger.warning(
                        "brute force incident escalated",
                        extra={
                            "incident_id": str(updated.id),
                            "severity": updated.severity.value,
                            "breach_count": updated.breach_count,
                        },
                    )
                    return updated
                # Otro escritor (ej. cierre manual) cambió la fila: re-evaluar.

            raise RuntimeError("incident escalation did not converge")

    def _window_start(self, context: DetectionContext) -> datetime:
        return context.occurred_at - timedelta(
            minutes=self._config.correlation_window_minutes
        )

    def _brute_force_incident(
        self,
        title: str,
        context: DetectionContext,
        *,
        tenant_id: str | None,
        identity_fingerprint: str | None,
        source_ip: str | None,
    ) -> SecurityIncident:
        return self._new_incident(
            IncidentType.BRUTE_FORCE,
            IncidentSeverity.LOW,
            RiskLevel.LOW,
            title,
            context,
            tenant_id=tenant_id,
            identity_fingerprint=identity_fingerprint,
            source_ip=source_ip,
            data_categories=(DataCategory.P2,),
        )

    # =========================================================================
    # Cross-tenant
    # =========================================================================
    def on_cross_tenant_attempt(
        self,
        actor: Actor,
        target_tenant_id: str,
        context: DetectionContext,
    ) -> SecurityIncident:
        """Intento cross-tenant: siempre CRITICAL, riesgo HIGH, tenant afectado."""
        incident = self._new_incident(
            IncidentType.CROSS_TENANT_ACCESS,
            IncidentSeverity.CRITICAL,
            RiskLevel.HIGH,
            _CROSS_TENANT_TITLE,
            context,
            tenant_id=target_tenant_id,
            source_ip=context.source_ip,
            data_categories=(DataCategory.P1, DataCategory.P2),
            created_by=actor.actor_id,
        )
        return self._store_new(incident, offending_scope=actor.scope)

    def cross_tenant_listener(self) -> Callable[[Actor, str], None]:
        """
        Adapter para TenantAuthorizationGuard(cross_tenant_listener=...).

        Solo encola el reporte: el guard devuelve la denegación sin esperar
        la creación del incidente ni su auditoría.
        """

        def _listener(actor: Actor, target_tenant_id: str) -> None:
            context = DetectionContext(occurred_at=self._clock())
            self.submit_report(
                self.on_cross_tenant_attempt, actor, target_tenant_id, context
            )

        return _listener

    # =========================================================================
    # Otras señales (exports, logs, backups)
    # =========================================================================
    def on_mass_export(
        self,
        actor_id: UUID | None,
        tenant_id: str,
        record_count: int,
        context: DetectionContext,
    ) -> SecurityIncident | None:
        """
        Volumen exportado por un actor en la ventana.

        Bajo el umbral => None. Sobre el umbral => DATA_LEAK HIGH, riesgo
        MEDIUM (puede ser un export legítimo).
        """
        if record_count < self._config.mass_export_record_threshold:
            return None
        incident = self._new_incident(
            IncidentType.DATA_LEAK,
            IncidentSeverity.HIGH,
            RiskLevel.MEDIUM,
            _MASS_EXPORT_TITLE,
            context,
            tenant_id=tenant_id,
            description=(
                f"{record_count} records exported by one actor within the "
                "export window. This may indicate data exfiltration."
            ),
            source_ip=context.source_ip,
            users_affected=1,
            records_affected=record_count,
            created_by=actor_id,
        )
        return self._store_new(incident, record_count=record_count)

    def on_pii_in_logs(
        self,
        pii_types: Sequence[str],
        line_count: int,
        context: DetectionContext,
    ) -> SecurityIncident:
        """
        PII encontrada en logs (incidente de plataforma).

        `pii_types` son etiquetas de tipo ("personal_email", "payment_info"),
        nunca valores. Tipos sensibles => HIGH / riesgo HIGH; el resto
        MEDIUM / riesgo MEDIUM.
        """
        sensitive = has_sensitive_pii(pii_types)
        incident = self._new_incident(
            IncidentType.PII_IN_LOGS,
            IncidentSeverity.HIGH if sensitive else IncidentSeverity.MEDIUM,
            RiskLevel.HIGH if sensitive else RiskLevel.MEDIUM,
            _PII_IN_LOGS_TITLE,
            context,
            tenant_id=None,
            description=(
                f"{line_count} log lines containing {len(pii_types)} PII type(s). "
                "Immediate remediation required."
            ),
            records_affected=line_count,
            data_categories=(DataCategory.P2,),
            detected_by=DetectionSource.MONITORING,
        )
        return self._store_new(
            incident, pii_type_count=len(pii_types), sensitive_pii=sensitive
        )

    def on_backup_failure(
        self, consecutive_failures: int, context: DetectionContext
    ) -> SecurityIncident | None:
        """
        Fallos consecutivos de backup => DATA_LOSS HIGH de plataforma.

        Bajo el umbral => None. Mientras haya un DATA_LOSS de plataforma
        abierto dentro de la ventana se devuelve ese (una racha, un incidente).
        """
        if consecutive_failures < self._config.backup_failure_threshold:
            return None
        with self._locks.hold((IncidentType.DATA_LOSS, None, None)):
            existing = self._repository.find_open_by_correlation(
                incident_type=IncidentType.DATA_LOSS,
                identity_fingerprint=None,
                tenant_id=None,
                created_since=self._window_start(context),
            )
            if existing is not None:
                logger.info(
                    "backup failure correlated to open incident",
                    extra={
                        "incident_id": str(existing.id),
                        "consecutive_failures": consecutive_failures,
                    },
                )
                return existing
            incident = self._new_incident(
                IncidentType.DATA_LOSS,
                IncidentSeverity.HIGH,
                RiskLevel.MEDIUM,
                _BACKUP_FAILURE_TITLE,
                context,
                tenant_id=None,
                description=(
                    f"Backup failed {consecutive_failures} times consecutively. "
                    "Data loss risk if not addressed."
                ),
                detected_by=DetectionSource.MONITORING,
            )
            return self._store_new(incident, consecutive_failures=consecutive_failures)

    # =========================================================================
    # Reportes en background
    # =========================================================================
    def submit_report(self, fn: Callable[..., object], *args) -> Future:
        """
        Ejecuta fn(*args) en el executor del engine con el contexto del caller.

        Los errores se loguean (best-effort): el caller ya respondió.
        """
        context = contextvars.copy_context()
        with self._pending_lock:
            future = self._reporter.submit(context.run, self._run_report, fn, *args)
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    def wait_for_reports(self, timeout: float | None = None) -> bool:
        """Espera los reportes encolados; False si alguno no terminó a tiempo."""
        with self._pending_lock:
            pending = list(self._pending)
        _, not_done = wait_futures(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        self._reporter.shutdown(wait=wait)

    @staticmethod
    def _run_report(fn: Callable[..., object], *args) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("background incident report failed")

    def _forget(self, future: Future) -> None:
        with self._pending_lock:
            self._pending.discard(future)

    # =========================================================================
    # Helpers
    # =========================================================================
    def _new_incident(
        self,
        incident_type: IncidentType,
        severity: IncidentSeverity,
        risk_level: RiskLevel,
        title: str,
        context: DetectionContext,
        **fields,
    ) -> SecurityIncident:
        created_at = context.occurred_at
        fields.setdefault("detected_by", context.detected_by)
        return SecurityIncident(
            id=uuid4(),
            type=incident_type,
            severity=severity,
            risk_level=risk_level,
            created_at=created_at,
            updated_at=created_at,
            title=title,
            cnil_deadline=self._deadline_for(created_at, severity),
            **fields,
        )

    def _store_new(self, incident: SecurityIncident, **extra_metadata) -> SecurityIncident:
        stored = self._repository.create(incident)
        self._audit_incident(AuditEventName.INCIDENT_CREATED, stored, **extra_metadata)
        log = logger.error if stored.severity == IncidentSeverity.CRITICAL else logger.warning
        log(
            "security incident created",
            extra={
                "incident_id": str(stored.id),
                "incident_type": stored.type.value,
                "severity": stored.severity.value,
            },
        )
        return stored

    def _deadline_for(
        self, created_at: datetime, severity: IncidentSeverity
    ) -> datetime | None:
        return compute_cnil_deadline(
            created_at,
            severity,
            min_severity=self._config.min_notifiable_severity,
            deadline_hours=self._config.cnil_deadline_hours,
        )

    def _audit_incident(
        self,
        event_name: AuditEventName,
        incident: SecurityIncident,
        **extra_metadata,
    ) -> None:
        event = self._audit.build_event(
            event_name,
            actor=Actor.system(),
            tenant_id=incident.tenant_id,
            target_id=incident.id,
            metadata=safe_metadata(
                incident_type=incident.type,
                severity=incident.severity,
                risk_level=incident.risk_level,
                breach_count=incident.breach_count,
                notifiable=incident.requires_cnil_notification,
                **extra_metadata,
            ),
            occurred_at=incident.updated_at or self._clock(),
        )
        self._audit.record(event, policy=AuditPolicy.CRITICAL)
