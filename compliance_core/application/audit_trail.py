"""
===============================================================================
TARJETA CRC — application/audit_trail.py (Emisión de auditoría)
===============================================================================

Responsabilidades:
  - Construir eventos de auditoría con formato consistente (build_event).
  - Persistir vía AuditEventWriter (puerto del dominio), acotado por timeout.
  - Aplicar una política EXPLÍCITA por call site:
      * CRITICAL: si falla o vence el timeout => AuditWriteError (aborta).
      * BEST_EFFORT: si falla => warning y el flujo sigue.

Colaboradores:
  - domain.audit.AuditEvent / safe_metadata
  - domain.repositories.AuditEventWriter
  - crosscutting.timing.run_with_timeout
  - crosscutting.exceptions.AuditWriteError

Decisiones de diseño:
  - `policy` no tiene default: un call site sin política no compila en review
    y falla con TypeError en runtime.
  - La metadata ya es segura por construcción (domain.audit); acá no se
    stringifica nada.
===============================================================================
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping
from uuid import UUID, uuid4

from ..crosscutting.config import get_settings
from ..crosscutting.exceptions import AuditWriteError, OperationTimeoutError
from ..crosscutting.timing import Timer, run_with_timeout
from ..domain.audit import AuditEvent, AuditEventName, SafeValue
from ..domain.repositories import AuditEventWriter
from ..domain.scope import Actor

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditPolicy(str, Enum):
    """Qué hacer si la escritura de auditoría falla."""

    CRITICAL = "CRITICAL"
    BEST_EFFORT = "BEST_EFFORT"


class AuditTrail:
    """
    Sink append-only de eventos de auditoría.

    Orden garantizado para CRITICAL: record() retorna solo cuando el writer
    confirmó la escritura; en cualquier otro caso levanta AuditWriteError.
    """

    def __init__(
        self,
        writer: AuditEventWriter,
        *,
        timeout_seconds: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._writer = writer
        self._timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else get_settings().audit_write_timeout_seconds
        )
        self._clock = clock

    def build_event(
        self,
        event_name: AuditEventName,
        *,
        actor: Actor,
        tenant_id: str | None = None,
        target_id: UUID | str | None = None,
        metadata: Mapping[str, SafeValue] | None = None,
        occurred_at: datetime | None = None,
    ) -> AuditEvent:
        """Factory: id nuevo, occurred_at del clock, tenant del actor por defecto."""
        return AuditEvent(
            id=uuid4(),
            event_name=event_name,
            actor_scope=actor.scope,
            actor_id=actor.actor_id,
            tenant_id=tenant_id if tenant_id is not None else actor.tenant_id,
            target_id=str(target_id) if target_id is not None else None,
            metadata=dict(metadata or {}),
            occurred_at=occurred_at or self._clock(),
        )

    def record(
        self,
        event: AuditEvent,
        *,
        policy: AuditPolicy,
        timeout_seconds: float | None = None,
    ) -> None:
        if not isinstance(policy, AuditPolicy):
            raise TypeError("policy must be an AuditPolicy")

        timeout = timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        log_extra: dict[str, Any] = {
            "event_name": event.event_name.value,
            "audit_event_id": str(event.id),
            "policy": policy.value,
        }

        timer = Timer().start()
        try:
            run_with_timeout(
                lambda: self._writer.write(event),
                timeout,
                operation="audit_write",
            )
        except OperationTimeoutError as exc:
            self._on_failure(policy, exc, {**log_extra, "timeout_seconds": timeout})
            return
        except Exception as exc:
            self._on_failure(policy, exc, log_extra)
            return

        logger.debug(
            "audit event recorded",
            extra={**log_extra, "write_ms": timer.stop().elapsed_ms},
        )

    @staticmethod
    def _on_failure(policy: AuditPolicy, exc: Exception, extra: dict[str, Any]) -> None:
        if policy == AuditPolicy.CRITICAL:
            logger.error(
                "critical audit write failed",
                extra={**extra, "error": str(exc)},
            )
            raise AuditWriteError(
                f"Audit write failed for {extra['event_name']}",
                original_error=exc,
            ) from exc

        # Best-effort: logueamos y seguimos.
        logger.warning(
            "audit write failed (best-effort)",
            extra={**extra, "error": str(exc)},
        )
