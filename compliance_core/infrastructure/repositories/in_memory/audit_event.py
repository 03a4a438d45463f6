"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/audit_event.py
============================================================
Class: InMemoryAuditEventRepository

Responsibilities:
  - Guardar eventos de auditoría en memoria (tests / single-process).
  - Append-only: no hay update ni delete.
  - Listar con filtros (tenant_id, event_name) y orden determinístico:
      ORDER BY occurred_at DESC, id ASC

Collaborators:
  - domain.audit.AuditEvent
  - domain.repositories.AuditEventRepository (contrato)

Constraints / Notes:
  - Thread-safe: acceso protegido por Lock.
  - Un id repetido es un error de programación (ValueError).
============================================================
"""

from __future__ import annotations

from threading import Lock
from typing import Dict, List, Optional
from uuid import UUID

from ....domain.audit import AuditEvent, AuditEventName


class InMemoryAuditEventRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._events: Dict[UUID, AuditEvent] = {}

    def write(self, event: AuditEvent) -> None:
        with self._lock:
            if event.id in self._events:
                raise ValueError(f"audit event {event.id} already written")
            self._events[event.id] = event

    def list_events(
        self,
        *,
        tenant_id: Optional[str] = None,
        event_name: Optional[AuditEventName] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditEvent]:
        with self._lock:
            items = list(self._events.values())

        if tenant_id is not None:
            items = [e for e in items if e.tenant_id == tenant_id]
        if event_name is not None:
            items = [e for e in items if e.event_name == event_name]

        items.sort(key=lambda e: str(e.id))
        items.sort(key=lambda e: e.occurred_at, reverse=True)
        return items[offset : offset + limit]

    def count(self) -> int:
        with self._lock:
            return len(self._events)
