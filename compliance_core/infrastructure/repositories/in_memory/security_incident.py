"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/security_incident.py
============================================================
Class: InMemorySecurityIncidentRepository

Responsibilities:
  - Guardar incidentes en memoria (sin delete: registro de compliance).
  - update(): compare-and-set contra el snapshot esperado.
  - Queries por status / tipo / tenant, correlación y pendientes CNIL.
  - Orden determinístico: ORDER BY created_at DESC, id ASC

Constraints / Notes:
  - Thread-safe: acceso protegido por Lock.
  - Entidades inmutables: el store nunca comparte objetos mutables.
============================================================
"""

from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from ....domain.incident import (
    IncidentStatus,
    IncidentType,
    SecurityIncident,
)


class InMemorySecurityIncidentRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._incidents: Dict[UUID, SecurityIncident] = {}

    @staticmethod
    def _sorted(items: Iterable[SecurityIncident]) -> List[SecurityIncident]:
        result = sorted(items, key=lambda i: str(i.id))
        result.sort(key=lambda i: i.created_at, reverse=True)
        return result

    def create(self, incident: SecurityIncident) -> SecurityIncident:
        with self._lock:
            if incident.id in self._incidents:
                raise ValueError(f"incident {incident.id} already exists")
            self._incidents[incident.id] = incident
            return incident

    def get(self, incident_id: UUID) -> Optional[SecurityIncident]:
        with self._lock:
            return self._incidents.get(incident_id)

    def update(self, incident: SecurityIncident, *, expected: SecurityIncident) -> bool:
        with self._lock:
            current = self._incidents.get(incident.id)
            if current is None or current != expected:
                return False
            self._incidents[incident.id] = incident
            return True

    def find_open_by_correlation(
        self,
        *,
        incident_type: IncidentType,
        identity_fingerprint: Optional[str],
        tenant_id: Optional[str],
        created_since: datetime,
        source_ip: Optional[str] = None,
    ) -> Optional[SecurityIncident]:
        with self._lock:
            candidates = [
                i
                for i in self._incidents.values()
                if i.type == incident_type
                and i.status == IncidentStatus.OPEN
                and i.identity_fingerprint == identity_fingerprint
                and i.tenant_id == tenant_id
                and i.created_at >= created_since
                and (source_ip is None or i.source_ip == source_ip)
            ]
        ordered = self._sorted(candidates)
        return ordered[0] if ordered else None

    def list_incidents(
        self,
        *,
        status: Optional[IncidentStatus] = None,
        incident_type: Optional[IncidentType] = None,
        tenant_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[SecurityIncident]:
        with self._lock:
            items = list(self._incidents.values())
        if status is not None:
            items = [i for i in items if i.status == status]
        if incident_type is not None:
            items = [i for i in items if i.type == incident_type]
        if tenant_id is not None:
            items = [i for i in items if i.tenant_id == tenant_id]
        return self._sorted(items)[offset : offset + limit]

    def list_pending_cnil(self, now: datetime) -> List[SecurityIncident]:
        with self._lock:
            items = [
                i
                for i in self._incidents.values()
                if i.cnil_deadline is not None
                and i.cnil_notified_at is None
                and i.cnil_deadline >= now
            ]
        return sorted(items, key=lambda i: i.cnil_deadline)
