"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/tenant.py
============================================================
Class: InMemoryTenantRepository

Responsibilities:
  - Guardar tenants en memoria con slug único.
  - create(): check de slug + insert bajo el mismo lock.
============================================================
"""

from __future__ import annotations

from threading import Lock
from typing import Dict, List, Optional

from ....domain.entities import Tenant


class InMemoryTenantRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._tenants: Dict[str, Tenant] = {}

    def find_by_slug(self, slug: str) -> Optional[Tenant]:
        with self._lock:
            return next((t for t in self._tenants.values() if t.slug == slug), None)

    def find_by_id(self, tenant_id: str) -> Optional[Tenant]:
        with self._lock:
            return self._tenants.get(tenant_id)

    def create(self, tenant: Tenant) -> bool:
        with self._lock:
            if tenant.id in self._tenants:
                return False
            if any(t.slug == tenant.slug for t in self._tenants.values()):
                return False
            self._tenants[tenant.id] = tenant
            return True

    def list_tenants(self) -> List[Tenant]:
        with self._lock:
            return sorted(self._tenants.values(), key=lambda t: t.slug)
