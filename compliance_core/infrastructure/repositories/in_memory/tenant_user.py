"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/tenant_user.py
============================================================
Class: InMemoryTenantUserRepository

Responsibilities:
  - Guardar usuarios de tenant en memoria.
  - Unicidad (tenant_id, email_hash).
  - Suspensión (suspended_at) sin borrar.

Constraints / Notes:
  - Thread-safe: acceso protegido por Lock.
  - Entidades inmutables: suspend() reemplaza la fila.
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from threading import Lock
from typing import Dict, Optional
from uuid import UUID

from ....domain.entities import TenantUser
from ....domain.scope import Role


class InMemoryTenantUserRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._users: Dict[UUID, TenantUser] = {}

    def _insert(self, user: TenantUser) -> TenantUser:
        with self._lock:
            if user.id in self._users:
                raise ValueError(f"tenant user {user.id} already exists")
            if any(
                u.tenant_id == user.tenant_id and u.email_hash == user.email_hash
                for u in self._users.values()
            ):
                raise ValueError("email already registered in tenant")
            self._users[user.id] = user
            return user

    def create_tenant_admin(self, user: TenantUser) -> TenantUser:
        return self._insert(replace(user, role=Role.TENANT_ADMIN))

    def create_tenant_user(self, user: TenantUser) -> TenantUser:
        if user.role == Role.TENANT_ADMIN:
            raise ValueError("use create_tenant_admin for TENANT_ADMIN users")
        return self._insert(user)

    def find_by_id(self, user_id: UUID) -> Optional[TenantUser]:
        with self._lock:
            return self._users.get(user_id)

    def exists_email_hash(self, tenant_id: str, email_hash: str) -> bool:
        with self._lock:
            return any(
                u.tenant_id == tenant_id and u.email_hash == email_hash
                for u in self._users.values()
            )

    def suspend(self, user_id: UUID, suspended_at: datetime) -> Optional[TenantUser]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            if user.suspended_at is None:
                user = replace(user, suspended_at=suspended_at)
                self._users[user_id] = user
            return user
