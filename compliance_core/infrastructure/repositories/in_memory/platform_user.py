"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/platform_user.py
============================================================
Class: InMemoryPlatformUserRepository

Responsibilities:
  - Guardar usuarios de plataforma en memoria.
  - Responder exists_super_admin().

Collaborators:
  - domain.entities.PlatformUser
  - InMemoryBootstrapStateRepository (comparte este store para el CAS)

Constraints / Notes:
  - Thread-safe: acceso protegido por Lock.
============================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List
from uuid import UUID

from ....domain.entities import PlatformUser
from ....domain.scope import Role


class InMemoryPlatformUserRepository:
    def __init__(self) -> None:
        self._lock = Lock()
        self._users: Dict[UUID, PlatformUser] = {}

    def exists_super_admin(self) -> bool:
        with self._lock:
            return any(u.role == Role.SUPER_ADMIN for u in self._users.values())

    def create_super_admin(
        self,
        *,
        user_id: UUID,
        email_hash: str,
        display_name: str,
        password_hash: str,
    ) -> PlatformUser:
        return self.add(
            PlatformUser(
                id=user_id,
                email_hash=email_hash,
                display_name=display_name,
                password_hash=password_hash,
                role=Role.SUPER_ADMIN,
                created_at=datetime.now(timezone.utc),
            )
        )

    def add(self, user: PlatformUser) -> PlatformUser:
        with self._lock:
            if user.id in self._users:
                raise ValueError(f"platform user {user.id} already exists")
            self._users[user.id] = user
            return user

    def list_super_admins(self) -> List[PlatformUser]:
        with self._lock:
            return [u for u in self._users.values() if u.role == Role.SUPER_ADMIN]
