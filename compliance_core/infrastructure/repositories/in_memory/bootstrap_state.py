"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/bootstrap_state.py
============================================================
Class: InMemoryBootstrapStateRepository

Responsibilities:
  - Mantener el flag singleton `bootstrapped` (ausente = False).
  - complete_bootstrap(): crear super-admin + flip del flag bajo UN lock
    (compare-and-set). Si la creación falla, el flag no cambia.

Collaborators:
  - InMemoryPlatformUserRepository (store de usuarios)

Constraints / Notes:
  - One-way: no existe operación para volver a False.
============================================================
"""

from __future__ import annotations

from threading import Lock

from ....domain.entities import PlatformUser
from .platform_user import InMemoryPlatformUserRepository


class InMemoryBootstrapStateRepository:
    def __init__(self, platform_users: InMemoryPlatformUserRepository) -> None:
        self._lock = Lock()
        self._bootstrapped = False
        self._platform_users = platform_users

    def is_bootstrapped(self) -> bool:
        with self._lock:
            return self._bootstrapped

    def mark_bootstrapped(self) -> bool:
        with self._lock:
            if self._bootstrapped:
                return False
            self._bootstrapped = True
            return True

    def complete_bootstrap(self, super_admin: PlatformUser) -> bool:
        with self._lock:
            if self._bootstrapped:
                return False
            self._platform_users.add(super_admin)
            self._bootstrapped = True
            return True
