"""
===============================================================================
TARJETA CRC — domain/entities.py
===============================================================================

Módulo:
    Entidades del Dominio (Tenant, PlatformUser, TenantUser, BootstrapStatus)

Responsabilidades:
    - Definir estructuras centrales (sin infraestructura).
    - Guardar solo hashes de email y password (nunca el valor crudo).

Colaboradores:
    - domain.repositories: persisten/recuperan estas entidades.
    - application/usecases: construyen/consumen estas entidades.

Principios:
    - Sin dependencias a DB.
    - display_name es dato personal (P2): nunca va a audit ni a logs.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from .scope import Role


def _utcnow() -> datetime:
    """Fecha/hora UTC (helper interno)."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Tenant
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Tenant:
    """Cliente de la plataforma. slug es único e inmutable."""

    id: str
    slug: str
    name: str
    created_at: datetime | None = None
    suspended_at: datetime | None = None

    @property
    def is_suspended(self) -> bool:
        return self.suspended_at is not None


# ---------------------------------------------------------------------------
# Usuarios
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PlatformUser:
    """Usuario de scope PLATFORM (SUPER_ADMIN / DPO)."""

    id: UUID
    email_hash: str
    display_name: str
    password_hash: str
    role: Role = Role.SUPER_ADMIN
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TenantUser:
    """Usuario de scope TENANT, siempre ligado a un tenant."""

    id: UUID
    tenant_id: str
    email_hash: str
    display_name: str
    password_hash: str
    role: Role = Role.TENANT_USER
    created_at: datetime | None = None
    suspended_at: datetime | None = None

    @property
    def is_suspended(self) -> bool:
        return self.suspended_at is not None


@dataclass(frozen=True, slots=True)
class BootstrapStatus:
    """Vista de lectura del estado de bootstrap."""

    bootstrapped: bool
    super_admin_exists: bool
