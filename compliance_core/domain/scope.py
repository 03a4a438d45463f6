"""
===============================================================================
TARJETA CRC — domain/scope.py
===============================================================================

Módulo:
    Modelo de Scopes y Roles (Dominio puro)

Responsabilidades:
    - Definir la jerarquía de autoridad SYSTEM > PLATFORM > TENANT.
    - Definir los roles válidos por scope.
    - Validar Actor al construirlo (tenant_id obligatorio sii scope TENANT).
    - Exponer reglas puras: authority_of, can_act_on_tenant, has_role.

Colaboradores:
    - application/authorization.py: única puerta de decisión.
    - application/usecases/*: reciben Actor como input.

Notas:
    - Sin IO. Sin logging.
    - Un Actor inválido es un error de programación (ValueError), no una
      condición recuperable en runtime.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final, Iterable
from uuid import UUID


class ActorScope(str, Enum):
    """Nivel de autoridad del actor."""

    SYSTEM = "SYSTEM"
    PLATFORM = "PLATFORM"
    TENANT = "TENANT"


class Role(str, Enum):
    """Roles del sistema (el set válido depende del scope)."""

    SYSTEM = "SYSTEM"
    SUPER_ADMIN = "SUPER_ADMIN"
    DPO = "DPO"
    TENANT_ADMIN = "TENANT_ADMIN"
    TENANT_USER = "TENANT_USER"
    TENANT_DPO = "TENANT_DPO"


_AUTHORITY: Final[dict[ActorScope, int]] = {
    ActorScope.SYSTEM: 3,
    ActorScope.PLATFORM: 2,
    ActorScope.TENANT: 1,
}

ROLES_BY_SCOPE: Final[dict[ActorScope, frozenset[Role]]] = {
    ActorScope.SYSTEM: frozenset({Role.SYSTEM}),
    ActorScope.PLATFORM: frozenset({Role.SUPER_ADMIN, Role.DPO}),
    ActorScope.TENANT: frozenset(
        {Role.TENANT_ADMIN, Role.TENANT_USER, Role.TENANT_DPO}
    ),
}


@dataclass(frozen=True, slots=True)
class Actor:
    """
    Actor autenticado de un request (o del sistema).

    - tenant_id: requerido sii scope == TENANT
    - actor_id: opcional (SYSTEM / jobs no tienen usuario)
    """

    scope: ActorScope
    role: Role
    tenant_id: str | None = None
    actor_id: UUID | None = None

    def __post_init__(self) -> None:
        if self.role not in ROLES_BY_SCOPE[self.scope]:
            raise ValueError(
                f"role {self.role.value} is not valid for scope {self.scope.value}"
            )
        if self.scope == ActorScope.TENANT and not self.tenant_id:
            raise ValueError("TENANT scope actor requires tenant_id")
        if self.scope != ActorScope.TENANT and self.tenant_id is not None:
            raise ValueError(f"{self.scope.value} scope actor must not carry tenant_id")

    @classmethod
    def system(cls) -> "Actor":
        """Actor interno (jobs, detección automática, CLI)."""
        return cls(scope=ActorScope.SYSTEM, role=Role.SYSTEM)


# -----------------------------------------------------------------------------
# Reglas puras
# -----------------------------------------------------------------------------
def authority_of(scope: ActorScope) -> int:
    """Rank numérico: SYSTEM 3 > PLATFORM 2 > TENANT 1."""
    return _AUTHORITY[scope]


def outranks(a: ActorScope, b: ActorScope) -> bool:
    return authority_of(a) > authority_of(b)


def can_act_on_tenant(actor: Actor, target_tenant_id: str) -> bool:
    """
    Regla de aislamiento:
      - SYSTEM / PLATFORM: cualquier tenant.
      - TENANT: solo su propio tenant.
    """
    if actor.scope in (ActorScope.SYSTEM, ActorScope.PLATFORM):
        return True
    return actor.tenant_id == target_tenant_id


def has_role(actor: Actor, allowed_roles: Iterable[Role]) -> bool:
    """Membership exacta (sin wildcard ni herencia por scope)."""
    return actor.role in set(allowed_roles)
