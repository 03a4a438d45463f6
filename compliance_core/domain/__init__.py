"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la Capa de Dominio

Responsabilidades:
    - Centralizar exports para imports limpios en application/interfaces.

Reglas:
    - Solo re-exporta contratos/entidades del dominio.
    - No importar infraestructura aquí.
===============================================================================
"""

from .audit import (
    AuditEvent,
    AuditEventName,
    HashedId,
    SafeFlag,
    SafeLabel,
    SafeNumber,
    safe_metadata,
)
from .entities import BootstrapStatus, PlatformUser, Tenant, TenantUser
from .incident import (
    DataCategory,
    DeadlineState,
    DetectionContext,
    DetectionSource,
    IncidentSeverity,
    IncidentStatus,
    IncidentType,
    RiskLevel,
    SecurityIncident,
)
from .repositories import (
    AuditEventRepository,
    AuditEventWriter,
    BootstrapStateRepository,
    PlatformUserRepository,
    SecurityIncidentRepository,
    TenantRepository,
    TenantUserRepository,
)
from .scope import Actor, ActorScope, Role
from .services import EmailHasher, PasswordHasher

__all__ = [
    # Scope
    "Actor",
    "ActorScope",
    "Role",
    # Audit
    "AuditEvent",
    "AuditEventName",
    "SafeLabel",
    "SafeNumber",
    "SafeFlag",
    "HashedId",
    "safe_metadata",
    # Entities
    "Tenant",
    "PlatformUser",
    "TenantUser",
    "BootstrapStatus",
    # Incidents
    "SecurityIncident",
    "IncidentType",
    "IncidentSeverity",
    "IncidentStatus",
    "RiskLevel",
    "DetectionSource",
    "DetectionContext",
    "DataCategory",
    "DeadlineState",
    # Ports
    "AuditEventWriter",
    "AuditEventRepository",
    "BootstrapStateRepository",
    "PlatformUserRepository",
    "TenantRepository",
    "TenantUserRepository",
    "SecurityIncidentRepository",
    "PasswordHasher",
    "EmailHasher",
]
