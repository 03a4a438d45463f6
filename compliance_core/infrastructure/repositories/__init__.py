"""
============================================================
TARJETA CRC
============================================================
Class: infrastructure.repositories (Package exports)

Responsibilities:
- Exponer implementaciones concretas de repositorios (Postgres e InMemory)
  en un único punto de importación.

Collaborators:
- Repositorios Postgres (SQL crudo, psycopg)
- Repositorios InMemory (tests / proceso único)
============================================================
"""

from .in_memory import (
    InMemoryAuditEventRepository,
    InMemoryBootstrapStateRepository,
    InMemoryPlatformUserRepository,
    InMemorySecurityIncidentRepository,
    InMemoryTenantRepository,
    InMemoryTenantUserRepository,
)
from .postgres import (
    PostgresAuditEventRepository,
    PostgresBootstrapStateRepository,
    PostgresPlatformUserRepository,
    PostgresSecurityIncidentRepository,
    PostgresTenantRepository,
    PostgresTenantUserRepository,
)

__all__ = [
    # Postgres
    "PostgresAuditEventRepository",
    "PostgresBootstrapStateRepository",
    "PostgresPlatformUserRepository",
    "PostgresSecurityIncidentRepository",
    "PostgresTenantRepository",
    "PostgresTenantUserRepository",
    # In-memory
    "InMemoryAuditEventRepository",
    "InMemoryBootstrapStateRepository",
    "InMemoryPlatformUserRepository",
    "InMemorySecurityIncidentRepository",
    "InMemoryTenantRepository",
    "InMemoryTenantUserRepository",
]
