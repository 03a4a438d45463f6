"""PostgreSQL repository implementations (psycopg + psycopg_pool)."""

from .audit_event import PostgresAuditEventRepository
from .bootstrap_state import PostgresBootstrapStateRepository
from .platform_user import PostgresPlatformUserRepository
from .security_incident import PostgresSecurityIncidentRepository
from .tenant import PostgresTenantRepository
from .tenant_user import PostgresTenantUserRepository

__all__ = [
    "PostgresAuditEventRepository",
    "PostgresBootstrapStateRepository",
    "PostgresPlatformUserRepository",
    "PostgresSecurityIncidentRepository",
    "PostgresTenantRepository",
    "PostgresTenantUserRepository",
]
