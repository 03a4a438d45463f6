"""
In-Memory Repository Implementations.

For testing and single-process use. Data is lost on process restart.
"""

from .audit_event import InMemoryAuditEventRepository
from .bootstrap_state import InMemoryBootstrapStateRepository
from .platform_user import InMemoryPlatformUserRepository
from .security_incident import InMemorySecurityIncidentRepository
from .tenant import InMemoryTenantRepository
from .tenant_user import InMemoryTenantUserRepository

__all__ = [
    "InMemoryAuditEventRepository",
    "InMemoryBootstrapStateRepository",
    "InMemoryPlatformUserRepository",
    "InMemorySecurityIncidentRepository",
    "InMemoryTenantRepository",
    "InMemoryTenantUserRepository",
]
