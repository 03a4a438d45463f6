"""
Bootstrap & provisioning use cases.

One-shot platform bootstrap (shared secret, single winner) plus tenant and
tenant user provisioning behind the authorization guard.
"""

from .bootstrap_platform import BootstrapPlatformInput, BootstrapPlatformUseCase
from .bootstrap_results import (
    BootstrapError,
    BootstrapErrorCode,
    BootstrapResult,
    BootstrapStatusResult,
    TenantResult,
    TenantUserResult,
)
from .create_tenant import CreateTenantInput, CreateTenantUseCase
from .create_tenant_admin import CreateTenantAdminInput, CreateTenantAdminUseCase
from .create_tenant_user import CreateTenantUserInput, CreateTenantUserUseCase
from .get_bootstrap_status import GetBootstrapStatusUseCase

__all__ = [
    "BootstrapPlatformInput",
    "BootstrapPlatformUseCase",
    "GetBootstrapStatusUseCase",
    "CreateTenantInput",
    "CreateTenantUseCase",
    "CreateTenantAdminInput",
    "CreateTenantAdminUseCase",
    "CreateTenantUserInput",
    "CreateTenantUserUseCase",
    "BootstrapError",
    "BootstrapErrorCode",
    "BootstrapResult",
    "BootstrapStatusResult",
    "TenantResult",
    "TenantUserResult",
]
