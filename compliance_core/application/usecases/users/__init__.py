from .get_tenant_user import GetTenantUserInput, GetTenantUserUseCase
from .suspend_tenant_user import SuspendTenantUserInput, SuspendTenantUserUseCase
from .user_results import UserError, UserErrorCode, UserResult

__all__ = [
    "GetTenantUserInput",
    "GetTenantUserUseCase",
    "SuspendTenantUserInput",
    "SuspendTenantUserUseCase",
    "UserError",
    "UserErrorCode",
    "UserResult",
]
