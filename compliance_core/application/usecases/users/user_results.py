"""
===============================================================================
TENANT USER USE CASE RESULTS
===============================================================================

Name:
    Tenant User Use Case Results

Business Goal:
    Contrato de resultados para lectura y suspensión de usuarios de tenant.
    NOT_FOUND cubre tanto "no existe" como "pertenece a otro tenant".
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ....domain.entities import TenantUser


class UserErrorCode(str, Enum):
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_SUSPENDED = "ALREADY_SUSPENDED"
    VALIDATION_ERROR = "VALIDATION_ERROR"


@dataclass(frozen=True)
class UserError:
    code: UserErrorCode
    message: str
    resource: str | None = "TenantUser"


@dataclass
class UserResult:
    user: TenantUser | None = None
    error: UserError | None = None


def forbidden() -> UserError:
    return UserError(code=UserErrorCode.FORBIDDEN, message="Access denied.")


def not_found() -> UserError:
    return UserError(code=UserErrorCode.NOT_FOUND, message="Resource not found.")
