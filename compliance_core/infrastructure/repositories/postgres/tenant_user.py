"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/tenant_user.py
============================================================
Class: PostgresTenantUserRepository

Responsibilities:
  - Persistir usuarios de tenant (tabla tenant_users).
  - UNIQUE (tenant_id, email_hash).
  - suspend(): UPDATE idempotente (conserva el primer suspended_at).

Constraints / Notes:
  - email_hash / password_hash / display_name nunca van a logs.
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import TenantUser
from ....domain.scope import Role

_COLUMNS = (
    "id, tenant_id, email_hash, display_name, password_hash, role, "
    "created_at, suspended_at"
)


def _row_to_user(row: tuple) -> TenantUser:
    return TenantUser(
        id=row[0],
        tenant_id=str(row[1]),
        email_hash=row[2],
        display_name=row[3],
        password_hash=row[4],
        role=Role(row[5]),
        created_at=row[6],
        suspended_at=row[7],
    )


class PostgresTenantUserRepository:
    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def _fetchone(
        self, query: str, params: tuple, error_message: str, extra: dict[str, object]
    ) -> Optional[tuple]:
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, params).fetchone()
        except Exception as exc:
            logger.exception(error_message, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}") from exc

    def _insert(self, user: TenantUser, role: Role) -> TenantUser:
        row = self._fetchone(
            f"""
            INSERT INTO tenant_users (
                id, tenant_id, email_hash, display_name, password_hash, role,
                created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, COALESCE(%s, now()))
            RETURNING {_COLUMNS}
            """,
            (
                user.id,
                user.tenant_id,
                user.email_hash,
                user.display_name,
                user.password_hash,
                role.value,
                user.created_at,
            ),
            "PostgresTenantUserRepository: Failed to create tenant user",
            {"user_id": str(user.id), "tenant_id": user.tenant_id},
        )
        return _row_to_user(row)

    def create_tenant_admin(self, user: TenantUser) -> TenantUser:
        return self._insert(user, Role.TENANT_ADMIN)

    def create_tenant_user(self, user: TenantUser) -> TenantUser:
        if user.role == Role.TENANT_ADMIN:
            raise ValueError("use create_tenant_admin for TENANT_ADMIN users")
        return self._insert(user, user.role)

    def find_by_id(self, user_id: UUID) -> Optional[TenantUser]:
        row = self._fetchone(
            f"SELECT {_COLUMNS} FROM tenant_users WHERE id = %s",
            (user_id,),
            "PostgresTenantUserRepository: Failed to find tenant user",
            {"user_id": str(user_id)},
        )
        return _row_to_user(row) if row else None

    def exists_email_hash(self, tenant_id: str, email_hash: str) -> bool:
        row = self._fetchone(
            "SELECT EXISTS (SELECT 1 FROM tenant_users "
            "WHERE tenant_id = %s AND email_hash = %s)",
            (tenant_id, email_hash),
            "PostgresTenantUserRepository: Failed to check email",
            {"tenant_id": tenant_id},
        )
        return bool(row[0])

    def suspend(self, user_id: UUID, suspended_at: datetime) -> Optional[TenantUser]:
        row = self._fetchone(
            f"""
            UPDATE tenant_users
            SET suspended_at = COALESCE(suspended_at, %s)
            WHERE id = %s
            RETURNING {_COLUMNS}
            """,
            (suspended_at, user_id),
            "PostgresTenantUserRepository: Failed to suspend tenant user",
            {"user_id": str(user_id)},
        )
        return _row_to_user(row) if row else None
