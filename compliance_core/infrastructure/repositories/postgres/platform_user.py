"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/platform_user.py
============================================================
Class: PostgresPlatformUserRepository

Responsibilities:
  - Persistir usuarios de plataforma (tabla platform_users).
  - exists_super_admin() / create_super_admin().

Constraints / Notes:
  - email_hash y password_hash nunca se loguean.
============================================================
"""

from __future__ import annotations

from uuid import UUID

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import PlatformUser
from ....domain.scope import Role

_INSERT_SQL = """
    INSERT INTO platform_users (id, email_hash, display_name, password_hash, role)
    VALUES (%s, %s, %s, %s, %s)
    RETURNING id, email_hash, display_name, password_hash, role, created_at
"""


def _row_to_user(row: tuple) -> PlatformUser:
    return PlatformUser(
        id=row[0],
        email_hash=row[1],
        display_name=row[2],
        password_hash=row[3],
        role=Role(row[4]),
        created_at=row[5],
    )


def insert_platform_user(conn, user: PlatformUser) -> PlatformUser:
    """INSERT dentro de una conexión/transacción abierta por el caller."""
    row = conn.execute(
        _INSERT_SQL,
        (
            user.id,
            user.email_hash,
            user.display_name,
            user.password_hash,
            user.role.value,
        ),
    ).fetchone()
    return _row_to_user(row)


class PostgresPlatformUserRepository:
    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def exists_super_admin(self) -> bool:
        try:
            with self._get_pool().connection() as conn:
                row = conn.execute(
                    "SELECT EXISTS (SELECT 1 FROM platform_users WHERE role = %s)",
                    (Role.SUPER_ADMIN.value,),
                ).fetchone()
                return bool(row[0])
        except Exception as exc:
            logger.exception(
                "PostgresPlatformUserRepository: Failed to check super admin",
                extra={"error": str(exc)},
            )
            raise DatabaseError(f"Failed to check super admin: {exc}") from exc

    def create_super_admin(
        self,
        *,
        user_id: UUID,
        email_hash: str,
        display_name: str,
        password_hash: str,
    ) -> PlatformUser:
        user = PlatformUser(
            id=user_id,
            email_hash=email_hash,
            display_name=display_name,
            password_hash=password_hash,
            role=Role.SUPER_ADMIN,
        )
        try:
            with self._get_pool().connection() as conn:
                return insert_platform_user(conn, user)
        except Exception as exc:
            logger.exception(
                "PostgresPlatformUserRepository: Failed to create super admin",
                extra={"user_id": str(user_id), "error": str(exc)},
            )
            raise DatabaseError(f"Failed to create super admin: {exc}") from exc
