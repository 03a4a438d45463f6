"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/bootstrap_state.py
============================================================
Class: PostgresBootstrapStateRepository

Responsibilities:
  - Leer/escribir el flag singleton bootstrap_state (fila id = 1).
  - complete_bootstrap(): UNA transacción
      1) UPDATE ... SET bootstrapped = TRUE WHERE id = 1 AND bootstrapped = FALSE
      2) si rowcount == 0 => otro proceso ganó: rollback, devolver False
      3) INSERT del super-admin; si falla, rollback (el flag vuelve a FALSE)

Collaborators:
  - postgres.platform_user.insert_platform_user
  - psycopg_pool.ConnectionPool

Constraints / Notes:
  - El UPDATE condicional toma el row lock: solo un ganador entre procesos.
============================================================
"""

from __future__ import annotations

from psycopg import Rollback
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import PlatformUser
from .platform_user import insert_platform_user

_FLIP_SQL = """
    UPDATE bootstrap_state
    SET bootstrapped = TRUE, bootstrapped_at = now()
    WHERE id = 1 AND bootstrapped = FALSE
"""


class PostgresBootstrapStateRepository:
    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def is_bootstrapped(self) -> bool:
        try:
            with self._get_pool().connection() as conn:
                row = conn.execute(
                    "SELECT bootstrapped FROM bootstrap_state WHERE id = 1"
                ).fetchone()
                return bool(row[0]) if row else False
        except Exception as exc:
            logger.exception(
                "PostgresBootstrapStateRepository: Failed to read bootstrap state",
                extra={"error": str(exc)},
            )
            raise DatabaseError(f"Failed to read bootstrap state: {exc}") from exc

    def mark_bootstrapped(self) -> bool:
        try:
            with self._get_pool().connection() as conn:
                cur = conn.execute(_FLIP_SQL)
                return cur.rowcount == 1
        except Exception as exc:
            logger.exception(
                "PostgresBootstrapStateRepository: Failed to mark bootstrapped",
                extra={"error": str(exc)},
            )
            raise DatabaseError(f"Failed to mark bootstrapped: {exc}") from exc

    def complete_bootstrap(self, super_admin: PlatformUser) -> bool:
        try:
            with self._get_pool().connection() as conn:
                with conn.transaction():
                    cur = conn.execute(_FLIP_SQL)
                    if cur.rowcount != 1:
                        raise Rollback()
                    insert_platform_user(conn, super_admin)
                    return True
                return False
        except Exception as exc:
            logger.exception(
                "PostgresBootstrapStateRepository: Failed to complete bootstrap",
                extra={"error": str(exc)},
            )
            raise DatabaseError(f"Failed to complete bootstrap: {exc}") from exc
