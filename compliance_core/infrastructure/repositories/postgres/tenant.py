"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/tenant.py
============================================================
Class: PostgresTenantRepository

Responsibilities:
  - Persistir tenants (tabla tenants, slug UNIQUE).
  - create(): INSERT ... ON CONFLICT DO NOTHING => False si el slug existe.
============================================================
"""

from __future__ import annotations

from typing import Optional

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import Tenant

_COLUMNS = "id, slug, name, created_at, suspended_at"


def _row_to_tenant(row: tuple) -> Tenant:
    return Tenant(
        id=str(row[0]),
        slug=row[1],
        name=row[2],
        created_at=row[3],
        suspended_at=row[4],
    )


class PostgresTenantRepository:
    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def _fetchone(self, query: str, params: tuple, error_message: str) -> Optional[tuple]:
        try:
            with self._get_pool().connection() as conn:
                return conn.execute(query, params).fetchone()
        except Exception as exc:
            logger.exception(error_message, extra={"error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}") from exc

    def find_by_slug(self, slug: str) -> Optional[Tenant]:
        row = self._fetchone(
            f"SELECT {_COLUMNS} FROM tenants WHERE slug = %s",
            (slug,),
            "PostgresTenantRepository: Failed to find tenant by slug",
        )
        return _row_to_tenant(row) if row else None

    def find_by_id(self, tenant_id: str) -> Optional[Tenant]:
        row = self._fetchone(
            f"SELECT {_COLUMNS} FROM tenants WHERE id = %s",
            (tenant_id,),
            "PostgresTenantRepository: Failed to find tenant by id",
        )
        return _row_to_tenant(row) if row else None

    def create(self, tenant: Tenant) -> bool:
        row = self._fetchone(
            """
            INSERT INTO tenants (id, slug, name, created_at)
            VALUES (%s, %s, %s, COALESCE(%s, now()))
            ON CONFLICT DO NOTHING
            RETURNING id
            """,
            (tenant.id, tenant.slug, tenant.name, tenant.created_at),
            "PostgresTenantRepository: Failed to create tenant",
        )
        return row is not None
