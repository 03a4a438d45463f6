"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/audit_event.py
============================================================
Class: PostgresAuditEventRepository

Responsibilities:
  - Persistir eventos de auditoría en PostgreSQL (tabla audit_events).
  - Listar eventos con filtros opcionales (tenant_id, event_name).
  - Orden determinístico: occurred_at DESC, id ASC.

Collaborators:
  - domain.audit.AuditEvent (entidad de dominio)
  - psycopg_pool.ConnectionPool (pool de conexiones)
  - psycopg.types.json.Json (JSON seguro hacia PostgreSQL)
  - db.retry.with_db_retry (tenacity, fallas de conexión)
  - crosscutting.logger.logger / crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Repo puro: NO define políticas (CRITICAL vs BEST_EFFORT lo decide
    AuditTrail).
  - Append-only: no hay UPDATE ni DELETE sobre audit_events.
  - Queries SIEMPRE parametrizadas.
============================================================
"""

from __future__ import annotations

from typing import Iterable

from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.audit import (
    AuditEvent,
    AuditEventName,
    metadata_from_json,
    metadata_to_json,
)
from ....domain.scope import ActorScope
from ...db.retry import with_db_retry

_SELECT_COLUMNS = """
    id, event_name, actor_scope, actor_id, tenant_id, target_id,
    metadata, occurred_at
"""


class PostgresAuditEventRepository:
    """Repositorio PostgreSQL para auditoría (audit_events)."""

    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    # ------------------------------------------------------------
    # Helpers internos
    # ------------------------------------------------------------
    def _fetchall(
        self,
        *,
        query: str,
        params: Iterable[object],
        error_message: str,
        extra: dict[str, object],
    ) -> list[tuple]:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except Exception as exc:
            logger.exception(error_message, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}") from exc

    @staticmethod
    def _row_to_event(row: tuple) -> AuditEvent:
        return AuditEvent(
            id=row[0],
            event_name=AuditEventName(row[1]),
            actor_scope=ActorScope(row[2]),
            actor_id=row[3],
            tenant_id=row[4],
            target_id=row[5],
            metadata=metadata_from_json(row[6] or {}),
            occurred_at=row[7],
        )

    # ------------------------------------------------------------
    # Escritura (append-only)
    # ------------------------------------------------------------
    def write(self, event: AuditEvent) -> None:
        """
        Inserta un evento de auditoría.

        - Fallas de conexión se reintentan (el INSERT es idempotente por id).
        - Si falla se propaga DatabaseError; AuditTrail decide según la política.
        """
        try:
            self._insert(event)
        except Exception as exc:
            logger.exception(
                "PostgresAuditEventRepository: Failed to write audit event",
                extra={
                    "event_id": str(event.id),
                    "event_name": event.event_name.value,
                    "error": str(exc),
                },
            )
            raise DatabaseError(f"Failed to write audit event: {exc}") from exc

    @with_db_retry
    def _insert(self, event: AuditEvent) -> None:
        pool = self._get_pool()
        with pool.connection() as conn:
            conn.execute(
                """
                INSERT INTO audit_events (
                    id, event_name, actor_scope, actor_id, tenant_id,
                    target_id, metadata, occurred_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id) DO NOTHING
                """,
                (
                    event.id,
                    event.event_name.value,
                    event.actor_scope.value,
                    event.actor_id,
                    event.tenant_id,
                    event.target_id,
                    Json(metadata_to_json(event.metadata)),
                    event.occurred_at,
                ),
            )

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------
    def list_events(
        self,
        *,
        tenant_id: str | None = None,
        event_name: AuditEventName | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditEvent]:
        if limit <= 0:
            return []
        offset = max(0, offset)

        conditions: list[str] = []
        params: list[object] = []

        if tenant_id is not None:
            conditions.append("tenant_id = %s")
            params.append(tenant_id)
        if event_name is not None:
            conditions.append("event_name = %s")
            params.append(event_name.value)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        query = f"""
            SELECT {_SELECT_COLUMNS}
            FROM audit_events
            {where}
            ORDER BY occurred_at DESC, id ASC
            LIMIT %s OFFSET %s
        """
        params.extend([limit, offset])

        rows = self._fetchall(
            query=query,
            params=params,
            error_message="PostgresAuditEventRepository: Failed to list audit events",
            extra={"tenant_id": tenant_id, "limit": limit, "offset": offset},
        )
        return [self._row_to_event(row) for row in rows]
