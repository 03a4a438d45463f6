"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/security_incident.py
============================================================
Class: PostgresSecurityIncidentRepository

Responsibilities:
  - Persistir incidentes (tabla security_incidents). Sin DELETE.
  - update(): compare-and-set optimista contra las columnas mutables del
    snapshot esperado (rowcount == 1 => ganó este escritor).
  - Queries: correlación, listados filtrados, pendientes CNIL.

Collaborators:
  - domain.incident.SecurityIncident
  - psycopg_pool.ConnectionPool
  - crosscutting.logger.logger / crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Orden determinístico: created_at DESC, id ASC.
  - data_categories se guarda como TEXT[].
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.incident import (
    DataCategory,
    DetectionSource,
    IncidentSeverity,
    IncidentStatus,
    IncidentType,
    RiskLevel,
    SecurityIncident,
)

_COLUMNS = """
    id, type, severity, risk_level, created_at, title, tenant_id, description,
    status, cnil_deadline, cnil_notified_at, cnil_reference, users_notified_at,
    closed_at, remediation_actions, identity_fingerprint, source_ip,
    breach_count, users_affected, records_affected, data_categories,
    detected_by, created_by, updated_at
"""


def _row_to_incident(row: tuple) -> SecurityIncident:
    return SecurityIncident(
        id=row[0],
        type=IncidentType(row[1]),
        severity=IncidentSeverity(row[2]),
        risk_level=RiskLevel(row[3]),
        created_at=row[4],
        title=row[5],
        tenant_id=row[6],
        description=row[7] or "",
        status=IncidentStatus(row[8]),
        cnil_deadline=row[9],
        cnil_notified_at=row[10],
        cnil_reference=row[11],
        users_notified_at=row[12],
        closed_at=row[13],
        remediation_actions=row[14],
        identity_fingerprint=row[15],
        source_ip=row[16],
        breach_count=row[17],
        users_affected=row[18],
        records_affected=row[19],
        data_categories=tuple(DataCategory(c) for c in (row[20] or [])),
        detected_by=DetectionSource(row[21]),
        created_by=row[22],
        updated_at=row[23],
    )


def _incident_params(incident: SecurityIncident) -> tuple:
    return (
        incident.id,
        incident.type.value,
        incident.severity.value,
        incident.risk_level.value,
        incident.created_at,
        incident.title,
        incident.tenant_id,
        incident.description,
        incident.status.value,
        incident.cnil_deadline,
        incident.cnil_notified_at,
        incident.cnil_reference,
        incident.users_notified_at,
        incident.closed_at,
        incident.remediation_actions,
        incident.identity_fingerprint,
        incident.source_ip,
        incident.breach_count,
        incident.users_affected,
        incident.records_affected,
        [c.value for c in incident.data_categories],
        incident.detected_by.value,
        incident.created_by,
        incident.updated_at,
    )


class PostgresSecurityIncidentRepository:
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

    # ------------------------------------------------------------
    # Escritura
    # ------------------------------------------------------------
    def create(self, incident: SecurityIncident) -> SecurityIncident:
        placeholders = ", ".join(["%s"] * 24)
        rows = self._fetchall(
            query=f"""
                INSERT INTO security_incidents ({_COLUMNS})
                VALUES ({placeholders})
                RETURNING {_COLUMNS}
            """,
            params=_incident_params(incident),
            error_message="PostgresSecurityIncidentRepository: Failed to create incident",
            extra={"incident_id": str(incident.id)},
        )
        return _row_to_incident(rows[0])

    def update(self, incident: SecurityIncident, *, expected: SecurityIncident) -> bool:
        try:
            with self._get_pool().connection() as conn:
                cur = conn.execute(
                    """
                    UPDATE security_incidents
                    SET severity = %s, risk_level = %s, status = %s,
                        cnil_deadline = %s, cnil_notified_at = %s,
                        cnil_reference = %s, users_notified_at = %s,
                        closed_at = %s, remediation_actions = %s,
                        breach_count = %s, updated_at = %s
                    WHERE id = %s
                      AND status = %s
                      AND severity = %s
                      AND breach_count = %s
                      AND updated_at IS NOT DISTINCT FROM %s
                      AND cnil_notified_at IS NOT DISTINCT FROM %s
                      AND users_notified_at IS NOT DISTINCT FROM %s
                      AND closed_at IS NOT DISTINCT FROM %s
                    """,
                    (
                        incident.severity.value,
                        incident.risk_level.value,
                        incident.status.value,
                        incident.cnil_deadline,
                        incident.cnil_notified_at,
                        incident.cnil_reference,
                        incident.users_notified_at,
                        incident.closed_at,
                        incident.remediation_actions,
                        incident.breach_count,
                        incident.updated_at,
                        incident.id,
                        expected.status.value,
                        expected.severity.value,
                        expected.breach_count,
                        expected.updated_at,
                        expected.cnil_notified_at,
                        expected.users_notified_at,
                        expected.closed_at,
                    ),
                )
                return cur.rowcount == 1
        except Exception as exc:
            logger.exception(
                "PostgresSecurityIncidentRepository: Failed to update incident",
                extra={"incident_id": str(incident.id), "error": str(exc)},
            )
            raise DatabaseError(f"Failed to update incident: {exc}") from exc

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------
    def get(self, incident_id: UUID) -> Optional[SecurityIncident]:
        rows = self._fetchall(
            query=f"SELECT {_COLUMNS} FROM security_incidents WHERE id = %s",
            params=(incident_id,),
            error_message="PostgresSecurityIncidentRepository: Failed to get incident",
            extra={"incident_id": str(incident_id)},
        )
        return _row_to_incident(rows[0]) if rows else None

    def find_open_by_correlation(
        self,
        *,
        incident_type: IncidentType,
        identity_fingerprint: Optional[str],
        tenant_id: Optional[str],
        created_since: datetime,
        source_ip: Optional[str] = None,
    ) -> Optional[SecurityIncident]:
        rows = self._fetchall(
            query=f"""
                SELECT {_COLUMNS}
                FROM security_incidents
                WHERE type = %s
                  AND status = %s
                  AND identity_fingerprint IS NOT DISTINCT FROM %s
                  AND tenant_id IS NOT DISTINCT FROM %s
                  AND created_at >= %s
                  AND (%s::text IS NULL OR source_ip = %s)
                ORDER BY created_at DESC, id ASC
                LIMIT 1
            """,
            params=(
                incident_type.value,
                IncidentStatus.OPEN.value,
                identity_fingerprint,
                tenant_id,
                created_since,
                source_ip,
                source_ip,
            ),
            error_message="PostgresSecurityIncidentRepository: Failed to correlate incident",
            extra={"incident_type": incident_type.value},
        )
        return _row_to_incident(rows[0]) if rows else None

    def list_incidents(
        self,
        *,
        status: Optional[IncidentStatus] = None,
        incident_type: Optional[IncidentType] = None,
        tenant_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[SecurityIncident]:
        if limit <= 0:
            return []

        conditions: list[str] = []
        params: list[object] = []
        if status is not None:
            conditions.append("status = %s")
            params.append(status.value)
        if incident_type is not None:
            conditions.append("type = %s")
            params.append(incident_type.value)
        if tenant_id is not None:
            conditions.append("tenant_id = %s")
            params.append(tenant_id)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        params.extend([limit, max(0, offset)])
        rows = self._fetchall(
            query=f"""
                SELECT {_COLUMNS}
                FROM security_incidents
                {where}
                ORDER BY created_at DESC, id ASC
                LIMIT %s OFFSET %s
            """,
            params=params,
            error_message="PostgresSecurityIncidentRepository: Failed to list incidents",
            extra={"limit": limit, "offset": offset},
        )
        return [_row_to_incident(row) for row in rows]

    def list_pending_cnil(self, now: datetime) -> list[SecurityIncident]:
        rows = self._fetchall(
            query=f"""
                SELECT {_COLUMNS}
                FROM security_incidents
                WHERE cnil_deadline IS NOT NULL
                  AND cnil_notified_at IS NULL
                  AND cnil_deadline >= %s
                ORDER BY cnil_deadline ASC
            """,
            params=(now,),
            error_message="PostgresSecurityIncidentRepository: Failed to list pending CNIL",
            extra={},
        )
        return [_row_to_incident(row) for row in rows]
