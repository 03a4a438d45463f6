"""
===============================================================================
MÓDULO: Excepciones tipadas del core (errores de infraestructura)
===============================================================================

Objetivo
--------
Tener excepciones internas coherentes, con:
- error_code estable
- error_id para correlación con logs
- message “humana” (sin filtrar secretos ni PII)

Las decisiones de política (FORBIDDEN_ROLE, ALREADY_BOOTSTRAPPED, ...) NO son
excepciones: se devuelven como resultados tipados desde los casos de uso.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  ComplianceError + subclases

Responsabilidades:
  - Estandarizar fallas de infraestructura (audit writer, DB, timeouts)
  - Generar error_id para rastreo

Colaboradores:
  - application/audit_trail.py (AuditWriteError)
  - crosscutting/timing.py (OperationTimeoutError)
  - infrastructure/repositories/postgres (DatabaseError)
  - crosscutting/error_responses.py
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class ComplianceError(Exception):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      ComplianceError

    Responsabilidades:
      - Base para errores internos del core
      - Proveer error_code + error_id + message

    Colaboradores:
      - crosscutting/error_responses.py
    ----------------------------------------------------------------------------
    """

    error_code: str = "COMPLIANCE_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)


class AuditWriteError(ComplianceError):
    """Falla (o timeout) de una escritura de auditoría crítica."""

    error_code: str = "AUDIT_WRITE_FAILED"


class DatabaseError(ComplianceError):
    """Errores de DB (conexión, query, timeout, pool)."""

    error_code: str = "DATABASE_ERROR"


class OperationTimeoutError(ComplianceError):
    """Una llamada acotada por timeout del caller no terminó a tiempo."""

    error_code: str = "OPERATION_TIMEOUT"
