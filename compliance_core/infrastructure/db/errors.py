"""
===============================================================================
CRC CARD — infrastructure/db/errors.py
===============================================================================

Componente:
  Errores tipados del Pool

Responsabilidades:
  - Dar semántica clara: "no inicializado", "ya inicializado".
  - Encajar en la jerarquía ComplianceError (DatabaseError).
===============================================================================
"""

from ...crosscutting.exceptions import DatabaseError


class PoolAlreadyInitializedError(DatabaseError):
    """Se intentó inicializar el pool más de una vez."""

    error_code: str = "POOL_ALREADY_INITIALIZED"


class PoolNotInitializedError(DatabaseError):
    """Se intentó usar el pool sin init_pool()."""

    error_code: str = "POOL_NOT_INITIALIZED"
