"""
===============================================================================
TARJETA CRC — domain/services.py
===============================================================================

Módulo:
    Puertos de Servicios Criptográficos (Protocols)

Responsabilidades:
    - Contrato de hash de password (one-way, costo comparable a Argon2).
    - Contrato de hash de email (keyed, determinístico: permite lookup).

Colaboradores:
    - identity/hashing.py: implementaciones concretas.
    - application/usecases/bootstrap: consumen estos puertos.

Reglas:
    - SOLO interfaces: nada de implementación.
===============================================================================
"""

from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """Contrato de hash de password."""

    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, password_hash: str) -> bool:
        ...


class EmailHasher(Protocol):
    """Contrato de hash de email (el email crudo nunca se persiste)."""

    def hash(self, email: str) -> str:
        """Devuelve un digest hex (lowercase)."""
        ...
