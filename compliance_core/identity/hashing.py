"""
===============================================================================
TARJETA CRC — identity/hashing.py
===============================================================================

Módulo:
    Hashing de credenciales e identificadores personales

Responsabilidades:
    - Hashear/verificar passwords (Argon2).
    - Hashear emails con HMAC-SHA256 (clave de configuración).
    - Derivar el "identity fingerprint" usado por el tracker de logins.

Colaboradores:
    - crosscutting.config.get_settings: email_hash_key.
    - application/usecases/bootstrap: crean usuarios con hashes.
    - application/usecases/security: fingerprint de intentos fallidos.

Decisiones de diseño:
    - La lógica criptográfica vive acá (borde de identidad), NO en dominio.
    - Email normalizado (trim/lower) antes de hashear: mismo usuario => mismo hash.
    - Nunca se loguea el email ni el password.
===============================================================================
"""

from __future__ import annotations

import hashlib
import hmac

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from ..crosscutting.config import get_settings


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class Argon2PasswordHasher:
    """Implementación Argon2 del puerto PasswordHasher."""

    def __init__(self, hasher: PasswordHasher | None = None):
        self._hasher = hasher or PasswordHasher()

    def hash(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        try:
            return self._hasher.verify(password_hash, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False


class HmacEmailHasher:
    """HMAC-SHA256 del email normalizado (hex lowercase, 64 chars)."""

    def __init__(self, key: str | None = None):
        raw_key = key if key is not None else get_settings().email_hash_key
        if not raw_key:
            raise ValueError("email hash key must not be empty")
        self._key = raw_key.encode("utf-8")

    def hash(self, email: str) -> str:
        normalized = normalize_email(email)
        return hmac.new(
            self._key, normalized.encode("utf-8"), hashlib.sha256
        ).hexdigest()


def identity_fingerprint(email: str, hasher: HmacEmailHasher | None = None) -> str:
    """Fingerprint de identidad para el tracker (== email hash)."""
    return (hasher or HmacEmailHasher()).hash(email)
