"""
===============================================================================
USE CASE: Bootstrap Platform (first SUPER_ADMIN)
===============================================================================

Name:
    Bootstrap Platform Use Case

Business Goal:
    Crear el primer super-administrador de la plataforma UNA sola vez:
      NOT_BOOTSTRAPPED -> BOOTSTRAPPED (terminal, one-way)

Why (Context / Intención):
    - El bootstrap no debe ser re-ejecutable (no replay): un segundo llamado,
      aun concurrente, NO crea un segundo super-admin.
    - El secreto se compara en tiempo constante (sin timing leaks).
    - Email y password nunca se guardan ni se loguean en claro.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    BootstrapPlatformUseCase

Responsibilities:
    - Validar el secreto (hmac.compare_digest).
    - Rechazar si ya está bootstrapped (check rápido).
    - Hashear password (Argon2) y email (HMAC-SHA256).
    - Crear super-admin + marcar estado en UNA operación atómica
      (BootstrapStateRepository.complete_bootstrap).
    - Auditar platform.bootstrapped (CRITICAL, metadata P1).

Collaborators:
    - BootstrapStateRepository.complete_bootstrap (compare-and-set)
    - PasswordHasher / EmailHasher (domain.services)
    - AuditTrail

-------------------------------------------------------------------------------
INPUTS / OUTPUTS
-------------------------------------------------------------------------------
Inputs:
    - BootstrapPlatformInput: secret, email, display_name, password

Outputs:
    - BootstrapResult(created=True, user_id) o BootstrapResult(error=...)

Error Mapping:
    - INVALID_BOOTSTRAP_SECRET: secreto incorrecto
    - ALREADY_BOOTSTRAPPED: estado true (o carrera perdida en el CAS)
    - VALIDATION_ERROR: email/display_name/password inválidos

Raises:
    - AuditWriteError: la auditoría crítica falló DESPUÉS del commit; el
      estado queda BOOTSTRAPPED y el operador recibe el error.
===============================================================================
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Final
from uuid import uuid4

from ....crosscutting.config import get_settings
from ....domain.audit import AuditEventName, safe_metadata
from ....domain.entities import PlatformUser
from ....domain.repositories import BootstrapStateRepository
from ....domain.scope import Actor, Role
from ....domain.services import EmailHasher, PasswordHasher
from ...audit_trail import AuditPolicy, AuditTrail
from .bootstrap_results import BootstrapError, BootstrapErrorCode, BootstrapResult

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH: Final[int] = 12
_MAX_DISPLAY_NAME_LENGTH: Final[int] = 120


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BootstrapPlatformInput:
    secret: str
    email: str
    display_name: str
    password: str = field(repr=False)


class BootstrapPlatformUseCase:
    def __init__(
        self,
        state_repository: BootstrapStateRepository,
        password_hasher: PasswordHasher,
        email_hasher: EmailHasher,
        audit_trail: AuditTrail,
        *,
        bootstrap_secret: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._state = state_repository
        self._password_hasher = password_hasher
        self._email_hasher = email_hasher
        self._audit = audit_trail
        self._secret = (
            bootstrap_secret
            if bootstrap_secret is not None
            else get_settings().bootstrap_secret
        )
        self._clock = clock

    def execute(self, input_data: BootstrapPlatformInput) -> BootstrapResult:
        # ---------------------------------------------------------------------
        # 1) Secreto (tiempo constante).
        # ---------------------------------------------------------------------
        if not self._secret_matches(input_data.secret):
            logger.warning("bootstrap rejected: invalid secret")
            return self._error(
                BootstrapErrorCode.INVALID_BOOTSTRAP_SECRET,
                "Invalid bootstrap secret.",
            )

        # ---------------------------------------------------------------------
        # 2) Estado (rechazo rápido; la garantía real es el CAS del paso 4).
        # ---------------------------------------------------------------------
        if self._state.is_bootstrapped():
            return self._already_bootstrapped()

        # ---------------------------------------------------------------------
        # 3) Validar input y construir entidad con hashes.
        # ---------------------------------------------------------------------
        validation_message = self._validate(input_data)
        if validation_message is not None:
            return self._error(BootstrapErrorCode.VALIDATION_ERROR, validation_message)

        super_admin = PlatformUser(
            id=uuid4(),
            email_hash=self._email_hasher.hash(input_data.email),
            display_name=input_data.display_name.strip(),
            password_hash=self._password_hasher.hash(input_data.password),
            role=Role.SUPER_ADMIN,
            created_at=self._clock(),
        )

        # ---------------------------------------------------------------------
        # 4) Crear + marcar en una única operación atómica.
        # ---------------------------------------------------------------------
        if not self._state.complete_bootstrap(super_admin):
            logger.info("bootstrap lost race: already bootstrapped")
            return self._already_bootstrapped()

        # ---------------------------------------------------------------------
        # 5) Auditoría crítica (P1 solamente: sin email, sin display_name).
        # ---------------------------------------------------------------------
        event = self._audit.build_event(
            AuditEventName.PLATFORM_BOOTSTRAPPED,
            actor=Actor.system(),
            target_id=super_admin.id,
            metadata=safe_metadata(role=Role.SUPER_ADMIN),
        )
        self._audit.record(event, policy=AuditPolicy.CRITICAL)

        logger.info(
            "platform bootstrapped",
            extra={"user_id": str(super_admin.id)},
        )
        return BootstrapResult(created=True, user_id=super_admin.id)

    def _secret_matches(self, candidate: str) -> bool:
        if not self._secret:
            return False
        return hmac.compare_digest(
            (candidate or "").encode("utf-8"), self._secret.encode("utf-8")
        )

    @staticmethod
    def _validate(input_data: BootstrapPlatformInput) -> str | None:
        return validate_user_fields(
            input_data.email, input_data.display_name, input_data.password
        )

    @staticmethod
    def _already_bootstrapped() -> BootstrapResult:
        return BootstrapResult(
            error=BootstrapError(
                code=BootstrapErrorCode.ALREADY_BOOTSTRAPPED,
                message="Platform is already bootstrapped.",
            )
        )

    @staticmethod
    def _error(code: BootstrapErrorCode, message: str) -> BootstrapResult:
        return BootstrapResult(error=BootstrapError(code=code, message=message))


def validate_user_fields(email: str, display_name: str, password: str) -> str | None:
    """Validación compartida de alta de usuarios. Retorna mensaje o None."""
    normalized_email = (email or "").strip()
    if "@" not in normalized_email or normalized_email.startswith("@"):
        return "A valid email is required."
    name = (display_name or "").strip()
    if not name:
        return "Display name is required."
    if len(name) > _MAX_DISPLAY_NAME_LENGTH:
        return "Display name is too long."
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    return None
