"""
===============================================================================
TARJETA CRC — domain/audit.py
===============================================================================

Módulo:
    Modelos de Auditoría (Dominio)

Responsabilidades:
    - Definir el vocabulario cerrado de eventos (AuditEventName).
    - Definir AuditEvent inmutable (append-only).
    - Definir la metadata "segura" como variante cerrada:
        SafeLabel | SafeNumber | SafeFlag | HashedId
      Texto libre y emails crudos no son representables.

Colaboradores:
    - application/audit_trail.py: construye y registra eventos.
    - domain.repositories.AuditEventWriter / AuditEventRepository.
    - infra repos: serializan con metadata_to_json() (variante + valor).

Notas:
    - La validación ocurre al construir (no por convención).
    - safe_metadata() es el único camino recomendado para armar metadata.
===============================================================================
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Final, Mapping, Union
from uuid import UUID

from .scope import ActorScope

_LABEL_RE: Final = re.compile(r"^[A-Za-z0-9_.:\-]{1,64}$")
_HEX_DIGEST_RE: Final = re.compile(r"^[0-9a-f]{32,128}$")
_KEY_RE: Final = re.compile(r"^[a-z][a-z0-9_]{0,63}$")


class AuditEventName(str, Enum):
    """Vocabulario cerrado de eventos auditables."""

    PLATFORM_BOOTSTRAPPED = "platform.bootstrapped"
    TENANT_CREATED = "tenant.created"
    TENANT_ADMIN_CREATED = "tenant_admin.created"
    TENANT_USER_CREATED = "tenant_user.created"
    TENANT_USER_READ = "tenant_user.read"
    TENANT_USER_SUSPENDED = "tenant_user.suspended"
    AUDIT_EVENTS_LISTED = "audit.events_listed"
    AUTH_LOGIN_FAILED = "auth.login.failed"
    AUTH_LOGIN_SUCCEEDED = "auth.login.succeeded"
    INCIDENT_CREATED = "incident.created"
    INCIDENT_ESCALATED = "incident.escalated"
    INCIDENT_CNIL_NOTIFIED = "incident.cnil_notified"
    INCIDENT_USERS_NOTIFIED = "incident.users_notified"
    INCIDENT_CLOSED = "incident.closed"


# -----------------------------------------------------------------------------
# Metadata segura (variante cerrada)
# -----------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SafeLabel:
    """Etiqueta con forma de identificador (enum label, slug, código)."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _LABEL_RE.match(self.value):
            raise TypeError("SafeLabel must be identifier-shaped (<=64 chars)")


@dataclass(frozen=True, slots=True)
class SafeNumber:
    value: int | float

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise TypeError("SafeNumber must be int or float")


@dataclass(frozen=True, slots=True)
class SafeFlag:
    value: bool

    def __post_init__(self) -> None:
        if not isinstance(self.value, bool):
            raise TypeError("SafeFlag must be bool")


@dataclass(frozen=True, slots=True)
class HashedId:
    """Identificador opaco: digest hex (lowercase) o UUID."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError("HashedId must be a string")
        if _HEX_DIGEST_RE.match(self.value):
            return
        try:
            UUID(self.value)
        except ValueError as exc:
            raise TypeError("HashedId must be a hex digest or a UUID") from exc


SafeValue = Union[SafeLabel, SafeNumber, SafeFlag, HashedId]
_SAFE_TYPES: Final = (SafeLabel, SafeNumber, SafeFlag, HashedId)


def _coerce(value: Any) -> SafeValue:
    if isinstance(value, _SAFE_TYPES):
        return value
    if isinstance(value, Enum):
        raw = value.value if isinstance(value.value, str) else value.name
        return SafeLabel(raw)
    if isinstance(value, bool):
        return SafeFlag(value)
    if isinstance(value, (int, float)):
        return SafeNumber(value)
    if isinstance(value, UUID):
        return HashedId(str(value))
    if isinstance(value, str):
        raise TypeError(
            "plain strings are not allowed in audit metadata; "
            "wrap identifiers in SafeLabel or HashedId"
        )
    raise TypeError(f"unsupported audit metadata type: {type(value).__name__}")


def safe_metadata(**values: Any) -> dict[str, SafeValue]:
    """
    Construye metadata segura.

    Coerciones: Enum -> SafeLabel, bool -> SafeFlag, int/float -> SafeNumber,
    UUID -> HashedId. Strings planos u otros tipos -> TypeError.
    """
    result: dict[str, SafeValue] = {}
    for key, value in values.items():
        if not _KEY_RE.match(key):
            raise TypeError(f"invalid audit metadata key: {key!r}")
        result[key] = _coerce(value)
    return result


def metadata_to_dict(metadata: Mapping[str, SafeValue]) -> dict[str, Any]:
    """Forma plana (valores crudos) para logs y comparaciones."""
    return {key: value.value for key, value in metadata.items()}


_TAG_BY_TYPE: Final[dict[type, str]] = {
    SafeLabel: "label",
    SafeNumber: "number",
    SafeFlag: "flag",
    HashedId: "hashed_id",
}
_TYPE_BY_TAG: Final[dict[str, type]] = {tag: t for t, tag in _TAG_BY_TYPE.items()}


def metadata_to_json(metadata: Mapping[str, SafeValue]) -> dict[str, Any]:
    """
    Forma de persistencia: cada valor lleva su variante.

    {"severity": {"kind": "label", "value": "HIGH"}}
    """
    return {
        key: {"kind": _TAG_BY_TYPE[type(value)], "value": value.value}
        for key, value in metadata.items()
    }


def metadata_from_json(raw: Mapping[str, Any]) -> dict[str, SafeValue]:
    """
    Inversa exacta de metadata_to_json.

    Una entrada sin variante conocida o que no pasa la validación de su
    variante levanta TypeError.
    """
    result: dict[str, SafeValue] = {}
    for key, entry in raw.items():
        if not isinstance(entry, Mapping) or entry.get("kind") not in _TYPE_BY_TAG:
            raise TypeError(f"untagged audit metadata value for {key!r}")
        result[key] = _TYPE_BY_TAG[entry["kind"]](entry.get("value"))
    return result


# -----------------------------------------------------------------------------
# Evento
# -----------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AuditEvent:
    """Evento de auditoría inmutable (se escribe una sola vez)."""

    id: UUID
    event_name: AuditEventName
    actor_scope: ActorScope
    occurred_at: datetime
    actor_id: UUID | None = None
    tenant_id: str | None = None
    target_id: str | None = None
    metadata: Mapping[str, SafeValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for key, value in self.metadata.items():
            if not isinstance(value, _SAFE_TYPES):
                raise TypeError(f"audit metadata value for {key!r} is not a safe value")
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
