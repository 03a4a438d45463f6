"""
===============================================================================
TARJETA CRC — compliance_core/context.py (Contexto por request / job)
===============================================================================

Responsabilidades:
  - Mantener contexto "request-scoped" usando ContextVars (async-safe).
  - Correlacionar logs con el request y el actor sin pasar parámetros por todo
    el stack.
  - Proveer helpers mínimos: set_*(), get_context_dict(), clear_context().

Colaboradores:
  - crosscutting.logger: enriquece logs leyendo get_context_dict().
  - interfaces.cli: setea request_id por comando y limpia al finalizar.

Restricciones:
  - Solo tipos primitivos (str) para serialización segura.
  - Nunca datos personales: actor_scope y tenant_id son identificadores P1.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Final

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Scope del actor (SYSTEM / PLATFORM / TENANT) y tenant efectivo.
actor_scope_var: ContextVar[str] = ContextVar("actor_scope", default="")
tenant_id_var: ContextVar[str] = ContextVar("tenant_id", default="")

_CTX_REQUEST_ID: Final[str] = "request_id"
_CTX_ACTOR_SCOPE: Final[str] = "actor_scope"
_CTX_TENANT_ID: Final[str] = "tenant_id"


def set_request_context(
    *, request_id: str = "", actor_scope: str = "", tenant_id: str = ""
) -> None:
    """
    Setea el contexto mínimo del request.

    Regla:
      - Strings vacíos significan "no disponible".
    """
    request_id_var.set(request_id or "")
    actor_scope_var.set(actor_scope or "")
    tenant_id_var.set(tenant_id or "")


def get_context_dict() -> dict[str, str]:
    """Devuelve el contexto actual como dict, omitiendo claves vacías."""
    ctx: dict[str, str] = {}

    if val := request_id_var.get():
        ctx[_CTX_REQUEST_ID] = val
    if val := actor_scope_var.get():
        ctx[_CTX_ACTOR_SCOPE] = val
    if val := tenant_id_var.get():
        ctx[_CTX_TENANT_ID] = val

    return ctx


def clear_context() -> None:
    """Limpia el contexto al final del request/job."""
    request_id_var.set("")
    actor_scope_var.set("")
    tenant_id_var.set("")
