"""
Name: Retry Helper for Transient Database Errors

Responsibilities:
  - Classify transient vs permanent database errors
  - Provide a tenacity-based retry decorator with exponential backoff + jitter
  - Log retry attempts with the request context

Collaborators:
  - tenacity: Retry library with configurable strategies
  - config.Settings: db_retry_* parameters
  - logger: Structured logging

Constraints:
  - Only retry connection-level failures (OperationalError, InterfaceError,
    pool timeouts)
  - Never retry integrity or programming errors
  - The wrapped operation must be idempotent
"""

from __future__ import annotations

from functools import wraps
from typing import Callable

import psycopg
from psycopg_pool import PoolTimeout
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger

_TRANSIENT_TYPES: tuple[type[BaseException], ...] = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    PoolTimeout,
)


def is_transient_db_error(exception: BaseException) -> bool:
    """
    True si la falla es de conexión/pool (vale la pena reintentar).

    IntegrityError hereda de DatabaseError, no de OperationalError: nunca
    se reintenta.
    """
    if isinstance(exception, psycopg.IntegrityError):
        return False
    return isinstance(exception, _TRANSIENT_TYPES)


def _log_retry(retry_state: RetryCallState) -> None:
    fn_name = getattr(retry_state.fn, "__name__", "unknown")
    wait_time = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None

    logger.warning(
        f"DB retry attempt {retry_state.attempt_number} for {fn_name}",
        extra={
            "function": fn_name,
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(wait_time, 2),
            "error_type": type(exc).__name__ if exc else None,
        },
    )


def create_db_retry_decorator(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable:
    """Decorator tenacity configurado desde Settings (overrides opcionales)."""
    settings = get_settings()

    _max_attempts = max_attempts or settings.db_retry_max_attempts
    _base_delay = base_delay or settings.db_retry_base_delay_seconds
    _max_delay = max_delay or settings.db_retry_max_delay_seconds

    return retry(
        stop=stop_after_attempt(_max_attempts),
        wait=wait_exponential_jitter(
            initial=_base_delay,
            max=_max_delay,
            jitter=_base_delay,
        ),
        retry=retry_if_exception(is_transient_db_error),
        before_sleep=_log_retry,
        reraise=True,
    )


def with_db_retry(func: Callable) -> Callable:
    """
    Aplica el retry con la configuración vigente.

    Usage:
        @with_db_retry
        def _insert(...):
            ...
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        decorator = create_db_retry_decorator()
        return decorator(func)(*args, **kwargs)

    return wrapper
