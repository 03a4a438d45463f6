"""
===============================================================================
MÓDULO: Timing utilities (Timer + run_with_timeout)
===============================================================================

Objetivo
--------
- Timer (context manager) para medir latencia de escrituras/lecturas
- run_with_timeout: acotar una llamada bloqueante con un timeout del caller

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componentes:
  - Timer
  - run_with_timeout

Responsabilidades:
  - Medir elapsed time sin dependencias externas
  - Convertir "no terminó a tiempo" en OperationTimeoutError

Colaboradores:
  - application/audit_trail.py
  - application/authorization.py (lookup de recursos)

Notas:
  - Un executor compartido por proceso; el contexto del caller (ContextVars)
    viaja al worker.
  - El hilo de trabajo no se cancela: Python no permite matar threads. El
    caller deja de esperar y la llamada termina en background.
===============================================================================
"""

from __future__ import annotations

import contextvars
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Callable, Final, Optional, TypeVar

from .exceptions import OperationTimeoutError

T = TypeVar("T")


@dataclass
class Timer:
    """Mide elapsed time con perf_counter (manual o como context manager)."""

    _start_time: Optional[float] = field(default=None, repr=False)
    _end_time: Optional[float] = field(default=None, repr=False)

    def start(self) -> "Timer":
        self._start_time = time.perf_counter()
        self._end_time = None
        return self

    def stop(self) -> "Timer":
        if self._start_time is None:
            raise RuntimeError("Timer no iniciado")
        self._end_time = time.perf_counter()
        return self

    @property
    def elapsed_seconds(self) -> float:
        if self._start_time is None:
            return 0.0
        end = self._end_time or time.perf_counter()
        return end - self._start_time

    @property
    def elapsed_ms(self) -> float:
        return round(self.elapsed_seconds * 1000, 2)

    def __enter__(self) -> "Timer":
        return self.start()

    def __exit__(self, *args) -> None:
        self.stop()


_EXECUTOR_MAX_WORKERS: Final[int] = 8
_executor: ThreadPoolExecutor | None = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    """Executor compartido del proceso (se crea en el primer uso)."""
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=_EXECUTOR_MAX_WORKERS,
                thread_name_prefix="compliance-timeout",
            )
        return _executor


def shutdown_executor(wait: bool = True) -> None:
    """Libera el executor compartido (tests / cierre del proceso)."""
    global _executor
    with _executor_lock:
        executor, _executor = _executor, None
    if executor is not None:
        executor.shutdown(wait=wait)


def run_with_timeout(
    fn: Callable[[], T],
    timeout_seconds: float | None,
    *,
    operation: str,
) -> T:
    """
    Ejecuta fn() y espera como máximo timeout_seconds.

    - timeout_seconds=None => llamada directa en el thread actual.
    - fn() corre con una copia del contexto del caller (request_id, tenant).
    - Excepciones de fn() se propagan tal cual.
    - Timeout => OperationTimeoutError (el caller decide cómo tratarlo).
      Si fn() todavía no arrancó se cancela; si ya está corriendo termina
      en background.
    """
    if timeout_seconds is None:
        return fn()
    if timeout_seconds <= 0:
        raise ValueError("timeout_seconds must be greater than 0")

    context = contextvars.copy_context()
    future = _get_executor().submit(context.run, fn)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError as exc:
        future.cancel()
        raise OperationTimeoutError(
            f"{operation} did not complete within {timeout_seconds}s",
            original_error=exc,
        ) from exc
