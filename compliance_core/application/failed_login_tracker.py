# =============================================================================
# FILE: application/failed_login_tracker.py
# =============================================================================
"""
===============================================================================
SERVICE: Failed Login Tracker (Brute Force Early Warning)
===============================================================================

Name:
    FailedLoginTracker

Qué es:
    Contador en memoria de fallos de autenticación por identidad (fingerprint
    = hash del email) y, por separado, por IP de origen, con ventana deslizante.

Why:
    - Detectar patrones de fuerza bruta y escalarlos a incidentes.
    - Es una señal heurística: el registro de compliance es el incidente.

Arquitectura:
    - Capa: Application (policy/service)
    - Patrón: Sliding Window Log (deque de timestamps por clave)
    - Storage: memoria del proceso (se pierde al reiniciar, no se comparte
      entre procesos)

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Component: FailedLoginTracker
Responsibilities:
  - Registrar fallos de forma atómica por clave (lock por clave)
  - Podar lazy en cada acceso + cleanup periódico
  - Responder si una identidad supera el umbral (count > threshold)
  - Contar por IP de origen para detectar sprays sobre muchas cuentas
  - Detectar el "breach" exacto que dispara la detección (is_threshold_breach)
Collaborators:
  - Settings: threshold, ventana, intervalo de cleanup
  - application/usecases/security/record_failed_login.py
===============================================================================
"""

from __future__ import annotations

import logging
import threading
from bisect import bisect_right
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Deque, Dict, List, Optional

from ..crosscutting.config import get_settings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class FailedLoginTrackerConfig:
    """
    Attributes:
        threshold: Fallos tolerados por identidad; el siguiente dispara detección
        ip_threshold: Fallos tolerados por IP de origen (sumando identidades)
        window_seconds: Tamaño de la ventana deslizante
        cleanup_interval_seconds: Cada cuánto se poda todo el mapa
    """

    threshold: int = 5
    ip_threshold: int = 10
    window_seconds: int = 5 * 60
    cleanup_interval_seconds: int = 300

    def __post_init__(self) -> None:
        if min(self.threshold, self.ip_threshold, self.window_seconds) <= 0:
            raise ValueError(
                "threshold, ip_threshold and window_seconds must be greater than 0"
            )

    @classmethod
    def from_settings(cls) -> "FailedLoginTrackerConfig":
        settings = get_settings()
        return cls(
            threshold=settings.failed_login_threshold,
            ip_threshold=settings.failed_login_ip_threshold,
            window_seconds=settings.failed_login_window_minutes * 60,
            cleanup_interval_seconds=settings.failed_login_cleanup_interval_seconds,
        )


@dataclass(frozen=True)
class FailureCounts:
    """Conteos en la ventana tras registrar un fallo."""

    identity_count: int
    ip_count: int = 0


@dataclass(frozen=True)
class TrackerStats:
    tracked_identities: int
    tracked_ips: int
    threshold: int
    window_seconds: int


def is_threshold_breach(count: int, threshold: int) -> bool:
    """
    True si `count` es un punto de disparo.

    Primer disparo en threshold + 1 y luego cada `threshold` fallos
    adicionales (con threshold=5: 6, 11, 16, ...).
    """
    if count <= threshold:
        return False
    return (count - threshold - 1) % threshold == 0


@dataclass
class _Window:
    lock: threading.Lock = field(default_factory=threading.Lock)
    timestamps: Deque[datetime] = field(default_factory=deque)
    removed: bool = False


class _WindowMap:
    """Mapa clave -> ventana con alta/baja segura frente al cleanup."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._windows: Dict[str, _Window] = {}

    def get_or_create(self, key: str) -> _Window:
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                window = _Window()
                self._windows[key] = window
            return window

    def get(self, key: str) -> Optional[_Window]:
        with self._lock:
            return self._windows.get(key)

    def pop(self, key: str) -> None:
        with self._lock:
            window = self._windows.pop(key, None)
        if window is not None:
            with window.lock:
                window.removed = True

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def prune_all(self, cutoff: datetime) -> int:
        """Poda todas las ventanas y elimina las vacías. Retorna claves borradas."""
        removed = 0
        # Orden de locks: mapa -> ventana (nunca al revés).
        with self._lock:
            for key in list(self._windows):
                window = self._windows[key]
                with window.lock:
                    _prune(window.timestamps, cutoff)
                    if not window.timestamps:
                        window.removed = True
                        del self._windows[key]
                        removed += 1
        return removed

    def items(self) -> List[tuple[str, _Window]]:
        with self._lock:
            return list(self._windows.items())


def _prune(timestamps: Deque[datetime], cutoff: datetime) -> None:
    while timestamps and timestamps[0] <= cutoff:
        timestamps.popleft()


def _insert_ordered(timestamps: Deque[datetime], ts: datetime) -> None:
    if not timestamps or ts >= timestamps[-1]:
        timestamps.append(ts)
        return
    timestamps.insert(bisect_right(timestamps, ts), ts)


class FailedLoginTracker:
    """
    Contador de fallos con ventana deslizante.

    Notas:
      - Un fallo cuenta si su timestamp es > (referencia - ventana).
      - La referencia para podar es el timestamp del fallo (record /
        record_failure) o `now` / el clock (consultas).
    """

    def __init__(
        self,
        config: FailedLoginTrackerConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._config = config or FailedLoginTrackerConfig.from_settings()
        self._clock = clock
        self._window = timedelta(seconds=self._config.window_seconds)
        self._identities = _WindowMap()
        self._ips = _WindowMap()
        self._cleanup_lock = threading.Lock()
        self._last_cleanup: datetime | None = None

    @property
    def config(self) -> FailedLoginTrackerConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Escritura
    # -------------------------------------------------------------------------
    def record_failure(
        self,
        identity_fingerprint: str,
        source_ip: str | None = None,
        timestamp: datetime | None = None,
    ) -> int:
        """Registra un fallo y retorna el conteo de la identidad en la ventana."""
        return self.record(identity_fingerprint, source_ip, timestamp).identity_count

    def record(
        self,
        identity_fingerprint: str,
        source_ip: str | None = None,
        timestamp: datetime | None = None,
    ) -> FailureCounts:
        """Registra un fallo y retorna los conteos de identidad e IP."""
        ts = timestamp or self._clock()
        count = self._append(self._identities, identity_fingerprint, ts)
        ip_count = self._append(self._ips, source_ip, ts) if source_ip else 0

        self._maybe_cleanup(ts)
        return FailureCounts(identity_count=count, ip_count=ip_count)

    def clear(self, identity_fingerprint: str) -> None:
        """Resetea el contador de una identidad (login exitoso)."""
        self._identities.pop(identity_fingerprint)

    # -------------------------------------------------------------------------
    # Lectura
    # -------------------------------------------------------------------------
    def count_for(self, identity_fingerprint: str, now: datetime | None = None) -> int:
        return self._count(self._identities, identity_fingerprint, now)

    def count_for_ip(self, source_ip: str, now: datetime | None = None) -> int:
        return self._count(self._ips, source_ip, now)

    def is_over_threshold(
        self, identity_fingerprint: str, now: datetime | None = None
    ) -> bool:
        return self.count_for(identity_fingerprint, now) > self._config.threshold

    def keys_over_threshold(self, now: datetime | None = None) -> List[str]:
        reference = now or self._clock()
        return [
            key
            for key, _ in self._identities.items()
            if self.count_for(key, reference) > self._config.threshold
        ]

    def stats(self) -> TrackerStats:
        return TrackerStats(
            tracked_identities=len(self._identities),
            tracked_ips=len(self._ips),
            threshold=self._config.threshold,
            window_seconds=self._config.window_seconds,
        )

    # -------------------------------------------------------------------------
    # Cleanup
    # -------------------------------------------------------------------------
    def cleanup_expired(self, now: datetime | None = None) -> int:
        """Poda todas las claves; retorna cuántas claves se eliminaron."""
        reference = now or self._clock()
        cutoff = reference - self._window
        removed = self._identities.prune_all(cutoff) + self._ips.prune_all(cutoff)
        with self._cleanup_lock:
            self._last_cleanup = reference
        if removed:
            logger.info(
                "failed login tracker cleanup",
                extra={"removed_keys": removed},
            )
        return removed

    def _maybe_cleanup(self, reference: datetime) -> None:
        interval = timedelta(seconds=self._config.cleanup_interval_seconds)
        with self._cleanup_lock:
            if self._last_cleanup is None:
                self._last_cleanup = reference
                return
            if reference - self._last_cleanup < interval:
                return
        self.cleanup_expired(reference)

    # -------------------------------------------------------------------------
    # Internos
    # -------------------------------------------------------------------------
    def _append(self, windows: _WindowMap, key: str, ts: datetime) -> int:
        cutoff = ts - self._window
        while True:
            window = windows.get_or_create(key)
            with window.lock:
                if window.removed:
                    # El cleanup la retiró entre get y lock: tomar la nueva.
                    continue
                _prune(window.timestamps, cutoff)
                _insert_ordered(window.timestamps, ts)
                return len(window.timestamps)

    def _count(self, windows: _WindowMap, key: str, now: datetime | None) -> int:
        window = windows.get(key)
        if window is None:
            return 0
        cutoff = (now or self._clock()) - self._window
        with window.lock:
            _prune(window.timestamps, cutoff)
            return len(window.timestamps)
