"""Rate limit local con ventana deslizante.

Cómo funciona:
- Se guardan los timestamps (ms) de los requests completados.
- `check` cuenta solo los que siguen dentro de la ventana que termina en "ahora".
- El tiempo de espera sale del timestamp más antiguo aún dentro de la ventana:
  es exactamente cuando ese request deja de contar.

Es advisory: nunca bloquea; quien llama decide no trabajar si `allowed` es False.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable

from core.domain.models import AdmissionStatus
from core.interfaces.sources import TimestampStore

logger = logging.getLogger(__name__)

WINDOW_MS = 60_000
MAX_REQUESTS_PER_WINDOW = 10


def _now_ms() -> int:
    return int(time.time() * 1000)


class AdmissionController:
    def __init__(
        self,
        store: TimestampStore,
        *,
        window_ms: int = WINDOW_MS,
        max_requests: int = MAX_REQUESTS_PER_WINDOW,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self._window_ms = window_ms
        self._max_requests = max_requests
        self._clock = clock

    def _load_active(self, now: int) -> list[int]:
        try:
            stored = self._store.load()
        except (OSError, ValueError, TypeError) as exc:
            # Almacenamiento ilegible: historial vacío (fail open).
            logger.warning("Rate window unreadable, treating as empty: %s", exc)
            return []

        active = [
            int(ts)
            for ts in stored
            if isinstance(ts, (int, float)) and not isinstance(ts, bool) and now - ts < self._window_ms
        ]
        active.sort()
        return active

    def check(self) -> AdmissionStatus:
        now = self._clock()
        active = self._load_active(now)

        if len(active) >= self._max_requests:
            oldest = active[0]
            wait = math.ceil((self._window_ms - (now - oldest)) / 1000)
            logger.info("Admission denied: %d requests in window, wait %ds", len(active), wait)
            return AdmissionStatus(allowed=False, wait_seconds=wait)

        return AdmissionStatus(allowed=True, wait_seconds=0)

    def record(self) -> None:
        now = self._clock()
        active = self._load_active(now)
        active.append(now)
        try:
            self._store.save(active)
        except OSError as exc:
            logger.warning("Could not persist rate window: %s", exc)
