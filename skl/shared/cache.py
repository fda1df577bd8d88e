from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

logger = logging.getLogger("skl.cache")


class TTLCache:
    """Single-slot read-through cache with a time-to-live.

    Holds one value and the monotonic time it was stored. ``get`` returns
    ``None`` once the entry is older than ``ttl_seconds``.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._entry: tuple[float, Any] | None = None

    def get(self) -> Any:
        with self._lock:
            if self._entry is None:
                return None
            stored_at, value = self._entry
            if self._clock() - stored_at >= self.ttl_seconds:
                self._entry = None
                logger.debug("[CACHE] %s expired", self.name)
                return None
            return value

    def set(self, value: Any) -> None:
        with self._lock:
            self._entry = (self._clock(), value)

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None
        logger.debug("[CACHE] %s invalidated", self.name)
