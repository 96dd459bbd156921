from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class TimedCache(Generic[T]):
    """Holds one loaded value for ``ttl_seconds``.

    The value is replaced wholesale on reload, so a reader always sees a
    point-in-time snapshot. ``invalidate()`` forces the next ``get()`` to reload.
    """

    def __init__(
        self,
        loader: Callable[[], T],
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self.data: T | None = None
        self.fetched_at: float | None = None

    def is_fresh(self) -> bool:
        if self.fetched_at is None:
            return False
        return self._clock() - self.fetched_at < self.ttl_seconds

    def get(self) -> T:
        with self._lock:
            if self.data is not None and self.is_fresh():
                return self.data
            # Loader errors propagate and leave the previous snapshot untouched.
            data = self._loader()
            self.data = data
            self.fetched_at = self._clock()
            return data

    def invalidate(self) -> None:
        with self._lock:
            self.data = None
            self.fetched_at = None
