from __future__ import annotations

from time import monotonic, sleep
from typing import Any, Dict, Optional, Tuple
import threading


class SlidingTTLStore:
    """In-memory keyed store whose entries expire after a period of inactivity.

    - Every successful ``get`` pushes the entry's expiry forward by ``ttl_seconds``.
    - Capacity-bounded; evicts the entries closest to expiry first.
    - Thread-safe using a simple lock; an optional daemon thread purges
      expired entries so abandoned import sessions are released without reads.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_items: int = 256,
        auto_purge_interval_seconds: Optional[float] = 60.0,
    ) -> None:
        self._ttl = float(ttl_seconds)
        self._max = max_items
        self._data: Dict[Any, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._stop_flag = False
        self._auto_interval = auto_purge_interval_seconds
        self._thread: Optional[threading.Thread] = None
        if self._auto_interval and self._auto_interval > 0:
            self._thread = threading.Thread(target=self._auto_purge_loop, daemon=True)
            self._thread.start()

    def _auto_purge_loop(self) -> None:
        while not self._stop_flag:
            sleep(self._auto_interval or 60.0)
            self.purge()

    def stop(self) -> None:
        self._stop_flag = True

    def purge(self) -> int:
        """Drop expired entries and enforce capacity; returns how many were removed"""
        now = monotonic()
        with self._lock:
            doomed = [k for k, (exp, _) in self._data.items() if exp < now]
            for k in doomed:
                del self._data[k]
            removed = len(doomed)
            if len(self._data) > self._max:
                over = len(self._data) - self._max
                for k, _ in sorted(self._data.items(), key=lambda kv: kv[1][0])[:over]:
                    del self._data[k]
                removed += over
            return removed

    def put(self, key: Any, value: Any) -> None:
        with self._lock:
            self._data[key] = (monotonic() + self._ttl, value)
        self.purge()

    def get(self, key: Any) -> Optional[Any]:
        now = monotonic()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            exp, value = item
            if exp < now:
                del self._data[key]
                return None
            self._data[key] = (now + self._ttl, value)
            return value

    def pop(self, key: Any) -> Optional[Any]:
        with self._lock:
            item = self._data.pop(key, None)
        return item[1] if item else None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
