import threading
import time
from typing import Dict, List

from ...application.ports.rate_limiter import RateLimiter


class InMemoryRateLimiter(RateLimiter):
    def __init__(self) -> None:
        self._store: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        now = time.time()
        window_start = now - window_seconds
        with self._lock:
            times = [t for t in self._store.get(key, []) if t > window_start]
            if len(times) >= max_requests:
                self._store[key] = times
                return False
            times.append(now)
            self._store[key] = times
            return True
