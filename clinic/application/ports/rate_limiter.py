from typing import Protocol


class RateLimiter(Protocol):
    """Per-key request budget; the middleware keys by client address."""

    def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        ...
