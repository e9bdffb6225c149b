from typing import Protocol
from datetime import datetime


class Clock(Protocol):
    def now(self) -> datetime:
        """Current server-local time, naive."""
        ...
