"""
Fire time strategies for proof-of-presence slots
"""
import secrets
from datetime import datetime, timedelta
from typing import Protocol


class FireTimePicker(Protocol):
    def pick(self, start: datetime, end: datetime) -> datetime:
        """Return an instant in [start, end)"""
        ...


class SecureRandomFireTimePicker:
    """Uniform second-resolution pick backed by the OS random source"""

    def __init__(self) -> None:
        self._random = secrets.SystemRandom()

    def pick(self, start: datetime, end: datetime) -> datetime:
        if end <= start:
            raise ValueError("Fire window must be non-empty")
        span = int((end - start).total_seconds())
        if span <= 0:
            return start
        return start + timedelta(seconds=self._random.randrange(span))
