"""
Thread-safe counters for data-quality signals

Instances are injected into services; nothing here is module-level state.
"""
import threading
from collections import Counter
from typing import Dict


class AnomalyCounter:
    """Counts occurrences per key under a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: Counter = Counter()

    def increment(self, key: str, amount: int = 1) -> int:
        with self._lock:
            self._counts[key] += amount
            return self._counts[key]

    def get(self, key: str) -> int:
        with self._lock:
            return self._counts[key]

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)
