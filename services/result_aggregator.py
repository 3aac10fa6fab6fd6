"""
Thread-safe accumulation of matched objects.

The aggregator is the sole owner of a search's result list. Worker
threads only append; the coordinator only reads the count and a
snapshot after each page barrier.
"""

import threading
from typing import List

from storage.object_lister import ObjectDescriptor


class ResultAggregator:
    """Thread-safe result collector."""

    def __init__(self):
        self._results: List[ObjectDescriptor] = []
        self._lock = threading.Lock()

    def append(self, obj: ObjectDescriptor) -> int:
        """
        Record a match.

        Returns:
            Number of results after the append
        """
        with self._lock:
            self._results.append(obj)
            return len(self._results)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._results)

    def snapshot(self) -> List[ObjectDescriptor]:
        """Copy of the results in discovery order."""
        with self._lock:
            return list(self._results)

    def __len__(self) -> int:
        return self.count
