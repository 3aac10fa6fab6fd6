"""
Per-request search state.

A SearchSession is created for every search and passed explicitly
through the coordinator; nothing about a search lives in module or
process state.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import ValidationError
from services.result_aggregator import ResultAggregator
from storage.object_fetcher import InFlightBodies
from storage.object_lister import ListFilter, ObjectDescriptor


@dataclass
class SearchRequest:
    """Parameters of one content search."""
    bucket: str
    pattern: str
    result_count: Optional[int]
    region: str
    start_time: int = 0
    end_time: int = 0

    def validate(self) -> None:
        """
        Reject malformed requests before any storage access.

        Raises:
            ValidationError: On a missing field, empty pattern or
                non-positive result count
        """
        missing = [
            name for name in ("bucket", "pattern", "region")
            if not getattr(self, name)
        ]
        if self.result_count is None:
            missing.append("result_count")
        if missing:
            raise ValidationError(f"Missing required parameters: {', '.join(missing)}")

        if self.result_count < 1:
            raise ValidationError(f"result_count must be at least 1, got {self.result_count}")

        if self.start_time < 0 or self.end_time < 0:
            raise ValidationError("start_time and end_time must not be negative")

    def build_filter(self, max_size: int) -> ListFilter:
        return ListFilter(max_size=max_size, start_time=self.start_time, end_time=self.end_time)


@dataclass
class SearchOutcome:
    """Result of a search: matches plus how far the scan got."""
    results: List[ObjectDescriptor] = field(default_factory=list)
    cancelled: bool = False
    pages_examined: int = 0
    objects_examined: int = 0
    objects_fetched: int = 0

    @property
    def count(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [obj.to_dict() for obj in self.results],
            "count": self.count,
            "cancelled": self.cancelled,
            "pages_examined": self.pages_examined,
            "objects_examined": self.objects_examined,
            "objects_fetched": self.objects_fetched,
        }


class SearchSession:
    """
    State owned by a single search.

    Holds the request, the cancellation token, the result aggregator, the
    bodies of downloads in progress and scan counters. Counters other than
    the aggregator are only touched by the coordinator thread.
    """

    def __init__(self, request: SearchRequest, cancel_event: Optional[threading.Event] = None):
        self.request = request
        self.cancel_event = cancel_event or threading.Event()
        self.aggregator = ResultAggregator()
        self.in_flight = InFlightBodies()
        self.pages_examined = 0
        self.objects_examined = 0
        self.objects_dispatched = 0

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Set the token and interrupt downloads blocked mid-read."""
        self.cancel_event.set()
        self.abort_fetches()

    def abort_fetches(self) -> int:
        """Close every in-flight body. Returns how many were open."""
        return self.in_flight.close_all()

    @property
    def hits(self) -> int:
        return self.aggregator.count

    @property
    def remaining(self) -> int:
        """Matches still needed to satisfy the request."""
        return max(self.request.result_count - self.hits, 0)

    @property
    def satisfied(self) -> bool:
        return self.remaining == 0

    def outcome(self, cancelled: bool = False) -> SearchOutcome:
        return SearchOutcome(
            results=self.aggregator.snapshot(),
            cancelled=cancelled,
            pages_examined=self.pages_examined,
            objects_examined=self.objects_examined,
            objects_fetched=self.objects_dispatched,
        )
