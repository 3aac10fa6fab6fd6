"""
Tests for search requests, sessions and the result aggregator.
"""

import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from errors import ValidationError
from services.result_aggregator import ResultAggregator
from services.search_session import SearchOutcome, SearchRequest, SearchSession
from storage.object_lister import ObjectDescriptor


MODIFIED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_request(**overrides) -> SearchRequest:
    params = {
        "bucket": "logs",
        "pattern": "ERROR500",
        "result_count": 3,
        "region": "eu-west-1",
    }
    params.update(overrides)
    return SearchRequest(**params)


class TestSearchRequestValidation:
    """Tests for request validation."""

    def test_valid_request(self):
        """Test a complete request passes."""
        make_request().validate()

    @pytest.mark.parametrize("field", ["bucket", "pattern", "region"])
    def test_missing_required_field(self, field):
        """Test each required string field is enforced."""
        with pytest.raises(ValidationError) as exc_info:
            make_request(**{field: ""}).validate()

        assert field in exc_info.value.message

    @pytest.mark.parametrize("count", [0, -5])
    def test_non_positive_result_count(self, count):
        """Test result_count must be at least 1."""
        with pytest.raises(ValidationError):
            make_request(result_count=count).validate()

    def test_missing_result_count_reported(self):
        """Test an absent result count is a missing parameter."""
        with pytest.raises(ValidationError) as exc_info:
            make_request(result_count=None).validate()

        assert "result_count" in exc_info.value.message

    def test_negative_times_rejected(self):
        """Test negative epoch bounds are rejected."""
        with pytest.raises(ValidationError):
            make_request(start_time=-1).validate()

    def test_validation_error_is_value_error(self):
        """Test ValidationError can be caught as ValueError."""
        with pytest.raises(ValueError):
            make_request(pattern="").validate()

    def test_build_filter(self):
        """Test the request's window and the size cap form the filter."""
        list_filter = make_request(start_time=10, end_time=20).build_filter(max_size=99)

        assert list_filter.max_size == 99
        assert list_filter.start_time == 10
        assert list_filter.end_time == 20


class TestResultAggregator:
    """Tests for thread-safe result accumulation."""

    def test_append_returns_count(self):
        """Test append reports the new size."""
        aggregator = ResultAggregator()

        assert aggregator.append(ObjectDescriptor("a", 1, MODIFIED)) == 1
        assert aggregator.append(ObjectDescriptor("b", 1, MODIFIED)) == 2
        assert len(aggregator) == 2

    def test_concurrent_appends(self):
        """Test appends from many threads are all kept."""
        aggregator = ResultAggregator()

        def worker(prefix):
            for i in range(200):
                aggregator.append(ObjectDescriptor(f"{prefix}-{i}", i, MODIFIED))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert aggregator.count == 1600
        assert len({obj.key for obj in aggregator.snapshot()}) == 1600

    def test_snapshot_is_a_copy(self):
        """Test mutating a snapshot does not touch the aggregator."""
        aggregator = ResultAggregator()
        aggregator.append(ObjectDescriptor("a", 1, MODIFIED))

        snapshot = aggregator.snapshot()
        snapshot.clear()

        assert aggregator.count == 1


class TestSearchSession:
    """Tests for per-search state."""

    def test_remaining_budget(self):
        """Test remaining counts down and floors at zero."""
        session = SearchSession(make_request(result_count=2))

        assert session.remaining == 2
        session.aggregator.append(ObjectDescriptor("a", 1, MODIFIED))
        assert session.remaining == 1
        assert session.satisfied is False
        session.aggregator.append(ObjectDescriptor("b", 1, MODIFIED))
        session.aggregator.append(ObjectDescriptor("c", 1, MODIFIED))
        assert session.remaining == 0
        assert session.satisfied is True

    def test_cancel_sets_shared_event(self):
        """Test cancel fires the caller's token."""
        event = threading.Event()
        session = SearchSession(make_request(), event)

        session.cancel()

        assert event.is_set()
        assert session.is_cancelled is True

    def test_cancel_closes_in_flight_bodies(self):
        """Test cancel closes bodies still being read."""
        session = SearchSession(make_request())
        body = MagicMock()
        session.in_flight.add(body)

        session.cancel()

        body.close.assert_called_once()
        assert len(session.in_flight) == 0

    def test_outcome_to_dict(self):
        """Test outcome serialization."""
        session = SearchSession(make_request())
        session.aggregator.append(ObjectDescriptor("a.log", 10, MODIFIED))
        session.pages_examined = 1
        session.objects_examined = 2

        data = session.outcome(cancelled=True).to_dict()

        assert data["count"] == 1
        assert data["cancelled"] is True
        assert data["results"][0]["key"] == "a.log"
        assert data["pages_examined"] == 1

    def test_empty_outcome(self):
        """Test default outcome is empty and not cancelled."""
        outcome = SearchOutcome()

        assert outcome.count == 0
        assert outcome.cancelled is False
