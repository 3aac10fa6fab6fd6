"""Services package for S3 Content Search."""

from services.result_aggregator import ResultAggregator
from services.search_coordinator import SearchCoordinator, search_coordinator
from services.search_session import SearchOutcome, SearchRequest, SearchSession

__all__ = [
    "ResultAggregator",
    "SearchCoordinator",
    "search_coordinator",
    "SearchOutcome",
    "SearchRequest",
    "SearchSession",
]
