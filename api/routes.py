"""
FastAPI routes for S3 Content Search.

Thin routes that delegate to service layer.
"""

import threading
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
import structlog

from config import settings
from errors import AccessError, ListingError, SearchError, ValidationError
from api.schemas import (
    BucketListResponse,
    ErrorResponse,
    HealthResponse,
    ObjectDescriptorResponse,
    SearchResponse,
)
from services.search_coordinator import search_coordinator
from services.search_session import SearchRequest
from storage.s3_client import create_s3_client, list_buckets

logger = structlog.get_logger()

router = APIRouter()


def error_response(status_code: int, error: SearchError) -> JSONResponse:
    """Render a search error in the API's error shape."""
    body = ErrorResponse(status=status_code, result=error.message, error_code=error.error_code)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.get("/health", response_model=HealthResponse)
def health():
    """Liveness check."""
    return HealthResponse(app=settings.APP_NAME, version=settings.APP_VERSION)


@router.get("/search", response_model=SearchResponse, responses={400: {"model": ErrorResponse}})
def search(
    bucket: Optional[str] = None,
    pattern: Optional[str] = Query(None, alias="filter"),
    result_count: Optional[int] = Query(None, alias="result-count"),
    region: Optional[str] = None,
    start: int = 0,
    end: int = 0
):
    """
    Search object contents of a bucket.

    Returns every object (up to page overshoot) whose content contains
    the filter text, limited by size and by the optional [start, end]
    last-modified window.
    """
    request = SearchRequest(
        bucket=bucket or "",
        pattern=pattern or "",
        result_count=result_count,
        region=region or "",
        start_time=start,
        end_time=end,
    )

    try:
        outcome = search_coordinator.search(
            request,
            cancel_event=threading.Event(),
            timeout=settings.SEARCH_TIMEOUT_SECONDS or None
        )
    except ValidationError as e:
        return error_response(400, e)
    except AccessError as e:
        return error_response(404, e)
    except ListingError as e:
        return error_response(502, e)

    return SearchResponse(
        results=[ObjectDescriptorResponse.model_validate(obj) for obj in outcome.results],
        count=outcome.count,
        cancelled=outcome.cancelled,
        pages_examined=outcome.pages_examined,
        objects_examined=outcome.objects_examined,
        objects_fetched=outcome.objects_fetched,
    )


@router.get("/buckets", response_model=BucketListResponse, responses={502: {"model": ErrorResponse}})
def buckets(region: Optional[str] = None):
    """List buckets visible to the server's credentials."""
    region = region or settings.AWS_REGION
    try:
        names = list_buckets(create_s3_client(region))
    except AccessError as e:
        logger.warning("Bucket listing failed", region=region, error=e.message)
        return error_response(502, e)

    return BucketListResponse(region=region, buckets=names)
