"""
Pydantic schemas for API request/response models.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class ObjectDescriptorResponse(BaseModel):
    """Schema for a matched object."""
    key: str
    size: int
    last_modified: datetime
    etag: Optional[str] = None
    storage_class: Optional[str] = None

    class Config:
        from_attributes = True


class SearchResponse(BaseModel):
    """Schema for search response."""
    results: list[ObjectDescriptorResponse] = []
    count: int = 0
    cancelled: bool = False
    pages_examined: int = 0
    objects_examined: int = 0
    objects_fetched: int = 0


class BucketListResponse(BaseModel):
    """Schema for bucket listing response."""
    region: str
    buckets: list[str] = []


class ErrorResponse(BaseModel):
    """Schema for error responses."""
    status: int
    result: str
    error_code: Optional[str] = None


class HealthResponse(BaseModel):
    """Schema for health check."""
    status: str = "ok"
    app: str
    version: str
