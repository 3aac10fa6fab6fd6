"""
Paginated enumeration of bucket objects.

Wraps the list_objects_v2 paginator: each page is at most page_size keys,
filtered by object size and last-modified time before being handed on.
Pages are fetched lazily, so a consumer that stops iterating never
requests the next page.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from botocore.exceptions import BotoCoreError, ClientError
import structlog

from errors import ListingError

logger = structlog.get_logger()


@dataclass(frozen=True)
class ObjectDescriptor:
    """Metadata of one listed object."""
    key: str
    size: int
    last_modified: datetime
    etag: Optional[str] = None
    storage_class: Optional[str] = None

    @classmethod
    def from_listing(cls, entry: Dict[str, Any]) -> "ObjectDescriptor":
        """Build from a list_objects_v2 'Contents' entry."""
        return cls(
            key=entry["Key"],
            size=int(entry.get("Size", 0)),
            last_modified=entry["LastModified"],
            etag=entry.get("ETag"),
            storage_class=entry.get("StorageClass"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "key": self.key,
            "size": self.size,
            "last_modified": self.last_modified.isoformat(),
            "etag": self.etag,
            "storage_class": self.storage_class,
        }


@dataclass(frozen=True)
class ListFilter:
    """
    Candidate predicate applied to every listed object.

    Size and time checks are independent and both must pass.
    Times are epoch seconds; 0 means unbounded on that side.
    """
    max_size: int
    start_time: int = 0
    end_time: int = 0

    @property
    def time_filter_active(self) -> bool:
        return self.end_time > self.start_time

    def accepts_size(self, obj: ObjectDescriptor) -> bool:
        return obj.size <= self.max_size

    def accepts_time(self, obj: ObjectDescriptor) -> bool:
        if not self.time_filter_active:
            return True

        modified = int(obj.last_modified.timestamp())
        if self.start_time != 0 and modified < self.start_time:
            return False
        if self.end_time != 0 and modified > self.end_time:
            return False
        return True

    def accepts(self, obj: ObjectDescriptor) -> bool:
        return self.accepts_time(obj) and self.accepts_size(obj)


@dataclass
class ObjectPage:
    """One page of listing results after filtering."""
    number: int
    objects: List[ObjectDescriptor] = field(default_factory=list)
    examined: int = 0  # entries in the raw page, before filtering
    has_more: bool = False


class ObjectLister:
    """
    Lists a bucket page by page.

    Enumeration order is whatever S3 returns (lexicographic by key for
    general purpose buckets, but not relied upon).
    """

    def __init__(self, client, page_size: int = 1000):
        """
        Initialize lister.

        Args:
            client: boto3 S3 client
            page_size: Maximum keys per page
        """
        self.client = client
        self.page_size = page_size

    def list_pages(self, bucket: str, list_filter: ListFilter) -> Iterator[ObjectPage]:
        """
        Iterate over filtered pages of a bucket.

        Args:
            bucket: Bucket name
            list_filter: Size/time predicate

        Yields:
            ObjectPage per list_objects_v2 response

        Raises:
            ListingError: If any listing request fails
        """
        paginator = self.client.get_paginator("list_objects_v2")
        pages = paginator.paginate(
            Bucket=bucket,
            PaginationConfig={"PageSize": self.page_size}
        )

        number = 0
        try:
            for response in pages:
                number += 1
                yield self._build_page(number, response, list_filter)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            logger.error("Listing failed", bucket=bucket, page=number + 1, error_code=error_code)
            raise ListingError(f"Listing bucket '{bucket}' failed: {e}", error_code=error_code) from e
        except BotoCoreError as e:
            logger.error("Listing failed", bucket=bucket, page=number + 1, error=str(e))
            raise ListingError(f"Listing bucket '{bucket}' failed: {e}") from e

    def _build_page(self, number: int, response: Dict[str, Any], list_filter: ListFilter) -> ObjectPage:
        entries = response.get("Contents", [])
        descriptors = [ObjectDescriptor.from_listing(entry) for entry in entries]
        accepted = [obj for obj in descriptors if list_filter.accepts(obj)]

        page = ObjectPage(
            number=number,
            objects=accepted,
            examined=len(descriptors),
            has_more=bool(response.get("IsTruncated", False)),
        )

        logger.debug(
            "Listed page",
            page=number,
            examined=page.examined,
            candidates=len(accepted),
            has_more=page.has_more
        )
        return page
