"""
Shared fixtures: an in-memory stand-in for the parts of the S3 client
the search uses (head_bucket, list_objects_v2 paginator, get_object).
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import pytest
from botocore.exceptions import ClientError

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


DEFAULT_MODIFIED = datetime(2024, 1, 1, tzinfo=timezone.utc)


@dataclass
class FakeObject:
    """Object stored in the fake bucket."""
    key: str
    data: bytes
    last_modified: datetime = DEFAULT_MODIFIED
    size: Optional[int] = None  # listed size; defaults to len(data)

    def listing_entry(self) -> dict:
        return {
            "Key": self.key,
            "Size": self.size if self.size is not None else len(self.data),
            "LastModified": self.last_modified,
            "ETag": f'"{self.key}-etag"',
            "StorageClass": "STANDARD",
        }


class FakeBody:
    """Minimal StreamingBody stand-in."""

    def __init__(self, client: "FakeS3Client", data: bytes):
        self.client = client
        self.data = data
        self.closed = False

    def iter_chunks(self, chunk_size=1024):
        for start in range(0, len(self.data), chunk_size):
            yield self.data[start:start + chunk_size]

    def close(self):
        if not self.closed:
            self.closed = True
            self.client._release()


class StalledBody(FakeBody):
    """Body that yields one chunk, then blocks until it is closed."""

    def __init__(self, client: "FakeS3Client", data: bytes):
        super().__init__(client, data)
        self._closed_event = threading.Event()

    def iter_chunks(self, chunk_size=1024):
        yield self.data[:chunk_size]
        self._closed_event.wait(5)
        raise ValueError("I/O operation on closed file")

    def close(self):
        super().close()
        self._closed_event.set()


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    """
    Fake S3 client over a fixed list of pages.

    Each entry of `pages` is a list of FakeObject, or an Exception that is
    raised when that page is requested.
    """

    def __init__(
        self,
        pages,
        bucket_exists: bool = True,
        failing_keys=(),
        fetch_delay: float = 0.0,
        on_fetch=None,
        stalled_keys=()
    ):
        self.pages = pages
        self.bucket_exists = bucket_exists
        self.failing_keys = set(failing_keys)
        self.stalled_keys = set(stalled_keys)
        self.bodies = {}
        self.fetch_delay = fetch_delay
        self.on_fetch = on_fetch

        self.pages_requested = 0
        self.head_bucket_calls = 0
        self.page_sizes = []
        self.fetch_counts = {}
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()
        self._objects = {
            obj.key: obj
            for page in pages if not isinstance(page, Exception)
            for obj in page
        }

    def head_bucket(self, Bucket):
        self.head_bucket_calls += 1
        if not self.bucket_exists:
            raise client_error("404", "HeadBucket")
        return {}

    def get_paginator(self, operation_name):
        assert operation_name == "list_objects_v2"
        return self

    def paginate(self, Bucket, PaginationConfig=None):
        self.page_sizes.append((PaginationConfig or {}).get("PageSize"))
        for index, page in enumerate(self.pages):
            self.pages_requested += 1
            if isinstance(page, Exception):
                raise page
            yield {
                "Contents": [obj.listing_entry() for obj in page],
                "IsTruncated": index < len(self.pages) - 1,
                "KeyCount": len(page),
            }

    def get_object(self, Bucket, Key):
        with self._lock:
            self.fetch_counts[Key] = self.fetch_counts.get(Key, 0) + 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)

        if self.on_fetch is not None:
            self.on_fetch(Key)
        if self.fetch_delay:
            time.sleep(self.fetch_delay)

        if Key in self.failing_keys:
            self._release()
            raise client_error("SlowDown", "GetObject")

        body_class = StalledBody if Key in self.stalled_keys else FakeBody
        body = body_class(self, self._objects[Key].data)
        self.bodies[Key] = body
        return {"Body": body}

    def _release(self):
        with self._lock:
            self.active -= 1


@pytest.fixture
def make_object():
    """Factory for FakeObject instances."""
    return FakeObject


@pytest.fixture
def make_client():
    """Factory for FakeS3Client instances."""
    return FakeS3Client


@pytest.fixture
def make_coordinator():
    """Build a SearchCoordinator bound to a given fake client."""
    from services.search_coordinator import SearchCoordinator

    def _make(client, **kwargs):
        kwargs.setdefault("max_object_size", 1024)
        kwargs.setdefault("page_size", 100)
        kwargs.setdefault("max_workers", 4)
        kwargs.setdefault("chunk_size", 4)
        return SearchCoordinator(
            client_factory=lambda region, max_workers=None: client,
            **kwargs
        )

    return _make
