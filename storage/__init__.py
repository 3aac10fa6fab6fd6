"""Storage module for S3 listing and download."""

from storage.object_fetcher import InFlightBodies, ObjectFetcher
from storage.object_lister import ListFilter, ObjectDescriptor, ObjectLister, ObjectPage
from storage.s3_client import check_bucket_access, create_s3_client, list_buckets

__all__ = [
    "InFlightBodies",
    "ObjectFetcher",
    "ListFilter",
    "ObjectDescriptor",
    "ObjectLister",
    "ObjectPage",
    "check_bucket_access",
    "create_s3_client",
    "list_buckets",
]
