"""
S3 client factory and bucket-level operations.

Clients use the app config (region, optional explicit credentials);
otherwise boto3 resolves credentials through its default chain
(environment, SSO, IAM role, ...). In the "dev" environment the client
targets a local S3 emulator with static test credentials.
"""

from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
import structlog

from config import settings
from errors import AccessError

logger = structlog.get_logger()

LOCALSTACK_ENDPOINT = "http://localhost:4572"
DEV_REGION = "eu-west-1"


def _get_client_kwargs(region: Optional[str]) -> dict:
    """Get kwargs for boto3.client('s3', ...)."""
    if settings.APP_ENV == "dev":
        return {
            "region_name": DEV_REGION,
            "endpoint_url": settings.S3_ENDPOINT_URL or LOCALSTACK_ENDPOINT,
            "aws_access_key_id": "foo",
            "aws_secret_access_key": "var",
        }

    kwargs = {"region_name": region or settings.AWS_REGION}
    if settings.S3_ENDPOINT_URL:
        kwargs["endpoint_url"] = settings.S3_ENDPOINT_URL
    if settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY:
        kwargs["aws_access_key_id"] = settings.AWS_ACCESS_KEY_ID
        kwargs["aws_secret_access_key"] = settings.AWS_SECRET_ACCESS_KEY
    return kwargs


def create_s3_client(region: Optional[str] = None, max_workers: Optional[int] = None):
    """
    Create an S3 client for a region.

    Args:
        region: AWS region of the bucket. Uses config default if not provided.
        max_workers: Number of threads that will share the client; sizes
            the connection pool so workers do not queue on connections.

    Returns:
        boto3 S3 client
    """
    pool_size = max(max_workers or settings.MAX_WORKERS, 10)
    client_config = Config(
        max_pool_connections=pool_size,
        retries={"total_max_attempts": settings.FETCH_MAX_ATTEMPTS, "mode": "standard"},
    )
    kwargs = _get_client_kwargs(region)

    logger.debug(
        "Creating S3 client",
        region=kwargs["region_name"],
        endpoint=kwargs.get("endpoint_url"),
        pool_size=pool_size
    )
    return boto3.client("s3", config=client_config, **kwargs)


def check_bucket_access(client, bucket: str) -> None:
    """
    Verify that a bucket exists and is reachable.

    Args:
        client: boto3 S3 client
        bucket: Bucket name

    Raises:
        AccessError: If head_bucket fails for any reason
    """
    try:
        client.head_bucket(Bucket=bucket)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code")
        logger.warning("Bucket not accessible", bucket=bucket, error_code=error_code)
        raise AccessError(f"Bucket '{bucket}' is not accessible: {e}", error_code=error_code) from e
    except BotoCoreError as e:
        logger.warning("Bucket check failed", bucket=bucket, error=str(e))
        raise AccessError(f"Bucket '{bucket}' is not reachable: {e}") from e

    logger.debug("Bucket accessible", bucket=bucket)


def list_buckets(client) -> List[str]:
    """
    List bucket names visible to the current credentials.

    Args:
        client: boto3 S3 client

    Returns:
        Bucket names

    Raises:
        AccessError: If the listing is refused or the endpoint is unreachable
    """
    try:
        response = client.list_buckets()
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code")
        raise AccessError(f"Unable to list buckets: {e}", error_code=error_code) from e
    except BotoCoreError as e:
        raise AccessError(f"Unable to list buckets: {e}") from e

    buckets = [bucket["Name"] for bucket in response.get("Buckets", [])]
    logger.info("Listed buckets", count=len(buckets))
    return buckets
