"""
Streaming object download.

Reads an object body in fixed-size chunks so a consumer can process it
while it downloads. Peak memory per fetch is one chunk.
"""

import threading
from typing import Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError
import structlog

from errors import FetchError, SearchCancelled

logger = structlog.get_logger()


class InFlightBodies:
    """
    Thread-safe registry of response bodies still being read.

    Closing a body from another thread makes a read blocked on it fail,
    which is how a cancelled search interrupts stalled downloads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._bodies = set()

    def add(self, body) -> None:
        with self._lock:
            self._bodies.add(body)

    def discard(self, body) -> None:
        with self._lock:
            self._bodies.discard(body)

    def close_all(self) -> int:
        """Close every registered body. Returns how many were closed."""
        with self._lock:
            bodies = list(self._bodies)
            self._bodies.clear()

        for body in bodies:
            try:
                body.close()
            except Exception as e:
                logger.debug("Closing in-flight body failed", error=str(e))
        return len(bodies)

    def __len__(self) -> int:
        with self._lock:
            return len(self._bodies)


class ObjectFetcher:
    """Downloads object bytes from S3 as an ordered chunk stream."""

    def __init__(self, client, chunk_size: int = 1024 * 1024):
        """
        Initialize fetcher.

        Args:
            client: boto3 S3 client (safe to share between threads)
            chunk_size: Maximum bytes per yielded chunk
        """
        self.client = client
        self.chunk_size = chunk_size

    def fetch(
        self,
        bucket: str,
        key: str,
        size: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
        in_flight: Optional[InFlightBodies] = None
    ) -> Iterator[bytes]:
        """
        Stream an object's bytes.

        Closing the returned generator early (e.g. after a match) closes
        the underlying HTTP body. A get_object request that stalls before
        the body arrives cannot be interrupted; only its reads can.

        Args:
            bucket: Bucket name
            key: Object key
            size: Size reported by the listing; a shorter body is an error
            cancel_event: Checked before the request and between chunks
            in_flight: Registry the open body is kept in while it is read,
                so a canceller can close it mid-read

        Yields:
            Consecutive chunks of the object body

        Raises:
            FetchError: If the request fails or the body is truncated
            SearchCancelled: If cancel_event is set mid-download
        """
        if cancel_event is not None and cancel_event.is_set():
            raise SearchCancelled()

        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            raise FetchError(key, f"get_object failed for '{key}': {e}", error_code=error_code) from e
        except BotoCoreError as e:
            raise FetchError(key, f"get_object failed for '{key}': {e}") from e

        body = response["Body"]
        if in_flight is not None:
            in_flight.add(body)

        received = 0
        try:
            for chunk in body.iter_chunks(chunk_size=self.chunk_size):
                if cancel_event is not None and cancel_event.is_set():
                    raise SearchCancelled()
                received += len(chunk)
                yield chunk
        except (ClientError, BotoCoreError, OSError, ValueError) as e:
            # A body closed by a canceller fails its pending read
            if cancel_event is not None and cancel_event.is_set():
                raise SearchCancelled() from e
            if isinstance(e, (ClientError, BotoCoreError)):
                raise FetchError(key, f"Reading '{key}' failed after {received} bytes: {e}") from e
            raise
        finally:
            if in_flight is not None:
                in_flight.discard(body)
            body.close()

        if cancel_event is not None and cancel_event.is_set():
            raise SearchCancelled()

        if size is not None and received != size:
            raise FetchError(key, f"Object '{key}' truncated: expected {size} bytes, got {received}")

        logger.debug("Fetched object", key=key, bytes=received)
