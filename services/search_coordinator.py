"""
Content Search Coordinator

Drives a search over one bucket:
1. Validate the request and check bucket access once
2. List the bucket page by page (size/time filtered)
3. Fan out fetch+match tasks for the page onto a bounded thread pool
4. Wait for the whole page, then decide whether to request the next one

Stopping is page-granular: once a page finishes with enough hits no
further page is requested, but every task of that page runs to
completion, so more than result_count matches may be returned.
Cancellation closes the bodies being read and abandons the rest of the
page, returning the matches found so far.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from contextlib import closing
from typing import Callable, Optional

import structlog

from config import settings
from errors import FetchError, SearchCancelled
from matching.stream_matcher import MatchState, StreamMatcher
from services.search_session import SearchOutcome, SearchRequest, SearchSession
from storage.object_fetcher import ObjectFetcher
from storage.object_lister import ObjectDescriptor, ObjectLister, ObjectPage
from storage.s3_client import check_bucket_access, create_s3_client

logger = structlog.get_logger()

# Seconds between cancellation checks while a page is in flight
CANCEL_POLL_SECONDS = 0.1


class SearchCoordinator:
    """
    Orchestrates listing, bounded fan-out and early termination.

    A coordinator holds only configuration; every call to search() gets
    its own session, client and worker pool.
    """

    def __init__(
        self,
        client_factory: Optional[Callable] = None,
        max_object_size: Optional[int] = None,
        page_size: Optional[int] = None,
        max_workers: Optional[int] = None,
        chunk_size: Optional[int] = None
    ):
        """
        Initialize coordinator.

        Args:
            client_factory: Callable(region, max_workers=...) returning an S3
                client. Defaults to create_s3_client.
            max_object_size: Largest object (bytes) that is fetched
            page_size: Keys per listing page
            max_workers: Concurrent fetch+match tasks
            chunk_size: Bytes per downloaded chunk
        """
        self.client_factory = client_factory or create_s3_client
        self.max_object_size = max_object_size if max_object_size is not None else settings.MAX_ALLOWED_FILE_SIZE
        self.page_size = page_size or settings.LIST_PAGE_SIZE
        self.max_workers = max_workers or settings.MAX_WORKERS
        self.chunk_size = chunk_size or settings.DOWNLOAD_CHUNK_SIZE
        self.poll_interval = CANCEL_POLL_SECONDS

    def search(
        self,
        request: SearchRequest,
        cancel_event: Optional[threading.Event] = None,
        timeout: Optional[float] = None
    ) -> SearchOutcome:
        """
        Run a content search.

        Args:
            request: Search parameters
            cancel_event: Cancellation token; setting it stops the search
                and returns the matches found so far
            timeout: Seconds after which the search cancels itself

        Returns:
            SearchOutcome with matches in discovery order

        Raises:
            ValidationError: Malformed request (no storage access made)
            AccessError: Bucket missing or unreachable
            ListingError: Listing failed; no partial results
        """
        request.validate()
        session = SearchSession(request, cancel_event)

        logger.info(
            "Starting search",
            bucket=request.bucket,
            region=request.region,
            result_count=request.result_count,
            pattern_length=len(request.pattern),
            max_workers=self.max_workers
        )

        timer = None
        if timeout:
            timer = threading.Timer(timeout, session.cancel)
            timer.daemon = True
            timer.start()

        try:
            cancelled = self._run(session)
        finally:
            if timer is not None:
                timer.cancel()

        outcome = session.outcome(cancelled=cancelled)
        log = logger.warning if cancelled else logger.info
        log(
            "Search cancelled" if cancelled else "Search complete",
            bucket=request.bucket,
            matches=outcome.count,
            pages=outcome.pages_examined,
            objects_examined=outcome.objects_examined,
            objects_fetched=outcome.objects_fetched
        )
        return outcome

    def _run(self, session: SearchSession) -> bool:
        """Scan the bucket. Returns True if the search was cancelled."""
        request = session.request
        if session.is_cancelled:
            return True

        client = self.client_factory(request.region, max_workers=self.max_workers)
        check_bucket_access(client, request.bucket)

        lister = ObjectLister(client, page_size=self.page_size)
        fetcher = ObjectFetcher(client, chunk_size=self.chunk_size)
        list_filter = request.build_filter(self.max_object_size)

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="search")
        try:
            for page in lister.list_pages(request.bucket, list_filter):
                if session.is_cancelled:
                    return True

                session.pages_examined += 1
                session.objects_examined += page.examined

                if page.objects:
                    self._search_page(session, page, fetcher, executor)

                if session.is_cancelled:
                    return True
                if session.satisfied:
                    logger.debug("Result count reached", page=page.number, hits=session.hits)
                    break
                if not page.has_more:
                    break
        finally:
            # Abandoned tasks of a cancelled page finish in the background
            cancelled = session.is_cancelled
            executor.shutdown(wait=not cancelled, cancel_futures=cancelled)

        return False

    def _search_page(
        self,
        session: SearchSession,
        page: ObjectPage,
        fetcher: ObjectFetcher,
        executor: ThreadPoolExecutor
    ) -> None:
        """
        Fan out one task per candidate and wait for all of them.

        The wait polls the cancellation token; once it is set, open
        bodies are closed and tasks still pending are abandoned.
        """
        futures = [
            executor.submit(self._match_object, session, fetcher, obj)
            for obj in page.objects
        ]
        session.objects_dispatched += len(futures)

        matched = 0
        pending = set(futures)
        while pending:
            done, pending = wait(pending, timeout=self.poll_interval)
            # result() re-raises anything unexpected from a worker
            matched += sum(1 for future in done if future.result())

            if pending and session.is_cancelled:
                closed = session.abort_fetches()
                logger.info(
                    "Page abandoned on cancellation",
                    page=page.number,
                    pending=len(pending),
                    bodies_closed=closed
                )
                return

        logger.info(
            "Page searched",
            page=page.number,
            candidates=len(futures),
            matched=matched,
            total_matches=session.hits
        )

    def _match_object(self, session: SearchSession, fetcher: ObjectFetcher, obj: ObjectDescriptor) -> bool:
        """
        Fetch one object and stream it through a fresh matcher.

        Returns:
            True if the pattern occurs in the object
        """
        if session.is_cancelled:
            return False

        request = session.request
        matcher = StreamMatcher(request.pattern)

        try:
            chunks = fetcher.fetch(
                request.bucket,
                obj.key,
                obj.size,
                cancel_event=session.cancel_event,
                in_flight=session.in_flight
            )
            with closing(chunks):
                state = matcher.consume(chunks)
        except FetchError as e:
            logger.warning(
                "Fetch failed, treating object as non-match",
                bucket=request.bucket,
                key=obj.key,
                error=e.message,
                error_code=e.error_code
            )
            return False
        except SearchCancelled:
            logger.debug("Fetch aborted by cancellation", key=obj.key)
            return False

        if state is not MatchState.MATCHED:
            return False

        session.aggregator.append(obj)
        logger.debug("Pattern found", key=obj.key, bytes_read=matcher.bytes_consumed)
        return True


# Singleton instance
search_coordinator = SearchCoordinator()
