"""
Main crawl scheduler.

Drives discovery of a site's static sources: fetches documents through the
fetch cache, stores them in the archive, extracts referenced resources and
queues them until nothing is left to fetch.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Set

from .archive import Archive
from .cache import FetchCache
from .errors import RootFetchError, TransportError
from .extractor import ResourceExtractor, extract_internal_links
from .models import (
    ConcurrencyMode,
    CrawlResult,
    CrawlState,
    CrawlWarning,
    NetworkLog,
    ProgressCallback,
    ProgressUpdate,
    QueueItem,
    RequestOptions,
    WarningCallback,
)
from .transport import FetchResponse, ProxyTransport
from ..utils.constants import DEFAULT_POOL_SIZE, ROOT_INITIATOR
from ..utils.log import get_logger
from ..utils.paths import archive_path, get_filename, prepare_root_url


@dataclass
class FetchOutcome:
    """Message a worker sends back after handling one queue item."""

    item: QueueItem
    response: Optional[FetchResponse] = None
    resources: Set[str] = field(default_factory=set)
    error: Optional[Exception] = None
    fatal: bool = False


def is_text_like(content_type: str) -> bool:
    """Check whether a content type is worth scanning for references."""
    content_type = (content_type or '').lower()
    return 'text' in content_type or 'javascript' in content_type or 'json' in content_type


class SourceCrawler:
    """
    Crawl scheduler for one site.

    Owns the discovery queue, the processed set, the archive and the
    network log of a pass. Two concurrency modes share the same contract:
    sequential (one fetch at a time) and parallel (a fixed pool of workers
    reporting to a single coordinator).
    """

    def __init__(
        self,
        transport: Optional[ProxyTransport] = None,
        cache: Optional[FetchCache] = None,
        extractor: Optional[ResourceExtractor] = None,
        concurrency_mode: ConcurrencyMode = ConcurrencyMode.SEQUENTIAL,
        pool_size: int = DEFAULT_POOL_SIZE,
        max_resources: Optional[int] = None
    ):
        """
        Initialize the crawler.

        Args:
            transport: Transport used for fetching (default: proxy chain)
            cache: Fetch cache wrapping the transport
            extractor: Resource extractor
            concurrency_mode: Default mode for ``crawl``
            pool_size: Number of workers in parallel mode
            max_resources: Optional cap on discovered URLs per pass
        """
        self.transport = transport or ProxyTransport()
        self.cache = cache or FetchCache(self.transport)
        self.extractor = extractor or ResourceExtractor()
        self.concurrency_mode = concurrency_mode
        self.pool_size = max(1, pool_size)
        self.max_resources = max_resources
        self.logger = get_logger("crawler")

        self.state = CrawlState.IDLE
        self._start_pass(RequestOptions(), None, None)

    def _start_pass(
        self,
        options: RequestOptions,
        on_progress: Optional[ProgressCallback],
        on_warning: Optional[WarningCallback]
    ) -> None:
        self._options = options
        self._on_progress = on_progress
        self._on_warning = on_warning

        self._archive = Archive()
        self._network_log = NetworkLog()
        self._failed_urls: List[str] = []
        self._internal_links: Set[str] = set()

        self._queue: Deque[QueueItem] = deque()
        self._processed: Set[str] = set()
        self._downloaded = 0

    async def crawl(
        self,
        root_url: str,
        options: Optional[RequestOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_warning: Optional[WarningCallback] = None,
        concurrency_mode: Optional[ConcurrencyMode] = None
    ) -> CrawlResult:
        """
        Discover and fetch every resource reachable from a root URL.

        Args:
            root_url: Page to start from (``https://`` is added if missing)
            options: Request options forwarded on every request
            on_progress: Called after every completed item
            on_warning: Called for every non-fatal resource failure
            concurrency_mode: Override the crawler's default mode

        Returns:
            CrawlResult with the archive, network log, failed URLs and
            internal links

        Raises:
            RootFetchError: If the root document cannot be fetched
            ValueError: If the root URL is invalid
        """
        if self.state is CrawlState.CRAWLING:
            raise RuntimeError("A crawl is already running on this crawler")

        mode = concurrency_mode or self.concurrency_mode
        root_url = prepare_root_url(root_url)

        self.cache.clear()
        self._start_pass(options or RequestOptions(), on_progress, on_warning)
        self.state = CrawlState.CRAWLING

        start_time = time.time()
        self.logger.info(f"Starting {mode.value} crawl of {root_url}")

        try:
            await self._fetch_root(root_url)

            if mode is ConcurrencyMode.PARALLEL:
                await self._drain_parallel()
            else:
                await self._drain_sequential()
        finally:
            self.state = CrawlState.DONE

        self._report("Finalizing archive...")

        duration = time.time() - start_time
        result = CrawlResult(
            archive=self._archive,
            network_log=self._network_log,
            failed_urls=list(self._failed_urls),
            internal_links=sorted(self._internal_links),
            state=CrawlState.PARTIAL_FAILURE if self._failed_urls else CrawlState.SUCCESS,
            duration_seconds=duration
        )

        self.logger.info(
            f"Crawl complete: {self._downloaded} downloaded, "
            f"{len(self._failed_urls)} failed in {duration:.1f}s"
        )
        return result

    async def _fetch_root(self, root_url: str) -> None:
        """Fetch the seed document; failure aborts the pass."""
        item = QueueItem(url=root_url, initiator=ROOT_INITIATOR)
        self._processed.add(root_url)
        self._network_log.queued(root_url, ROOT_INITIATOR)

        self._report(f"Fetching main page: {root_url}")

        try:
            response = await self.cache.fetch(root_url, self._options, force_fresh=True)
        except TransportError as e:
            self._network_log.update(
                root_url,
                ROOT_INITIATOR,
                status=e.status,
                status_text="Download Failed",
                is_error=True
            )
            self.logger.error(f"Failed to fetch main page {root_url}: {e}")
            raise RootFetchError(root_url, e) from e

        outcome = FetchOutcome(
            item=item,
            response=response,
            resources=self._extract(root_url, response)
        )
        self._handle_outcome(outcome)

        if 'html' in response.content_type.lower():
            self._internal_links.update(
                extract_internal_links(response.text(), root_url)
            )

        self._report("Starting asset download...")

    async def _drain_sequential(self) -> None:
        """Single worker draining the FIFO queue one item at a time."""
        while self._queue:
            item = self._queue.popleft()
            outcome = await self._fetch_item(item)
            self._handle_outcome(outcome)

    async def _drain_parallel(self) -> None:
        """
        Coordinator for the worker pool.

        Workers only fetch and extract; all shared state is mutated here.
        The pass ends when the queue is empty and no job is in flight.
        """
        jobs: "asyncio.Queue[Optional[QueueItem]]" = asyncio.Queue()
        results: "asyncio.Queue[FetchOutcome]" = asyncio.Queue()
        workers = [
            asyncio.ensure_future(self._worker(jobs, results))
            for _ in range(self.pool_size)
        ]
        in_flight = 0

        try:
            while True:
                # Hand queued work to every idle worker
                while self._queue and in_flight < self.pool_size:
                    jobs.put_nowait(self._queue.popleft())
                    in_flight += 1

                if in_flight == 0:
                    break

                outcome = await results.get()
                in_flight -= 1
                if outcome.fatal:
                    raise outcome.error
                self._handle_outcome(outcome)
        except BaseException:
            for worker in workers:
                worker.cancel()
            raise
        finally:
            for _ in workers:
                jobs.put_nowait(None)
            await asyncio.gather(*workers, return_exceptions=True)

    async def _worker(
        self,
        jobs: "asyncio.Queue[Optional[QueueItem]]",
        results: "asyncio.Queue[FetchOutcome]"
    ) -> None:
        while True:
            item = await jobs.get()
            if item is None:
                return
            try:
                outcome = await self._fetch_item(item)
            except Exception as e:
                # Unexpected errors end the pass; the coordinator re-raises them
                outcome = FetchOutcome(item=item, error=e, fatal=True)
            await results.put(outcome)

    async def _fetch_item(self, item: QueueItem) -> FetchOutcome:
        """Fetch one queue item and extract its references."""
        try:
            response = await self.cache.fetch(item.url, self._options)
        except TransportError as e:
            return FetchOutcome(item=item, error=e)

        return FetchOutcome(
            item=item,
            response=response,
            resources=self._extract(item.url, response)
        )

    def _extract(self, url: str, response: FetchResponse) -> Set[str]:
        if not is_text_like(response.content_type):
            return set()

        try:
            return self.extractor.extract(response.content_type, response.text(), url)
        except Exception as e:
            self.logger.warning(f"Could not parse text content from {url}: {e}")
            return set()

    def _handle_outcome(self, outcome: FetchOutcome) -> None:
        """Record one completed item and queue what it references."""
        item = outcome.item
        name = get_filename(item.url) or item.url

        if outcome.error is not None:
            self._failed_urls.append(item.url)
            self._network_log.update(
                item.url,
                item.initiator,
                status=0,
                status_text="Download Failed",
                content_type="unknown",
                size=0,
                is_error=True
            )
            self.logger.warning(f"Failed to download {item.url}: {outcome.error}")
            self._warn(item.url, f"Download failed. {outcome.error}")
            self._report(f"Failed: {name}")
            return

        response = outcome.response
        self._archive.put(archive_path(item.url), response.body)
        self._network_log.update(
            item.url,
            item.initiator,
            status=response.status,
            status_text=response.status_text,
            content_type=response.content_type,
            size=response.size,
            is_error=not response.ok
        )
        self._downloaded += 1
        self.logger.debug(f"Downloaded: {item.url} ({response.size} bytes)")

        for resource in sorted(outcome.resources):
            self._discover(resource, item.url)

        self._report(f"Downloaded: {name}")

    def _discover(self, url: str, initiator: str) -> bool:
        """
        Queue a URL unless it was already seen this pass.

        The processed set is updated at discovery time so no URL is
        queued twice.

        Returns:
            True if the URL was queued
        """
        if url in self._processed:
            return False

        if self.max_resources is not None and len(self._processed) >= self.max_resources:
            self.logger.debug(f"Discovery cap reached, skipping {url}")
            return False

        self._processed.add(url)
        self._queue.append(QueueItem(url=url, initiator=initiator))
        self._network_log.queued(url, initiator)
        return True

    def _report(self, message: str) -> None:
        if self._on_progress is not None:
            self._on_progress(ProgressUpdate(
                message=message,
                downloaded=self._downloaded,
                total=len(self._processed)
            ))

    def _warn(self, url: str, message: str) -> None:
        if self._on_warning is not None:
            self._on_warning(CrawlWarning(url=url, message=message))


async def fetch_website_source(
    url: str,
    options: Optional[RequestOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
    on_warning: Optional[WarningCallback] = None,
    concurrency_mode: ConcurrencyMode = ConcurrencyMode.SEQUENTIAL,
    proxies: Optional[List[str]] = None,
    pool_size: int = DEFAULT_POOL_SIZE,
    max_resources: Optional[int] = None
) -> CrawlResult:
    """
    Crawl a site with a transport that is closed afterwards.

    Args:
        url: Root URL
        options: Request options
        on_progress: Progress callback
        on_warning: Warning callback
        concurrency_mode: Sequential or parallel crawl
        proxies: Proxy chain (default chain when None)
        pool_size: Worker count for parallel mode
        max_resources: Optional discovery cap

    Returns:
        CrawlResult of the pass
    """
    async with ProxyTransport(proxies=proxies) as transport:
        crawler = SourceCrawler(
            transport=transport,
            concurrency_mode=concurrency_mode,
            pool_size=pool_size,
            max_resources=max_resources
        )
        return await crawler.crawl(url, options, on_progress, on_warning)
