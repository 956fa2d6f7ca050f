import asyncio
import json
from functools import partial
from typing import AsyncIterator, Callable, Dict, List, Optional
from urllib.parse import urldefrag, urljoin, urlparse

import aiohttp
from bs4 import BeautifulSoup
from pydantic import ValidationError
from tqdm.asyncio import tqdm

from .classifier import UrlClassifier
from .config import REQUEST_HEADERS, REQUEST_TIMEOUT, SHOW_PROGRESS
from .frontier import CrawlTarget, Frontier
from .logger import logger
from .models import (
    Cancelled,
    Completed,
    CrawlEvent,
    Crawling,
    DomainRunStatus,
    DomainUpdate,
    Failed,
    Pending,
    ProductFound,
)


class CrawlError(Exception):
    """Raised when a domain run cannot continue"""


class PageFetcher:
    def __init__(self, timeout=REQUEST_TIMEOUT, headers=None):
        """
        Page fetcher owning one HTTP session for a domain run

        Args:
            timeout (float): Request timeout in seconds
            headers (dict): Request headers, browser-like by default
        """
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = headers or REQUEST_HEADERS
        self.session = None

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(headers=self.headers, timeout=self.timeout)
        return self

    async def __aexit__(self, *exc_info):
        await self.session.close()
        self.session = None

    async def fetch(self, url):
        """
        Fetch a URL and return its HTML content

        Args:
            url (str): URL to fetch

        Returns:
            str: HTML content or None if request failed
        """
        try:
            async with self.session.get(url, allow_redirects=True) as response:
                if 200 <= response.status < 300:
                    return await response.text(errors='replace')
                logger.warning(f"Failed to fetch {url}, status code: {response.status}")
                return None
        except asyncio.TimeoutError:
            logger.warning(f"Timed out fetching {url}")
            return None
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning(f"Error fetching {url}: {str(e)}")
            return None


def extract_links(html, base_url, host):
    """
    Extract same-host links from HTML content

    Args:
        html (str): HTML content
        base_url (str): URL of the page, used to resolve relative links
        host (str): Hostname links must belong to

    Returns:
        set: Absolute URLs without fragments
    """
    if not html:
        return set()

    soup = BeautifulSoup(html, 'html.parser')
    links = set()

    for anchor in soup.find_all('a', href=True):
        try:
            absolute_url, _ = urldefrag(urljoin(base_url, anchor['href'].strip()))
            link_host = urlparse(absolute_url).hostname
        except ValueError:
            continue
        if link_host and link_host == host:
            links.add(absolute_url)

    return links


def normalize_seed(domain: str) -> str:
    domain = domain.strip()
    if not domain.startswith(('http://', 'https://')):
        domain = 'https://' + domain
    # same form as extracted links: no fragment, root path spelled "/"
    domain, _ = urldefrag(domain)
    parsed = urlparse(domain)
    if not parsed.path:
        domain = parsed._replace(path='/').geturl()
    return domain


class DomainCrawler:
    """
    Crawls one site with a fixed pool of fetch workers and reports progress through on_update.

    Lifecycle: pending -> crawling -> completed | error | cancelled.
    """

    def __init__(
        self,
        seed_url: str,
        max_depth: int,
        max_pages: int,
        concurrency: int,
        on_update: Callable[[CrawlEvent], None],
        fetcher=None,
        classifier: Optional[UrlClassifier] = None,
        stop_event: Optional[asyncio.Event] = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")

        self.seed_url = normalize_seed(seed_url)
        self.host = urlparse(self.seed_url).hostname
        self.concurrency = concurrency
        self.on_update = on_update
        self.fetcher = fetcher or PageFetcher()
        self.stop_event = stop_event
        self.frontier = Frontier(max_depth=max_depth, max_pages=max_pages, classifier=classifier)
        self.status = DomainRunStatus.PENDING
        self._pbar = None

    def _emit(self, event: CrawlEvent):
        self.on_update(event)

    async def crawl(self) -> List[str]:
        """
        Run the crawl to a terminal state

        Returns:
            list: Product URLs found, including those found before a failure
        """
        self.status = DomainRunStatus.CRAWLING
        self._emit(Crawling(progress=0.0))
        logger.info(f"Crawling {self.seed_url}")

        try:
            with tqdm(total=self.frontier.max_pages, desc=f"Crawling {self.host}", disable=not SHOW_PROGRESS) as pbar:
                self._pbar = pbar
                async with self.fetcher:
                    stopped = await self._run_workers()
        except Exception as e:
            logger.exception(f"Crawl of {self.seed_url} failed")
            self.status = DomainRunStatus.ERROR
            self._emit(Failed(reason=str(e) or type(e).__name__, product_urls=tuple(self.frontier.product_list())))
            return self.frontier.product_list()

        products = self.frontier.product_list()
        if stopped:
            logger.info(f"Crawl of {self.seed_url} stopped after {len(self.frontier.visited)} pages")
            self.status = DomainRunStatus.CANCELLED
            self._emit(Cancelled(progress=self.frontier.progress(), product_urls=tuple(products)))
        else:
            logger.info(f"Found {len(products)} product URLs on {self.seed_url}")
            self.status = DomainRunStatus.COMPLETED
            self._emit(Completed(product_urls=tuple(products)))
        return products

    async def _run_workers(self) -> bool:
        """
        Start the worker pool and wait until the queue drains, a worker fails or a stop is requested.

        Returns:
            bool: True if the run was stopped before the queue drained
        """
        self.frontier.push([CrawlTarget(url=self.seed_url, depth=0)])

        workers = [asyncio.ensure_future(self._worker()) for _ in range(self.concurrency)]
        drained = asyncio.ensure_future(self.frontier.queue.join())
        waiters = [drained, *workers]
        stopper = None
        if self.stop_event is not None:
            stopper = asyncio.ensure_future(self.stop_event.wait())
            waiters.append(stopper)

        try:
            done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in waiters:
                task.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        for task in workers:
            if task in done and not task.cancelled() and task.exception() is not None:
                raise task.exception()

        return drained not in done and stopper is not None and stopper in done

    async def _worker(self):
        queue = self.frontier.queue
        while True:
            target = await queue.get()
            try:
                await self._visit(target)
            finally:
                queue.task_done()

    async def _visit(self, target: CrawlTarget):
        if not self.frontier.try_claim(target):
            return

        self._pbar.update(1)
        self._emit(Crawling(progress=self.frontier.progress()))

        html = await self.fetcher.fetch(target.url)
        if html is None:
            if target.depth == 0:
                raise CrawlError(f"Could not fetch seed page {target.url}")
            return

        if self.frontier.record_product(target.url):
            self._emit(
                ProductFound(
                    url=target.url,
                    progress=self.frontier.progress(),
                    product_urls=tuple(self.frontier.product_list()),
                )
            )

        links = extract_links(html, target.url, self.host)
        self.frontier.push(self.frontier.expand(links, target.depth))


async def run_domain_crawl(
    seed_url, max_depth, max_pages, concurrency, on_update, fetcher=None, classifier=None, stop_event=None
):
    """
    Crawl one domain and return the product URLs found
    """
    crawler = DomainCrawler(
        seed_url,
        max_depth=max_depth,
        max_pages=max_pages,
        concurrency=concurrency,
        on_update=on_update,
        fetcher=fetcher,
        classifier=classifier,
        stop_event=stop_event,
    )
    return await crawler.crawl()


def _relay(channel: asyncio.Queue, domain: str, event: CrawlEvent):
    channel.put_nowait(event.to_update(domain))


async def stream_crawl_updates(
    domains, max_depth, max_pages, concurrency, stop_event=None, fetcher_factory=None
) -> AsyncIterator[DomainUpdate]:
    """
    Crawl all domains concurrently and yield their updates in the order they are produced

    Args:
        domains (list): Seed domains or URLs
        stop_event (asyncio.Event): Stops every domain run when set
        fetcher_factory (callable): Builds one page fetcher per domain, PageFetcher by default
    """
    channel: "asyncio.Queue[Optional[DomainUpdate]]" = asyncio.Queue()
    crawlers = []
    for domain in domains:
        crawlers.append(
            DomainCrawler(
                domain,
                max_depth=max_depth,
                max_pages=max_pages,
                concurrency=concurrency,
                on_update=partial(_relay, channel, domain),
                fetcher=fetcher_factory() if fetcher_factory else None,
                stop_event=stop_event,
            )
        )
        channel.put_nowait(Pending().to_update(domain))

    async def run_all():
        try:
            await asyncio.gather(*(crawler.crawl() for crawler in crawlers))
        finally:
            channel.put_nowait(None)

    runner = asyncio.ensure_future(run_all())
    try:
        while True:
            update = await channel.get()
            if update is None:
                break
            yield update
    finally:
        if not runner.done():
            runner.cancel()
        await asyncio.gather(runner, return_exceptions=True)

    # surfaces a failure of run_all itself; domain failures arrive as error updates
    runner.result()


class CrawlResults:
    """
    Merged view of an update stream, one entry per domain
    """

    def __init__(self):
        self.state: Dict[str, dict] = {}

    def apply(self, update: DomainUpdate):
        entry = self.state.setdefault(
            update.domain,
            {"status": DomainRunStatus.PENDING.value, "progress": 0.0, "productUrls": [], "error": None},
        )
        entry.update(update.model_dump(mode='json', by_alias=True, exclude_none=True, exclude={'domain'}))

    @property
    def product_urls(self) -> Dict[str, List[str]]:
        return {domain: list(entry["productUrls"]) for domain, entry in self.state.items()}

    @property
    def statuses(self) -> Dict[str, dict]:
        return {domain: dict(entry) for domain, entry in self.state.items()}


def parse_update_line(line):
    """
    Parse one line of the update stream

    Returns:
        DomainUpdate: The update, or None for blank and malformed lines
    """
    line = line.strip()
    if not line:
        return None
    try:
        return DomainUpdate.model_validate(json.loads(line))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Skipping malformed update line: {str(e)}")
        return None


async def run_multi_domain_crawl(
    domains, max_depth, max_pages, concurrency, sink=None, stop_event=None, fetcher_factory=None
):
    """
    Crawl all domains to find product URL's

    Args:
        sink (callable): Receives every DomainUpdate as it is produced

    Returns:
        dict: Dictionary mapping domains to lists of product URLs
    """
    results = CrawlResults()
    async for update in stream_crawl_updates(
        domains, max_depth, max_pages, concurrency, stop_event=stop_event, fetcher_factory=fetcher_factory
    ):
        results.apply(update)
        if sink is not None:
            sink(update)
    return results.product_urls
