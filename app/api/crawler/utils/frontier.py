import asyncio
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from .classifier import UrlClassifier


@dataclass(frozen=True)
class CrawlTarget:
    url: str
    depth: int


class Frontier:
    """
    Traversal state of one domain run: visited URLs, the pending FIFO queue and the product URLs found.

    Only the owning DomainCrawler touches it. None of the methods suspend, so a claim is checked and
    recorded in one step even while several fetch workers run.
    """

    def __init__(self, max_depth: int, max_pages: int, classifier: Optional[UrlClassifier] = None):
        self.max_depth = max_depth
        self.max_pages = max_pages
        self.classifier = classifier or UrlClassifier()

        self.visited: Set[str] = set()
        self.products: Set[str] = set()
        self.queue: "asyncio.Queue[CrawlTarget]" = asyncio.Queue()
        # URLs currently waiting in the queue
        self._queued: Set[str] = set()

    @property
    def is_full(self) -> bool:
        return len(self.visited) >= self.max_pages

    def try_claim(self, target: CrawlTarget) -> bool:
        """
        Admit a target for fetching

        Returns:
            bool: True if the URL was added to the visited set, False if it must be skipped
        """
        self._queued.discard(target.url)
        if target.url in self.visited or self.is_full or target.depth > self.max_depth:
            return False
        self.visited.add(target.url)
        return True

    def record_product(self, url: str) -> bool:
        if url in self.products or not self.classifier.is_product_url(url):
            return False
        self.products.add(url)
        return True

    def expand(self, found_urls: Iterable[str], current_depth: int) -> List[CrawlTarget]:
        """
        Turn links found on a page at current_depth into targets one level deeper.

        Links from the seed page are always followed; deeper pages only lead to product or
        navigation shaped URLs.
        """
        next_depth = current_depth + 1
        if next_depth > self.max_depth:
            return []

        targets = []
        for url in sorted(found_urls):
            if url in self.visited:
                continue
            if (
                current_depth == 0
                or self.classifier.is_product_url(url)
                or self.classifier.is_navigation_url(url)
            ):
                targets.append(CrawlTarget(url=url, depth=next_depth))
        return targets

    def push(self, targets: Iterable[CrawlTarget]) -> int:
        if self.is_full:
            return 0

        pushed = 0
        for target in targets:
            if target.depth > self.max_depth or target.url in self.visited or target.url in self._queued:
                continue
            self._queued.add(target.url)
            self.queue.put_nowait(target)
            pushed += 1
        return pushed

    def progress(self) -> float:
        if self.max_pages <= 0:
            return 100.0
        return min(len(self.visited) / self.max_pages, 1) * 100

    def product_list(self) -> List[str]:
        return sorted(self.products)
