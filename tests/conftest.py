import asyncio
import os
import tempfile

os.environ.setdefault("CRAWLER_OUTPUT_DIR", tempfile.mkdtemp(prefix="crawler_results_"))
os.environ.setdefault("CRAWLER_LOG_FILE", "")

import pytest  # noqa: E402


def page(*hrefs):
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><body>{anchors}</body></html>"


class FakeFetcher:
    """In-memory stand-in for PageFetcher; unknown URLs fail like a timeout would"""

    def __init__(self, pages, delay=0.01):
        self.pages = pages
        self.delay = delay
        self.fetched = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def fetch(self, url):
        self.fetched.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return self.pages.get(url)
        finally:
            self.in_flight -= 1


@pytest.fixture
def make_page():
    return page


@pytest.fixture
def fake_fetcher():
    return FakeFetcher
