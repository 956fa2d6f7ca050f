import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Network timeout for a single page fetch (seconds)
REQUEST_TIMEOUT = float(os.getenv("CRAWLER_REQUEST_TIMEOUT", 10))

USER_AGENT = os.getenv(
    "CRAWLER_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
)

REQUEST_HEADERS = {
    'User-Agent': USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
}

# Crawl limits used when a request leaves them out
DEFAULT_MAX_DEPTH = int(os.getenv("CRAWLER_MAX_DEPTH", 3))
DEFAULT_MAX_PAGES = int(os.getenv("CRAWLER_MAX_PAGES", 1000))
DEFAULT_CONCURRENCY = int(os.getenv("CRAWLER_CONCURRENCY", 5))

OUTPUT_DIR = Path(os.getenv("CRAWLER_OUTPUT_DIR", Path.home() / "crawler_results"))

LOG_LEVEL = os.getenv("CRAWLER_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("CRAWLER_LOG_FILE", "crawler.log")

# tqdm bars per domain; off for servers and tests
SHOW_PROGRESS = os.getenv("CRAWLER_SHOW_PROGRESS", "0").lower() in ("1", "true", "yes")
