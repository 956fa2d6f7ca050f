import re
from urllib.parse import urlparse

PRODUCT_URL_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r'/product/',
        r'/item/',
        r'/p/',
        r'/products/',
        r'/dp/',
        r'/goods/',
        r'/detail/',
        r'/buy/',
        r'/shop/.*/\d+',
        r'/[^/]+/[^/]+/[^/]+\.(html|htm)$',
        r'/\d+\.html?$',  # numeric id page, e.g. /12345.html
        r'/[a-zA-Z0-9-]+/[a-zA-Z0-9-]+/[a-zA-Z0-9-]+$',  # category/sub/slug
    )
)

NAVIGATION_URL_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r'/category/',
        r'/categories/',
        r'/collection/',
        r'/collections/',
        r'/brand/',
        r'/brands/',
        r'/shop/',
        r'/store/',
        r'/catalog/',
        r'/browse/',
        r'/men/',
        r'/women/',
        r'/kids/',
        r'/sale/',
        r'/new/',
        r'/trending/',
    )
)


class UrlClassifier:
    def __init__(self, product_patterns=PRODUCT_URL_PATTERNS, navigation_patterns=NAVIGATION_URL_PATTERNS):
        """
        URL shape classifier

        Args:
            product_patterns (iterable): compiled patterns marking a product page, checked in order
            navigation_patterns (iterable): compiled patterns marking a listing/navigation page
        """
        self.product_patterns = tuple(product_patterns)
        self.navigation_patterns = tuple(navigation_patterns)

    @staticmethod
    def _path(url: str) -> str:
        try:
            return urlparse(url).path
        except (TypeError, ValueError):
            return ''

    def is_product_url(self, url: str) -> bool:
        path = self._path(url)
        return bool(path) and any(pattern.search(path) for pattern in self.product_patterns)

    def is_navigation_url(self, url: str) -> bool:
        path = self._path(url)
        return bool(path) and any(pattern.search(path) for pattern in self.navigation_patterns)
