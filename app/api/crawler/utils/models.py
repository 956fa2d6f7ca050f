# Define data models
from abc import abstractmethod
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Dict, Tuple

from .config import DEFAULT_MAX_DEPTH, DEFAULT_MAX_PAGES, DEFAULT_CONCURRENCY


class CrawlerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    domains: List[str]
    max_depth: int = Field(DEFAULT_MAX_DEPTH, ge=0, alias="maxDepth")
    max_pages: int = Field(DEFAULT_MAX_PAGES, ge=1, alias="maxPages")
    concurrency: int = Field(DEFAULT_CONCURRENCY, ge=1)

    @field_validator("domains")
    @classmethod
    def clean_domains(cls, domains):
        cleaned = [domain.strip() for domain in domains if domain.strip()]
        if not cleaned:
            raise ValueError("at least one domain is required")
        return cleaned


class DomainRunStatus(str, Enum):
    PENDING = "pending"
    CRAWLING = "crawling"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (DomainRunStatus.COMPLETED, DomainRunStatus.ERROR, DomainRunStatus.CANCELLED)


class DomainUpdate(BaseModel):
    """
    One line of the update stream: the domain plus only the fields that changed
    """

    model_config = ConfigDict(populate_by_name=True)

    domain: str
    status: Optional[DomainRunStatus] = None
    progress: Optional[float] = None
    product_urls: Optional[List[str]] = Field(None, alias="productUrls")
    error: Optional[str] = None

    def to_line(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True) + "\n"


# Events emitted by a domain run


class CrawlEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    @abstractmethod
    def to_update(self, domain: str) -> DomainUpdate:
        """Partial update carrying only the fields this event changes"""


class Pending(CrawlEvent):
    def to_update(self, domain):
        return DomainUpdate(domain=domain, status=DomainRunStatus.PENDING, progress=0.0)


class Crawling(CrawlEvent):
    progress: float

    def to_update(self, domain):
        return DomainUpdate(domain=domain, status=DomainRunStatus.CRAWLING, progress=self.progress)


class ProductFound(CrawlEvent):
    url: str
    progress: float
    product_urls: Tuple[str, ...]

    def to_update(self, domain):
        return DomainUpdate(domain=domain, progress=self.progress, product_urls=list(self.product_urls))


class Completed(CrawlEvent):
    product_urls: Tuple[str, ...]

    def to_update(self, domain):
        return DomainUpdate(
            domain=domain,
            status=DomainRunStatus.COMPLETED,
            progress=100.0,
            product_urls=list(self.product_urls),
        )


class Failed(CrawlEvent):
    reason: str
    product_urls: Tuple[str, ...] = ()

    def to_update(self, domain):
        return DomainUpdate(
            domain=domain,
            status=DomainRunStatus.ERROR,
            error=self.reason,
            product_urls=list(self.product_urls),
        )


class Cancelled(CrawlEvent):
    progress: float
    product_urls: Tuple[str, ...]

    def to_update(self, domain):
        return DomainUpdate(
            domain=domain,
            status=DomainRunStatus.CANCELLED,
            progress=self.progress,
            product_urls=list(self.product_urls),
        )


class JobStatus(BaseModel):
    status: dict


class StopResponse(BaseModel):
    job_id: str
    status: str
    message: str


class CrawlerResults(BaseModel):
    job_id: str
    results: Dict[str, List[str]]
