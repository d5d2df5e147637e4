"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import time

from ..exceptions import RetrievalError
from ..models.migration import PageRange

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of records plus the page count reported by the platform."""
    records: List[Dict[str, Any]] = field(default_factory=list)
    total_pages: int = 0


class BaseExtractor(ABC):
    """
    Base class for paginated record retrieval.

    Subclasses implement a single page read; this class turns it into
    "get all records of an endpoint, optionally restricted to a page range".
    Pages are always fetched one at a time in ascending order since both
    platforms rate limit per API key.
    """

    service = "base"

    def __init__(self, per_page: int = 100, rate_limit: Optional[float] = None):
        """
        Initialize the extractor.

        Args:
            per_page: Records requested per page
            rate_limit: Max page requests per second (None for no delay)
        """
        self.per_page = per_page
        self._rate_limit_delay = 1 / rate_limit if rate_limit else 0
        self._last_request_time = 0.0

    @abstractmethod
    def fetch_page(
        self,
        endpoint: str,
        page: int,
        per_page: int,
        query: Optional[Dict[str, Any]] = None
    ) -> Page:
        """
        Fetch a single page of records.

        Args:
            endpoint: Endpoint path, e.g. ``products``
            page: 1-based page number
            per_page: Records per page
            query: Extra query parameters

        Returns:
            Page with the records and the reported total page count

        Raises:
            RetrievalError: If the request fails
        """
        pass

    def _rate_limit_wait(self):
        """Wait to respect rate limits."""
        if self._rate_limit_delay > 0:
            elapsed = time.time() - self._last_request_time
            wait_time = self._rate_limit_delay - elapsed
            if wait_time > 0:
                time.sleep(wait_time)
        self._last_request_time = time.time()

    def _fetch(self, endpoint: str, page: int, per_page: int, query: Optional[Dict[str, Any]]) -> Page:
        self._rate_limit_wait()
        try:
            return self.fetch_page(endpoint, page, per_page, query)
        except RetrievalError:
            raise
        except Exception as e:
            raise RetrievalError(f"Failed to fetch {self.service} {endpoint} page {page}: {e}") from e

    def get_first_page(self, endpoint: str, per_page: Optional[int] = None) -> Page:
        """Fetch page 1, which also carries the reported page count."""
        logger.info(f"Getting {self.service} {endpoint} page count")
        return self._fetch(endpoint, 1, per_page or self.per_page, None)

    def get_total_pages(self, endpoint: str, per_page: Optional[int] = None) -> int:
        """Get the number of pages the platform reports for an endpoint."""
        return self.get_first_page(endpoint, per_page).total_pages

    def get_all_pages(
        self,
        endpoint: str,
        pages: Optional[PageRange] = None,
        per_page: Optional[int] = None,
        query: Optional[Dict[str, Any]] = None,
        first_page: Optional[Page] = None
    ) -> List[Dict[str, Any]]:
        """
        Get all records from all pages (or a page range) of an endpoint.

        Args:
            endpoint: Endpoint path, e.g. ``products``
            pages: Optional inclusive page range; defaults to every page
            per_page: Records per page (defaults to the extractor setting)
            query: Extra query parameters for every request
            first_page: Page 1 from an earlier get_first_page call, used
                instead of fetching page 1 again

        Returns:
            Records of every page in ascending page order

        Raises:
            RetrievalError: If any page fails; no partial result is returned
        """
        pages = pages or PageRange()
        per_page = per_page or self.per_page

        logger.info(f"Getting {self.service} {endpoint} records from API")

        last = pages.last
        if first_page is None and (last is None or pages.first == 1):
            # Page 1 gives the page count, and is reused as data if in range
            first_page = self._fetch(endpoint, 1, per_page, query)
        if last is None:
            last = first_page.total_pages

        records: List[Dict[str, Any]] = []
        for page in range(pages.first, last + 1):
            if page == 1 and first_page is not None:
                result = first_page
            else:
                result = self._fetch(endpoint, page, per_page, query)
            records.extend(result.records)
            logger.debug(f"{self.service} {endpoint} page {page}/{last}")

        logger.info(f"{len(records)} {self.service} {endpoint} records retrieved")
        return records
