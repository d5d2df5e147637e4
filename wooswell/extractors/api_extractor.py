"""API-based extractors for WooCommerce and Swell."""

import logging
import math
from typing import Any, Dict, Optional

import requests

from .base import BaseExtractor, Page
from ..exceptions import RetrievalError
from ..loaders.swell_loader import SwellLoader
from ..session import create_session

logger = logging.getLogger(__name__)


class WooCommerceExtractor(BaseExtractor):
    """
    Extractor for the WooCommerce REST API.

    Uses ``per_page``/``page`` pagination and reads the total page count
    from the ``X-WP-TotalPages`` response header.
    """

    service = "woo"

    def __init__(
        self,
        url: str,
        consumer_key: str,
        consumer_secret: str,
        version: str = "v3",
        timeout: float = 30.0,
        per_page: int = 100,
        rate_limit: Optional[float] = None,
        max_retries: int = 3,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the WooCommerce extractor.

        Args:
            url: Store URL, e.g. ``https://shop.example.com``
            consumer_key: REST API consumer key
            consumer_secret: REST API consumer secret
            version: REST API version
            timeout: Request timeout in seconds
            per_page: Records per page (WooCommerce caps this at 100)
            rate_limit: Max requests per second
            max_retries: Retries for rate-limited reads
            session: Custom requests session
        """
        super().__init__(per_page=per_page, rate_limit=rate_limit)
        self.base_url = f"{url.rstrip('/')}/wp-json/wc/{version}"
        self.timeout = timeout
        self._session = session or create_session(max_retries)
        self._session.auth = (consumer_key, consumer_secret)

    def fetch_page(
        self,
        endpoint: str,
        page: int,
        per_page: int,
        query: Optional[Dict[str, Any]] = None
    ) -> Page:
        """Fetch one page from a WooCommerce endpoint."""
        url = f"{self.base_url}/{endpoint.strip('/')}"
        params = {"per_page": per_page, "page": page}
        params.update(query or {})
        logger.debug(f"GET {url} page {page}")

        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise RetrievalError(
                f"HTTP error fetching woo {endpoint} page {page}: "
                f"{e.response.status_code} - {e.response.text}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise RetrievalError(f"Request failed fetching woo {endpoint} page {page}: {e}") from e

        total_pages = int(response.headers.get("X-WP-TotalPages", 0) or 0)
        return Page(records=response.json(), total_pages=total_pages)


class SwellExtractor(BaseExtractor):
    """
    Extractor for Swell collections.

    Swell reports ``count`` and ``results``; the page count is derived from
    the first response.
    """

    service = "swell"

    def __init__(
        self,
        client: SwellLoader,
        per_page: int = 100,
        rate_limit: Optional[float] = None
    ):
        super().__init__(per_page=per_page, rate_limit=rate_limit)
        self.client = client

    def fetch_page(
        self,
        endpoint: str,
        page: int,
        per_page: int,
        query: Optional[Dict[str, Any]] = None
    ) -> Page:
        """Fetch one page from a Swell collection."""
        params = dict(query or {})
        params.setdefault("limit", per_page)
        params["page"] = page

        response = self.client.get(endpoint, params)
        if not isinstance(response, dict) or "results" not in response:
            raise RetrievalError(f"Unexpected response for swell {endpoint} page {page}: {response!r}")

        count = response.get("count") or 0
        return Page(
            records=response["results"],
            total_pages=math.ceil(count / params["limit"]) if count else 0,
        )
