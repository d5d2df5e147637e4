"""Swell REST API loader."""

import logging
from typing import Any, Dict, List, Optional

import requests

from .base import BaseLoader
from ..exceptions import RetrievalError, WriteError
from ..models.record import BatchWriteItem
from ..session import create_session

logger = logging.getLogger(__name__)


def encode_query(query: Optional[Dict[str, Any]], prefix: str = "") -> Dict[str, Any]:
    """
    Flatten a nested query into Swell's bracket notation.

    ``{"where": {"slug": "a"}, "limit": 10}`` becomes
    ``{"where[slug]": "a", "limit": 10}``.
    """
    params: Dict[str, Any] = {}
    for key, value in (query or {}).items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, dict):
            params.update(encode_query(value, name))
        elif isinstance(value, bool):
            params[name] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            params[name] = ",".join(str(v) for v in value)
        elif value is not None:
            params[name] = value
    return params


class SwellLoader(BaseLoader):
    """
    Client for the Swell backend API.

    Reads return the decoded JSON. Writes return either the written record
    or the error-shaped body Swell sends for rejected input (4xx), so that
    callers can count rejections without aborting. Transport failures and
    server errors raise.
    """

    def __init__(
        self,
        store_id: str,
        secret_key: str,
        base_url: str = "https://api.swell.store",
        timeout: float = 60.0,
        max_retries: int = 3,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the Swell loader.

        Args:
            store_id: Swell store ID
            secret_key: Swell secret API key
            base_url: API base URL
            timeout: Request timeout in seconds
            max_retries: Retries for rate-limited reads
            session: Custom requests session
        """
        super().__init__("swell")
        self.store_id = store_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or create_session(max_retries)
        self._session.auth = (store_id, secret_key)
        self._session.headers["Content-Type"] = "application/json"

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def get(self, endpoint: str, query: Optional[Dict[str, Any]] = None) -> Any:
        """Get a record or a page of a collection."""
        try:
            response = self._session.get(
                self._url(endpoint), params=encode_query(query), timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise RetrievalError(
                f"HTTP error reading swell {endpoint}: {e.response.status_code} - {e.response.text}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise RetrievalError(f"Request failed reading swell {endpoint}: {e}") from e

        return response.json() if response.text else None

    def _write(self, method: str, endpoint: str, data: Optional[Any] = None) -> Any:
        """Send a write request and decode the response."""
        try:
            response = self._session.request(
                method, self._url(endpoint), json=data, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise WriteError(f"Request failed: {method} swell {endpoint}: {e}") from e

        if response.status_code >= 500:
            raise WriteError(
                f"Server error: {method} swell {endpoint}: {response.status_code} - {response.text}"
            )

        try:
            body = response.json() if response.text else {}
        except ValueError:
            body = {"error": {"message": response.text}}

        if response.status_code >= 400:
            logger.debug(f"{method} swell {endpoint} rejected: {response.status_code} - {response.text}")
            if not isinstance(body, dict) or "error" not in body:
                body = {"error": body or {"message": f"HTTP {response.status_code}"}}

        return body

    def post(self, endpoint: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._write("POST", endpoint, data)

    def put(self, endpoint: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._write("PUT", endpoint, data)

    def delete(self, endpoint: str) -> Dict[str, Any]:
        return self._write("DELETE", endpoint)

    def batch(self, items: List[BatchWriteItem]) -> List[Any]:
        """
        Submit operations to the ``/:batch`` endpoint.

        Raises:
            WriteError: If the whole request fails or the response does not
                contain one element per item
        """
        if not items:
            return []

        response = self._write("POST", "/:batch", [item.to_dict() for item in items])

        if not isinstance(response, list):
            raise WriteError(f"Batch request rejected: {response!r}")
        if len(response) != len(items):
            raise WriteError(
                f"Batch response has {len(response)} elements for {len(items)} operations"
            )
        return response
