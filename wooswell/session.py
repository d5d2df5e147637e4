"""HTTP session construction shared by the API clients."""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


def create_session(max_retries: int = 3, backoff_factor: float = 2.0) -> requests.Session:
    """
    Create a requests session that retries rate-limited reads.

    Only idempotent GET requests are retried; writes are never replayed.
    """
    session = requests.Session()

    retries = Retry(
        total=max_retries,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 502, 503, 504],
        allowed_methods=frozenset(["GET"]),
        respect_retry_after_header=True,
        raise_on_status=False,
    )

    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    return session
