"""HTTP utility functions for the store map builder.

This module provides the retrying fetcher every upstream request goes
through, plus URL sanitizing for log output.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from src.shared.constants import HTTP

__all__ = [
    'FetchRequest',
    'FetchResponse',
    'TransientFetchFailure',
    'fetch_with_retry',
    'get_json',
]


class TransientFetchFailure(Exception):
    """Raised when a request keeps failing after every allowed attempt.

    Attributes:
        url: URL that was requested
        attempts: Number of attempts made
        last_error: The error raised (or synthesized) by the final attempt
    """

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException] = None):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to fetch {_sanitize_url(url)} after {attempts} attempts: {last_error}"
        )


@dataclass
class FetchRequest:
    """A single upstream request.

    Attributes:
        url: Resource to fetch
        method: HTTP method
        headers: Optional headers (supplied by the source config)
        body: Optional request body
        timeout: Per-attempt timeout in seconds
        expect_json: Treat a body that is not valid JSON as a failed attempt
    """
    url: str
    method: str = "GET"
    headers: Optional[Dict[str, str]] = None
    body: Any = None
    timeout: float = HTTP.TIMEOUT
    expect_json: bool = False


@dataclass
class FetchResponse:
    """Successful response: status, raw text and parsed JSON when requested."""
    url: str
    status_code: int
    text: str
    data: Any = None


def _sanitize_url(url: str) -> str:
    """Redact query parameters from URL for safe logging.

    Args:
        url: URL to sanitize

    Returns:
        Sanitized URL with query parameters redacted
    """
    try:
        parsed = urlparse(url)
        safe_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
        if parsed.query:
            safe_url += "?[REDACTED]"
        return safe_url
    except (TypeError, ValueError):
        return "[INVALID_URL]"


def fetch_with_retry(
    session: requests.Session,
    request: FetchRequest,
    max_attempts: int = None,
    base_delay: float = None,
) -> FetchResponse:
    """Perform a request with bounded attempts and linear-growth backoff.

    A failed attempt is a transport error, a timeout, a non-2xx status, or
    (when ``request.expect_json`` is set) a body that does not parse as JSON.
    Attempt N that fails waits ``base_delay * N`` seconds before the next one;
    there is no wait after the final attempt.

    Headers are passed per-request so a session shared by a worker is never
    mutated.

    Args:
        session: requests.Session to use
        request: The request to perform
        max_attempts: Maximum number of attempts (default: HTTP.MAX_RETRIES)
        base_delay: Backoff base in seconds (default: HTTP.RETRY_BASE_DELAY)

    Returns:
        FetchResponse for the first successful attempt

    Raises:
        TransientFetchFailure: When every attempt failed
    """
    max_attempts = max_attempts if max_attempts is not None else HTTP.MAX_RETRIES
    base_delay = base_delay if base_delay is not None else HTTP.RETRY_BASE_DELAY
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    safe_url = _sanitize_url(request.url)
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            response = session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body,
                timeout=request.timeout,
            )
            text = response.text
            if not 200 <= response.status_code < 300:
                raise requests.HTTPError(
                    f"HTTP {response.status_code} {text[:HTTP.ERROR_SNIPPET_LENGTH]}"
                )
            data = json.loads(text) if request.expect_json else None
            logging.debug(f"Fetched {safe_url} (attempt {attempt}/{max_attempts})")
            return FetchResponse(
                url=request.url,
                status_code=response.status_code,
                text=text,
                data=data,
            )

        except (requests.RequestException, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            last_error = e
            if attempt == max_attempts:
                break
            wait_time = base_delay * attempt
            logging.warning(
                f"Request error for {safe_url}: {e}. "
                f"Waiting {wait_time:.2f}s (attempt {attempt}/{max_attempts})..."
            )
            time.sleep(wait_time)

    logging.error(f"Failed to fetch {safe_url} after {max_attempts} attempts (last error: {last_error})")
    raise TransientFetchFailure(request.url, max_attempts, last_error)


def get_json(session: requests.Session, url: str, **kwargs) -> Any:
    """Fetch a URL expecting JSON and return the parsed payload.

    Keyword arguments ``max_attempts`` and ``base_delay`` go to
    fetch_with_retry; the rest build the FetchRequest.
    """
    max_attempts = kwargs.pop('max_attempts', None)
    base_delay = kwargs.pop('base_delay', None)
    request = FetchRequest(url=url, expect_json=True, **kwargs)
    return fetch_with_retry(session, request, max_attempts=max_attempts, base_delay=base_delay).data
