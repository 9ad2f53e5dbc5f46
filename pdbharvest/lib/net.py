"""
pdbharvest network helpers.

Shared request plumbing for the lookup service and the structure mirrors:

- A single ``open_url`` entry point (patched in tests)
- Classification of network-level failures
- Exponential backoff retry for transient failures
"""

from __future__ import annotations

import http.client
import logging
import time
import urllib.error
import urllib.request
from typing import Callable, Optional, TypeVar

# Module logger
_logger = logging.getLogger(__name__)

T = TypeVar("T")

# User agent sent with every request
USER_AGENT = "pdbharvest/1.0 (UniProt to PDB structure harvester)"

# HTTP statuses worth retrying against the same URL
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})

# Failures that happen below the HTTP layer (no status code available).
# HTTPError is a URLError subclass; callers must handle it before these.
NETWORK_ERRORS: tuple[type[BaseException], ...] = (
    urllib.error.URLError,
    TimeoutError,
    ConnectionError,
    http.client.HTTPException,
)


class RetryableError(Exception):
    """Exception wrapper for retryable errors."""
    pass


def with_retry(
    func: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    retryable_exceptions: tuple = NETWORK_ERRORS + (RetryableError,),
) -> T:
    """
    Execute a function with exponential backoff retry.

    Retries the function on specified exceptions using exponential
    backoff strategy: delay = min(base_delay * 2^attempt, max_delay).

    Args:
        func: Function to execute (no arguments).
        max_retries: Maximum number of retry attempts (default: 3).
        base_delay: Initial delay in seconds (default: 1.0).
        max_delay: Maximum delay in seconds (default: 60.0).
        retryable_exceptions: Tuple of exception types to retry.

    Returns:
        The function's return value.

    Raises:
        The last exception if all retries fail.
    """
    last_exception: Optional[BaseException] = None

    for attempt in range(max_retries + 1):
        try:
            return func()
        except retryable_exceptions as e:
            last_exception = e

            if attempt < max_retries:
                delay = min(base_delay * (2 ** attempt), max_delay)
                _logger.warning(
                    f"Retry {attempt + 1}/{max_retries} after {delay:.1f}s: {e}"
                )
                time.sleep(delay)

    if last_exception is not None:
        raise last_exception
    raise RuntimeError("Unexpected retry state")


def open_url(url: str, timeout: float = 60):
    """
    Open a URL and return the response object.

    Non-2xx statuses raise ``urllib.error.HTTPError``.

    Args:
        url: URL to open.
        timeout: Connect/read timeout in seconds.

    Returns:
        A file-like response usable as a context manager.
    """
    request = urllib.request.Request(url)
    request.add_header("User-Agent", USER_AGENT)
    return urllib.request.urlopen(request, timeout=timeout)


def iter_response(response, chunk_size: int = 65536):
    """Yield the body of a response in chunks."""
    while True:
        chunk = response.read(chunk_size)
        if not chunk:
            break
        yield chunk
